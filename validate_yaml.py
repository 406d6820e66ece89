#!/usr/bin/env python3
"""Validate fleet vehicle YAML files against the schema."""
import sys
from pathlib import Path

import yaml
from jsonschema import validate, ValidationError

from fleet.calculations import is_iso_date
from fleet.config import fleet_dir_from_env
from fleet.loader import FleetLoader

DATE_KEYS = (
    "nextInspectionDate",
    "nextIucDate",
    "nextServiceDate",
    "lastAnnualReviewDate",
    "nextAnnualReviewDate",
)


def load_schema() -> dict:
    """Load the JSON schema from schema.yaml."""
    schema_path = Path(__file__).parent / "schema.yaml"
    with open(schema_path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def validate_vehicle_file(filepath: Path, schema: dict) -> list[str]:
    """Validate a single vehicle YAML file. Returns list of errors."""
    errors = []
    try:
        with open(filepath, encoding="utf-8") as f:
            data = yaml.load(f, Loader=FleetLoader)
        validate(instance=data, schema=schema)
        errors.extend(calendar_date_errors(data))
        if data.get("id") != filepath.stem:
            errors.append(f"Id '{data.get('id')}' does not match file name '{filepath.stem}'")
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except ValidationError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors


def calendar_date_errors(data: dict) -> list[str]:
    """Dates that match YYYY-MM-DD but name no real day, e.g. 2024-02-30."""
    errors = []
    for key in DATE_KEYS:
        if key in data and not is_iso_date(data[key]):
            errors.append(f"Invalid date '{data[key]}' at path: {key}")
    for i, record in enumerate(data.get("history") or []):
        if not is_iso_date(record["date"]):
            errors.append(f"Invalid date '{record['date']}' at path: history.{i}.date")
    return errors


def main():
    """Validate all vehicle YAML files in the fleet directory."""
    schema = load_schema()
    vehicles_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else fleet_dir_from_env()

    if not vehicles_dir.exists():
        print(f"Error: vehicles directory not found: {vehicles_dir}")
        return 1

    yaml_files = list(vehicles_dir.glob("*.yaml"))

    if not yaml_files:
        print(f"Warning: No YAML files found in {vehicles_dir}")
        return 0

    all_valid = True
    for filepath in sorted(yaml_files):
        errors = validate_vehicle_file(filepath, schema)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
