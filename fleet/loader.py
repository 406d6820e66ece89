"""YAML loading and saving utilities for fleet data (one file per vehicle)."""

import logging
import os
import re
import tempfile
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .calculations import format_date, parse_date
from .category import Category
from .maintenance_record import MaintenanceRecord
from .vehicle import Vehicle

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class VehicleNotFoundError(KeyError):
    """No vehicle file exists for the given id."""

_ID_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9_-]*")

DEADLINE_KEYS = {
    Category.INSPECTION: "nextInspectionDate",
    Category.IUC: "nextIucDate",
    Category.ANNUAL_REVIEW: "nextAnnualReviewDate",
}

# Derived statuses written by older versions; never trusted, never written back
STORED_STATUS_KEYS = ("nextInspectionStatus", "nextIucStatus", "nextAnnualReviewStatus")


class FleetLoader(yaml.SafeLoader):
    """SafeLoader that leaves unquoted dates as strings, checked later by parse_date."""


FleetLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def _iso(value: Any) -> Any:
    """Explicit !!timestamp values still load as dates; keep them as ISO strings."""
    if isinstance(value, date):
        return value.isoformat()
    return value


def _record_from_dict(dct: Dict[str, Any]) -> MaintenanceRecord:
    kwargs = {
        "date": _iso(dct["date"]),
        "type": dct["type"],
        "service": dct.get("service") or "",
        "km": dct.get("km") or 0,
        "garage": dct.get("garage"),
        "cost": dct.get("cost"),
    }
    if dct.get("id"):
        kwargs["id"] = str(dct["id"])
    return MaintenanceRecord(**kwargs)


def _record_to_dict(record: MaintenanceRecord) -> Dict[str, Any]:
    """Serialize a MaintenanceRecord, omitting None values for cleaner YAML."""
    d: Dict[str, Any] = {
        "id": record.id,
        "date": record.date,
        "type": record.type,
        "service": record.service,
        "km": record.km,
    }
    if record.garage is not None:
        d["garage"] = record.garage
    if record.cost is not None:
        d["cost"] = record.cost
    return d


def _vehicle_from_dict(dct: Dict[str, Any]) -> Vehicle:
    """Parse a vehicle file's mapping into a Vehicle."""
    return Vehicle(
        id=str(dct["id"]),
        make=dct["make"],
        model=dct["model"],
        year=dct.get("year"),
        plate=dct.get("plate") or "",
        vin=dct.get("vin") or "",
        fuel=dct.get("fuel") or "",
        engine=dct.get("engine") or "",
        power=dct.get("power") or "",
        tires=dct.get("tires") or "",
        color=dct.get("color") or "",
        image=dct.get("image") or "",
        km=dct.get("km") or 0,
        status=dct.get("status") or "active",
        type=dct.get("type"),
        next_inspection_date=_iso(dct.get("nextInspectionDate")),
        next_iuc_date=_iso(dct.get("nextIucDate")),
        next_service_km=dct.get("nextServiceKm"),
        next_service_date=_iso(dct.get("nextServiceDate")),
        last_annual_review_date=_iso(dct.get("lastAnnualReviewDate")),
        next_annual_review_date=_iso(dct.get("nextAnnualReviewDate")),
        history=[_record_from_dict(r) for r in dct.get("history") or []],
    )


def vehicle_to_dict(vehicle: Vehicle) -> Dict[str, Any]:
    """Serialize a Vehicle to the YAML dict format (camelCase keys)."""
    d: Dict[str, Any] = {
        "id": vehicle.id,
        "make": vehicle.make,
        "model": vehicle.model,
        "year": vehicle.year,
        "plate": vehicle.plate,
        "vin": vehicle.vin,
        "fuel": vehicle.fuel,
        "engine": vehicle.engine,
        "power": vehicle.power,
        "tires": vehicle.tires,
        "color": vehicle.color,
        "image": vehicle.image,
        "km": vehicle.km,
        "status": vehicle.status,
    }
    if vehicle.type is not None:
        d["type"] = vehicle.type
    optional = {
        "nextInspectionDate": vehicle.next_inspection_date,
        "nextIucDate": vehicle.next_iuc_date,
        "nextServiceKm": vehicle.next_service_km,
        "nextServiceDate": vehicle.next_service_date,
        "lastAnnualReviewDate": vehicle.last_annual_review_date,
        "nextAnnualReviewDate": vehicle.next_annual_review_date,
    }
    d.update({k: v for k, v in optional.items() if v is not None})
    d["history"] = [_record_to_dict(r) for r in vehicle.history]
    return d


def vehicle_path(directory: PathLike, vehicle_id: str) -> Path:
    """File holding a vehicle's data."""
    if not _ID_PATTERN.fullmatch(vehicle_id or ""):
        raise ValueError(f"Invalid vehicle id '{vehicle_id}'")
    return Path(directory) / f"{vehicle_id}.yaml"


def _read_yaml(filename: PathLike) -> Dict[str, Any]:
    with open(filename, "r", encoding="utf-8") as fp:
        return yaml.load(fp, Loader=FleetLoader) or {}


def _write_yaml(filename: PathLike, data: Dict[str, Any]) -> None:
    """Write a vehicle file atomically (temp file + rename)."""
    filename = Path(filename)
    fd, tmp_name = tempfile.mkstemp(dir=filename.parent, prefix=f".{filename.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            yaml.dump(
                data,
                fp,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
                width=120,
            )
        os.replace(tmp_name, filename)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _existing_path(directory: PathLike, vehicle_id: str) -> Path:
    path = vehicle_path(directory, vehicle_id)
    if not path.exists():
        raise VehicleNotFoundError(f"Vehicle '{vehicle_id}' not found")
    return path


def load_vehicle(filename: PathLike) -> Vehicle:
    """Load a vehicle from a YAML file."""
    return _vehicle_from_dict(_read_yaml(filename))


def load_fleet(directory: PathLike) -> List[Vehicle]:
    """
    Load every vehicle in a fleet directory, ordered by file name.

    A file that cannot be read as a vehicle is logged and skipped.
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.info("Fleet directory %s does not exist, no vehicles loaded", directory)
        return []
    vehicles = []
    for path in sorted(directory.glob("*.yaml")):
        try:
            vehicles.append(load_vehicle(path))
        except (yaml.YAMLError, KeyError, TypeError, ValueError) as e:
            logger.error("Skipping unreadable vehicle file %s: %s", path.name, e)
    return vehicles


def get_vehicle(directory: PathLike, vehicle_id: str) -> Vehicle:
    """Load one vehicle by id."""
    return load_vehicle(_existing_path(directory, vehicle_id))


def create_vehicle(directory: PathLike, vehicle: Vehicle) -> None:
    """Create a new vehicle file. Fails if the id is already taken."""
    path = vehicle_path(directory, vehicle.id)
    if path.exists():
        raise ValueError(f"Vehicle '{vehicle.id}' already exists")
    path.parent.mkdir(parents=True, exist_ok=True)
    _write_yaml(path, vehicle_to_dict(vehicle))
    logger.info("Created vehicle %s (%s)", vehicle.id, vehicle.display_name)


def update_vehicle(directory: PathLike, vehicle: Vehicle) -> None:
    """Replace an existing vehicle's data, history included."""
    path = _existing_path(directory, vehicle.id)
    _write_yaml(path, vehicle_to_dict(vehicle))
    logger.info("Updated vehicle %s", vehicle.id)


def update_deadline(
    directory: PathLike, vehicle_id: str, category: Category, new_date: Union[date, str]
) -> None:
    """
    Mark a deadline as done by setting its next date.

    Only the one deadline key changes; stale stored status keys are dropped
    and every other key is left as stored.
    """
    parsed = parse_date(new_date, field=DEADLINE_KEYS[category])
    if parsed is None:
        raise ValueError(f"Invalid date '{new_date}' (expected YYYY-MM-DD)")

    path = _existing_path(directory, vehicle_id)
    data = _read_yaml(path)
    for key in STORED_STATUS_KEYS:
        data.pop(key, None)
    data[DEADLINE_KEYS[category]] = format_date(parsed)
    _write_yaml(path, data)
    logger.info("Vehicle %s: %s set to %s", vehicle_id, DEADLINE_KEYS[category], parsed)


def add_maintenance_record(
    directory: PathLike,
    vehicle_id: str,
    record: MaintenanceRecord,
    next_service_km: Optional[int] = None,
) -> None:
    """
    Append a record to a vehicle's history.

    The odometer moves up to the record's km when that is higher, and
    nextServiceKm is set when given, in the same write.
    """
    if next_service_km is not None and next_service_km < 0:
        raise ValueError(f"Next service km must not be negative, got {next_service_km}")

    path = _existing_path(directory, vehicle_id)
    data = _read_yaml(path)
    if data.get("history") is None:
        data["history"] = []
    data["history"].append(_record_to_dict(record))
    if record.km > (data.get("km") or 0):
        logger.info("Vehicle %s: odometer %s -> %s", vehicle_id, data.get("km") or 0, record.km)
        data["km"] = record.km
    if next_service_km is not None:
        data["nextServiceKm"] = next_service_km
    _write_yaml(path, data)
    logger.info("Vehicle %s: added %s record dated %s", vehicle_id, record.type, record.date)


def delete_vehicle(directory: PathLike, vehicle_id: str) -> None:
    """Remove a vehicle file from disk, history included."""
    _existing_path(directory, vehicle_id).unlink()
    logger.info("Deleted vehicle %s", vehicle_id)
