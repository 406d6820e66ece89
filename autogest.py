#!/usr/bin/env python3
"""
Unified CLI for fleet deadline tracking.

Commands:
  list     - Show every vehicle with its deadlines and their status
  alerts   - Show expired and upcoming deadlines, most urgent first
  show     - Show one vehicle's deadlines and maintenance history
  add      - Add a new vehicle
  edit     - Change a vehicle's details
  renew    - Mark a deadline as done by setting its next date
  log      - Add a maintenance record
  delete   - Remove a vehicle and its history
  notify   - Email the daily digest of deadlines due within the horizon
"""

import argparse
import logging
import sys
import uuid
from datetime import date
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from tabulate import tabulate

from fleet import (
    CHECK_ORDER,
    DEFAULT_HORIZON_DAYS,
    RECORD_TYPES,
    Alert,
    Category,
    MaintenanceRecord,
    Status,
    Severity,
    Vehicle,
    VehicleNotFoundError,
    add_maintenance_record,
    aggregate,
    calc_next_annual_review,
    create_vehicle,
    delete_vehicle,
    get_vehicle,
    load_fleet,
    parse_date,
    select_due,
    update_deadline,
    update_vehicle,
)
from fleet.config import ConfigError, MailSettings
from fleet.digest import digest_lines, event_count, render_digest, send_digest
from fleet.notifications import target_date

logger = logging.getLogger("autogest")

# =============================================================================
# Formatting helpers
# =============================================================================

STATUS_LABELS = {
    Status.OK: "Em dia",
    Status.WARNING: "Atenção",
    Status.EXPIRED: "Expirado",
}


def format_km(km: Optional[float]) -> str:
    """Format odometer reading for display."""
    return f"{km:,.0f} km" if km is not None else "-"


def format_cost(cost: Optional[float]) -> str:
    """Format cost for display."""
    return f"{cost:,.2f} €" if cost is not None else "-"


def format_deadline(vehicle: Vehicle, category: Category, today: date) -> str:
    """Deadline date with its status, e.g. '2024-06-01 (Atenção)'."""
    deadline = vehicle.deadline_date(category)
    if deadline is None:
        return "-"
    return f"{deadline.isoformat()} ({STATUS_LABELS[vehicle.deadline_status(category, today)]})"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if not text:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def resolve_today(value: Optional[str]) -> date:
    """The reference date for a command run: --today, or the system date."""
    if value is None:
        return date.today()
    parsed = parse_date(value, field="--today")
    if parsed is None:
        raise ValueError(f"Invalid --today date '{value}' (expected YYYY-MM-DD)")
    return parsed


DATE_FLAGS = (
    ("--inspection", "inspection"),
    ("--iuc", "iuc"),
    ("--last-annual-review", "last_annual_review"),
    ("--next-annual-review", "next_annual_review"),
    ("--next-service-date", "next_service_date"),
)


def check_date_flags(args) -> None:
    """Reject any given date flag that is not a YYYY-MM-DD calendar date."""
    for flag, attr in DATE_FLAGS:
        value = getattr(args, attr)
        if value is not None and parse_date(value, field=flag) is None:
            raise ValueError(f"Invalid date '{value}' for {flag} (expected YYYY-MM-DD)")


def resolve_next_annual(args) -> Optional[str]:
    """--next-annual-review, or one year after --last-annual-review."""
    if args.next_annual_review is not None or not args.last_annual_review:
        return args.next_annual_review
    return calc_next_annual_review(parse_date(args.last_annual_review)).isoformat()


# =============================================================================
# Table builders
# =============================================================================


def make_fleet_table(vehicles: List[Vehicle], today: date) -> List[List[str]]:
    """Convert vehicles to fleet list rows."""
    rows = []
    for v in vehicles:
        rows.append(
            [
                v.id,
                v.name,
                v.plate or "-",
                format_km(v.km),
                format_deadline(v, Category.INSPECTION, today),
                format_deadline(v, Category.IUC, today),
                format_deadline(v, Category.ANNUAL_REVIEW, today),
                STATUS_LABELS[v.overall_status(today)],
            ]
        )
    return rows


def make_alert_table(alerts: List[Alert]) -> List[List[str]]:
    """Convert alerts to table rows."""
    return [
        [
            "EXPIRADO" if alert.severity == Severity.DANGER else "PENDENTE",
            alert.title,
            alert.vehicle.display_name,
            alert.date.isoformat(),
        ]
        for alert in alerts
    ]


def make_history_table(records: List[MaintenanceRecord]) -> List[List[str]]:
    """Convert maintenance records to table rows."""
    return [
        [
            r.date,
            r.type,
            truncate(r.service),
            r.garage or "-",
            format_km(r.km),
            format_cost(r.cost),
        ]
        for r in records
    ]


# =============================================================================
# Commands
# =============================================================================


def cmd_list(args):
    """Show every vehicle with its deadlines and their status."""
    today = resolve_today(args.today)
    vehicles = load_fleet(args.fleet_dir)

    print(f"Fleet: {len(vehicles)} vehicles (as of {today.isoformat()})")
    print()
    if not vehicles:
        print("No vehicles found.")
        return 0

    headers = ["Id", "Vehicle", "Plate", "Km", "IPO", "IUC", "Annual review", "Status"]
    print(tabulate(make_fleet_table(vehicles, today), headers=headers, tablefmt="simple"))
    return 0


def cmd_alerts(args):
    """Show expired and upcoming deadlines, most urgent first."""
    today = resolve_today(args.today)
    alerts = aggregate(load_fleet(args.fleet_dir), today)

    print(f"Alerts: {len(alerts)} (as of {today.isoformat()})")
    print()
    if not alerts:
        print("All deadlines are up to date.")
        return 0

    headers = ["Severity", "Alert", "Vehicle", "Date"]
    print(tabulate(make_alert_table(alerts), headers=headers, tablefmt="simple"))
    return 0


def cmd_show(args):
    """Show one vehicle's deadlines and maintenance history."""
    today = resolve_today(args.today)
    vehicle = get_vehicle(args.fleet_dir, args.vehicle_id)

    print(f"Vehicle: {vehicle.display_name}")
    details = [
        ("Year", vehicle.year),
        ("VIN", vehicle.vin),
        ("Fuel", vehicle.fuel),
        ("Engine", vehicle.engine),
        ("Power", vehicle.power),
        ("Tires", vehicle.tires),
        ("Color", vehicle.color),
    ]
    for label, value in details:
        if value:
            print(f"{label}: {value}")
    print(f"Odometer: {format_km(vehicle.km)}")
    print(f"Status: {vehicle.status}")
    print()

    rows = []
    for category in CHECK_ORDER:
        deadline = vehicle.deadline_date(category)
        rows.append(
            [
                category.label,
                deadline.isoformat() if deadline else "-",
                STATUS_LABELS[vehicle.deadline_status(category, today)],
                vehicle.deadline_message(category, today),
            ]
        )
    print(tabulate(rows, headers=["Deadline", "Date", "Status", "Remaining"], tablefmt="simple"))
    if vehicle.next_service_km or vehicle.next_service_date:
        print()
        print(
            f"Next service: {format_km(vehicle.next_service_km)}"
            f" / {vehicle.next_service_date or '-'}"
        )
    print()

    history = vehicle.get_history_sorted()
    print(f"History: {len(history)} records")
    if vehicle.total_cost > 0:
        print(f"Total cost: {format_cost(vehicle.total_cost)}")
    if history:
        print()
        headers = ["Date", "Type", "Service", "Garage", "Km", "Cost"]
        print(tabulate(make_history_table(history), headers=headers, tablefmt="simple"))
    return 0


def cmd_add(args):
    """Add a new vehicle."""
    check_date_flags(args)
    next_annual = resolve_next_annual(args)

    vehicle = Vehicle(
        id=args.id or uuid.uuid4().hex[:12],
        make=args.make,
        model=args.model,
        year=args.year,
        plate=args.plate,
        vin=args.vin or "",
        fuel=args.fuel or "",
        color=args.color or "",
        km=args.km,
        status=args.status,
        next_inspection_date=args.inspection,
        next_iuc_date=args.iuc,
        next_service_km=args.next_service_km,
        next_service_date=args.next_service_date,
        last_annual_review_date=args.last_annual_review,
        next_annual_review_date=next_annual,
    )

    print(f"Adding vehicle to {args.fleet_dir}:")
    print(f"  Id:      {vehicle.id}")
    print(f"  Vehicle: {vehicle.display_name}")
    for category in CHECK_ORDER:
        deadline = vehicle.deadline_date(category)
        if deadline:
            print(f"  {category.label}: {deadline.isoformat()}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    create_vehicle(args.fleet_dir, vehicle)
    print("Vehicle saved.")
    return 0


def cmd_edit(args):
    """Change a vehicle's details. Only the given flags are changed."""
    check_date_flags(args)
    vehicle = get_vehicle(args.fleet_dir, args.vehicle_id)

    flags = {
        "make": args.make,
        "model": args.model,
        "plate": args.plate,
        "year": args.year,
        "vin": args.vin,
        "fuel": args.fuel,
        "color": args.color,
        "km": args.km,
        "status": args.status,
        "next_inspection_date": args.inspection,
        "next_iuc_date": args.iuc,
        "last_annual_review_date": args.last_annual_review,
        "next_annual_review_date": resolve_next_annual(args),
        "next_service_km": args.next_service_km,
        "next_service_date": args.next_service_date,
    }
    changes = {
        attr: value
        for attr, value in flags.items()
        if value is not None and value != getattr(vehicle, attr)
    }

    print(f"Vehicle: {vehicle.display_name}")
    if not changes:
        print("Nothing to change.")
        return 0
    for attr, value in changes.items():
        print(f"  {attr}: {getattr(vehicle, attr) or '-'} -> {value}")
    print()

    edited = Vehicle(**{**vars(vehicle), **changes})
    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    update_vehicle(args.fleet_dir, edited)
    print("Vehicle updated.")
    return 0


def cmd_renew(args):
    """Mark a deadline as done by setting its next date."""
    category = Category.parse(args.category)
    vehicle = get_vehicle(args.fleet_dir, args.vehicle_id)
    new_date = parse_date(args.date, field="date")
    if new_date is None:
        print(f"Error: Invalid date '{args.date}' (expected YYYY-MM-DD)")
        return 1

    old_date = vehicle.deadline_date(category)
    print(f"Vehicle: {vehicle.display_name}")
    print(f"{category.label}: {old_date.isoformat() if old_date else '-'} -> {new_date.isoformat()}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    update_deadline(args.fleet_dir, vehicle.id, category, new_date)
    print("Deadline updated.")
    return 0


def cmd_log(args):
    """Add a maintenance record."""
    vehicle = get_vehicle(args.fleet_dir, args.vehicle_id)
    record = MaintenanceRecord(
        date=args.date or resolve_today(args.today).isoformat(),
        type=args.type,
        service=args.service,
        km=args.km if args.km is not None else vehicle.km,
        garage=args.garage,
        cost=args.cost,
    )

    print(f"Adding maintenance record to {vehicle.display_name}:")
    print(f"  Date:    {record.date}")
    print(f"  Type:    {record.type}")
    print(f"  Service: {record.service}")
    print(f"  Km:      {format_km(record.km)}")
    if record.garage:
        print(f"  Garage:  {record.garage}")
    if record.cost is not None:
        print(f"  Cost:    {format_cost(record.cost)}")
    if record.km > vehicle.km:
        print(f"  Odometer: {format_km(vehicle.km)} -> {format_km(record.km)}")
    if args.next_service_km is not None:
        print(f"  Next service: {format_km(args.next_service_km)}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    add_maintenance_record(args.fleet_dir, vehicle.id, record, next_service_km=args.next_service_km)
    print("Record saved.")
    return 0


def cmd_delete(args):
    """Remove a vehicle and its history."""
    vehicle = get_vehicle(args.fleet_dir, args.vehicle_id)
    print(f"Deleting {vehicle.display_name} and {len(vehicle.history)} history records")

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    delete_vehicle(args.fleet_dir, vehicle.id)
    print("Vehicle deleted.")
    return 0


def cmd_notify(args):
    """Email the daily digest of deadlines due within the horizon."""
    today = resolve_today(args.today)
    target = target_date(today, args.horizon)
    logger.info("Checking for events due on or before %s", target.isoformat())

    selection = select_due(load_fleet(args.fleet_dir), today, args.horizon)
    if not selection:
        logger.info("No upcoming or due alerts found.")
        return 0

    message = render_digest(selection, target)
    if args.dry_run:
        print(f"Subject: {message['Subject']}")
        print()
        for line in digest_lines(selection):
            print(f"  {line}")
        print()
        print("(dry run - no email sent)")
        return 0

    settings = MailSettings.from_env()
    try:
        send_digest(message, settings)
    except OSError:
        logger.exception("Error sending digest email")
        return 1
    print(f"Digest sent to {settings.recipient}: {event_count(selection)} events")
    return 0


# =============================================================================
# Main
# =============================================================================


def add_vehicle_arguments(parser: argparse.ArgumentParser, editing: bool = False) -> None:
    """Vehicle field flags shared by add and edit. Editing makes every flag optional."""
    parser.add_argument("--make", type=str, required=not editing, help="Make (e.g., 'BMW')")
    parser.add_argument("--model", type=str, required=not editing, help="Model (e.g., 'X5')")
    parser.add_argument("--plate", type=str, required=not editing, help="License plate")
    parser.add_argument("--year", type=int, help="Model year")
    parser.add_argument("--vin", type=str, help="VIN")
    parser.add_argument("--fuel", type=str, help="Fuel type")
    parser.add_argument("--color", type=str, help="Color")
    parser.add_argument("--km", type=int, default=None if editing else 0, help="Odometer reading")
    parser.add_argument(
        "--status",
        choices=["active", "maintenance", "inactive"],
        default=None if editing else "active",
        help="Lifecycle status" if editing else "Lifecycle status (default: active)",
    )
    parser.add_argument("--inspection", type=str, help="Next inspection (IPO) date")
    parser.add_argument("--iuc", type=str, help="Next road tax (IUC) date")
    parser.add_argument(
        "--last-annual-review",
        type=str,
        help="Last annual review date; next review defaults to one year later",
    )
    parser.add_argument("--next-annual-review", type=str, help="Next annual review date")
    parser.add_argument("--next-service-km", type=int, help="Odometer reading of next service")
    parser.add_argument("--next-service-date", type=str, help="Date of next service")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fleet deadline tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s vehicles list
  %(prog)s vehicles alerts --today 2024-06-01
  %(prog)s vehicles show bmw-x5
  %(prog)s vehicles add --id bmw-x5 --make BMW --model X5 --plate AA-00-BB \\
      --inspection 2024-09-01 --iuc 2024-06-30 --last-annual-review 2023-07-15
  %(prog)s vehicles edit bmw-x5 --km 125000 --status maintenance
  %(prog)s vehicles renew bmw-x5 iuc 2025-06-30
  %(prog)s vehicles log bmw-x5 --type Revisão --service "Óleo e filtros" --km 120000
  %(prog)s vehicles delete bmw-x5
  %(prog)s vehicles notify --dry-run
""",
    )
    parser.add_argument(
        "fleet_dir",
        type=Path,
        help="Directory holding one YAML file per vehicle",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    today_help = "Reference date in YYYY-MM-DD format (default: today)"

    list_parser = subparsers.add_parser("list", help="Show vehicles with deadline status")
    list_parser.add_argument("--today", type=str, help=today_help)

    alerts_parser = subparsers.add_parser("alerts", help="Show expired and upcoming deadlines")
    alerts_parser.add_argument("--today", type=str, help=today_help)

    show_parser = subparsers.add_parser("show", help="Show one vehicle")
    show_parser.add_argument("vehicle_id", type=str, help="Vehicle id")
    show_parser.add_argument("--today", type=str, help=today_help)

    # Add subcommand
    add_parser = subparsers.add_parser("add", help="Add a new vehicle")
    add_parser.add_argument("--id", type=str, help="Vehicle id (default: generated)")
    add_vehicle_arguments(add_parser)
    add_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be added without saving",
    )

    # Edit subcommand
    edit_parser = subparsers.add_parser("edit", help="Change a vehicle's details")
    edit_parser.add_argument("vehicle_id", type=str, help="Vehicle id")
    add_vehicle_arguments(edit_parser, editing=True)
    edit_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without saving",
    )

    # Renew subcommand
    renew_parser = subparsers.add_parser("renew", help="Mark a deadline as done")
    renew_parser.add_argument("vehicle_id", type=str, help="Vehicle id")
    renew_parser.add_argument(
        "category",
        type=str,
        help="Deadline: inspection, iuc or annual",
    )
    renew_parser.add_argument("date", type=str, help="New due date (YYYY-MM-DD)")
    renew_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be updated without saving",
    )

    # Log subcommand
    log_parser = subparsers.add_parser("log", help="Add a maintenance record")
    log_parser.add_argument("vehicle_id", type=str, help="Vehicle id")
    log_parser.add_argument("--type", choices=RECORD_TYPES, required=True, help="Record type")
    log_parser.add_argument("--service", type=str, required=True, help="Description of the work")
    log_parser.add_argument(
        "--date",
        type=str,
        help="Record date in YYYY-MM-DD format (default: today)",
    )
    log_parser.add_argument(
        "--km",
        type=int,
        help="Odometer reading at the time (default: vehicle's current km)",
    )
    log_parser.add_argument("--garage", type=str, help="Garage that did the work")
    log_parser.add_argument("--cost", type=float, help="Cost")
    log_parser.add_argument(
        "--next-service-km",
        type=int,
        help="Odometer reading at which the next service is due",
    )
    log_parser.add_argument("--today", type=str, help=today_help)
    log_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be added without saving",
    )

    # Delete subcommand
    delete_parser = subparsers.add_parser("delete", help="Remove a vehicle")
    delete_parser.add_argument("vehicle_id", type=str, help="Vehicle id")
    delete_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be deleted without deleting",
    )

    # Notify subcommand
    notify_parser = subparsers.add_parser("notify", help="Email the daily deadline digest")
    notify_parser.add_argument(
        "--horizon",
        type=int,
        default=DEFAULT_HORIZON_DAYS,
        help=f"Look-ahead window in days (default: {DEFAULT_HORIZON_DAYS})",
    )
    notify_parser.add_argument("--today", type=str, help=today_help)
    notify_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the digest instead of sending it",
    )

    return parser


COMMANDS = {
    "list": cmd_list,
    "alerts": cmd_alerts,
    "show": cmd_show,
    "add": cmd_add,
    "edit": cmd_edit,
    "renew": cmd_renew,
    "log": cmd_log,
    "delete": cmd_delete,
    "notify": cmd_notify,
}


def main(argv: Optional[List[str]] = None):
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except VehicleNotFoundError as e:
        print(f"Error: {e.args[0]}")
        return 1
    except (ValueError, ConfigError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
