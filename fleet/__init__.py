"""
Fleet deadline tracking.

This package provides the models and logic behind the fleet dashboard:
- Status / Severity: Deadline urgency (OK, WARNING, EXPIRED) and alert severity
- Category: Date-bearing deadlines (inspection, IUC, annual review)
- MaintenanceRecord: Immutable history entries
- Vehicle: Main aggregate with deadlines and history
- classify: Deadline classification against an explicit "today"
- aggregate: Ordered alert list for the dashboard
- select_due: Vehicles with deadlines due for the daily digest
"""

from .status import Status, Severity
from .category import Category, CHECK_ORDER
from .maintenance_record import MaintenanceRecord, RECORD_TYPES
from .vehicle import Vehicle
from .calculations import (
    WARNING_DAYS,
    calc_next_annual_review,
    classify,
    days_message,
    days_until,
    parse_date,
)
from .alerts import Alert, aggregate
from .notifications import DEFAULT_HORIZON_DAYS, DueEvent, select_due
from .loader import (
    add_maintenance_record,
    create_vehicle,
    delete_vehicle,
    get_vehicle,
    load_fleet,
    load_vehicle,
    update_deadline,
    update_vehicle,
    VehicleNotFoundError,
)

__all__ = [
    "Status",
    "Severity",
    "Category",
    "CHECK_ORDER",
    "MaintenanceRecord",
    "RECORD_TYPES",
    "Vehicle",
    "WARNING_DAYS",
    "calc_next_annual_review",
    "classify",
    "days_message",
    "days_until",
    "parse_date",
    "Alert",
    "aggregate",
    "DEFAULT_HORIZON_DAYS",
    "DueEvent",
    "select_due",
    "add_maintenance_record",
    "create_vehicle",
    "delete_vehicle",
    "get_vehicle",
    "load_fleet",
    "load_vehicle",
    "update_deadline",
    "update_vehicle",
    "VehicleNotFoundError",
]
