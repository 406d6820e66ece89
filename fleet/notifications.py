"""Selection of vehicles with deadlines coming due, for the daily digest."""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Tuple

from .category import CHECK_ORDER, Category
from .vehicle import Vehicle

# Look-ahead window of the daily digest
DEFAULT_HORIZON_DAYS = 30


@dataclass(frozen=True)
class DueEvent:
    """A deadline falling on or before the digest horizon."""

    category: Category
    date: date


def target_date(today: date, horizon_days: int = DEFAULT_HORIZON_DAYS) -> date:
    """Last calendar day covered by the digest."""
    if horizon_days < 0:
        raise ValueError(f"horizon_days must not be negative, got {horizon_days}")
    return today + timedelta(days=horizon_days)


def due_events(vehicle: Vehicle, target: date) -> List[DueEvent]:
    """Deadlines of a vehicle on or before target, overdue ones included."""
    events = []
    for category in CHECK_ORDER:
        deadline = vehicle.deadline_date(category)
        if deadline is not None and deadline <= target:
            events.append(DueEvent(category=category, date=deadline))
    return events


def select_due(
    vehicles: Iterable[Vehicle],
    today: date,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> List[Tuple[Vehicle, List[DueEvent]]]:
    """
    Select vehicles with at least one deadline due within the horizon.

    There is no lower bound: an overdue deadline is selected on every run
    until its date is moved forward. Vehicles without due events are left
    out. Malformed dates count as missing for that field only.
    """
    target = target_date(today, horizon_days)
    selection = []
    for vehicle in vehicles:
        events = due_events(vehicle, target)
        if events:
            selection.append((vehicle, events))
    return selection
