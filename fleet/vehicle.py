"""Vehicle class - the main aggregate for vehicle data and deadline status."""

from datetime import date
from typing import Dict, List, Optional

from .calculations import classify, days_message, parse_date, worst_status
from .category import CHECK_ORDER, Category
from .maintenance_record import MaintenanceRecord
from .status import Status

VEHICLE_STATUSES = ("active", "maintenance", "inactive")


class Vehicle:
    """Fleet vehicle with descriptive data, deadlines and maintenance history."""

    def __init__(
        self,
        id: str,
        make: str,
        model: str,
        year: Optional[int] = None,
        plate: str = "",
        vin: str = "",
        fuel: str = "",
        engine: str = "",
        power: str = "",
        tires: str = "",
        color: str = "",
        image: str = "",
        km: int = 0,
        status: str = "active",
        type: Optional[str] = None,
        next_inspection_date: Optional[str] = None,
        next_iuc_date: Optional[str] = None,
        next_service_km: Optional[int] = None,
        next_service_date: Optional[str] = None,
        last_annual_review_date: Optional[str] = None,
        next_annual_review_date: Optional[str] = None,
        history: Optional[List[MaintenanceRecord]] = None,
    ):
        if status not in VEHICLE_STATUSES:
            raise ValueError(
                f"Unknown vehicle status '{status}' (expected one of: {', '.join(VEHICLE_STATUSES)})"
            )
        if km is None or km < 0:
            raise ValueError(f"Vehicle km must be a non-negative number, got {km!r}")
        self.id = id
        self.make = make
        self.model = model
        self.year = year
        self.plate = plate
        self.vin = vin
        self.fuel = fuel
        self.engine = engine
        self.power = power
        self.tires = tires
        self.color = color
        self.image = image
        self.km = km
        self.status = status
        self.type = type
        self.next_inspection_date = next_inspection_date
        self.next_iuc_date = next_iuc_date
        self.next_service_km = next_service_km
        self.next_service_date = next_service_date
        self.last_annual_review_date = last_annual_review_date
        self.next_annual_review_date = next_annual_review_date
        self.history = history or []

    @property
    def name(self) -> str:
        """Human-readable vehicle name."""
        return f"{self.make} {self.model}"

    @property
    def display_name(self) -> str:
        """Name with plate, as used in alerts and the digest."""
        return f"{self.name} ({self.plate})" if self.plate else self.name

    def deadline_date(self, category: Category) -> Optional[date]:
        """Parsed deadline date for a category (None when absent or malformed)."""
        return parse_date(getattr(self, category.field), field=f"{self.id}.{category.field}")

    def deadline_status(self, category: Category, today: date) -> Status:
        return classify(self.deadline_date(category), today)

    def deadline_statuses(self, today: date) -> Dict[Category, Status]:
        """Status of every date-bearing deadline, in check order."""
        return {c: self.deadline_status(c, today) for c in CHECK_ORDER}

    def overall_status(self, today: date) -> Status:
        """Most urgent status across all deadlines."""
        return worst_status(*self.deadline_statuses(today).values())

    def deadline_message(self, category: Category, today: date) -> str:
        return days_message(self.deadline_date(category), today)

    def get_history_sorted(self, reverse: bool = True) -> List[MaintenanceRecord]:
        """History by record date, newest first by default."""
        return sorted(self.history, key=lambda r: r.date, reverse=reverse)

    @property
    def total_cost(self) -> float:
        return sum(r.cost for r in self.history if r.cost is not None)
