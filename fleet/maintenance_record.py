"""MaintenanceRecord class for vehicle history entries."""

import uuid
from dataclasses import dataclass, field
from typing import Optional

from .calculations import is_iso_date

# Closed set of record types
RECORD_TYPES = ("Revisão", "Peças", "IPO", "Reparação", "Imposto", "Manutenção")


@dataclass(frozen=True)
class MaintenanceRecord:
    """A record of work or payment done on a vehicle. Immutable once created."""

    date: str
    type: str
    service: str
    km: int
    garage: Optional[str] = None
    cost: Optional[float] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        if not is_iso_date(self.date):
            raise ValueError(f"Invalid record date {self.date!r} (expected YYYY-MM-DD)")
        if self.type not in RECORD_TYPES:
            raise ValueError(
                f"Unknown record type '{self.type}' (expected one of: {', '.join(RECORD_TYPES)})"
            )
        if self.km is None or self.km < 0:
            raise ValueError(f"Record km must be a non-negative number, got {self.km!r}")
        if self.cost is not None and self.cost < 0:
            raise ValueError(f"Record cost must not be negative, got {self.cost!r}")
