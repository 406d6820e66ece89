"""Status and severity enums for deadline urgency."""

from enum import Enum


class Status(Enum):
    """Deadline status, recomputed from the deadline date on every read."""

    OK = "ok"
    WARNING = "warning"
    EXPIRED = "expired"

    @property
    def rank(self) -> int:
        """Lower rank = more urgent."""
        return _RANK[self]


_RANK = {Status.EXPIRED: 1, Status.WARNING: 2, Status.OK: 3}


class Severity(Enum):
    """Alert severity shown to the user."""

    DANGER = "danger"
    WARNING = "warning"
