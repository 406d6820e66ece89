"""Helper functions for deadline date calculations."""

import logging
import re
from datetime import date, datetime
from typing import Any, Optional, Union

from dateutil.relativedelta import relativedelta

from .status import Status

logger = logging.getLogger(__name__)

# Days before a deadline at which it starts to show as a warning
WARNING_DAYS = 30

# Stored dates are plain YYYY-MM-DD, nothing else fromisoformat accepts
ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")

DateLike = Union[date, str, None]


def is_iso_date(value: Any) -> bool:
    """True for a real calendar date written as YYYY-MM-DD."""
    if not isinstance(value, str) or not ISO_DATE.fullmatch(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_date(value: DateLike, field: str = "date") -> Optional[date]:
    """
    Normalize a boundary value to a calendar date.

    - date/datetime: reduced to the calendar date
    - ISO string (YYYY-MM-DD): parsed
    - None or empty string: None
    - Anything else: logged and treated as missing
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    if not is_iso_date(text):
        logger.warning("Ignoring unparseable %s: %r", field, value)
        return None
    return date.fromisoformat(text)


def format_date(value: Optional[date]) -> Optional[str]:
    """Serialize a calendar date as ISO-8601, or None."""
    return value.isoformat() if value is not None else None


def days_until(deadline: Optional[date], today: date) -> Optional[int]:
    """Calendar days from today to the deadline (negative when past)."""
    if deadline is None:
        return None
    return deadline.toordinal() - today.toordinal()


def classify(deadline: Optional[date], today: date) -> Status:
    """
    Classify a deadline relative to today.

    Past deadlines are EXPIRED, deadlines within WARNING_DAYS (today
    included) are WARNING, anything later or absent is OK.
    """
    diff = days_until(deadline, today)
    if diff is None:
        return Status.OK
    if diff < 0:
        return Status.EXPIRED
    if diff <= WARNING_DAYS:
        return Status.WARNING
    return Status.OK


def worst_status(*statuses: Status) -> Status:
    """Most urgent of the given statuses (OK when none)."""
    return min(statuses, key=lambda s: s.rank, default=Status.OK)


def calc_next_annual_review(last_review: Optional[date]) -> Optional[date]:
    """Next annual review date: last review + 1 calendar year."""
    if last_review is None:
        return None
    return last_review + relativedelta(years=1)


def days_message(deadline: Optional[date], today: date) -> str:
    """Short message describing how far away a deadline is."""
    diff = days_until(deadline, today)
    if diff is None:
        return "N/A"
    if diff < 0:
        return f"Expirou há {abs(diff)} dias"
    if diff == 0:
        return "Vence hoje"
    return f"Vence em {diff} dias"
