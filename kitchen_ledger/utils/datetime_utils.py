"""Datetime utilities for timestamps and day boundaries.

Usage:
    from kitchen_ledger.utils.datetime_utils import utc_now, start_of_day

    # For SQLAlchemy Column defaults
    created_at = Column(DateTime, default=utc_now)

Engine comparisons happen between naive datetimes expressed in the business
timezone (``Config.timezone``; the system timezone when unset). Aware values
coming from the API (``2026-02-13T00:30:00+01:00``) are converted to that
timezone by ``as_naive`` at the record boundary, and ``local_now`` is the
matching "now", so day and week boundaries line up with the restaurant's
calendar.
"""

from datetime import date, datetime, time, timezone
from typing import Optional, Union

from .config import get_config


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def as_naive(value: datetime) -> datetime:
    """Drop timezone info, converting aware values to the business timezone first.

    Naive values are taken to be business-local already and returned as is.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(get_config().timezone).replace(tzinfo=None)


def local_now() -> datetime:
    """Current business-local time as a naive datetime."""
    return as_naive(utc_now())


def start_of_day(value: Union[date, datetime]) -> datetime:
    """Return 00:00:00 of the given day as a naive datetime."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


def end_of_day(value: Union[date, datetime]) -> datetime:
    """Return 23:59:59.999999 of the given day as a naive datetime."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.max)


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse a timestamp as stored by the API.

    Accepts datetimes, dates and ISO-8601 strings (including a trailing ``Z``).
    Date-only values are pinned to noon so that a timezone shift never moves
    them to the neighbouring day.

    Args:
        value: datetime, date, ISO string or None

    Returns:
        Naive datetime, or None when the value cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_naive(value)
    if isinstance(value, date):
        return datetime.combine(value, time(12, 0))
    if not isinstance(value, str):
        return None

    text = value.strip()
    if len(text) == 10:
        text = f"{text}T12:00:00"
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_naive(datetime.fromisoformat(text))
    except ValueError:
        return None
