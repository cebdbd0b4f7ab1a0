"""
Period service - resolves reporting periods to inclusive date ranges.

Every function is a pure function of its arguments. ``reference=None`` means
"now", read once at the call; pass an explicit reference for reproducible
results (reports, tests).

Week boundaries follow ISO weeks: a week starts on Monday regardless of
locale.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

from kitchen_ledger.utils.datetime_utils import as_naive, end_of_day, local_now, start_of_day

from .dto_utils import coerce_decimal

HUNDRED = Decimal("100")


class Period(str, Enum):
    """
    Reporting period tags.

    Values are the tags used by the surrounding application.

    Values:
        TODAY: The reference day, midnight to midnight
        THIS_WEEK: Monday of the reference week up to the reference instant
        LAST_WEEK: The full Monday-Sunday week before the reference week
        THIS_MONTH: Day 1 of the reference month up to the reference instant
        THIS_YEAR: January 1 of the reference year up to the reference instant
    """

    TODAY = "hoy"
    THIS_WEEK = "semana"
    LAST_WEEK = "semanaAnterior"
    THIS_MONTH = "mes"
    THIS_YEAR = "año"

    @classmethod
    def parse(cls, value: Union["Period", str]) -> "Period":
        """
        Resolve a period tag or its English alias.

        Raises:
            ValueError: If the tag is unknown
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for period in cls:
            if text == period.value:
                return period
        period = _PERIOD_ALIASES.get(text.lower())
        if period is None:
            raise ValueError(f"Unknown period: {value!r}")
        return period


_PERIOD_ALIASES = {
    "today": Period.TODAY,
    "this_week": Period.THIS_WEEK,
    "week": Period.THIS_WEEK,
    "last_week": Period.LAST_WEEK,
    "semana_anterior": Period.LAST_WEEK,
    "this_month": Period.THIS_MONTH,
    "month": Period.THIS_MONTH,
    "this_year": Period.THIS_YEAR,
    "year": Period.THIS_YEAR,
    "ano": Period.THIS_YEAR,
}


@dataclass
class DateRange:
    """Inclusive ``[start, end]`` interval of naive datetimes."""

    start: datetime
    end: datetime

    def contains(self, instant: Optional[datetime]) -> bool:
        """True when ``instant`` falls inside the range (None never does)."""
        if instant is None:
            return False
        return self.start <= as_naive(instant) <= self.end

    @property
    def days(self) -> int:
        """Number of calendar days the range touches."""
        return (self.end.date() - self.start.date()).days + 1


@dataclass
class WeekComparison:
    """This week against last week.

    Attributes:
        current: Total for the current week (Monday to reference)
        previous: Total for the previous full week
        percent_change: Relative change in percent; 0 when previous is 0
        trend: 'up', 'down' or 'stable'
    """

    current: Decimal
    previous: Decimal
    percent_change: Decimal
    trend: str


def monday_of(reference: datetime) -> datetime:
    """Midnight of the Monday at or before ``reference``."""
    return start_of_day(reference) - timedelta(days=reference.weekday())


def resolve_period(period: Union[Period, str], reference: Optional[datetime] = None) -> DateRange:
    """
    Resolve a period tag to an inclusive date range.

    Args:
        period: Period or tag ('hoy', 'semana', 'semanaAnterior', 'mes', 'año')
        reference: Reference instant; defaults to now

    Returns:
        DateRange for the period

    Raises:
        ValueError: If the period tag is unknown

    Example:
        >>> r = resolve_period("semana", datetime(2026, 2, 13, 15, 30))
        >>> r.start
        datetime.datetime(2026, 2, 9, 0, 0)
    """
    period = Period.parse(period)
    reference = as_naive(reference) if reference is not None else local_now()

    if period == Period.TODAY:
        return DateRange(start_of_day(reference), end_of_day(reference))
    if period == Period.THIS_WEEK:
        return DateRange(monday_of(reference), reference)
    if period == Period.LAST_WEEK:
        start = monday_of(reference) - timedelta(days=7)
        return DateRange(start, end_of_day(start + timedelta(days=6)))
    if period == Period.THIS_MONTH:
        return DateRange(start_of_day(reference.replace(day=1)), reference)
    return DateRange(start_of_day(reference.replace(month=1, day=1)), reference)


def _sale_timestamp(record: Any) -> Optional[datetime]:
    return record.timestamp


def _sale_total(record: Any) -> Decimal:
    return record.total


def compare_week_over_week(
    records: Iterable[Any],
    reference: Optional[datetime] = None,
    amount_of: Callable[[Any], Any] = _sale_total,
    timestamp_of: Callable[[Any], Optional[datetime]] = _sale_timestamp,
) -> WeekComparison:
    """
    Compare this week's total against last week's.

    Defaults read ``total`` and ``timestamp`` from SaleRecords; pass
    ``amount_of`` / ``timestamp_of`` for other record types.
    """
    reference = as_naive(reference) if reference is not None else local_now()
    this_week = resolve_period(Period.THIS_WEEK, reference)
    last_week = resolve_period(Period.LAST_WEEK, reference)

    current = Decimal("0")
    previous = Decimal("0")
    for record in records:
        instant = timestamp_of(record)
        if this_week.contains(instant):
            current += coerce_decimal(amount_of(record))
        elif last_week.contains(instant):
            previous += coerce_decimal(amount_of(record))

    if previous == 0:
        percent_change = Decimal("0")
    else:
        percent_change = ((current - previous) / previous) * HUNDRED

    if current > previous:
        trend = "up"
    elif current < previous:
        trend = "down"
    else:
        trend = "stable"

    return WeekComparison(
        current=current, previous=previous, percent_change=percent_change, trend=trend
    )
