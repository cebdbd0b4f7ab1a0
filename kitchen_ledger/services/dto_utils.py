"""DTO utilities for service layer.

Numeric conversion helpers shared by the engine. All money
and quantity arithmetic is done on Decimal; these helpers are the one place
where ints, floats and strings are turned into Decimal.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

Number = Union[Decimal, float, int, str, None]


def to_decimal(value: Number, default: Decimal = Decimal("0")) -> Decimal:
    """
    Convert a numeric input to Decimal.

    Floats go through ``str()`` so that 33.12 becomes Decimal("33.12")
    rather than its binary expansion.

    Args:
        value: Decimal, float, int, numeric string or None
        default: Returned for None, blank strings and non-finite values

    Returns:
        Decimal value

    Raises:
        ValueError: If value is a non-numeric string

    Examples:
        >>> to_decimal(33.12)
        Decimal('33.12')
        >>> to_decimal(None)
        Decimal('0')
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, str):
        if value.strip() == "":
            return default
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}")
    else:
        result = Decimal(str(value))
    if not result.is_finite():
        return default
    return result


def coerce_decimal(value: Number, default: Decimal = Decimal("0")) -> Decimal:
    """
    Like ``to_decimal``, but unreadable strings resolve to ``default``.

    The engine's calculators use this so that a stray value such as
    ``"n/a"`` costs as zero instead of aborting a whole report.

    Examples:
        >>> coerce_decimal("n/a")
        Decimal('0')
        >>> coerce_decimal("2.5")
        Decimal('2.5')
    """
    try:
        return to_decimal(value, default)
    except ValueError:
        return default
