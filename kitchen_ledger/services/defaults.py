"""Default resolution for optional or omitted fields.

Each resolver documents what a missing value means. Data omissions are never
errors in the engine: they resolve to the documented fallback here, and
business code only ever sees the resolved value.
"""

from decimal import Decimal
from typing import Optional

from kitchen_ledger.models.enums import LineStatus, OrderStatus
from kitchen_ledger.utils.constants import FULL_YIELD_PERCENT

from .dto_utils import coerce_decimal

ONE = Decimal("1")
ZERO = Decimal("0")


def resolve_yield_percent(
    line_yield: Optional[Decimal], ingredient_yield: Optional[Decimal] = None
) -> Decimal:
    """
    Yield percentage to apply to a recipe line.

    Missing yield means 100: unmeasured prep loss is assumed negligible until
    someone enters it. A line's own yield wins; otherwise the ingredient's
    default yield is used. Zero and negative values count as missing.
    """
    for candidate in (line_yield, ingredient_yield):
        if candidate is not None and coerce_decimal(candidate) > 0:
            return coerce_decimal(candidate)
    return FULL_YIELD_PERCENT


def resolve_portions(portions: Optional[int]) -> int:
    """Portions per batch; anything below 1 (or missing) means one portion."""
    if portions is None:
        return 1
    try:
        value = int(portions)
    except (TypeError, ValueError):
        return 1
    return max(value, 1)


def resolve_quantity_per_format(quantity: Optional[Decimal]) -> Decimal:
    """Units in one purchase format; missing or non-positive means the price is per unit."""
    if quantity is None or coerce_decimal(quantity) <= 0:
        return ONE
    return coerce_decimal(quantity)


def resolve_unit_price(
    price: Optional[Decimal],
    quantity_per_format: Optional[Decimal] = None,
    average_price: Optional[Decimal] = None,
) -> Decimal:
    """
    Price of one stock unit of an ingredient.

    The backend's weighted-average price is the best source when it exists.
    Otherwise the catalog price (per purchase format) is divided by the units
    per format. A missing price costs zero; the line is still reported.
    """
    if average_price is not None and coerce_decimal(average_price) > 0:
        return coerce_decimal(average_price)
    if price is None:
        return ZERO
    return coerce_decimal(price) / resolve_quantity_per_format(quantity_per_format)


def resolve_received_quantity(received: Optional[Decimal], ordered: Decimal) -> Decimal:
    """Until the operator enters a received quantity, the order arrived as placed."""
    if received is None:
        return coerce_decimal(ordered)
    return coerce_decimal(received)


def resolve_real_price(real: Optional[Decimal], ordered_price: Decimal) -> Decimal:
    """
    Price actually charged for a line.

    Missing or zero means the supplier charged the ordered price; the
    reception form pre-fills the ordered price and a cleared field reads
    as zero.
    """
    if real is None or coerce_decimal(real) == 0:
        return coerce_decimal(ordered_price)
    return coerce_decimal(real)


def resolve_line_status(raw) -> LineStatus:
    """Unknown or missing line status means the line was delivered as ordered."""
    if isinstance(raw, LineStatus):
        return raw
    for status in LineStatus:
        if raw == status.value:
            return status
    return LineStatus.OK


def resolve_order_status(raw) -> OrderStatus:
    """Anything other than an explicit received status is still pending."""
    if isinstance(raw, OrderStatus):
        return raw
    if raw == OrderStatus.RECEIVED.value:
        return OrderStatus.RECEIVED
    return OrderStatus.PENDING
