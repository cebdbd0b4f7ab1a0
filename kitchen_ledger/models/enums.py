"""
Enumerations shared by the models and the engine.

- AdjustmentReason: causal reasons for stock differences (merma)
- OrderStatus: purchase order lifecycle
- LineStatus: per-line reception outcome
- StockAlert: days-of-stock alert bands
"""

from enum import Enum
from typing import Optional


class AdjustmentReason(str, Enum):
    """
    Closed set of reasons explaining a stock difference.

    Values are the codes persisted by the surrounding application.

    Values:
        EXPIRY: Product expired and was thrown away
        DONATION: Given away (invitation, staff meal, donation)
        ACCIDENT: Dropped, broken, spilled
        KITCHEN_ERROR: Spoiled during preparation
        COUNT_ERROR: Earlier count or recorded movement was wrong
        OTHER: Catch-all; use notes for specifics
    """

    EXPIRY = "Caduco"
    DONATION = "Invitacion"
    ACCIDENT = "Accidente"
    KITCHEN_ERROR = "Error Cocina"
    COUNT_ERROR = "Error Inventario"
    OTHER = "Otros"

    @classmethod
    def parse(cls, value) -> Optional["AdjustmentReason"]:
        """Resolve a persisted code, enum name or English alias; None if unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        text = value.strip()
        for reason in cls:
            if text == reason.value or text.upper() == reason.name:
                return reason
        return _REASON_ALIASES.get(text.lower())


_REASON_ALIASES = {
    "expiry": AdjustmentReason.EXPIRY,
    "caducidad": AdjustmentReason.EXPIRY,
    "donation": AdjustmentReason.DONATION,
    "invitation": AdjustmentReason.DONATION,
    "invitación": AdjustmentReason.DONATION,
    "accident": AdjustmentReason.ACCIDENT,
    "kitchen_error": AdjustmentReason.KITCHEN_ERROR,
    "count_error": AdjustmentReason.COUNT_ERROR,
    "error conteo": AdjustmentReason.COUNT_ERROR,
    "error de inventario": AdjustmentReason.COUNT_ERROR,
    "other": AdjustmentReason.OTHER,
    "otro": AdjustmentReason.OTHER,
}


class OrderStatus(str, Enum):
    """
    Purchase order status.

    Orders are created PENDING; RECEIVED is final.
    """

    PENDING = "pendiente"
    RECEIVED = "recibido"


class LineStatus(str, Enum):
    """
    Reception status of a single order line.

    Values:
        OK: Delivered as ordered
        VARIANCE: Quantity or price differs from the order
        NOT_DELIVERED: Nothing arrived; contributes zero to totals and stock
    """

    OK = "consolidado"
    VARIANCE = "varianza"
    NOT_DELIVERED = "no-entregado"


class StockAlert(str, Enum):
    """Days-of-stock alert bands, most urgent first."""

    CRITICAL = "critico"
    LOW = "bajo"
    MEDIUM = "medio"
    OK = "ok"


class FoodCostBand(str, Enum):
    """Food-cost bands for sales variants (wine by the glass, tapas)."""

    HIGH = "alto"
    WARNING = "aviso"
    OK = "ok"
