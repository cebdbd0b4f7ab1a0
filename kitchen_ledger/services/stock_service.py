"""
Stock service - additive stock mutations with an audit trail.

Stock is only ever changed by deltas (``{id, delta}``), never by writing an
absolute level, so concurrent receptions and sales compose correctly. The
one exception is a committed reconciliation, which sets counted stock as the
new ground truth (see reconciliation_service).

Every applied movement writes a StockAdjustment row.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kitchen_ledger.models import Ingredient, StockAdjustment
from kitchen_ledger.models.enums import AdjustmentReason
from kitchen_ledger.utils.constants import ORIGIN_MANUAL, ORIGIN_QUICK_LOSS
from kitchen_ledger.utils.datetime_utils import local_now

from .database import session_scope
from .defaults import resolve_unit_price
from .dto_utils import to_decimal
from .exceptions import DatabaseError
from .logging_utils import get_service_logger, log_operation
from .records import StockDelta

logger = get_service_logger(__name__)

ZERO = Decimal("0")


@dataclass
class BulkAdjustResult:
    """Mixed outcome of a bulk stock adjustment.

    Attributes:
        results: ``{id, nombre, delta, stock_actual}`` per applied delta
        errors: ``{id, error}`` per delta that could not be applied
    """

    results: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def all_applied(self) -> bool:
        return not self.errors

    @property
    def applied_ids(self) -> List[int]:
        return [item["id"] for item in self.results]

    @property
    def failed_ids(self) -> List[Any]:
        return [item["id"] for item in self.errors]


@dataclass
class LossEntry:
    """A quick loss ("merma") entered without a full count."""

    ingredient_id: int
    quantity: Decimal
    reason: AdjustmentReason = AdjustmentReason.EXPIRY
    notes: str = ""


@dataclass
class RecordedLoss:
    """A loss as applied.

    ``applied_quantity`` can be smaller than ``quantity`` when stock was
    insufficient; stock never goes below zero.
    """

    ingredient_id: int
    name: str
    quantity: Decimal
    applied_quantity: Decimal
    unit_price: Decimal
    value: Decimal
    reason: AdjustmentReason
    stock_after: Decimal


@dataclass
class LossReport:
    recorded: List[RecordedLoss] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total_value(self) -> Decimal:
        return sum((loss.value for loss in self.recorded), ZERO)


def _as_delta(item: Union[StockDelta, Mapping[str, Any]]) -> StockDelta:
    if isinstance(item, StockDelta):
        return StockDelta(ingredient_id=item.ingredient_id, delta=to_decimal(item.delta))
    return StockDelta(ingredient_id=int(item["id"]), delta=to_decimal(item["delta"]))


def bulk_adjust_stock(
    deltas: Iterable[Union[StockDelta, Mapping[str, Any]]],
    reason: str = ORIGIN_MANUAL,
    session: Optional[Session] = None,
    reference: Optional[str] = None,
    applied_at: Optional[datetime] = None,
) -> BulkAdjustResult:
    """
    Apply additive stock deltas item by item.

    A delta that cannot be applied (unknown ingredient, malformed item) is
    reported in ``errors``; the other deltas are still applied. Callers that
    need all-or-nothing semantics decide what a partial result means.

    Args:
        deltas: StockDelta records or ``{id, delta}`` mappings
        reason: Movement origin written to the audit trail
        session: Optional database session
        reference: Optional audit reference (e.g. ``pedido:12``)
        applied_at: Audit timestamp; defaults to now

    Returns:
        BulkAdjustResult with per-item successes and failures

    Raises:
        DatabaseError: If the database rejects the batch
    """
    try:
        if session is not None:
            return _bulk_adjust_stock_impl(deltas, reason, session, reference, applied_at)
        with session_scope() as session:
            return _bulk_adjust_stock_impl(deltas, reason, session, reference, applied_at)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to adjust stock", original_error=e)


def _bulk_adjust_stock_impl(
    deltas: Iterable[Union[StockDelta, Mapping[str, Any]]],
    reason: str,
    session: Session,
    reference: Optional[str],
    applied_at: Optional[datetime],
) -> BulkAdjustResult:
    result = BulkAdjustResult()
    applied_at = applied_at or local_now()

    for item in deltas:
        try:
            delta = _as_delta(item)
        except (KeyError, TypeError, ValueError) as e:
            item_id = item.get("id") if isinstance(item, Mapping) else None
            result.errors.append({"id": item_id, "error": f"Invalid delta: {e}"})
            continue

        ingredient = session.get(Ingredient, delta.ingredient_id)
        if ingredient is None:
            result.errors.append(
                {"id": delta.ingredient_id, "error": f"Ingredient {delta.ingredient_id} not found"}
            )
            continue

        ingredient.stock_actual = to_decimal(ingredient.stock_actual) + delta.delta
        session.add(
            StockAdjustment(
                ingrediente_id=ingredient.id,
                cantidad=delta.delta,
                motivo=reason,
                origen=reason,
                referencia=reference,
                fecha=applied_at,
            )
        )
        result.results.append(
            {
                "id": ingredient.id,
                "nombre": ingredient.nombre,
                "delta": delta.delta,
                "stock_actual": ingredient.stock_actual,
            }
        )

    session.flush()

    log_operation(
        logger,
        "bulk_adjust_stock",
        "success" if result.all_applied else "partial",
        level=logging.INFO if result.all_applied else logging.WARNING,
        reason=reason,
        applied=len(result.results),
        failed_ids=result.failed_ids,
    )
    return result


def record_losses(
    losses: Iterable[LossEntry],
    session: Optional[Session] = None,
    recorded_at: Optional[datetime] = None,
) -> LossReport:
    """
    Record quick losses against current stock.

    Entries with a non-positive quantity or an unknown ingredient are
    reported and skipped. Each loss is valued at the ingredient's unit price.

    Args:
        losses: Loss entries
        session: Optional database session
        recorded_at: Audit timestamp; defaults to now

    Returns:
        LossReport with applied losses, errors and total loss value
    """
    if session is not None:
        return _record_losses_impl(losses, session, recorded_at)
    with session_scope() as session:
        return _record_losses_impl(losses, session, recorded_at)


def _record_losses_impl(
    losses: Iterable[LossEntry], session: Session, recorded_at: Optional[datetime]
) -> LossReport:
    report = LossReport()
    recorded_at = recorded_at or local_now()

    for loss in losses:
        quantity = to_decimal(loss.quantity)
        if quantity <= 0:
            report.errors.append(
                {"id": loss.ingredient_id, "error": f"Quantity must be positive, got {quantity}"}
            )
            continue

        ingredient = session.get(Ingredient, loss.ingredient_id)
        if ingredient is None:
            report.errors.append(
                {"id": loss.ingredient_id, "error": f"Ingredient {loss.ingredient_id} not found"}
            )
            continue

        stock = to_decimal(ingredient.stock_actual)
        applied = min(quantity, max(stock, ZERO))
        ingredient.stock_actual = stock - applied
        unit_price = resolve_unit_price(
            ingredient.precio, ingredient.cantidad_por_formato, ingredient.precio_medio
        )

        session.add(
            StockAdjustment(
                ingrediente_id=ingredient.id,
                cantidad=-applied,
                motivo=loss.reason.value,
                notas=loss.notes or None,
                origen=ORIGIN_QUICK_LOSS,
                fecha=recorded_at,
            )
        )
        report.recorded.append(
            RecordedLoss(
                ingredient_id=ingredient.id,
                name=ingredient.nombre,
                quantity=quantity,
                applied_quantity=applied,
                unit_price=unit_price,
                value=unit_price * quantity,
                reason=loss.reason,
                stock_after=ingredient.stock_actual,
            )
        )

    session.flush()

    log_operation(
        logger,
        "record_losses",
        "success" if not report.errors else "partial",
        level=logging.INFO if not report.errors else logging.WARNING,
        recorded=len(report.recorded),
        total_value=str(report.total_value),
    )
    return report
