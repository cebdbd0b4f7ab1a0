"""
Reception service - receiving purchase orders into stock.

The operator annotates each order line with what actually arrived (received
quantity, real price, status). The engine evaluates variances, totals and
the stock deltas to apply; ``process_reception`` applies the deltas through
a caller-supplied applier and decides the order's fate:

- every delta applied: the order becomes RECEIVED (final)
- any delta failed: the order stays PENDING, and the outcome lists exactly
  which deltas were applied so only the remainder is retried
- validation failed: nothing is applied

``confirm_reception`` wires the engine to the database.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session

from kitchen_ledger.models import PurchaseOrder
from kitchen_ledger.models.enums import LineStatus, OrderStatus
from kitchen_ledger.utils.constants import ORIGIN_RECEPTION, VARIANCE_EPSILON
from kitchen_ledger.utils.datetime_utils import as_naive, local_now

from .database import session_scope
from .exceptions import OrderNotFound, ValidationError
from .logging_utils import get_service_logger, log_operation
from .record_adapters import purchase_order_from_dict
from .records import OrderLineRecord, PurchaseOrderRecord, StockDelta
from .stock_service import BulkAdjustResult, bulk_adjust_stock

logger = get_service_logger(__name__)

ZERO = Decimal("0")

STATUS_RECEIVED = "received"
STATUS_PARTIAL = "partial"
STATUS_REJECTED = "rejected"

# Fields an update may still change on a line that already moved stock
APPLIED_LINE_EDITABLE = {"precioReal", "precio_real"}


@dataclass
class LineEvaluation:
    """Reception figures for one order line.

    Variances are None for not-delivered lines: "not applicable" rather
    than "no variance".

    Attributes:
        line: The evaluated line
        status: Effective status (auto-flagged VARIANCE when a variance exceeds 0.01)
        quantity_variance: received - ordered quantity
        price_variance: real - ordered unit price
        ordered_subtotal: Cost of the line as ordered
        received_subtotal: Cost of the line as received (0 when not delivered)
    """

    line: OrderLineRecord
    status: LineStatus
    quantity_variance: Optional[Decimal]
    price_variance: Optional[Decimal]
    ordered_subtotal: Decimal
    received_subtotal: Decimal

    @property
    def delivered(self) -> bool:
        return self.status != LineStatus.NOT_DELIVERED


@dataclass
class ReceptionSummary:
    total_ordered: Decimal
    total_received: Decimal
    order_variance: Decimal
    lines: List[LineEvaluation] = field(default_factory=list)


@dataclass
class ReceptionOutcome:
    """Result of processing a reception.

    Attributes:
        status: 'received', 'partial' or 'rejected'
        summary: Totals and per-line evaluation
        applied: Deltas the applier reported as applied
        failed: Deltas the applier reported as failed (``{id, error}``)
        errors: Validation messages when rejected
        order: The order after processing (RECEIVED only on full success;
            on a partial outcome, lines that moved stock are flagged
            stock_applied)
    """

    status: str
    summary: ReceptionSummary
    order: PurchaseOrderRecord
    applied: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def is_received(self) -> bool:
        return self.status == STATUS_RECEIVED


DeltaApplier = Callable[[List[StockDelta]], BulkAdjustResult]


def line_subtotal(line: OrderLineRecord, quantity: Decimal, unit_price: Decimal) -> Decimal:
    """
    Cost of ``quantity`` units at ``unit_price``.

    Prices refer to one purchase format holding ``quantity_per_format``
    units unless the line says the price is already per unit, so 24 units
    at 33.12 per 24-unit box cost 33.12.
    """
    if line.price_is_per_unit:
        return quantity * unit_price
    return (quantity / line.quantity_per_format) * unit_price


def evaluate_line(line: OrderLineRecord) -> LineEvaluation:
    """Compute variances, effective status and subtotals for one line."""
    ordered_subtotal = line_subtotal(line, line.ordered_quantity, line.ordered_unit_price)

    if line.status == LineStatus.NOT_DELIVERED:
        return LineEvaluation(
            line=line,
            status=LineStatus.NOT_DELIVERED,
            quantity_variance=None,
            price_variance=None,
            ordered_subtotal=ordered_subtotal,
            received_subtotal=ZERO,
        )

    quantity_variance = line.received_quantity - line.ordered_quantity
    price_variance = line.real_unit_price - line.ordered_unit_price
    status = line.status
    if abs(quantity_variance) > VARIANCE_EPSILON or abs(price_variance) > VARIANCE_EPSILON:
        status = LineStatus.VARIANCE

    return LineEvaluation(
        line=line,
        status=status,
        quantity_variance=quantity_variance,
        price_variance=price_variance,
        ordered_subtotal=ordered_subtotal,
        received_subtotal=line_subtotal(line, line.received_quantity, line.real_unit_price),
    )


def summarize_reception(order: PurchaseOrderRecord) -> ReceptionSummary:
    """Order totals; not-delivered lines count as ordered but contribute nothing received."""
    evaluations = [evaluate_line(line) for line in order.lines]
    total_ordered = sum((e.ordered_subtotal for e in evaluations), ZERO)
    total_received = sum((e.received_subtotal for e in evaluations), ZERO)
    return ReceptionSummary(
        total_ordered=total_ordered,
        total_received=total_received,
        order_variance=total_received - total_ordered,
        lines=evaluations,
    )


def _pending_lines(order: PurchaseOrderRecord) -> List[LineEvaluation]:
    """Delivered lines that received something and have not moved stock yet."""
    return [
        evaluation
        for evaluation in (evaluate_line(line) for line in order.lines)
        if evaluation.delivered
        and evaluation.line.received_quantity > 0
        and not evaluation.line.stock_applied
    ]


def build_stock_deltas(order: PurchaseOrderRecord) -> List[StockDelta]:
    """
    One ``+received`` delta per delivered line that received anything.

    Lines flagged ``stock_applied`` by an earlier partial reception are left
    out, so a retry only sends the remainder.
    """
    return [
        StockDelta(ingredient_id=e.line.ingredient_id, delta=e.line.received_quantity)
        for e in _pending_lines(order)
    ]


def validate_reception(order: PurchaseOrderRecord) -> List[str]:
    """
    Check an annotated order before any stock moves.

    Returns:
        One message per problem; empty when the order can be received
    """
    errors = []
    if order.is_received:
        errors.append(f"Order {order.id} was already received")
    for index, line in enumerate(order.lines):
        if line.status == LineStatus.NOT_DELIVERED:
            continue
        if line.received_quantity < 0:
            errors.append(
                f"Line {index} (ingredient {line.ingredient_id}): received quantity "
                f"cannot be negative ({line.received_quantity})"
            )
        if line.real_unit_price < 0:
            errors.append(
                f"Line {index} (ingredient {line.ingredient_id}): price "
                f"cannot be negative ({line.real_unit_price})"
            )
    return errors


def process_reception(
    order: PurchaseOrderRecord,
    apply_deltas: DeltaApplier,
    received_at: Optional[datetime] = None,
) -> ReceptionOutcome:
    """
    Receive an annotated order.

    Args:
        order: Pending order with reception annotations
        apply_deltas: Applies a batch of deltas and reports per-item
            successes (``results``) and failures (``errors``)
        received_at: Reception timestamp; defaults to now

    Returns:
        ReceptionOutcome. The returned order is RECEIVED, stamped with the
        timestamp and received total, only when every delta was applied.
        On a partial outcome the returned order is still PENDING with the
        applied lines flagged ``stock_applied``; processing that order again
        sends only the deltas that failed.
    """
    summary = summarize_reception(order)

    errors = validate_reception(order)
    if errors:
        return ReceptionOutcome(
            status=STATUS_REJECTED, summary=summary, order=order, errors=errors
        )

    pending = _pending_lines(order)
    applied = apply_deltas(build_stock_deltas(order))
    failed_ids = {item.get("id") for item in applied.errors}
    applied_ids = {item.get("id") for item in applied.results} - failed_ids
    newly_applied = {id(e.line) for e in pending if e.line.ingredient_id in applied_ids}

    def mark(line: OrderLineRecord, **changes) -> OrderLineRecord:
        if id(line) in newly_applied:
            changes["stock_applied"] = True
        return replace(line, **changes) if changes else line

    if applied.errors:
        return ReceptionOutcome(
            status=STATUS_PARTIAL,
            summary=summary,
            order=replace(order, lines=[mark(line) for line in order.lines]),
            applied=list(applied.results),
            failed=list(applied.errors),
        )

    received_order = replace(
        order,
        status=OrderStatus.RECEIVED,
        received_at=as_naive(received_at) if received_at else local_now(),
        total_received=summary.total_received,
        lines=[mark(e.line, status=e.status) for e in summary.lines],
    )
    return ReceptionOutcome(
        status=STATUS_RECEIVED,
        summary=summary,
        order=received_order,
        applied=list(applied.results),
    )


# =============================================================================
# Persistence
# =============================================================================


def confirm_reception(
    order_id: int,
    line_updates: Iterable[Mapping[str, Any]],
    session: Optional[Session] = None,
    received_at: Optional[datetime] = None,
) -> ReceptionOutcome:
    """
    Receive a stored purchase order.

    Line updates carry the line ``id`` plus any of ``cantidadRecibida``,
    ``precioReal`` and ``estado``. Stock deltas are applied through
    bulk_adjust_stock; deltas that succeed stay applied even when others
    fail, but the order is only stamped received on full success. Lines
    that moved stock are flagged ``stockAplicado`` so calling this again
    after a partial outcome applies only the remainder.

    Args:
        order_id: Order to receive
        line_updates: Operator annotations per line
        session: Optional database session
        received_at: Reception timestamp; defaults to now

    Returns:
        ReceptionOutcome

    Raises:
        OrderNotFound: If the order does not exist
        ValidationError: If an update references an unknown line or
            carries values that cannot be read
    """
    if session is not None:
        return _confirm_reception_impl(order_id, line_updates, session, received_at)
    with session_scope() as session:
        return _confirm_reception_impl(order_id, line_updates, session, received_at)


def _confirm_reception_impl(
    order_id: int,
    line_updates: Iterable[Mapping[str, Any]],
    session: Session,
    received_at: Optional[datetime],
) -> ReceptionOutcome:
    order = session.get(PurchaseOrder, order_id)
    if order is None:
        raise OrderNotFound(order_id)

    raw = order.to_dict()
    raw_lines = {line["id"]: line for line in raw["ingredientes"]}
    for update in line_updates:
        line = raw_lines.get(update.get("id"))
        if line is None:
            raise ValidationError([f"Order {order_id} has no line {update.get('id')!r}"])
        changes = {key: value for key, value in update.items() if key != "id"}
        if line.get("stockAplicado") and set(changes) - APPLIED_LINE_EDITABLE:
            raise ValidationError(
                [f"Line {line['id']} already moved stock; only its price can change"]
            )
        line.update(changes)

    adapted = purchase_order_from_dict(raw)
    if not adapted.is_ok:
        raise ValidationError([adapted.error])

    received_at = as_naive(received_at) if received_at else local_now()
    outcome = process_reception(
        adapted.value,
        lambda deltas: bulk_adjust_stock(
            deltas,
            reason=ORIGIN_RECEPTION,
            session=session,
            reference=f"pedido:{order_id}",
            applied_at=received_at,
        ),
        received_at=received_at,
    )

    if outcome.is_received:
        _stamp_received(order, outcome)
    elif outcome.status == STATUS_PARTIAL:
        _stamp_applied_lines(order, outcome.order)

    log_operation(
        logger,
        "confirm_reception",
        outcome.status,
        level=logging.INFO if outcome.is_received else logging.WARNING,
        order_id=order_id,
        applied_ids=[item["id"] for item in outcome.applied],
        failed_ids=[item["id"] for item in outcome.failed],
        validation_errors=outcome.errors,
    )
    return outcome


def _stamp_applied_lines(order: PurchaseOrder, processed: PurchaseOrderRecord) -> None:
    """Persist which lines moved stock, along with the quantity they moved."""
    applied = {line.id: line for line in processed.lines if line.stock_applied}
    for line in order.lineas:
        record = applied.get(line.id)
        if record is None or line.stock_aplicado:
            continue
        line.stock_aplicado = True
        line.cantidad_recibida = record.received_quantity
        line.precio_real = record.real_unit_price


def _stamp_received(order: PurchaseOrder, outcome: ReceptionOutcome) -> None:
    order.estado = OrderStatus.RECEIVED.value
    order.fecha_recepcion = outcome.order.received_at
    order.total_recibido = outcome.summary.total_received

    evaluations = {e.line.id: e for e in outcome.summary.lines}
    applied = {line.id for line in outcome.order.lines if line.stock_applied}
    for line in order.lineas:
        evaluation = evaluations.get(line.id)
        if evaluation is None:
            continue
        line.estado = evaluation.status.value
        line.cantidad_recibida = evaluation.line.received_quantity if evaluation.delivered else ZERO
        line.precio_real = evaluation.line.real_unit_price
        line.stock_aplicado = line.id in applied
