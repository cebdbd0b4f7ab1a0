"""Tests for reception_service.

Tests cover:
- Line evaluation: variances, auto-flagging, purchase-format subtotals
- Order totals and stock delta construction
- process_reception() all-or-nothing status transition and retries
- confirm_reception() against the database
"""

from datetime import datetime
from decimal import Decimal

import pytest

from kitchen_ledger.models import Ingredient, OrderLine, PurchaseOrder, StockAdjustment
from kitchen_ledger.models.enums import LineStatus, OrderStatus
from kitchen_ledger.services.database import session_scope
from kitchen_ledger.services.exceptions import OrderNotFound, ValidationError
from kitchen_ledger.services.reception_service import (
    STATUS_PARTIAL,
    STATUS_RECEIVED,
    STATUS_REJECTED,
    build_stock_deltas,
    confirm_reception,
    evaluate_line,
    process_reception,
    summarize_reception,
    validate_reception,
)
from kitchen_ledger.services.records import OrderLineRecord, PurchaseOrderRecord
from kitchen_ledger.services.stock_service import BulkAdjustResult


def _line(ingredient_id=1, ordered="10", price="2", received=None, real=None,
          status=LineStatus.OK, per_format="1", per_unit=False, line_id=None):
    return OrderLineRecord(
        id=line_id,
        ingredient_id=ingredient_id,
        ordered_quantity=Decimal(ordered),
        ordered_unit_price=Decimal(price),
        received_quantity=Decimal(received if received is not None else ordered),
        real_unit_price=Decimal(real if real is not None else price),
        status=status,
        quantity_per_format=Decimal(per_format),
        price_is_per_unit=per_unit,
    )


def _order(*lines, status=OrderStatus.PENDING):
    return PurchaseOrderRecord(id=1, supplier_id=3, date=datetime(2026, 2, 10), status=status,
                               lines=list(lines))


class RecordingApplier:
    """Delta applier double that fails for the given ingredient ids."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    def __call__(self, deltas):
        self.calls.append(list(deltas))
        result = BulkAdjustResult()
        for delta in deltas:
            if delta.ingredient_id in self.failing:
                result.errors.append({"id": delta.ingredient_id, "error": "not found"})
            else:
                result.results.append({"id": delta.ingredient_id, "delta": delta.delta})
        return result


class TestEvaluateLine:
    """Tests for evaluate_line()."""

    def test_exact_delivery_has_no_variance(self):
        evaluation = evaluate_line(_line())
        assert evaluation.status == LineStatus.OK
        assert evaluation.quantity_variance == Decimal("0")
        assert evaluation.price_variance == Decimal("0")
        assert evaluation.received_subtotal == Decimal("20")

    def test_box_price_subtotal(self):
        """Test: 24 units at 33.12 per 24-unit box cost 33.12."""
        evaluation = evaluate_line(_line(ordered="24", price="33.12", per_format="24"))
        assert evaluation.ordered_subtotal == Decimal("33.12")
        assert evaluation.received_subtotal == Decimal("33.12")

    def test_per_unit_price_subtotal(self):
        evaluation = evaluate_line(_line(ordered="24", price="1.38", per_format="24", per_unit=True))
        assert evaluation.received_subtotal == Decimal("33.12")

    def test_quantity_variance_flags_line(self):
        evaluation = evaluate_line(_line(received="8"))
        assert evaluation.status == LineStatus.VARIANCE
        assert evaluation.quantity_variance == Decimal("-2")
        assert evaluation.received_subtotal == Decimal("16")

    def test_price_variance_flags_line(self):
        evaluation = evaluate_line(_line(real="2.05"))
        assert evaluation.status == LineStatus.VARIANCE
        assert evaluation.price_variance == Decimal("0.05")

    def test_variance_within_tolerance_is_ok(self):
        assert evaluate_line(_line(real="2.005")).status == LineStatus.OK

    def test_not_delivered_contributes_nothing(self):
        """Test: not-delivered lines ignore entered quantities and prices."""
        evaluation = evaluate_line(_line(received="10", real="9", status=LineStatus.NOT_DELIVERED))
        assert evaluation.received_subtotal == Decimal("0")
        assert evaluation.ordered_subtotal == Decimal("20")
        assert evaluation.quantity_variance is None
        assert evaluation.price_variance is None
        assert evaluation.status == LineStatus.NOT_DELIVERED


class TestSummaryAndDeltas:
    """Tests for summarize_reception() and build_stock_deltas()."""

    def test_order_totals(self):
        order = _order(
            _line(1, ordered="10", price="2", received="9"),
            _line(2, ordered="5", price="4", real="4.5"),
            _line(3, ordered="1", price="50", status=LineStatus.NOT_DELIVERED),
        )

        summary = summarize_reception(order)

        assert summary.total_ordered == Decimal("90")
        assert summary.total_received == Decimal("18") + Decimal("22.5")
        assert summary.order_variance == Decimal("-49.5")

    def test_deltas_skip_undelivered_and_empty_lines(self):
        order = _order(
            _line(1, received="9"),
            _line(2, status=LineStatus.NOT_DELIVERED),
            _line(3, received="0"),
        )

        deltas = build_stock_deltas(order)

        assert [(d.ingredient_id, d.delta) for d in deltas] == [(1, Decimal("9"))]

    def test_validation_rejects_negative_values_and_received_orders(self):
        order = _order(_line(1, received="-1"), _line(2, real="-3"), status=OrderStatus.RECEIVED)
        errors = validate_reception(order)
        assert len(errors) == 3


class TestProcessReception:
    """Tests for process_reception()."""

    def test_full_success_receives_order(self):
        applier = RecordingApplier()
        order = _order(_line(1), _line(2, received="3"))
        received_at = datetime(2026, 2, 13, 10, 0)

        outcome = process_reception(order, applier, received_at=received_at)

        assert outcome.status == STATUS_RECEIVED
        assert outcome.order.status == OrderStatus.RECEIVED
        assert outcome.order.received_at == received_at
        assert outcome.order.total_received == Decimal("26")
        assert outcome.order.lines[1].status == LineStatus.VARIANCE
        assert order.status == OrderStatus.PENDING
        assert len(applier.calls) == 1

    def test_one_failure_keeps_order_pending(self):
        """Test: with 1 of N deltas failing, N-1 are applied and the order stays pending."""
        applier = RecordingApplier(failing={2})
        order = _order(_line(1), _line(2), _line(3), _line(4))

        outcome = process_reception(order, applier)

        assert outcome.status == STATUS_PARTIAL
        assert outcome.order.status == OrderStatus.PENDING
        assert outcome.order.received_at is None
        assert [item["id"] for item in outcome.applied] == [1, 3, 4]
        assert [item["id"] for item in outcome.failed] == [2]

    def test_partial_outcome_flags_applied_lines(self):
        applier = RecordingApplier(failing={2})
        order = _order(_line(1), _line(2), _line(3))

        outcome = process_reception(order, applier)

        assert [line.stock_applied for line in outcome.order.lines] == [True, False, True]
        assert not any(line.stock_applied for line in order.lines)

    def test_retry_after_partial_sends_only_the_remainder(self):
        """Test: reprocessing a partial outcome applies each delta exactly once."""
        order = _order(_line(1), _line(2), _line(3), _line(4))
        first = process_reception(order, RecordingApplier(failing={2}))

        retry_applier = RecordingApplier()
        second = process_reception(first.order, retry_applier)

        assert [[d.ingredient_id for d in call] for call in retry_applier.calls] == [[2]]
        assert second.is_received
        assert second.order.total_received == Decimal("80")
        assert all(line.stock_applied for line in second.order.lines)

    def test_applied_lines_excluded_from_deltas(self):
        order = _order(_line(1), _line(2))
        order.lines[0].stock_applied = True
        assert [d.ingredient_id for d in build_stock_deltas(order)] == [2]

    def test_invalid_order_applies_nothing(self):
        applier = RecordingApplier()
        outcome = process_reception(_order(_line(1), status=OrderStatus.RECEIVED), applier)
        assert outcome.status == STATUS_REJECTED
        assert applier.calls == []
        assert outcome.errors

    def test_nothing_delivered_still_receives(self):
        applier = RecordingApplier()
        outcome = process_reception(_order(_line(1, status=LineStatus.NOT_DELIVERED)), applier)
        assert outcome.is_received
        assert outcome.order.total_received == Decimal("0")


@pytest.fixture
def pending_order(test_db, stocked_ingredients):
    """Pending order for Harina (box of 24 at 33.12) and Tomate."""
    harina_id, tomate_id = stocked_ingredients
    with session_scope() as session:
        order = PurchaseOrder(proveedor_id=None, fecha=datetime(2026, 2, 10), total=Decimal("45.12"))
        order.lineas = [
            OrderLine(ingrediente_id=harina_id, cantidad=Decimal("24"), precio_unitario=Decimal("33.12"),
                      cantidad_por_formato=Decimal("24")),
            OrderLine(ingrediente_id=tomate_id, cantidad=Decimal("5"), precio_unitario=Decimal("2.40")),
        ]
        session.add(order)
        session.flush()
        return order.id, [line.id for line in order.lineas]


class TestConfirmReception:
    """Tests for confirm_reception() against the database."""

    def test_full_reception_updates_stock_and_stamps_order(self, pending_order, stocked_ingredients):
        order_id, line_ids = pending_order
        harina_id, tomate_id = stocked_ingredients
        received_at = datetime(2026, 2, 13, 9, 30)

        outcome = confirm_reception(
            order_id,
            [{"id": line_ids[1], "cantidadRecibida": 4, "precioReal": 2.5}],
            received_at=received_at,
        )

        assert outcome.is_received
        assert outcome.summary.total_received == Decimal("33.12") + Decimal("10")
        with session_scope() as session:
            assert session.get(Ingredient, harina_id).stock_actual == Decimal("34")
            assert session.get(Ingredient, tomate_id).stock_actual == Decimal("9")
            order = session.get(PurchaseOrder, order_id)
            assert order.estado == OrderStatus.RECEIVED.value
            assert order.fecha_recepcion == received_at
            assert order.total_recibido == Decimal("43.12")
            assert order.lineas[1].estado == LineStatus.VARIANCE.value
            assert order.lineas[1].cantidad_recibida == Decimal("4")
            assert session.query(StockAdjustment).filter_by(referencia=f"pedido:{order_id}").count() == 2

    def test_missing_ingredient_leaves_order_pending(self, pending_order, stocked_ingredients):
        order_id, _ = pending_order
        harina_id, tomate_id = stocked_ingredients
        with session_scope() as session:
            session.delete(session.get(Ingredient, tomate_id))

        outcome = confirm_reception(order_id, [])

        assert outcome.status == STATUS_PARTIAL
        assert [item["id"] for item in outcome.applied] == [harina_id]
        assert [item["id"] for item in outcome.failed] == [tomate_id]
        with session_scope() as session:
            assert session.get(Ingredient, harina_id).stock_actual == Decimal("34")
            order = session.get(PurchaseOrder, order_id)
            assert order.estado == OrderStatus.PENDING.value
            assert order.fecha_recepcion is None

    def test_not_delivered_line_adds_no_stock(self, pending_order, stocked_ingredients):
        order_id, line_ids = pending_order
        _, tomate_id = stocked_ingredients

        outcome = confirm_reception(order_id, [{"id": line_ids[1], "estado": "no-entregado"}])

        assert outcome.is_received
        assert outcome.summary.total_received == Decimal("33.12")
        with session_scope() as session:
            assert session.get(Ingredient, tomate_id).stock_actual == Decimal("5")
            assert session.get(PurchaseOrder, order_id).lineas[1].cantidad_recibida == Decimal("0")

    def test_second_reception_is_rejected(self, pending_order):
        order_id, _ = pending_order
        confirm_reception(order_id, [])

        outcome = confirm_reception(order_id, [])

        assert outcome.status == STATUS_REJECTED

    def test_unknown_order_raises(self, test_db):
        with pytest.raises(OrderNotFound):
            confirm_reception(12345, [])

    def test_unknown_line_raises(self, pending_order):
        order_id, _ = pending_order
        with pytest.raises(ValidationError):
            confirm_reception(order_id, [{"id": 999, "cantidadRecibida": 1}])

    def test_unreadable_value_raises(self, pending_order):
        order_id, line_ids = pending_order
        with pytest.raises(ValidationError):
            confirm_reception(order_id, [{"id": line_ids[0], "cantidadRecibida": "muchos"}])

    def test_retry_after_partial_moves_each_line_once(self, pending_order, stocked_ingredients):
        """Test: Harina lands once at 34 even though the order is confirmed twice."""
        order_id, line_ids = pending_order
        harina_id, tomate_id = stocked_ingredients
        with session_scope() as session:
            session.delete(session.get(Ingredient, tomate_id))

        first = confirm_reception(order_id, [])
        assert first.status == STATUS_PARTIAL
        with session_scope() as session:
            lines = session.get(PurchaseOrder, order_id).lineas
            assert [line.stock_aplicado for line in lines] == [True, False]
            assert lines[0].cantidad_recibida == Decimal("24")
            session.add(Ingredient(id=tomate_id, nombre="Tomate", unidad="kg",
                                   precio=Decimal("2.40"), stock_actual=Decimal("5")))

        second = confirm_reception(order_id, [])

        assert second.is_received
        assert [item["id"] for item in second.applied] == [tomate_id]
        assert second.summary.total_received == Decimal("45.12")
        with session_scope() as session:
            assert session.get(Ingredient, harina_id).stock_actual == Decimal("34")
            assert session.get(Ingredient, tomate_id).stock_actual == Decimal("10")
            order = session.get(PurchaseOrder, order_id)
            assert order.estado == OrderStatus.RECEIVED.value
            assert [line.stock_aplicado for line in order.lineas] == [True, True]
            assert session.query(StockAdjustment).filter_by(referencia=f"pedido:{order_id}").count() == 2

    def test_applied_line_quantity_cannot_change(self, pending_order, stocked_ingredients):
        order_id, line_ids = pending_order
        _, tomate_id = stocked_ingredients
        with session_scope() as session:
            session.delete(session.get(Ingredient, tomate_id))
        confirm_reception(order_id, [])

        with pytest.raises(ValidationError):
            confirm_reception(order_id, [{"id": line_ids[0], "cantidadRecibida": 30}])
