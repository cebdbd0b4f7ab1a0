"""Tests for stock_service: bulk deltas and quick losses."""

from decimal import Decimal

from kitchen_ledger.models import Ingredient, StockAdjustment
from kitchen_ledger.models.enums import AdjustmentReason
from kitchen_ledger.services.database import session_scope
from kitchen_ledger.services.records import StockDelta
from kitchen_ledger.services.stock_service import LossEntry, bulk_adjust_stock, record_losses
from kitchen_ledger.utils.constants import ORIGIN_MANUAL, ORIGIN_QUICK_LOSS


def _stock(ingredient_id):
    with session_scope() as session:
        return session.get(Ingredient, ingredient_id).stock_actual


class TestBulkAdjustStock:
    """Tests for bulk_adjust_stock()."""

    def test_deltas_are_additive(self, test_db, stocked_ingredients):
        harina_id, tomate_id = stocked_ingredients

        result = bulk_adjust_stock(
            [StockDelta(harina_id, Decimal("2.5")), {"id": tomate_id, "delta": -1}]
        )

        assert result.all_applied
        assert result.applied_ids == [harina_id, tomate_id]
        assert result.results[0]["nombre"] == "Harina"
        assert result.results[0]["stock_actual"] == Decimal("12.5")
        assert _stock(harina_id) == Decimal("12.5")
        assert _stock(tomate_id) == Decimal("4")

    def test_missing_ingredient_is_a_per_item_failure(self, test_db, stocked_ingredients):
        harina_id, tomate_id = stocked_ingredients

        result = bulk_adjust_stock(
            [
                {"id": harina_id, "delta": 1},
                {"id": 4040, "delta": 1},
                {"id": tomate_id, "delta": 1},
            ]
        )

        assert result.applied_ids == [harina_id, tomate_id]
        assert result.failed_ids == [4040]
        assert "not found" in result.errors[0]["error"]
        assert _stock(harina_id) == Decimal("11")
        assert _stock(tomate_id) == Decimal("6")

    def test_malformed_item_is_reported(self, test_db, stocked_ingredients):
        harina_id, _ = stocked_ingredients
        result = bulk_adjust_stock([{"id": harina_id}, {"delta": 3}])
        assert len(result.errors) == 2
        assert result.results == []

    def test_each_delta_is_audited(self, test_db, stocked_ingredients):
        harina_id, _ = stocked_ingredients

        bulk_adjust_stock([{"id": harina_id, "delta": -3}], reference="manual:1")

        with session_scope() as session:
            row = session.query(StockAdjustment).one()
            assert row.cantidad == Decimal("-3")
            assert row.origen == ORIGIN_MANUAL
            assert row.referencia == "manual:1"

    def test_composes_with_caller_session(self, test_db, stocked_ingredients):
        harina_id, _ = stocked_ingredients
        with session_scope() as session:
            bulk_adjust_stock([{"id": harina_id, "delta": 5}], session=session)
            assert session.get(Ingredient, harina_id).stock_actual == Decimal("15")


class TestRecordLosses:
    """Tests for record_losses()."""

    def test_loss_reduces_stock_and_is_valued(self, test_db, stocked_ingredients):
        harina_id, _ = stocked_ingredients

        report = record_losses([LossEntry(harina_id, Decimal("4"), AdjustmentReason.ACCIDENT, "saco roto")])

        assert report.errors == []
        loss = report.recorded[0]
        assert loss.applied_quantity == Decimal("4")
        assert loss.unit_price == Decimal("0.5")
        assert loss.value == Decimal("2")
        assert report.total_value == Decimal("2")
        assert _stock(harina_id) == Decimal("6")

        with session_scope() as session:
            row = session.query(StockAdjustment).one()
            assert row.cantidad == Decimal("-4")
            assert row.motivo == "Accidente"
            assert row.origen == ORIGIN_QUICK_LOSS
            assert row.notas == "saco roto"

    def test_stock_never_goes_negative(self, test_db, stocked_ingredients):
        _, tomate_id = stocked_ingredients

        report = record_losses([LossEntry(tomate_id, Decimal("8"))])

        loss = report.recorded[0]
        assert loss.applied_quantity == Decimal("5")
        assert loss.stock_after == Decimal("0")
        assert loss.value == Decimal("19.20")
        assert _stock(tomate_id) == Decimal("0")

    def test_invalid_entries_are_reported_and_skipped(self, test_db, stocked_ingredients):
        harina_id, tomate_id = stocked_ingredients

        report = record_losses(
            [
                LossEntry(harina_id, Decimal("0")),
                LossEntry(777, Decimal("1")),
                LossEntry(tomate_id, Decimal("1")),
            ]
        )

        assert [e["id"] for e in report.errors] == [harina_id, 777]
        assert [loss.ingredient_id for loss in report.recorded] == [tomate_id]
        assert _stock(harina_id) == Decimal("10")
