"""Tests for pnl_service."""

from datetime import datetime
from decimal import Decimal

import pytest

from kitchen_ledger.services.dataset_service import Dataset
from kitchen_ledger.services.period_service import DateRange, Period
from kitchen_ledger.services.pnl_service import (
    aggregate_sales,
    break_even_revenue,
    calculate_profit_and_loss,
    contribution_margin_ratio,
    period_profit_and_loss,
    total_fixed_costs,
)
from kitchen_ledger.services.records import (
    FixedExpenseRecord,
    IngredientRecord,
    RecipeLineRecord,
    RecipeRecord,
    SaleRecord,
)
from kitchen_ledger.utils.config import Config


class TestBreakEven:
    """Tests for break_even_revenue() and contribution_margin_ratio()."""

    def test_break_even_at_forty_percent(self):
        assert break_even_revenue(5000, Decimal("0.4")) == Decimal("12500")

    def test_zero_ratio_is_floored(self):
        """Test: a zero ratio is floored to 0.1, never an infinite break-even."""
        assert break_even_revenue(5000, 0) == Decimal("50000")

    def test_negative_margin_is_floored(self):
        assert contribution_margin_ratio(1000, -200) == Decimal("0.1")

    def test_no_revenue_uses_default(self):
        assert contribution_margin_ratio(0, 0, Decimal("0.6")) == Decimal("0.6")

    def test_no_revenue_uses_configured_default(self, monkeypatch):
        monkeypatch.setenv("KITCHEN_LEDGER_DEFAULT_MARGIN", "0.55")
        from kitchen_ledger.utils.config import reset_config

        reset_config()
        assert contribution_margin_ratio(0, 0) == Decimal("0.55")

    def test_builtin_default_is_seventy_percent(self):
        assert contribution_margin_ratio(0, 0) == Decimal("0.7")


class TestCalculateProfitAndLoss:
    """Tests for calculate_profit_and_loss()."""

    def test_profitable_month(self):
        pnl = calculate_profit_and_loss(Decimal("20000"), Decimal("6000"), Decimal("7000"))

        assert pnl.gross_margin == Decimal("14000")
        assert pnl.net_profit == Decimal("7000")
        assert pnl.rentability_percent == Decimal("35")
        assert pnl.cogs_percent == Decimal("30")
        assert pnl.gross_margin_percent == Decimal("70")
        assert pnl.contribution_margin_ratio == Decimal("0.7")
        assert pnl.break_even_revenue == Decimal("10000")
        assert pnl.completion_percent == Decimal("200")
        assert pnl.thermometer_fill_percent == Decimal("100")
        assert pnl.in_loss is False
        assert pnl.break_even_gap == Decimal("-10000")

    def test_loss_making_month(self):
        pnl = calculate_profit_and_loss(Decimal("5000"), Decimal("3000"), Decimal("4000"))

        assert pnl.contribution_margin_ratio == Decimal("0.4")
        assert pnl.break_even_revenue == Decimal("10000")
        assert pnl.completion_percent == Decimal("50")
        assert pnl.thermometer_fill_percent == Decimal("25")
        assert pnl.in_loss is True
        assert pnl.break_even_gap == Decimal("5000")

    def test_reaching_break_even_fills_half_the_thermometer(self):
        pnl = calculate_profit_and_loss(Decimal("10000"), Decimal("6000"), Decimal("4000"))
        assert pnl.completion_percent == Decimal("100")
        assert pnl.thermometer_fill_percent == Decimal("50")
        assert pnl.in_loss is False

    def test_no_sales_uses_default_ratio(self):
        pnl = calculate_profit_and_loss(0, 0, Decimal("7000"), default_margin_ratio=Decimal("0.7"))
        assert pnl.rentability_percent == Decimal("0")
        assert pnl.break_even_revenue == Decimal("10000")
        assert pnl.completion_percent == Decimal("0")
        assert pnl.in_loss is True

    def test_no_fixed_costs_is_complete(self):
        pnl = calculate_profit_and_loss(0, 0, 0)
        assert pnl.break_even_revenue == Decimal("0")
        assert pnl.completion_percent == Decimal("100")
        assert pnl.thermometer_fill_percent == Decimal("50")
        assert pnl.in_loss is False

    def test_cost_above_revenue_floors_ratio(self):
        pnl = calculate_profit_and_loss(Decimal("1000"), Decimal("1500"), Decimal("5000"))
        assert pnl.contribution_margin_ratio == Decimal("0.1")
        assert pnl.break_even_revenue == Decimal("50000")
        assert pnl.gross_margin == Decimal("-500")


class TestTotalFixedCosts:
    def test_records_and_amounts(self):
        expenses = [
            FixedExpenseRecord(concept="Alquiler", monthly_amount=Decimal("1500")),
            FixedExpenseRecord(concept="Personal", monthly_amount=Decimal("3200.50")),
            Decimal("99.50"),
        ]
        assert total_fixed_costs(expenses) == Decimal("4800.00")

    def test_empty(self):
        assert total_fixed_costs([]) == Decimal("0")


@pytest.fixture
def menu():
    ingredients = {2: IngredientRecord(id=2, name="Tomate", price=Decimal("2"))}
    recipes = {
        1: RecipeRecord(
            id=1,
            name="Gazpacho",
            selling_price=Decimal("6"),
            lines=[RecipeLineRecord(quantity=Decimal("0.5"), ingredient_id=2)],  # 1.00 per batch
        )
    }
    return ingredients, recipes


class TestAggregateSales:
    """Tests for aggregate_sales()."""

    def test_revenue_and_cogs_inside_range(self, menu):
        ingredients, recipes = menu
        date_range = DateRange(datetime(2026, 2, 1), datetime(2026, 2, 10, 23, 59))
        sales = [
            SaleRecord(id=1, recipe_id=1, quantity=Decimal("3"), total=Decimal("18"),
                       timestamp=datetime(2026, 2, 2, 13, 0)),
            SaleRecord(id=2, recipe_id=1, quantity=Decimal("2"), total=Decimal("12"),
                       timestamp=datetime(2026, 2, 9, 21, 0)),
            SaleRecord(id=3, recipe_id=1, quantity=Decimal("9"), total=Decimal("54"),
                       timestamp=datetime(2026, 1, 31, 21, 0)),
            SaleRecord(id=4, recipe_id=42, quantity=Decimal("1"), total=Decimal("10"),
                       timestamp=datetime(2026, 2, 5, 12, 0)),
        ]

        aggregate = aggregate_sales(sales, recipes, ingredients, date_range)

        assert aggregate.sales_count == 3
        assert aggregate.revenue == Decimal("40")
        assert aggregate.cost_of_goods == Decimal("5")
        assert aggregate.missing_recipes == [42]
        assert aggregate.average_daily_revenue == Decimal("4")


class TestPeriodProfitAndLoss:
    def test_month_to_date(self, menu, reference_time):
        ingredients, recipes = menu
        dataset = Dataset(
            ingredients=list(ingredients.values()),
            recipes=list(recipes.values()),
            sales=[
                SaleRecord(id=1, recipe_id=1, quantity=Decimal("10"), total=Decimal("60"),
                           timestamp=datetime(2026, 2, 3, 14, 0)),
            ],
            fixed_expenses=[FixedExpenseRecord(concept="Alquiler", monthly_amount=Decimal("100"))],
        )

        report = period_profit_and_loss(dataset, "mes", reference_time, Config("development"))

        assert report.period == Period.THIS_MONTH
        assert report.sales.revenue == Decimal("60")
        assert report.profit_and_loss.cost_of_goods == Decimal("10")
        assert report.profit_and_loss.net_profit == Decimal("-50")
        assert report.profit_and_loss.in_loss is True
