"""
P&L service - profit and loss, break-even and thermometer figures.

The arithmetic lives in ``calculate_profit_and_loss``; ``aggregate_sales``
and ``period_profit_and_loss`` feed it from a loaded dataset. Nothing here
touches the database.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union

from kitchen_ledger.utils.config import Config, get_config
from kitchen_ledger.utils.constants import MIN_CONTRIBUTION_MARGIN_RATIO

from .costing_service import recipe_cost
from .dto_utils import Number, coerce_decimal
from .period_service import DateRange, Period, resolve_period
from .records import FixedExpenseRecord, IngredientRecord, RecipeRecord, SaleRecord

HUNDRED = Decimal("100")
ZERO = Decimal("0")


@dataclass
class ProfitAndLoss:
    """Profit and loss figures for a period.

    Attributes:
        revenue: Sales revenue
        cost_of_goods: Cost of goods sold
        fixed_costs: Fixed operating costs
        gross_margin: revenue - cost_of_goods
        net_profit: gross_margin - fixed_costs
        rentability_percent: net_profit / revenue * 100 (0 without revenue)
        cogs_percent: cost_of_goods / revenue * 100 (0 without revenue)
        gross_margin_percent: gross_margin / revenue * 100 (0 without revenue)
        contribution_margin_ratio: Ratio used for break-even, after default and floor
        break_even_revenue: fixed_costs / contribution_margin_ratio
        completion_percent: revenue / break_even_revenue * 100, uncapped
        thermometer_fill_percent: Display height of the thermometer; half of
            completion_percent clamped to [0, 100], so break-even sits at 50
        in_loss: revenue < break_even_revenue
        break_even_gap: Revenue still missing to break even (negative when exceeded)
    """

    revenue: Decimal
    cost_of_goods: Decimal
    fixed_costs: Decimal
    gross_margin: Decimal
    net_profit: Decimal
    rentability_percent: Decimal
    cogs_percent: Decimal
    gross_margin_percent: Decimal
    contribution_margin_ratio: Decimal
    break_even_revenue: Decimal
    completion_percent: Decimal
    thermometer_fill_percent: Decimal
    in_loss: bool
    break_even_gap: Decimal


@dataclass
class SalesAggregate:
    """Revenue and cost of goods for the sales inside a date range."""

    revenue: Decimal
    cost_of_goods: Decimal
    sales_count: int
    average_daily_revenue: Decimal
    missing_recipes: List[int] = field(default_factory=list)


@dataclass
class PeriodProfitAndLoss:
    """P&L for a named period, with the aggregate it was computed from."""

    period: Period
    date_range: DateRange
    sales: SalesAggregate
    profit_and_loss: ProfitAndLoss


def _percent_of_revenue(amount: Decimal, revenue: Decimal) -> Decimal:
    if revenue <= 0:
        return ZERO
    return (amount / revenue) * HUNDRED


def contribution_margin_ratio(
    revenue: Number, gross_margin: Number, default_ratio: Optional[Number] = None
) -> Decimal:
    """
    Contribution margin ratio used for break-even.

    Without revenue the configured default applies. A ratio at or below zero
    is floored to MIN_CONTRIBUTION_MARGIN_RATIO so break-even stays finite.
    """
    revenue = coerce_decimal(revenue)
    if revenue > 0:
        ratio = coerce_decimal(gross_margin) / revenue
    elif default_ratio is not None:
        ratio = coerce_decimal(default_ratio)
    else:
        ratio = get_config().default_contribution_margin_ratio
    if ratio <= 0:
        return MIN_CONTRIBUTION_MARGIN_RATIO
    return ratio


def break_even_revenue(fixed_costs: Number, ratio: Number) -> Decimal:
    """
    Revenue at which gross margin covers fixed costs.

    Example:
        >>> break_even_revenue(5000, Decimal("0.4"))
        Decimal('12500')
        >>> break_even_revenue(5000, 0) == 50000
        True
    """
    ratio = coerce_decimal(ratio)
    if ratio <= 0:
        ratio = MIN_CONTRIBUTION_MARGIN_RATIO
    return coerce_decimal(fixed_costs) / ratio


def calculate_profit_and_loss(
    revenue: Number,
    cost_of_goods: Number,
    fixed_costs: Number,
    default_margin_ratio: Optional[Number] = None,
) -> ProfitAndLoss:
    """
    Compute P&L, break-even and thermometer figures.

    Args:
        revenue: Sales revenue for the period
        cost_of_goods: Cost of goods sold for the period
        fixed_costs: Fixed costs for the period
        default_margin_ratio: Ratio assumed without revenue; defaults to
            Config.default_contribution_margin_ratio

    Returns:
        ProfitAndLoss; every figure is finite
    """
    revenue = coerce_decimal(revenue)
    cost_of_goods = coerce_decimal(cost_of_goods)
    fixed_costs = coerce_decimal(fixed_costs)

    gross_margin = revenue - cost_of_goods
    net_profit = gross_margin - fixed_costs
    ratio = contribution_margin_ratio(revenue, gross_margin, default_margin_ratio)
    break_even = break_even_revenue(fixed_costs, ratio)

    if break_even > 0:
        completion = (revenue / break_even) * HUNDRED
    elif fixed_costs == 0:
        completion = HUNDRED
    else:
        completion = ZERO
    thermometer = min(max(completion / 2, ZERO), HUNDRED)

    return ProfitAndLoss(
        revenue=revenue,
        cost_of_goods=cost_of_goods,
        fixed_costs=fixed_costs,
        gross_margin=gross_margin,
        net_profit=net_profit,
        rentability_percent=_percent_of_revenue(net_profit, revenue),
        cogs_percent=_percent_of_revenue(cost_of_goods, revenue),
        gross_margin_percent=_percent_of_revenue(gross_margin, revenue),
        contribution_margin_ratio=ratio,
        break_even_revenue=break_even,
        completion_percent=completion,
        thermometer_fill_percent=thermometer,
        in_loss=revenue < break_even,
        break_even_gap=break_even - revenue,
    )


def total_fixed_costs(expenses: Iterable[Union[FixedExpenseRecord, Number]]) -> Decimal:
    """Sum fixed expenses; accepts records or bare amounts."""
    total = ZERO
    for expense in expenses:
        if isinstance(expense, FixedExpenseRecord):
            total += expense.monthly_amount
        else:
            total += coerce_decimal(expense)
    return total


def aggregate_sales(
    sales: Iterable[SaleRecord],
    recipes: Dict[int, RecipeRecord],
    ingredients: Dict[int, IngredientRecord],
    date_range: DateRange,
) -> SalesAggregate:
    """
    Revenue and cost of goods for sales inside ``date_range``.

    Cost of goods is the recipe's batch cost times the quantity sold. Sales
    of unknown recipes still count as revenue; their recipe ids are
    reported in missing_recipes.
    """
    revenue = ZERO
    cogs = ZERO
    count = 0
    missing: List[int] = []
    batch_costs: Dict[int, Decimal] = {}

    for sale in sales:
        if not date_range.contains(sale.timestamp):
            continue
        count += 1
        revenue += sale.total
        recipe = recipes.get(sale.recipe_id)
        if recipe is None:
            if sale.recipe_id not in missing:
                missing.append(sale.recipe_id)
            continue
        if recipe.id not in batch_costs:
            batch_costs[recipe.id] = recipe_cost(recipe.lines, ingredients, recipes).total
        cogs += batch_costs[recipe.id] * sale.quantity

    days = max(date_range.days, 1)
    return SalesAggregate(
        revenue=revenue,
        cost_of_goods=cogs,
        sales_count=count,
        average_daily_revenue=revenue / Decimal(days),
        missing_recipes=missing,
    )


def period_profit_and_loss(
    dataset,
    period: Union[Period, str] = Period.THIS_MONTH,
    reference: Optional[datetime] = None,
    config: Optional[Config] = None,
) -> PeriodProfitAndLoss:
    """
    P&L for a named period over a loaded Dataset.

    Fixed costs are the dataset's monthly fixed expenses.
    """
    config = config or get_config()
    period = Period.parse(period)
    date_range = resolve_period(period, reference)
    sales = aggregate_sales(
        dataset.sales, dataset.recipes_by_id, dataset.ingredients_by_id, date_range
    )
    pnl = calculate_profit_and_loss(
        sales.revenue,
        sales.cost_of_goods,
        total_fixed_costs(dataset.fixed_expenses),
        default_margin_ratio=config.default_contribution_margin_ratio,
    )
    return PeriodProfitAndLoss(
        period=period, date_range=date_range, sales=sales, profit_and_loss=pnl
    )
