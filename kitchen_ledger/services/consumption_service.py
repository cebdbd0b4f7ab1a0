"""
Consumption service - projects how long ingredient stock will last.

Consumption is derived from sales: each sale of a recipe consumes
``sale quantity * line quantity`` of every ingredient on the recipe's lines.
Daily consumption averages that over a trailing window ending at the
reference instant, and days of stock is ``floor(stock / daily)``.

Window and reorder horizon default to the configured
``consumption_window_days`` and ``reorder_horizon_days``.

All functions are pure; pass ``reference`` for reproducible results.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_FLOOR, Decimal
from typing import Dict, Iterable, List, Optional

from kitchen_ledger.models.enums import StockAlert
from kitchen_ledger.utils.constants import (
    DAYS_OF_STOCK_UNKNOWN,
    NO_CONSUMPTION_MESSAGE,
    STOCK_ALERT_CRITICAL_DAYS,
    STOCK_ALERT_LOW_DAYS,
    STOCK_ALERT_MEDIUM_DAYS,
)
from kitchen_ledger.utils.config import get_config
from kitchen_ledger.utils.datetime_utils import as_naive, local_now

from .dto_utils import Number, coerce_decimal
from .period_service import DateRange
from .records import IngredientRecord, RecipeRecord, SaleRecord

ZERO = Decimal("0")


@dataclass
class StockProjection:
    """Days-of-stock projection for one ingredient.

    Attributes:
        ingredient_id: Ingredient projected
        stock: Stock the projection started from
        total_consumed: Consumption inside the window
        daily_consumption: total_consumed / window days
        days_of_stock: Whole days left, or DAYS_OF_STOCK_UNKNOWN without consumption
        alert: StockAlert band for days_of_stock
        message: Explanation when the projection is indeterminate
        ingredient_name: Display name, when projected from an IngredientRecord
        unit: Stock unit, when projected from an IngredientRecord
        needs_reorder: True when days_of_stock is within the reorder horizon
        suggested_quantity: Quantity that covers the horizon at the current rate
    """

    ingredient_id: int
    stock: Decimal
    total_consumed: Decimal
    daily_consumption: Decimal
    days_of_stock: int
    alert: StockAlert
    message: Optional[str] = None
    ingredient_name: Optional[str] = None
    unit: str = ""
    needs_reorder: bool = False
    suggested_quantity: Decimal = ZERO

    @property
    def has_consumption(self) -> bool:
        return self.daily_consumption > 0


def resolve_window_days(window_days: Optional[int] = None) -> int:
    """Explicit window, else the configured consumption window."""
    if window_days is None:
        return get_config().consumption_window_days
    return window_days


def resolve_horizon_days(horizon_days: Optional[int] = None) -> int:
    if horizon_days is None:
        return get_config().reorder_horizon_days
    return horizon_days


def consumption_window(
    window_days: Optional[int] = None, reference: Optional[datetime] = None
) -> DateRange:
    """Trailing window ``[reference - window_days, reference]``."""
    window_days = resolve_window_days(window_days)
    reference = as_naive(reference) if reference is not None else local_now()
    return DateRange(reference - timedelta(days=window_days), reference)


def consumption_by_ingredient(
    sales: Iterable[SaleRecord],
    recipes: Dict[int, RecipeRecord],
    window_days: Optional[int] = None,
    reference: Optional[datetime] = None,
) -> Dict[int, Decimal]:
    """
    Total consumption of every ingredient inside the trailing window.

    Sales of unknown recipes consume nothing. Base-recipe lines are not
    expanded; only lines referencing an ingredient directly count.
    """
    window = consumption_window(window_days, reference)
    totals: Dict[int, Decimal] = {}

    for sale in sales:
        if not window.contains(sale.timestamp):
            continue
        recipe = recipes.get(sale.recipe_id)
        if recipe is None:
            continue
        for line in recipe.lines:
            if line.is_sub_recipe:
                continue
            totals[line.ingredient_id] = totals.get(line.ingredient_id, ZERO) + (
                sale.quantity * line.quantity
            )

    return totals


def ingredient_consumption(
    ingredient_id: int,
    sales: Iterable[SaleRecord],
    recipes: Dict[int, RecipeRecord],
    window_days: Optional[int] = None,
    reference: Optional[datetime] = None,
) -> Decimal:
    """Total consumption of one ingredient inside the trailing window."""
    totals = consumption_by_ingredient(sales, recipes, window_days, reference)
    return totals.get(ingredient_id, ZERO)


def alert_for(days: int) -> StockAlert:
    """Alert band for a days-of-stock figure; bands are inclusive, most urgent first."""
    if days <= STOCK_ALERT_CRITICAL_DAYS:
        return StockAlert.CRITICAL
    if days <= STOCK_ALERT_LOW_DAYS:
        return StockAlert.LOW
    if days <= STOCK_ALERT_MEDIUM_DAYS:
        return StockAlert.MEDIUM
    return StockAlert.OK


def project_stock(
    ingredient_id: int,
    stock: Number,
    total_consumed: Number,
    window_days: Optional[int] = None,
) -> StockProjection:
    """Build a projection from an already-computed window consumption."""
    window_days = resolve_window_days(window_days)
    stock = coerce_decimal(stock)
    total_consumed = coerce_decimal(total_consumed)
    daily = total_consumed / Decimal(window_days) if window_days > 0 else ZERO

    if daily <= 0:
        return StockProjection(
            ingredient_id=ingredient_id,
            stock=stock,
            total_consumed=total_consumed,
            daily_consumption=ZERO,
            days_of_stock=DAYS_OF_STOCK_UNKNOWN,
            alert=alert_for(DAYS_OF_STOCK_UNKNOWN),
            message=NO_CONSUMPTION_MESSAGE,
        )

    # stock / (consumed / window) rearranged to keep the division exact
    days = int(
        (stock * Decimal(window_days) / total_consumed).to_integral_value(rounding=ROUND_FLOOR)
    )
    return StockProjection(
        ingredient_id=ingredient_id,
        stock=stock,
        total_consumed=total_consumed,
        daily_consumption=daily,
        days_of_stock=days,
        alert=alert_for(days),
    )


def days_of_stock(
    stock: Number,
    sales: Iterable[SaleRecord],
    recipes: Dict[int, RecipeRecord],
    ingredient_id: int,
    window_days: Optional[int] = None,
    reference: Optional[datetime] = None,
) -> StockProjection:
    """
    Project how many whole days ``stock`` lasts at the recent consumption rate.

    Args:
        stock: Current stock of the ingredient
        sales: Sales history
        recipes: Recipe lookup by id
        ingredient_id: Ingredient to project
        window_days: Trailing window length in days; defaults to the
            configured consumption window
        reference: End of the window; defaults to now

    Returns:
        StockProjection; days_of_stock is DAYS_OF_STOCK_UNKNOWN (999) with a
        "no consumption" message when nothing was consumed in the window

    Example:
        Stock 6 with 7 units sold over a 7-day window projects 6 days (medium).
    """
    window_days = resolve_window_days(window_days)
    consumed = ingredient_consumption(ingredient_id, sales, recipes, window_days, reference)
    return project_stock(ingredient_id, stock, consumed, window_days)


def project_reorder_needs(
    ingredients: Iterable[IngredientRecord],
    sales: Iterable[SaleRecord],
    recipes: Dict[int, RecipeRecord],
    horizon_days: Optional[int] = None,
    window_days: Optional[int] = None,
    reference: Optional[datetime] = None,
) -> List[StockProjection]:
    """
    Ingredients that run out within ``horizon_days``, most urgent first.

    ``horizon_days`` defaults to the configured reorder horizon.

    Ingredients without consumption in the window are never included: their
    projection is indeterminate, not urgent. Ties keep input order.

    Returns:
        Projections flagged needs_reorder, with suggested_quantity set to
        ``daily * horizon - stock`` (never negative)
    """
    window_days = resolve_window_days(window_days)
    horizon_days = resolve_horizon_days(horizon_days)
    totals = consumption_by_ingredient(list(sales), recipes, window_days, reference)
    horizon = Decimal(horizon_days)
    needs: List[StockProjection] = []

    for ingredient in ingredients:
        projection = project_stock(
            ingredient.id, ingredient.stock, totals.get(ingredient.id, ZERO), window_days
        )
        if not projection.has_consumption or projection.days_of_stock > horizon_days:
            continue
        projection.ingredient_name = ingredient.name
        projection.unit = ingredient.unit
        projection.needs_reorder = True
        projection.suggested_quantity = max(
            projection.daily_consumption * horizon - projection.stock, ZERO
        )
        needs.append(projection)

    needs.sort(key=lambda p: p.days_of_stock)
    return needs


def below_minimum(ingredients: Iterable[IngredientRecord]) -> List[IngredientRecord]:
    """Ingredients whose stock is below their configured minimum."""
    return [
        ingredient
        for ingredient in ingredients
        if ingredient.min_stock > 0 and ingredient.stock < ingredient.min_stock
    ]
