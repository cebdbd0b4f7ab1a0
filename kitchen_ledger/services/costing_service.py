"""
Costing service - recipe cost, margin and food-cost calculations.

Pure functions over records; nothing here touches the database. Callers
pass ingredient and recipe lookups (``Dict[int, record]``), usually taken
from a loaded ``Dataset``.

Missing ingredients and base recipes never fail a costing: the line is
skipped, the id is reported, and the result is flagged partial so the UI can
show that the figure is incomplete rather than silently wrong.

Sales variants (a glass of a bottled wine, a tapa of a ración) are costed
as a factor of the recipe's per-portion cost by ``cost_variants``.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, FrozenSet, List, Optional

from kitchen_ledger.models.enums import FoodCostBand
from kitchen_ledger.utils.constants import (
    VARIANT_FOOD_COST_HIGH_PERCENT,
    VARIANT_FOOD_COST_WARNING_PERCENT,
)

from .defaults import resolve_yield_percent
from .dto_utils import Number, coerce_decimal
from .records import IngredientRecord, RecipeLineRecord, RecipeRecord

HUNDRED = Decimal("100")
ZERO = Decimal("0")


@dataclass
class LineCost:
    """Cost of one recipe line.

    Attributes:
        quantity: Quantity used by the recipe
        unit_price: Price per unit used (per portion for base recipes)
        yield_percent: Yield applied (100 for base recipes)
        cost: Resulting line cost
        ingredient_id: Ingredient costed, for ingredient lines
        sub_recipe_id: Base recipe costed, for sub-recipe lines
    """

    quantity: Decimal
    unit_price: Decimal
    yield_percent: Decimal
    cost: Decimal
    ingredient_id: Optional[int] = None
    sub_recipe_id: Optional[int] = None


@dataclass
class RecipeCostSummary:
    """Total cost of a list of recipe lines plus what could not be costed."""

    total: Decimal
    line_costs: List[LineCost] = field(default_factory=list)
    missing_ingredients: List[int] = field(default_factory=list)
    missing_recipes: List[int] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.missing_ingredients or self.missing_recipes)


@dataclass
class RecipeCosting:
    """Full costing of a recipe, as shown on the recipe card."""

    recipe_id: int
    recipe_name: str
    selling_price: Decimal
    total_cost: Decimal
    portions: int
    cost_per_portion: Decimal
    margin_percent: Decimal
    food_cost_percent: Decimal
    missing_ingredients: List[int] = field(default_factory=list)
    missing_recipes: List[int] = field(default_factory=list)
    skipped_lines: List[str] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.missing_ingredients or self.missing_recipes or self.skipped_lines)


@dataclass
class VariantCosting:
    """Costing of one sales variant of a recipe.

    Attributes:
        name: Variant name ("Copa", "Botella")
        code: Optional sales code
        selling_price: Price of the variant
        factor: Portions of the recipe the variant uses
        cost: cost_per_portion * factor
        margin: selling_price - cost
        food_cost_percent: cost / selling_price * 100, 0 without a price
        band: FoodCostBand for food_cost_percent
        variant_id: Persisted id, when there is one
    """

    name: str
    code: Optional[str]
    selling_price: Decimal
    factor: Decimal
    cost: Decimal
    margin: Decimal
    food_cost_percent: Decimal
    band: FoodCostBand
    variant_id: Optional[int] = None


def ingredient_line_cost(unit_price: Number, quantity: Number, yield_percent: Number = None) -> Decimal:
    """
    Cost of using ``quantity`` of an ingredient at the given yield.

    A yield below 100 inflates cost, since more raw material is needed per
    usable unit. Missing, zero or negative yield means no loss. Unreadable
    price or quantity strings count as zero.

    Args:
        unit_price: Price of one stock unit
        quantity: Quantity used
        yield_percent: Usable percentage after prep loss

    Returns:
        (unit_price / (yield / 100)) * quantity

    Examples:
        >>> ingredient_line_cost(10, 1, 0)
        Decimal('10')
        >>> ingredient_line_cost(10, 1, 50)
        Decimal('20')
    """
    effective_yield = resolve_yield_percent(coerce_decimal(yield_percent))
    return (coerce_decimal(unit_price) / (effective_yield / HUNDRED)) * coerce_decimal(quantity)


def recipe_cost(
    lines: List[RecipeLineRecord],
    ingredients: Dict[int, IngredientRecord],
    recipes: Optional[Dict[int, RecipeRecord]] = None,
) -> RecipeCostSummary:
    """
    Sum the cost of recipe lines.

    Ingredient lines use the ingredient's resolved unit price and the line
    yield (falling back to the ingredient's yield). Base-recipe lines cost
    ``cost_per_portion(base) * quantity``, computed recursively.

    Args:
        lines: Recipe lines to cost
        ingredients: Ingredient lookup by id
        recipes: Recipe lookup by id, needed for base-recipe lines

    Returns:
        RecipeCostSummary; ids not found (or referenced cyclically) are
        listed in missing_ingredients / missing_recipes
    """
    return _recipe_cost(lines, ingredients, recipes or {}, frozenset())


def _recipe_cost(
    lines: List[RecipeLineRecord],
    ingredients: Dict[int, IngredientRecord],
    recipes: Dict[int, RecipeRecord],
    visiting: FrozenSet[int],
) -> RecipeCostSummary:
    summary = RecipeCostSummary(total=ZERO)

    for line in lines:
        if line.is_sub_recipe:
            base = recipes.get(line.sub_recipe_id)
            if base is None or base.id in visiting:
                _note(summary.missing_recipes, line.sub_recipe_id)
                continue
            nested = _recipe_cost(base.lines, ingredients, recipes, visiting | {base.id})
            for ingredient_id in nested.missing_ingredients:
                _note(summary.missing_ingredients, ingredient_id)
            for recipe_id in nested.missing_recipes:
                _note(summary.missing_recipes, recipe_id)
            per_portion = nested.total / base.portion_count
            cost = per_portion * line.quantity
            summary.line_costs.append(
                LineCost(
                    quantity=line.quantity,
                    unit_price=per_portion,
                    yield_percent=HUNDRED,
                    cost=cost,
                    sub_recipe_id=base.id,
                )
            )
            summary.total += cost
            continue

        ingredient = ingredients.get(line.ingredient_id)
        if ingredient is None:
            _note(summary.missing_ingredients, line.ingredient_id)
            continue

        yield_percent = resolve_yield_percent(line.yield_percent, ingredient.yield_percent)
        unit_price = ingredient.unit_price
        cost = ingredient_line_cost(unit_price, line.quantity, yield_percent)
        summary.line_costs.append(
            LineCost(
                quantity=line.quantity,
                unit_price=unit_price,
                yield_percent=yield_percent,
                cost=cost,
                ingredient_id=ingredient.id,
            )
        )
        summary.total += cost

    return summary


def _note(ids: List[int], value: int) -> None:
    if value not in ids:
        ids.append(value)


def margin_percent(selling_price: Number, cost: Number) -> Decimal:
    """Gross margin as a percentage of selling price; 0 when there is no readable price."""
    price = coerce_decimal(selling_price)
    if price <= 0:
        return ZERO
    return ((price - coerce_decimal(cost)) / price) * HUNDRED


def food_cost_percent(selling_price: Number, cost: Number) -> Decimal:
    """Cost as a percentage of selling price; 0 when there is no readable price."""
    price = coerce_decimal(selling_price)
    if price <= 0:
        return ZERO
    return (coerce_decimal(cost) / price) * HUNDRED


def cost_recipe(
    recipe: RecipeRecord,
    ingredients: Dict[int, IngredientRecord],
    recipes: Optional[Dict[int, RecipeRecord]] = None,
) -> RecipeCosting:
    """
    Cost a whole recipe including per-portion figures.

    Margin and food cost compare the selling price against the cost of one
    portion, since the selling price is per portion served.
    """
    lookup = dict(recipes or {})
    lookup.setdefault(recipe.id, recipe)
    summary = _recipe_cost(recipe.lines, ingredients, lookup, frozenset({recipe.id}))
    portions = recipe.portion_count
    per_portion = summary.total / portions

    return RecipeCosting(
        recipe_id=recipe.id,
        recipe_name=recipe.name,
        selling_price=recipe.selling_price,
        total_cost=summary.total,
        portions=portions,
        cost_per_portion=per_portion,
        margin_percent=margin_percent(recipe.selling_price, per_portion),
        food_cost_percent=food_cost_percent(recipe.selling_price, per_portion),
        missing_ingredients=summary.missing_ingredients,
        missing_recipes=summary.missing_recipes,
        skipped_lines=list(recipe.skipped_lines),
    )


def cost_all_recipes(dataset) -> List[RecipeCosting]:
    """Cost every recipe in a loaded Dataset, in dataset order."""
    return [
        cost_recipe(recipe, dataset.ingredients_by_id, dataset.recipes_by_id)
        for recipe in dataset.recipes
    ]


def food_cost_band(percent: Number) -> FoodCostBand:
    """Band for a variant's food cost; thresholds are exclusive."""
    percent = coerce_decimal(percent)
    if percent > VARIANT_FOOD_COST_HIGH_PERCENT:
        return FoodCostBand.HIGH
    if percent > VARIANT_FOOD_COST_WARNING_PERCENT:
        return FoodCostBand.WARNING
    return FoodCostBand.OK


def cost_variants(
    recipe: RecipeRecord,
    ingredients: Dict[int, IngredientRecord],
    recipes: Optional[Dict[int, RecipeRecord]] = None,
) -> List[VariantCosting]:
    """
    Cost every sales variant of a recipe.

    A variant uses ``factor`` portions of the recipe, so its cost is the
    recipe's cost per portion times the factor.

    Example:
        A wine bottle costing 4.00 per portion sold by the glass at factor
        0.2 and 3.50 costs 0.80, margin 2.70, food cost 22.86% (ok).
    """
    per_portion = cost_recipe(recipe, ingredients, recipes).cost_per_portion
    costings = []
    for variant in recipe.variants:
        cost = per_portion * variant.factor
        percent = food_cost_percent(variant.selling_price, cost)
        costings.append(
            VariantCosting(
                name=variant.name,
                code=variant.code,
                selling_price=variant.selling_price,
                factor=variant.factor,
                cost=cost,
                margin=variant.selling_price - cost,
                food_cost_percent=percent,
                band=food_cost_band(percent),
                variant_id=variant.id,
            )
        )
    return costings
