"""
Dataset service - loads the working dataset and guards concurrent reloads.

A ``Dataset`` is the explicit context every engine function works from
(ingredients, recipes, sales, orders, suppliers, fixed expenses). It is
built once per load and never mutated; a reload produces a new Dataset.

``DatasetLoaderGuard`` makes loads single-flight: while a load is in
progress every ``request()`` joins it instead of starting another, and all
callers receive the very same result object.

Example:
    guard = DatasetLoaderGuard(database_loader())
    result = await guard.request()
    if result.is_ok:
        costings = cost_all_recipes(result.value)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kitchen_ledger.models import (
    FixedExpense,
    Ingredient,
    PurchaseOrder,
    Recipe,
    Sale,
    Supplier,
)
from kitchen_ledger.utils.datetime_utils import local_now

from .database import session_scope
from .exceptions import DatabaseError, DatasetLoadError, IngredientNotFound, RecipeNotFound
from .logging_utils import get_service_logger, log_operation
from .record_adapters import (
    adapt_all,
    fixed_expense_from_dict,
    index_by_id,
    ingredient_from_dict,
    purchase_order_from_dict,
    recipe_from_dict,
    sale_from_dict,
    supplier_from_dict,
)
from .records import (
    FixedExpenseRecord,
    IngredientRecord,
    PurchaseOrderRecord,
    RecipeRecord,
    SaleRecord,
    SupplierRecord,
)
from .result import Err, Ok, Result

logger = get_service_logger(__name__)

STATE_IDLE = "idle"
STATE_LOADING = "loading"


@dataclass
class Dataset:
    """Snapshot of everything the engine operates on.

    Attributes:
        ingredients: Ingredient catalog with current stock
        recipes: Recipes with their lines
        sales: Sales history
        orders: Purchase orders
        suppliers: Suppliers
        fixed_expenses: Monthly fixed expenses
        loaded_at: When the snapshot was taken
        errors: Messages for records skipped during normalization
    """

    ingredients: List[IngredientRecord] = field(default_factory=list)
    recipes: List[RecipeRecord] = field(default_factory=list)
    sales: List[SaleRecord] = field(default_factory=list)
    orders: List[PurchaseOrderRecord] = field(default_factory=list)
    suppliers: List[SupplierRecord] = field(default_factory=list)
    fixed_expenses: List[FixedExpenseRecord] = field(default_factory=list)
    loaded_at: Optional[datetime] = None
    errors: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.ingredients_by_id: Dict[int, IngredientRecord] = index_by_id(self.ingredients)
        self.recipes_by_id: Dict[int, RecipeRecord] = index_by_id(self.recipes)
        self.orders_by_id: Dict[int, PurchaseOrderRecord] = index_by_id(self.orders)
        self.suppliers_by_id: Dict[int, SupplierRecord] = index_by_id(self.suppliers)

    def get_ingredient(self, ingredient_id: int) -> IngredientRecord:
        """
        Raises:
            IngredientNotFound: If the id is not in the snapshot
        """
        ingredient = self.ingredients_by_id.get(ingredient_id)
        if ingredient is None:
            raise IngredientNotFound(ingredient_id)
        return ingredient

    def get_recipe(self, recipe_id: int) -> RecipeRecord:
        """
        Raises:
            RecipeNotFound: If the id is not in the snapshot
        """
        recipe = self.recipes_by_id.get(recipe_id)
        if recipe is None:
            raise RecipeNotFound(recipe_id)
        return recipe

    def theoretical_stock(self) -> Dict[int, Any]:
        """Current stock by ingredient id, as input for a physical count."""
        return {ingredient.id: ingredient.stock for ingredient in self.ingredients}

    def pending_orders(self) -> List[PurchaseOrderRecord]:
        return [order for order in self.orders if not order.is_received]


DatasetLoader = Callable[[], Awaitable[Dataset]]


class DatasetLoaderGuard:
    """
    Single-flight guard around a dataset loader.

    States:
        idle: no load in progress; the next request starts one
        loading: a load is in progress; requests join it

    The guard is the only owner of the current snapshot, exposed through
    ``current``. It must be used from a single event loop.
    """

    def __init__(self, loader: DatasetLoader):
        """
        Args:
            loader: Coroutine function producing a Dataset
        """
        self._loader = loader
        self._pending: Optional[asyncio.Future] = None
        self._current: Optional[Dataset] = None
        self._load_count = 0

    @property
    def state(self) -> str:
        return STATE_LOADING if self._pending is not None else STATE_IDLE

    @property
    def current(self) -> Optional[Dataset]:
        """Last successfully loaded dataset, or None before the first success."""
        return self._current

    @property
    def load_count(self) -> int:
        """Number of underlying loads started."""
        return self._load_count

    async def request(self) -> Result[Dataset, DatasetLoadError]:
        """
        Get a fresh dataset, joining the in-flight load if there is one.

        Returns:
            Ok(Dataset) or Err(DatasetLoadError); concurrent callers get the
            identical object
        """
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._load())
        # Shielded so one cancelled caller does not cancel the shared load
        return await asyncio.shield(self._pending)

    async def _load(self) -> Result[Dataset, DatasetLoadError]:
        self._load_count += 1
        try:
            dataset = await self._loader()
        except Exception as e:
            log_operation(
                logger,
                "load_dataset",
                "failed",
                level=logging.ERROR,
                load_number=self._load_count,
                error=str(e),
            )
            return Err(DatasetLoadError(str(e), original_error=e))
        finally:
            self._pending = None

        self._current = dataset
        log_operation(
            logger,
            "load_dataset",
            "success",
            load_number=self._load_count,
            ingredients=len(dataset.ingredients),
            recipes=len(dataset.recipes),
            skipped=len(dataset.errors),
        )
        return Ok(dataset)


def load_dataset(session: Optional[Session] = None) -> Dataset:
    """
    Read every table into a Dataset.

    Rows are converted through the record adapters; rows that fail
    normalization are skipped, logged, and listed in ``Dataset.errors``.

    Args:
        session: Optional database session

    Returns:
        Dataset snapshot
    """
    try:
        if session is not None:
            return _load_dataset_impl(session)
        with session_scope() as session:
            return _load_dataset_impl(session)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to load dataset", original_error=e)


def _load_dataset_impl(session: Session) -> Dataset:
    errors: List[str] = []

    def load(model, adapter) -> List[Any]:
        rows = session.query(model).order_by(model.id).all()
        records, failed = adapt_all([row.to_dict() for row in rows], adapter)
        errors.extend(failed)
        return records

    recipes = load(Recipe, recipe_from_dict)
    for recipe in recipes:
        errors.extend(
            f"recipe {recipe.id}: {message}"
            for message in recipe.skipped_lines + recipe.skipped_variants
        )

    return Dataset(
        ingredients=load(Ingredient, ingredient_from_dict),
        recipes=recipes,
        sales=load(Sale, sale_from_dict),
        orders=load(PurchaseOrder, purchase_order_from_dict),
        suppliers=load(Supplier, supplier_from_dict),
        fixed_expenses=load(FixedExpense, fixed_expense_from_dict),
        loaded_at=local_now(),
        errors=errors,
    )


def database_loader() -> DatasetLoader:
    """Loader for DatasetLoaderGuard reading the database off the event loop."""

    async def load() -> Dataset:
        return await asyncio.to_thread(load_dataset)

    return load
