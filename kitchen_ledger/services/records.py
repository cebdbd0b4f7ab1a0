"""Canonical data records consumed and produced by the engine.

Records are plain dataclasses with one field spelling each. Raw payloads
(API dictionaries, ``Model.to_dict()`` output) are turned into records by
``record_adapters``; nothing past that boundary deals with field aliases.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from kitchen_ledger.models.enums import AdjustmentReason, LineStatus, OrderStatus

from .defaults import resolve_portions, resolve_unit_price


@dataclass
class IngredientRecord:
    """Ingredient as seen by the engine.

    Attributes:
        id: Ingredient identifier
        name: Display name
        unit: Unit stock is counted in
        price: Price of one purchase format
        stock: Current stock
        min_stock: Minimum stock threshold
        purchase_format: Optional purchase format name
        quantity_per_format: Units per purchase format
        average_price: Weighted-average unit price, when the backend provides it
        yield_percent: Default yield for recipe lines using this ingredient
    """

    id: int
    name: str
    unit: str = ""
    price: Decimal = Decimal("0")
    stock: Decimal = Decimal("0")
    min_stock: Decimal = Decimal("0")
    purchase_format: Optional[str] = None
    quantity_per_format: Optional[Decimal] = None
    average_price: Optional[Decimal] = None
    yield_percent: Optional[Decimal] = None

    @property
    def unit_price(self) -> Decimal:
        """Price of one stock unit (see defaults.resolve_unit_price)."""
        return resolve_unit_price(self.price, self.quantity_per_format, self.average_price)


@dataclass
class RecipeLineRecord:
    """One bill-of-materials line; references an ingredient or a base recipe."""

    quantity: Decimal
    ingredient_id: Optional[int] = None
    sub_recipe_id: Optional[int] = None
    yield_percent: Optional[Decimal] = None

    @property
    def is_sub_recipe(self) -> bool:
        return self.sub_recipe_id is not None


@dataclass
class RecipeVariantRecord:
    """A sales format of a recipe (glass, bottle, tapa, ración).

    ``factor`` scales the recipe's per-portion cost: a tapa at 0.5 uses half
    a portion.
    """

    selling_price: Decimal
    factor: Decimal = Decimal("1")
    name: str = ""
    code: Optional[str] = None
    id: Optional[int] = None


@dataclass
class RecipeRecord:
    """Recipe with selling price and ordered lines.

    ``skipped_lines`` and ``skipped_variants`` hold one message per line or
    variant that could not be read (no ingredient reference, no quantity,
    unreadable price); the rest of the recipe is kept.
    """

    id: int
    name: str
    selling_price: Decimal = Decimal("0")
    lines: List[RecipeLineRecord] = field(default_factory=list)
    portions: Optional[int] = None
    category: Optional[str] = None
    variants: List[RecipeVariantRecord] = field(default_factory=list)
    skipped_lines: List[str] = field(default_factory=list)
    skipped_variants: List[str] = field(default_factory=list)

    @property
    def portion_count(self) -> int:
        return resolve_portions(self.portions)


@dataclass
class SaleRecord:
    """A recorded sale."""

    id: Optional[int]
    recipe_id: int
    quantity: Decimal
    total: Decimal
    timestamp: datetime


@dataclass
class OrderLineRecord:
    """Order line with its reception annotations already resolved.

    Attributes:
        ingredient_id: Ingredient ordered
        ordered_quantity: Quantity ordered, in stock units
        ordered_unit_price: Price agreed at order time
        received_quantity: Quantity received (defaults to ordered)
        real_unit_price: Price charged (defaults to ordered price)
        status: Reception status of the line
        quantity_per_format: Units per purchase format the prices refer to
        price_is_per_unit: True when prices are already per stock unit
        stock_applied: True once the received quantity has been added to
            stock by an earlier, partially failed reception
    """

    ingredient_id: int
    ordered_quantity: Decimal
    ordered_unit_price: Decimal
    received_quantity: Decimal
    real_unit_price: Decimal
    status: LineStatus = LineStatus.OK
    quantity_per_format: Decimal = Decimal("1")
    price_is_per_unit: bool = False
    stock_applied: bool = False
    id: Optional[int] = None


@dataclass
class PurchaseOrderRecord:
    """Purchase order."""

    id: int
    supplier_id: Optional[int]
    date: Optional[datetime]
    status: OrderStatus = OrderStatus.PENDING
    lines: List[OrderLineRecord] = field(default_factory=list)
    received_at: Optional[datetime] = None
    total_received: Optional[Decimal] = None

    @property
    def is_received(self) -> bool:
        return self.status == OrderStatus.RECEIVED


@dataclass
class SupplierRecord:
    id: int
    name: str


@dataclass
class FixedExpenseRecord:
    concept: str
    monthly_amount: Decimal
    id: Optional[int] = None


@dataclass
class StockSnapshot:
    """Theoretical vs counted stock for one ingredient during a count."""

    ingredient_id: int
    theoretical_stock: Decimal
    counted_stock: Decimal

    @property
    def difference(self) -> Decimal:
        """counted - theoretical; negative means stock went missing."""
        return self.counted_stock - self.theoretical_stock

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.ingredient_id,
            "stock_virtual": self.theoretical_stock,
            "stock_real": self.counted_stock,
        }


@dataclass
class AdjustmentSplit:
    """One causal explanation for part of a stock difference.

    ``magnitude`` is always entered as a positive amount; the sign is applied
    from the snapshot's difference when the reconciliation is committed.
    """

    magnitude: Decimal
    reason: AdjustmentReason
    notes: str = ""


@dataclass
class StockDelta:
    """Additive stock mutation instruction."""

    ingredient_id: int
    delta: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.ingredient_id, "delta": self.delta}
