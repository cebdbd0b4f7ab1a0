"""
Database models package.

SQLAlchemy ORM models for the persistence side of the kitchen ledger.
"""

from .base import Base, BaseModel
from .enums import AdjustmentReason, FoodCostBand, LineStatus, OrderStatus, StockAlert
from .ingredient import Ingredient
from .supplier import Supplier
from .recipe import Recipe, RecipeLine, RecipeVariant
from .sale import Sale
from .purchase_order import PurchaseOrder, OrderLine
from .fixed_expense import FixedExpense
from .stock_adjustment import StockAdjustment, StockCount

__all__ = [
    "Base",
    "BaseModel",
    # Enums
    "AdjustmentReason",
    "FoodCostBand",
    "LineStatus",
    "OrderStatus",
    "StockAlert",
    # Catalog
    "Ingredient",
    "Supplier",
    "Recipe",
    "RecipeLine",
    "RecipeVariant",
    # Transactions
    "Sale",
    "PurchaseOrder",
    "OrderLine",
    "FixedExpense",
    # Audit
    "StockAdjustment",
    "StockCount",
]
