"""
Constants for the kitchen ledger.

This module defines system-wide constants including:
- Application metadata
- Numeric tolerances used by reconciliation and reception
- Stock projection thresholds
- Break-even defaults
"""

from decimal import Decimal

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Kitchen Ledger"
APP_VERSION = "0.1.0"
DATABASE_FILENAME = "kitchen_ledger.db"

# ============================================================================
# Tolerances
# ============================================================================

# Splits must add up to the counted difference within this amount
RECONCILIATION_EPSILON = Decimal("0.01")

# Counts closer than this to the theoretical stock are not treated as changes
COUNT_CHANGE_THRESHOLD = Decimal("0.001")

# Reception lines whose quantity or price moved more than this are flagged
VARIANCE_EPSILON = Decimal("0.01")

# ============================================================================
# Costing
# ============================================================================

FULL_YIELD_PERCENT = Decimal("100")

# Recipe line references above this value point at a base recipe
SUB_RECIPE_ID_OFFSET = 100000

# Variant food-cost bands; a variant above the threshold falls in that band
VARIANT_FOOD_COST_HIGH_PERCENT = Decimal("50")
VARIANT_FOOD_COST_WARNING_PERCENT = Decimal("40")

# ============================================================================
# Stock projection
# ============================================================================

DEFAULT_CONSUMPTION_WINDOW_DAYS = 7
DEFAULT_REORDER_HORIZON_DAYS = 7

# Days-of-stock value reported when there is no consumption to project from
DAYS_OF_STOCK_UNKNOWN = 999

# Inclusive upper bounds, evaluated in ascending order
STOCK_ALERT_CRITICAL_DAYS = 2
STOCK_ALERT_LOW_DAYS = 5
STOCK_ALERT_MEDIUM_DAYS = 7

NO_CONSUMPTION_MESSAGE = "Sin consumo registrado en el periodo"

# ============================================================================
# Profit and loss
# ============================================================================

DEFAULT_CONTRIBUTION_MARGIN_RATIO = Decimal("0.7")
MIN_CONTRIBUTION_MARGIN_RATIO = Decimal("0.1")

# ============================================================================
# Stock movement origins (persisted on StockAdjustment.origen)
# ============================================================================

ORIGIN_RECONCILIATION = "inventario"
ORIGIN_RECEPTION = "recepcion_pedido"
ORIGIN_QUICK_LOSS = "merma"
ORIGIN_MANUAL = "ajuste_manual"
