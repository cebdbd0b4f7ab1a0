"""Services package - the inventory and cost reconciliation engine.

Architecture:
- Records: canonical dataclasses; raw payloads are normalized by record_adapters
- Engine: pure functions over records (costing, periods, consumption, P&L,
  reconciliation, reception)
- Persistence: stock, reception and reconciliation commits through
  session_scope(), with an optional ``session`` for composition
- Outcomes: validation and partial failures are returned as data
  (Ok/Err, reports); exceptions only signal persistence faults

Service Modules:
- costing_service: Recipe and variant cost, margin and food-cost percentages
- period_service: Reporting periods and week-over-week comparison
- consumption_service: Days-of-stock projection and reorder needs
- pnl_service: Profit and loss, break-even, thermometer
- reconciliation_service: Physical count reconciliation
- reception_service: Purchase order reception
- stock_service: Additive stock deltas and quick losses
- dataset_service: Dataset snapshot and single-flight loader guard

Infrastructure:
- exceptions: ServiceError hierarchy
- database: Session management and database utilities
- logging_utils: Structured service logging
"""

from . import (
    costing_service,
    consumption_service,
    database,
    dataset_service,
    period_service,
    pnl_service,
    reception_service,
    reconciliation_service,
    stock_service,
)

from .costing_service import (
    cost_all_recipes,
    cost_recipe,
    cost_variants,
    food_cost_percent,
    ingredient_line_cost,
    margin_percent,
    recipe_cost,
)
from .consumption_service import (
    below_minimum,
    days_of_stock,
    ingredient_consumption,
    project_reorder_needs,
)
from .dataset_service import Dataset, DatasetLoaderGuard, database_loader, load_dataset
from .period_service import DateRange, Period, compare_week_over_week, resolve_period
from .pnl_service import (
    aggregate_sales,
    break_even_revenue,
    calculate_profit_and_loss,
    period_profit_and_loss,
    total_fixed_costs,
)
from .reception_service import (
    build_stock_deltas,
    confirm_reception,
    evaluate_line,
    process_reception,
    summarize_reception,
    validate_reception,
)
from .reconciliation_service import (
    adjustment_history,
    build_commit,
    capture_counts,
    commit_reconciliation,
    parse_count_draft,
    propose_splits,
    validate_reconciliation,
)
from .result import Err, Ok
from .stock_service import bulk_adjust_stock, record_losses

from .exceptions import (
    ServiceError,
    ValidationError,
    IngredientNotFound,
    RecipeNotFound,
    OrderNotFound,
    DatasetLoadError,
    DatabaseError,
)

__all__ = [
    # Modules
    "costing_service",
    "consumption_service",
    "database",
    "dataset_service",
    "period_service",
    "pnl_service",
    "reception_service",
    "reconciliation_service",
    "stock_service",
    # Costing
    "cost_all_recipes",
    "cost_recipe",
    "cost_variants",
    "food_cost_percent",
    "ingredient_line_cost",
    "margin_percent",
    "recipe_cost",
    # Consumption
    "below_minimum",
    "days_of_stock",
    "ingredient_consumption",
    "project_reorder_needs",
    # Dataset
    "Dataset",
    "DatasetLoaderGuard",
    "database_loader",
    "load_dataset",
    # Periods
    "DateRange",
    "Period",
    "compare_week_over_week",
    "resolve_period",
    # P&L
    "aggregate_sales",
    "break_even_revenue",
    "calculate_profit_and_loss",
    "period_profit_and_loss",
    "total_fixed_costs",
    # Reception
    "build_stock_deltas",
    "confirm_reception",
    "evaluate_line",
    "process_reception",
    "summarize_reception",
    "validate_reception",
    # Reconciliation
    "adjustment_history",
    "build_commit",
    "capture_counts",
    "commit_reconciliation",
    "parse_count_draft",
    "propose_splits",
    "validate_reconciliation",
    # Stock
    "bulk_adjust_stock",
    "record_losses",
    # Results
    "Ok",
    "Err",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "IngredientNotFound",
    "RecipeNotFound",
    "OrderNotFound",
    "DatasetLoadError",
    "DatabaseError",
]
