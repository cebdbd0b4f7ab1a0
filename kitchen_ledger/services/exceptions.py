"""Service layer exception classes for the kitchen ledger.

Engine outcomes (unbalanced reconciliations, partial receptions, missing
ingredients during costing) are returned as data. Exceptions are reserved
for the persistence boundary: unknown ids passed by the caller and storage
failures.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── IngredientNotFound
    ├── RecipeNotFound
    ├── OrderNotFound
    ├── DatasetLoadError
    └── DatabaseError
"""


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class ValidationError(ServiceError):
    """Raised when data validation fails.

    Args:
        errors: List of human-readable messages, one per offending entry
    """

    def __init__(self, errors: list):
        self.errors = list(errors)
        error_msg = "; ".join(str(e) for e in self.errors)
        super().__init__(f"Validation failed: {error_msg}")


class IngredientNotFound(ServiceError):
    """Raised when an ingredient cannot be found by ID.

    Example:
        >>> raise IngredientNotFound(42)
        IngredientNotFound: Ingredient with ID 42 not found
    """

    def __init__(self, ingredient_id: int):
        self.ingredient_id = ingredient_id
        super().__init__(f"Ingredient with ID {ingredient_id} not found")


class RecipeNotFound(ServiceError):
    """Raised when a recipe cannot be found by ID."""

    def __init__(self, recipe_id: int):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe with ID {recipe_id} not found")


class OrderNotFound(ServiceError):
    """Raised when a purchase order cannot be found by ID.

    Example:
        >>> raise OrderNotFound(7)
        OrderNotFound: Purchase order with ID 7 not found
    """

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Purchase order with ID {order_id} not found")


class DatasetLoadError(ServiceError):
    """Describes a failed dataset load.

    Returned inside ``Err`` by the dataset loader guard so that every caller
    sharing the load sees the same failure.
    """

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Dataset load failed: {message}")


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
