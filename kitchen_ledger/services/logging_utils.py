"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across reception, reconciliation and
stock operations.

Usage:
    from kitchen_ledger.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="confirm_reception",
        outcome="partial",
        level=logging.WARNING,
        order_id=12,
        failed_ids=[4],
    )
"""

import logging
from typing import Any


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger named 'kitchen_ledger.services.<module>'

    Example:
        >>> logger = get_service_logger("kitchen_ledger.services.stock_service")
        >>> logger.name
        'kitchen_ledger.services.stock_service'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"kitchen_ledger.services.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The context is passed via the 'extra' parameter for structured logging.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "bulk_adjust_stock")
        outcome: Outcome description (e.g., "success", "partial", "rejected")
        level: Log level (default: INFO). Use WARNING for partial or rejected work.
        **context: Additional context fields (ids, counts, error details)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
