"""Explicit success/failure values for parsing and validation.

Functions that can fail on bad input return ``Ok(value)`` or ``Err(error)``
instead of raising, so callers branch on the outcome:

    result = parse_count_draft(text)
    if result.is_ok:
        counts = result.value
    else:
        logger.warning(result.error)
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass
class Err(Generic[E]):
    """Failed outcome carrying ``error``."""

    error: E

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]
