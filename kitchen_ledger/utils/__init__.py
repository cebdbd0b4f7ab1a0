"""Utilities package for the kitchen ledger."""

from .config import Config, get_config, reset_config
from .datetime_utils import as_naive, end_of_day, local_now, start_of_day, utc_now

__all__ = [
    "Config",
    "get_config",
    "reset_config",
    "as_naive",
    "end_of_day",
    "local_now",
    "start_of_day",
    "utc_now",
]
