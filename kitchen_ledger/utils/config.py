"""
Configuration management for the kitchen ledger.

This module handles:
- Database path configuration
- Environment-specific configuration (development vs. production)
- Business defaults that operators may override (break-even fallback margin,
  consumption window, reorder horizon)
- The business timezone day and week boundaries are drawn in
"""

import logging
import os
import re
from datetime import timedelta, timezone, tzinfo
from decimal import Decimal
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .constants import (
    APP_NAME,
    APP_VERSION,
    DATABASE_FILENAME,
    DEFAULT_CONSUMPTION_WINDOW_DAYS,
    DEFAULT_CONTRIBUTION_MARGIN_RATIO,
    DEFAULT_REORDER_HORIZON_DAYS,
)

logger = logging.getLogger(__name__)

ENV_ENVIRONMENT = "KITCHEN_LEDGER_ENV"
ENV_DATABASE_URL = "KITCHEN_LEDGER_DB_URL"
ENV_DEFAULT_MARGIN = "KITCHEN_LEDGER_DEFAULT_MARGIN"
ENV_CONSUMPTION_WINDOW = "KITCHEN_LEDGER_CONSUMPTION_WINDOW_DAYS"
ENV_REORDER_HORIZON = "KITCHEN_LEDGER_REORDER_HORIZON_DAYS"
ENV_TIMEZONE = "KITCHEN_LEDGER_TIMEZONE"

_UTC_OFFSET = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


class Config:
    """
    Application configuration manager.

    Handles database location and the business assumptions used by the
    engine when data is missing.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment
        self._app_name = APP_NAME
        self._app_version = APP_VERSION

        if environment == "development":
            self._base_dir = Path(__file__).parent.parent.parent / "data"
        else:
            self._base_dir = Path.home() / ".kitchen_ledger"

        self._database_path = self._base_dir / DATABASE_FILENAME
        self._database_url_override = os.environ.get(ENV_DATABASE_URL)

        self.default_contribution_margin_ratio = _decimal_from_env(
            ENV_DEFAULT_MARGIN, DEFAULT_CONTRIBUTION_MARGIN_RATIO
        )
        self.consumption_window_days = _int_from_env(
            ENV_CONSUMPTION_WINDOW, DEFAULT_CONSUMPTION_WINDOW_DAYS
        )
        self.reorder_horizon_days = _int_from_env(ENV_REORDER_HORIZON, DEFAULT_REORDER_HORIZON_DAYS)
        self.timezone = _timezone_from_env(ENV_TIMEZONE)

    @property
    def app_name(self) -> str:
        """Application name."""
        return self._app_name

    @property
    def app_version(self) -> str:
        """Application version."""
        return self._app_version

    @property
    def database_path(self) -> Path:
        """Full path to the database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy database URL.

        Returns:
            The KITCHEN_LEDGER_DB_URL override if set, else a SQLite file URL
        """
        if self._database_url_override:
            return self._database_url_override
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    def ensure_directories(self) -> None:
        """Create the database directory if it doesn't exist."""
        if self._database_url_override:
            return
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        """String representation of config."""
        return f"Config(environment='{self.environment}', database_url='{self.database_url}')"


def _decimal_from_env(name: str, default: Decimal) -> Decimal:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return Decimal(raw.strip())
    except ArithmeticError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    return value if value > 0 else default


def _timezone_from_env(name: str) -> Optional[tzinfo]:
    """
    Resolve the business timezone.

    Accepts "UTC", a fixed offset ("+01:00") or an IANA name
    ("Europe/Madrid"). Unset or unknown values mean the system timezone,
    represented as None.
    """
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    text = raw.strip()
    if text.upper() in ("UTC", "Z"):
        return timezone.utc
    match = _UTC_OFFSET.match(text)
    if match:
        sign, hours, minutes = match.groups()
        offset = timedelta(hours=int(hours), minutes=int(minutes))
        return timezone(-offset if sign == "-" else offset)
    try:
        return ZoneInfo(text)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Ignoring unknown {name}={raw!r}, using the system timezone")
        return None


# Global configuration instance
_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    KITCHEN_LEDGER_ENV or defaults to production. Ignored if
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get(ENV_ENVIRONMENT, "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton."
        )

    return _config_instance


def reset_config():
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None
