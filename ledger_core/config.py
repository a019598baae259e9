"""
Centralized configuration for the ledger analytics engine.

Values are loaded from environment variables (and a local .env file)
with sensible defaults.

Usage:
    from ledger_core.config import config

    tz = config.analytics.timezone
    top_n = config.analytics.top_n
"""

import os
from dataclasses import dataclass, field
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AnalyticsConfig:
    """Aggregation and ranking configuration."""

    # IANA zone defining the "local calendar" used for day boundaries
    timezone: str = field(
        default_factory=lambda: os.getenv("LEDGER_TIMEZONE", "Asia/Karachi")
    )

    top_n: int = 5  # vendors, items, dues, customers
    leaderboard_n: int = 10  # tool-renewal leaderboard
    top_tools_n: int = 6
    recent_sales_n: int = 10
    trend_months: int = 12
    growth_rate_decimals: int = 1

    # Vendor revenue keyed the same way as vendor dues (uppercased)
    normalize_vendor_revenue: bool = field(
        default_factory=lambda: _env_flag("LEDGER_NORMALIZE_VENDOR_REVENUE", "true")
    )

    # Reject non-mapping store records instead of reading them as empty sales
    strict_parsing: bool = field(
        default_factory=lambda: _env_flag("LEDGER_STRICT_PARSING", "false")
    )

    @property
    def tzinfo(self) -> ZoneInfo:
        """Timezone object for the configured zone."""
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class ExpiryConfig:
    """Subscription expiry window configuration."""

    lookback_days: int = 3
    lookahead_days: int = 4


@dataclass(frozen=True)
class CacheConfig:
    """View memoization configuration."""

    enabled: bool = field(
        default_factory=lambda: _env_flag("LEDGER_CACHE_ENABLED", "true")
    )
    slow_recompute_ms: float = 250.0


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    json_format: bool = field(default_factory=lambda: _env_flag("LOG_JSON", "false"))


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""

    version: str = "0.4.0"
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    expiry: ExpiryConfig = field(default_factory=ExpiryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global config instance
config = AppConfig()


DEFAULT_TIMEZONE = config.analytics.timezone


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def validate_config(app_config: AppConfig = config) -> None:
    """
    Validate configuration values.

    Call this on application startup to fail fast with clear error messages
    instead of wrong day boundaries later on.

    Raises:
        ConfigurationError: If any value is invalid
    """
    errors: List[str] = []

    try:
        ZoneInfo(app_config.analytics.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"LEDGER_TIMEZONE '{app_config.analytics.timezone}' is not a known IANA zone")

    for name in ("top_n", "leaderboard_n", "top_tools_n", "recent_sales_n", "trend_months"):
        if getattr(app_config.analytics, name) <= 0:
            errors.append(f"analytics.{name} must be positive")

    if app_config.analytics.growth_rate_decimals < 0:
        errors.append("analytics.growth_rate_decimals cannot be negative")

    if app_config.expiry.lookback_days < 0 or app_config.expiry.lookahead_days < 0:
        errors.append("expiry windows cannot be negative")

    if app_config.logging.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        errors.append(f"LOG_LEVEL '{app_config.logging.level}' is not a logging level")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)
