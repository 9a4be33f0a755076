"""Core module - configuration, units, email client and rate limiting."""

from porkyfarm.core import client, units
from porkyfarm.core.client import (
    EmailAPIError,
    EmailErrorKind,
    RetryableError,
    send_email,
    send_email_with_retry,
)
from porkyfarm.core.config import get_data_dir, get_farm_today, settings
from porkyfarm.core.ratelimit import (
    API_RATE_LIMIT,
    CHAT_RATE_LIMIT,
    DailyQuota,
    RateLimitConfig,
    RateLimiter,
    RateLimitResult,
)
from porkyfarm.core.units import (
    format_currency,
    format_quantity,
    format_weight,
    get_weight_unit,
    is_imperial,
    kg_to_display,
)

__all__ = [
    "client",
    "units",
    "settings",
    "get_data_dir",
    "get_farm_today",
    "send_email",
    "send_email_with_retry",
    "EmailAPIError",
    "EmailErrorKind",
    "RetryableError",
    # Rate limiting
    "RateLimiter",
    "RateLimitConfig",
    "RateLimitResult",
    "DailyQuota",
    "CHAT_RATE_LIMIT",
    "API_RATE_LIMIT",
    # Unit conversion helpers
    "format_weight",
    "format_quantity",
    "format_currency",
    "kg_to_display",
    "get_weight_unit",
    "is_imperial",
]
