"""In-memory rate limiting for the assistant and CRUD endpoints.

Fixed-window counters keyed by caller (user id or client IP). State lives in
process memory and resets on restart.
"""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from porkyfarm.core.config import get_farm_today, settings

# Run expired-entry cleanup every N checks
CLEANUP_EVERY = 100


@dataclass
class RateLimitConfig:
    max_requests: int
    window_seconds: float


@dataclass
class RateLimitResult:
    success: bool
    remaining: int
    reset_at: float  # clock value when the window ends
    retry_after: int | None = None  # whole seconds, only when refused


@dataclass
class _Window:
    count: int
    reset_at: float


CHAT_RATE_LIMIT = RateLimitConfig(settings.chat_rate_limit, settings.chat_rate_window_seconds)
API_RATE_LIMIT = RateLimitConfig(settings.api_rate_limit, settings.api_rate_window_seconds)


@dataclass
class RateLimiter:
    """Fixed-window request counter."""

    config: RateLimitConfig
    clock: Callable[[], float] = time.monotonic
    _windows: dict[str, _Window] = field(default_factory=dict)
    _checks: int = 0

    def check(self, identifier: str) -> RateLimitResult:
        """Count one request for identifier and say whether it is allowed."""
        now = self.clock()

        self._checks += 1
        if self._checks % CLEANUP_EVERY == 0:
            self.cleanup()

        window = self._windows.get(identifier)

        # New or expired window
        if window is None or now > window.reset_at:
            reset_at = now + self.config.window_seconds
            self._windows[identifier] = _Window(count=1, reset_at=reset_at)
            return RateLimitResult(True, self.config.max_requests - 1, reset_at)

        if window.count >= self.config.max_requests:
            retry_after = max(1, math.ceil(window.reset_at - now))
            return RateLimitResult(False, 0, window.reset_at, retry_after)

        window.count += 1
        return RateLimitResult(True, self.config.max_requests - window.count, window.reset_at)

    def cleanup(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = self.clock()
        expired = [key for key, w in self._windows.items() if now > w.reset_at]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


@dataclass
class QuotaResult:
    allowed: bool
    used: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)


@dataclass
class DailyQuota:
    """Per-user call quota that resets each calendar day (farm timezone)."""

    limit: int = settings.daily_chat_quota
    today: Callable[[], date] = get_farm_today
    _usage: dict[str, tuple[date, int]] = field(default_factory=dict)

    def consume(self, user_id: str) -> QuotaResult:
        day = self.today()
        used_day, used = self._usage.get(user_id, (day, 0))
        if used_day != day:
            used = 0
        if used >= self.limit:
            return QuotaResult(False, used, self.limit)
        self._usage[user_id] = (day, used + 1)
        return QuotaResult(True, used + 1, self.limit)

    def usage(self, user_id: str) -> int:
        used_day, used = self._usage.get(user_id, (self.today(), 0))
        return used if used_day == self.today() else 0


def format_retry_message(result: RateLimitResult) -> str:
    """User-facing message for a refused request."""
    seconds = result.retry_after or 1
    unit = "second" if seconds == 1 else "seconds"
    return f"Too many requests. Please try again in {seconds} {unit}."
