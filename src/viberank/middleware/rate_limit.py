"""In-memory rate limiting.

Two kinds of limiter:

- Token buckets keyed by client address, applied to every ``/api/`` request
  by ``RateLimitMiddleware``. Default: 60 req/min with bursts of 10.
- Fixed windows keyed by username, checked by the submit endpoint: one
  accepted submission per minute, and ten rejected submissions per hour
  before the caller is locked out for the rest of the window.

State is per process. Uses time.monotonic() for timing.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..config import Settings

logger = logging.getLogger(__name__)


@dataclass
class TokenBucket:
    """A token bucket for rate limiting."""
    capacity: float
    refill_rate: float  # tokens per second
    tokens: float = 0.0
    last_refill: float = field(default_factory=time.monotonic)

    def __post_init__(self):
        self.tokens = self.capacity

    def try_consume(self, now: Optional[float] = None) -> bool:
        """Try to consume one token.

        Returns True if the request is allowed, False if rate-limited.
        """
        if now is None:
            now = time.monotonic()

        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return True
        return False

    def time_until_token(self) -> float:
        """Time in seconds until the next token is available."""
        if self.tokens >= 1.0:
            return 0.0
        deficit = 1.0 - self.tokens
        return deficit / self.refill_rate


class RateLimiter:
    """Per-client token bucket limiter."""

    def __init__(self, rpm: int = 60, burst: int = 10):
        self._buckets: Dict[str, TokenBucket] = {}
        self._rpm = rpm
        self._burst = burst
        self._last_sweep: Optional[float] = None

    def _evict_idle(self, now: float):
        """Drop buckets that have refilled completely since their last use."""
        refill_seconds = self._burst / (self._rpm / 60.0)
        if self._last_sweep is not None and now - self._last_sweep < refill_seconds:
            return
        self._last_sweep = now
        idle = [
            key for key, bucket in self._buckets.items()
            if bucket.tokens + (now - bucket.last_refill) * bucket.refill_rate >= bucket.capacity
        ]
        for key in idle:
            del self._buckets[key]

    def _get_bucket(self, key: str, now: float) -> TokenBucket:
        bucket = self._buckets.get(key)
        if bucket is None:
            self._evict_idle(now)
            bucket = TokenBucket(
                capacity=float(self._burst),
                refill_rate=self._rpm / 60.0,
                last_refill=now,
            )
            self._buckets[key] = bucket
        return bucket

    def try_acquire(self, key: str, now: Optional[float] = None) -> Tuple[bool, float]:
        """Try to acquire a token.

        Returns:
            Tuple of (allowed: bool, retry_after_seconds: float)
        """
        if now is None:
            now = time.monotonic()
        bucket = self._get_bucket(key, now)
        if bucket.try_consume(now):
            return True, 0.0
        return False, bucket.time_until_token()


@dataclass
class _Window:
    started: float
    count: int = 0


class FixedWindowLimiter:
    """At most ``limit`` hits per key within each ``window_seconds`` window."""

    def __init__(self, limit: int, window_seconds: float):
        self.limit = limit
        self.window_seconds = window_seconds
        self._windows: Dict[str, _Window] = {}
        self._last_sweep: Optional[float] = None

    def _evict_expired(self, now: float):
        """Drop windows that have ended. Runs at most once per window length."""
        if self._last_sweep is not None and now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        expired = [
            key for key, window in self._windows.items()
            if now - window.started >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]

    def _current(self, key: str, now: float) -> _Window:
        window = self._windows.get(key)
        if window is None or now - window.started >= self.window_seconds:
            self._evict_expired(now)
            window = _Window(started=now)
            self._windows[key] = window
        return window

    def blocked(self, key: str, now: Optional[float] = None) -> Tuple[bool, float]:
        """Whether ``key`` has used up its window, and seconds until it resets."""
        if now is None:
            now = time.monotonic()
        window = self._current(key, now)
        if window.count >= self.limit:
            return True, window.started + self.window_seconds - now
        return False, 0.0

    def hit(self, key: str, now: Optional[float] = None) -> Tuple[bool, float]:
        """Record one hit. Returns (allowed, retry_after_seconds)."""
        if now is None:
            now = time.monotonic()
        is_blocked, retry_after = self.blocked(key, now)
        if is_blocked:
            return False, retry_after
        self._windows[key].count += 1
        return True, 0.0


class SubmissionRateLimits:
    """Limiters consulted by the submit endpoint."""

    def __init__(self, settings: Settings):
        self.submissions = FixedWindowLimiter(
            settings.submit_rate_limit_per_window,
            settings.submit_rate_limit_window_seconds,
        )
        self.failures = FixedWindowLimiter(
            settings.failed_submission_limit,
            settings.failed_submission_window_seconds,
        )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Token bucket limit on all ``/api/`` requests, keyed by client address."""

    def __init__(self, app, rate_limiter: RateLimiter):
        super().__init__(app)
        self.rate_limiter = rate_limiter

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith("/api/"):
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        allowed, retry_after = self.rate_limiter.try_acquire(client)
        if not allowed:
            logger.warning("Rate limited client %s (retry_after=%.1fs)", client, retry_after)
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests. Please try again later."},
                headers={"Retry-After": str(int(retry_after) + 1)},
            )

        return await call_next(request)
