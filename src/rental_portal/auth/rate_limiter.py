"""In-memory fixed window rate limiter."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from threading import Lock

UNKNOWN_CLIENT = "unknown"


@dataclass
class RateWindow:
    """Requests seen from one client since ``window_start``."""

    count: int
    window_start: float


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    limit: int


def client_key(headers: Mapping[str, str]) -> str:
    """Derive the rate limit key for a request.

    Uses the first address in ``X-Forwarded-For``, then ``X-Real-IP``.
    Requests with neither share the ``"unknown"`` bucket.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return UNKNOWN_CLIENT


class FixedWindowRateLimiter:
    """Fixed window rate limiter keyed by client address.

    Thread-safe via Lock. Single-instance only: state lives in process
    memory and is lost on restart. For multi-instance deployments,
    replace with a shared backend exposing the same ``check``/``cleanup``.
    """

    def __init__(
        self,
        limit: int = 100,
        window_seconds: int = 15 * 60,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if limit <= 0:
            raise ValueError("limit must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.limit = limit
        self._window = window_seconds
        self._clock = clock
        self._records: dict[str, RateWindow] = {}
        self._lock = Lock()

    def _now(self) -> float:
        return self._clock() if self._clock is not None else time.monotonic()

    def check(self, key: str) -> RateLimitResult:
        """Count a request from ``key`` and decide whether it may proceed.

        The rejected request is still counted, so retrying immediately
        does not help until the window resets.

        Args:
            key: Client key, usually from :func:`client_key`.

        Returns:
            RateLimitResult with ``remaining == 0`` once the limit is hit.
        """
        now = self._now()

        with self._lock:
            self._sweep(now)
            record = self._records.get(key)
            if record is None:
                record = RateWindow(count=1, window_start=now)
                self._records[key] = record
            else:
                record.count += 1

            if record.count > self.limit:
                return RateLimitResult(allowed=False, remaining=0, limit=self.limit)
            return RateLimitResult(
                allowed=True,
                remaining=self.limit - record.count,
                limit=self.limit,
            )

    def cleanup(self) -> int:
        """Remove all expired windows. Call periodically.

        Returns:
            Number of keys cleaned up.
        """
        with self._lock:
            return self._sweep(self._now())

    def _sweep(self, now: float) -> int:
        # Caller holds the lock.
        expired = [
            key
            for key, record in self._records.items()
            if now - record.window_start > self._window
        ]
        for key in expired:
            del self._records[key]
        return len(expired)
