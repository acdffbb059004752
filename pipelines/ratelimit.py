"""Minimum-spacing pacing for rate-limited providers."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

# Free Alpha Vantage tier: 5 calls per minute.
DEFAULT_MIN_INTERVAL_SECONDS = 12.0

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class RateLimiter:
    """Serializes callers so consecutive calls are at least ``min_interval`` apart.

    Concurrent callers queue on the internal lock instead of racing on the
    last-call timestamp. Use :func:`shared_limiter` to get the one instance
    that paces a provider quota across clients and requests.
    """

    def __init__(
        self,
        min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be non-negative.")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock: asyncio.Lock | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._last_call: float | None = None

    def _loop_lock(self) -> asyncio.Lock:
        # The spacing outlives an event loop; the lock cannot.
        loop = asyncio.get_running_loop()
        if self._lock is None or loop is not self._loop:
            self._lock = asyncio.Lock()
            self._loop = loop
        return self._lock

    @property
    def last_call(self) -> float | None:
        return self._last_call

    async def acquire(self) -> None:
        """Wait until the next call is allowed and record it."""

        async with self._loop_lock():
            if self._last_call is not None and self.min_interval > 0:
                wait_for = self._last_call + self.min_interval - self._clock()
                if wait_for > 0:
                    logger.debug("Pacing provider call for %.2fs.", wait_for)
                    await self._sleep(wait_for)
            self._last_call = self._clock()


QuotaKey = tuple[str, str | None, float]

_SHARED: dict[QuotaKey, RateLimiter] = {}


def _quota_key(base_url: str, api_key: str | None, min_interval: float) -> QuotaKey:
    return (urlsplit(base_url).netloc.lower(), api_key, min_interval)


def shared_limiter(
    base_url: str,
    api_key: str | None,
    min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
) -> RateLimiter:
    """Return the limiter for the quota behind ``base_url`` and ``api_key``.

    Calls to the same host with the same key draw on one quota, so every
    client built for it in this process gets the same limiter.
    """

    key = _quota_key(base_url, api_key, min_interval)
    limiter = _SHARED.get(key)
    if limiter is None:
        limiter = _SHARED[key] = RateLimiter(min_interval)
    return limiter


__all__ = [
    "DEFAULT_MIN_INTERVAL_SECONDS",
    "RateLimiter",
    "shared_limiter",
]
