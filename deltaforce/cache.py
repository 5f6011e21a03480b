"""In-memory TTL cache for slow upstream lookups."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Generic, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

PRESET_CACHE_TTL = 30 * 60


class TTLCache(Generic[T]):
    """Caches one value for ``ttl`` seconds with single-flight refresh.

    A fetcher signals failure by raising or by returning ``None``. Failures
    never reach the caller: the previous value is served if there is one,
    otherwise ``None``.
    """

    def __init__(
        self,
        ttl: float,
        *,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.name = name
        self._clock = clock
        self._value: Optional[T] = None
        self._fetched_at: Optional[float] = None
        self._inflight: Optional[asyncio.Future] = None

    @property
    def value(self) -> Optional[T]:
        return self._value

    def is_fresh(self) -> bool:
        if self._value is None or self._fetched_at is None:
            return False
        return self._clock() - self._fetched_at < self.ttl

    def invalidate(self) -> None:
        self._fetched_at = None

    async def get_or_fetch(self, fetcher: Callable[[], Awaitable[Optional[T]]]) -> Optional[T]:
        if self.is_fresh():
            return self._value
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._refresh(fetcher))
        # shield: a cancelled caller must not cancel the fetch other callers share
        return await asyncio.shield(self._inflight)

    async def _refresh(self, fetcher: Callable[[], Awaitable[Optional[T]]]) -> Optional[T]:
        try:
            try:
                value = await fetcher()
            except Exception as exc:
                log.warning("%s refresh failed: %s", self.name, exc)
                value = None
            if value is None:
                if self._value is not None:
                    log.debug("%s serving stale value", self.name)
                return self._value
            self._value = value
            self._fetched_at = self._clock()
            return value
        finally:
            self._inflight = None
