"""In-memory fixed-window rate limiting backed by ``limits``."""

import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter

from photo_kiosk.errors import RateLimited

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Admitted:
    remaining: int


@dataclass(frozen=True)
class Denied:
    retry_after: timedelta


@dataclass
class RateLimiter:
    """Admits at most ``limit`` attempts per key within each window.

    Counters live in the given ``limits`` storage; the default in-memory
    storage is per process and resets on restart.
    """

    name: str
    limit: int
    window: timedelta
    storage: Storage = field(default_factory=MemoryStorage)
    _item: RateLimitItem = field(init=False)
    _strategy: FixedWindowRateLimiter = field(init=False)

    def __post_init__(self) -> None:
        seconds = max(1, int(self.window.total_seconds()))
        self._item = RateLimitItemPerSecond(self.limit, seconds)
        self._strategy = FixedWindowRateLimiter(self.storage)

    def admit(self, key: str) -> Admitted | Denied:
        """Record an attempt for ``key`` and return the verdict."""
        allowed = self._strategy.hit(self._item, self.name, key)
        stats = self._strategy.get_window_stats(self._item, self.name, key)
        if allowed:
            return Admitted(remaining=stats.remaining)
        retry_after = max(0.0, stats.reset_time - time.time())
        return Denied(retry_after=timedelta(seconds=retry_after))

    def check(self, key: str) -> None:
        """Admit ``key`` or raise ``RateLimited``."""
        verdict = self.admit(key)
        if isinstance(verdict, Denied):
            logger.warning(
                "Rate limit exceeded",
                extra={"limiter": self.name, "caller_key": key},
            )
            raise RateLimited(retry_after=verdict.retry_after.total_seconds())

    def reset(self) -> None:
        """Forget every counter held by this limiter's storage."""
        self.storage.reset()
