"""
Keyed rate limiter with a block penalty, on top of the ``limits`` package.

Every (policy, key) pair counts points in a fixed window. Once a key
overdraws its points it is blocked for ``block_seconds``: a one-point item
in a separate namespace marks the block, and while it is live consumption is
rejected without touching the window. The window is cleared when the block
starts, so the key comes back with a fresh window.

The limiter is synchronous and never waits. Counting and expiry belong to
the ``limits`` storage (``memory://`` by default); any storage URI it
understands can be configured instead.
"""

from __future__ import annotations

import functools
import math
import threading
from dataclasses import dataclass
from typing import Optional, Protocol

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter

from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger

log = get_logger(__name__)

_BLOCK_NAMESPACE = "BLOCK"


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    points: int
    window_seconds: int
    block_seconds: int = 0


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int = 0
    remaining_points: int = 0


class RateLimiterBackend(Protocol):
    def consume(
        self, policy: RateLimitPolicy, key: str, cost: int = 1
    ) -> RateLimitResult: ...


@functools.lru_cache(maxsize=None)
def _window_item(policy: RateLimitPolicy) -> RateLimitItem:
    return RateLimitItemPerSecond(policy.points, policy.window_seconds)


@functools.lru_cache(maxsize=None)
def _block_item(policy: RateLimitPolicy) -> Optional[RateLimitItem]:
    if policy.block_seconds <= 0:
        return None
    return RateLimitItemPerSecond(1, policy.block_seconds, namespace=_BLOCK_NAMESPACE)


def _seconds_until(reset_time: float, now: float) -> int:
    return max(1, math.ceil(reset_time - now))


class RateLimiter:
    def __init__(self, storage: Optional[Storage] = None, clock: Clock = utcnow) -> None:
        self._storage = storage if storage is not None else MemoryStorage()
        self._windows = FixedWindowRateLimiter(self._storage)
        self._clock = clock
        # Block check, hit and penalty happen together per process
        self._lock = threading.Lock()

    def consume(
        self, policy: RateLimitPolicy, key: str, cost: int = 1
    ) -> RateLimitResult:
        now = self._clock().timestamp()
        window = _window_item(policy)
        block = _block_item(policy)

        with self._lock:
            if block is not None:
                stats = self._windows.get_window_stats(block, policy.name, key)
                if stats.remaining == 0:
                    return RateLimitResult(
                        allowed=False,
                        retry_after_seconds=_seconds_until(stats.reset_time, now),
                    )

            if self._windows.hit(window, policy.name, key, cost=cost):
                stats = self._windows.get_window_stats(window, policy.name, key)
                return RateLimitResult(allowed=True, remaining_points=stats.remaining)

            if block is not None:
                self._windows.hit(block, policy.name, key)
                self._windows.clear(window, policy.name, key)
                retry_after = policy.block_seconds
            else:
                stats = self._windows.get_window_stats(window, policy.name, key)
                retry_after = _seconds_until(stats.reset_time, now)

        log.warning(
            "rate_limit_exceeded",
            policy=policy.name,
            retry_after_seconds=retry_after,
        )
        return RateLimitResult(allowed=False, retry_after_seconds=retry_after)
