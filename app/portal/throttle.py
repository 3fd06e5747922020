"""
Process-lifetime services: a sliding-window rate limiter and a TTL cache.

Both are built once in ``create_app()`` and stored on ``app.extensions``
(``rate_limiters`` / ``chat_context_cache``). A ``clock`` callable is injected so
tests can move time without sleeping.
"""
from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any

Clock = Callable[[], float]


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    message: str = ""
    retry_after: int = 0


@dataclass
class _Bucket:
    hits: list[float] = field(default_factory=list)
    blocked_until: float | None = None


class RateLimiter:
    """
    At most ``max_requests`` per ``window_seconds`` per identifier. Exceeding the
    limit blocks the identifier for ``cooldown_seconds`` (0 = just wait for the
    window to slide).
    """

    def __init__(self, max_requests: int, window_seconds: float, cooldown_seconds: float = 0, clock: Clock = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._buckets: dict[Hashable, _Bucket] = {}
        self._lock = threading.Lock()

    def check(self, identifier: Hashable) -> RateDecision:
        now = self._clock()
        with self._lock:
            bucket = self._buckets.setdefault(identifier, _Bucket())
            if bucket.blocked_until is not None:
                if now < bucket.blocked_until:
                    wait = math.ceil(bucket.blocked_until - now)
                    return RateDecision(False, f"Rate limit exceeded. Please wait {wait} seconds before trying again.", wait)
                bucket.blocked_until = None

            bucket.hits = [t for t in bucket.hits if now - t < self.window_seconds]
            if len(bucket.hits) >= self.max_requests:
                if self.cooldown_seconds:
                    bucket.blocked_until = now + self.cooldown_seconds
                    wait = math.ceil(self.cooldown_seconds)
                else:
                    wait = math.ceil(self.window_seconds - (now - bucket.hits[0]))
                return RateDecision(
                    False,
                    f"Rate limit exceeded. Maximum {self.max_requests} requests per {self.window_seconds:g} seconds. "
                    f"Please wait {wait} seconds.",
                    wait,
                )

            bucket.hits.append(now)
            return RateDecision(True)

    def reset(self, identifier: Hashable) -> None:
        with self._lock:
            self._buckets.pop(identifier, None)

    def evict_idle(self) -> int:
        """Drop identifiers with no hits inside the window and no active block."""
        now = self._clock()
        with self._lock:
            idle = [
                k
                for k, b in self._buckets.items()
                if (b.blocked_until is None or b.blocked_until <= now)
                and all(now - t >= self.window_seconds for t in b.hits)
            ]
            for k in idle:
                del self._buckets[k]
            return len(idle)


class TTLCache:
    def __init__(self, ttl_seconds: float, clock: Clock = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            stored_at, value = entry
            if now - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return default
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        sentinel = object()
        value = self.get(key, sentinel)
        if value is sentinel:
            value = loader()
            self.set(key, value)
        return value

    def invalidate(self, key: Hashable | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)
