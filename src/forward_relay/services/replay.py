"""Replay protection for relay submissions.

The `IdempotencyGuard` remembers every admitted ``sender-nonce`` key for a
retention window so a signed authorization is accepted at most once by this
relay. The backing store is injected: an in-process lock-guarded map by
default, or Redis when several relay processes must share the guard.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from threading import Lock
from typing import Final, Protocol

import redis

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS: Final[int] = 300  # 5 minutes
_REDIS_PREFIX: Final[str] = "relay:pending:"


class ReplayStore(Protocol):
    """Storage contract for processed-request records."""

    def add_if_absent(self, key: str, now: float, ttl_seconds: int) -> bool:
        """Atomically insert ``key`` unless an unexpired record exists."""

    def discard(self, key: str) -> None:
        """Remove ``key`` if present."""

    def purge_expired(self, now: float, ttl_seconds: int) -> int:
        """Drop expired records and return how many were removed."""


class InMemoryReplayStore:
    """Process-local record map guarded by a single lock."""

    def __init__(self) -> None:
        self._records: dict[str, float] = {}
        self._lock = Lock()

    def add_if_absent(self, key: str, now: float, ttl_seconds: int) -> bool:
        with self._lock:
            accepted_at = self._records.get(key)
            if accepted_at is not None and now - accepted_at < ttl_seconds:
                return False
            self._records[key] = now
            return True

    def discard(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def purge_expired(self, now: float, ttl_seconds: int) -> int:
        with self._lock:
            expired = [key for key, ts in self._records.items() if now - ts >= ttl_seconds]
            for key in expired:
                del self._records[key]
            return len(expired)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class RedisReplayStore:
    """Redis-backed record map using ``SET NX EX`` as the test-and-set.

    Expiry is delegated to Redis. If Redis becomes unreachable the store logs
    and degrades to a process-local map so the relay keeps guarding locally.
    """

    def __init__(self, client: redis.Redis, fallback: InMemoryReplayStore | None = None) -> None:
        self._redis = client
        self._fallback = fallback or InMemoryReplayStore()

    def add_if_absent(self, key: str, now: float, ttl_seconds: int) -> bool:
        try:
            created = self._redis.set(
                _REDIS_PREFIX + key, int(now), nx=True, ex=max(1, int(ttl_seconds))
            )
        except redis.RedisError as err:
            logger.warning("Redis replay store unavailable, using local guard: %s", err)
            return self._fallback.add_if_absent(key, now, ttl_seconds)
        return bool(created)

    def discard(self, key: str) -> None:
        try:
            self._redis.delete(_REDIS_PREFIX + key)
        except redis.RedisError as err:
            logger.warning("Redis replay store unavailable on release: %s", err)
        self._fallback.discard(key)

    def purge_expired(self, now: float, ttl_seconds: int) -> int:
        return self._fallback.purge_expired(now, ttl_seconds)


class IdempotencyGuard:
    """Test-and-set cache preventing duplicate acceptance of one authorization."""

    def __init__(
        self,
        store: ReplayStore | None = None,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store: ReplayStore = store if store is not None else InMemoryReplayStore()
        self._ttl = int(ttl_seconds)
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def try_mark_pending(self, key: str) -> bool:
        """Return True if ``key`` was unseen (and is now pending), False on duplicate."""
        return self._store.add_if_absent(key, self._clock(), self._ttl)

    def release(self, key: str) -> None:
        """Forget a pending mark for a request rejected before submission."""
        self._store.discard(key)

    def sweep(self) -> int:
        """Purge records older than the retention window."""
        return self._store.purge_expired(self._clock(), self._ttl)


def get_replay_store(redis_url: str | None) -> ReplayStore:
    """Return the shared Redis store when configured, else a local store."""
    if not redis_url:
        return InMemoryReplayStore()
    logger.info("Using Redis replay store")
    return RedisReplayStore(redis.from_url(redis_url))
