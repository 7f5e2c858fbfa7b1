"""
Idempotency Store - First response wins, per key, for a fixed TTL.

In-memory only: entries do not survive a restart. Safe for concurrent
coroutines on one event loop: callers sharing a fresh key are serialized by
a per-key asyncio.Lock, so the operation runs once and later callers get the
stored result.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar

from structlog import get_logger

from paygate.models.domain import IdempotencyEntry

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TTL = timedelta(hours=24)


def _utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class _KeyLock:
    """asyncio.Lock with a waiter count so idle locks can be discarded."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class IdempotencyStore:
    """
    Keyed store of first responses with lazy TTL eviction.

    Usage:
        store = IdempotencyStore()
        response, cached = await store.run("IK_...", lambda: adapter.refund(request))
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, IdempotencyEntry] = {}
        self._locks: dict[str, _KeyLock] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> IdempotencyEntry | None:
        """Return a live entry; expired entries are deleted when found."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            logger.info("idempotency_entry_expired", idempotency_key=key)
            return None
        return entry

    def set(self, key: str, response: Any) -> IdempotencyEntry:
        """Store a response for key, stamped with the store's TTL."""
        now = self._clock()
        entry = IdempotencyEntry(
            key=key, response=response, created_at=now, expires_at=now + self.ttl
        )
        self._entries[key] = entry
        return entry

    async def run(self, key: str, operation: Callable[[], Awaitable[T]]) -> tuple[T, bool]:
        """
        Return (response, cached).

        On a hit the stored response is returned without calling operation.
        On a miss operation runs exactly once; its result is stored only if it
        succeeds, so a failed attempt can be retried with the same key.
        """
        entry = self.get(key)
        if entry is not None:
            return entry.response, True

        key_lock = self._locks.get(key)
        if key_lock is None:
            key_lock = self._locks[key] = _KeyLock()
        key_lock.users += 1
        try:
            async with key_lock.lock:
                entry = self.get(key)
                if entry is not None:
                    return entry.response, True
                response = await operation()
                self.set(key, response)
                return response, False
        finally:
            key_lock.users -= 1
            if key_lock.users == 0:
                self._locks.pop(key, None)

    def clear(self) -> None:
        """Forget every entry."""
        self._entries.clear()
