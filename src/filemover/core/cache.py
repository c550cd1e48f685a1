"""
Keyed get-or-compute cache with single-flight semantics.

Backs the tenant-config cache, the connection cache and the channel registry.
For any key at most one computation is in flight; concurrent callers await
the same result. Failed computations are not cached, so the next caller
retries.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable, Iterator
from dataclasses import dataclass
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class _Entry(Generic[V]):
    value: V
    expires_at: float | None


def _retrieve_exception(task: asyncio.Task) -> None:
    # Every caller may have been cancelled; mark the failure as seen
    if not task.cancelled():
        task.exception()


class SingleFlightCache(Generic[K, V]):
    """
    Concurrency-safe keyed get-or-compute structure.

    Entries live forever unless ``ttl`` is given, in which case they expire
    ``ttl`` seconds after insertion. There is no explicit invalidation.

    Examples:
        >>> cache: SingleFlightCache[str, str] = SingleFlightCache(ttl=600)
        >>> value = await cache.get_or_compute("firm-abc", lambda: load("firm-abc"))
    """

    def __init__(self, ttl: float | None = None, *, clock: Callable[[], float] = time.monotonic):
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be > 0 or None")
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[K, _Entry[V]] = {}
        self._inflight: dict[K, asyncio.Task[V]] = {}
        self.computations = 0

    async def get_or_compute(self, key: K, factory: Callable[[], Awaitable[V]]) -> V:
        """
        Return the cached value for ``key``, computing it once if absent.

        Args:
            key: Cache key
            factory: Zero-argument coroutine function producing the value

        Raises:
            Exception: Whatever ``factory`` raised; every waiter sees it
        """
        entry = self._entries.get(key)
        if entry is not None and not self._expired(entry):
            return entry.value

        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.create_task(self._compute(key, factory))
            pending.add_done_callback(_retrieve_exception)
            self._inflight[key] = pending
        # shield: a cancelled caller, the first one included, leaves the computation running for the others
        return await asyncio.shield(pending)

    async def _compute(self, key: K, factory: Callable[[], Awaitable[V]]) -> V:
        self.computations += 1
        try:
            value = await factory()
            expires_at = self._clock() + self.ttl if self.ttl is not None else None
            self._entries[key] = _Entry(value=value, expires_at=expires_at)
            return value
        finally:
            self._inflight.pop(key, None)

    def peek(self, key: K) -> V | None:
        """Return the cached value without computing; None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None or self._expired(entry):
            return None
        return entry.value

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and not self._expired(entry)

    def __len__(self) -> int:
        return sum(1 for _ in self.items())

    def items(self) -> Iterator[tuple[K, V]]:
        """Iterate over live (unexpired) entries."""
        for key, entry in list(self._entries.items()):
            if not self._expired(entry):
                yield key, entry.value

    def _expired(self, entry: _Entry[V]) -> bool:
        return entry.expires_at is not None and self._clock() >= entry.expires_at
