"""
Keyed lock: one FIFO slot per product id.

    async with locks.hold("p1", timeout=15.0) as acquired:
        if not acquired:
            return Error(Errors.busy(...))
        ...

Keys nobody holds or waits on are dropped, so the registry only ever holds
products with work in flight.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class KeyedLock[K: Hashable]:
    def __init__(self) -> None:
        self._locks: dict[K, asyncio.Lock] = {}
        self._users: dict[K, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def locked(self, key: K) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: K, timeout: float) -> AsyncIterator[bool]:
        """Wait up to timeout seconds for key's slot. Yields whether it was taken."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            except TimeoutError:
                acquired = False
            else:
                acquired = True

            if not acquired:
                yield False
                return
            try:
                yield True
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


__all__ = ("KeyedLock",)
