"""Per-repository mutexes so workflow operations on one tree do not interleave."""

import asyncio
import contextlib
import weakref
from collections.abc import AsyncIterator
from pathlib import Path


class RepositoryLocks:
    """Hands out one asyncio.Lock per resolved working directory.

    Locks are process-local. Concurrent git processes started elsewhere are
    still only coordinated by git's own index.lock.
    """

    def __init__(self, *, enabled: bool = True) -> None:
        self._enabled = enabled
        # Entries drop out once no holder or waiter references the lock
        self._locks: weakref.WeakValueDictionary[Path, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def lock_for(self, repo: Path) -> asyncio.Lock:
        key = repo.resolve()
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @contextlib.asynccontextmanager
    async def hold(self, repo: Path) -> AsyncIterator[None]:
        if not self._enabled:
            yield
            return
        async with self.lock_for(repo):
            yield
