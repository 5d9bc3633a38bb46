"""Reader/writer lock for asyncio tasks, with poisoning on writer failure."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from peerdb.errors import LockPoisonedError


class ReadWriteLock:
    """
    A read-write lock that allows multiple concurrent readers
    or one exclusive writer, implemented using asyncio primitives.

    If an exception escapes a ``write_lock()`` block the protected state may
    be half-updated, so the lock is poisoned: every later acquisition raises
    ``LockPoisonedError`` instead of exposing that state.
    """

    def __init__(self) -> None:
        self._readers = 0
        self._readers_lock = asyncio.Lock()  # Protects access to _readers count
        self._writer_lock = asyncio.Semaphore(1)  # Allows only one writer at a time
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def _check(self) -> None:
        if self._poisoned:
            raise LockPoisonedError("lock was poisoned by a failed writer")

    async def acquire_read(self) -> None:
        """Acquire a read lock. Multiple readers can hold it simultaneously."""
        self._check()
        async with self._readers_lock:
            if self._readers == 0:
                await self._writer_lock.acquire()
            self._readers += 1
        if self._poisoned:
            await self.release_read()
            self._check()

    async def release_read(self) -> None:
        """Release a read lock."""
        async with self._readers_lock:
            if self._readers == 1:
                self._writer_lock.release()
            self._readers -= 1

    async def acquire_write(self) -> None:
        """Acquire an exclusive write lock."""
        self._check()
        await self._writer_lock.acquire()
        if self._poisoned:
            self._writer_lock.release()
            self._check()

    def release_write(self) -> None:
        """Release the exclusive write lock."""
        self._writer_lock.release()

    @asynccontextmanager
    async def read_lock(self) -> AsyncGenerator[None, None]:
        """Context manager for acquiring and releasing a read lock safely."""
        await self.acquire_read()
        try:
            yield
        finally:
            await asyncio.shield(self.release_read())

    @asynccontextmanager
    async def write_lock(self) -> AsyncGenerator[None, None]:
        """Context manager for acquiring and releasing a write lock safely."""
        await self.acquire_write()
        try:
            yield
        except Exception:
            self._poisoned = True
            raise
        finally:
            self.release_write()
