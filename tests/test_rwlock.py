"""Tests for peerdb.rwlock — reader/writer lock semantics."""

import asyncio

import pytest

from peerdb.errors import LockPoisonedError
from peerdb.rwlock import ReadWriteLock


class TestReadWriteLock:
    @pytest.mark.asyncio
    async def test_readers_share_the_lock(self) -> None:
        lock = ReadWriteLock()
        first_in = asyncio.Event()
        release = asyncio.Event()

        async def hold_read() -> None:
            async with lock.read_lock():
                first_in.set()
                await release.wait()

        holder = asyncio.create_task(hold_read())
        await first_in.wait()

        # A second reader gets in while the first still holds the lock.
        await asyncio.wait_for(lock.acquire_read(), timeout=1)
        await lock.release_read()

        release.set()
        await holder

    @pytest.mark.asyncio
    async def test_writer_waits_for_readers(self) -> None:
        lock = ReadWriteLock()
        acquired = []

        await lock.acquire_read()

        async def write() -> None:
            async with lock.write_lock():
                acquired.append("writer")

        writer = asyncio.create_task(write())
        for _ in range(5):
            await asyncio.sleep(0)
        assert acquired == []

        await lock.release_read()
        await asyncio.wait_for(writer, timeout=1)
        assert acquired == ["writer"]

    @pytest.mark.asyncio
    async def test_readers_wait_for_writer(self) -> None:
        lock = ReadWriteLock()
        acquired = []

        await lock.acquire_write()

        async def read() -> None:
            async with lock.read_lock():
                acquired.append("reader")

        reader = asyncio.create_task(read())
        for _ in range(5):
            await asyncio.sleep(0)
        assert acquired == []

        lock.release_write()
        await asyncio.wait_for(reader, timeout=1)
        assert acquired == ["reader"]

    @pytest.mark.asyncio
    async def test_failed_writer_poisons_lock(self) -> None:
        lock = ReadWriteLock()

        with pytest.raises(RuntimeError):
            async with lock.write_lock():
                raise RuntimeError("writer crashed")

        assert lock.poisoned
        with pytest.raises(LockPoisonedError):
            await lock.acquire_read()
        with pytest.raises(LockPoisonedError):
            await lock.acquire_write()

    @pytest.mark.asyncio
    async def test_failed_reader_does_not_poison(self) -> None:
        lock = ReadWriteLock()

        with pytest.raises(RuntimeError):
            async with lock.read_lock():
                raise RuntimeError("reader crashed")

        assert not lock.poisoned
        async with lock.write_lock():
            pass
