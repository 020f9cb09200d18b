"""Async read-write lock for shared in-memory state.

Allows many concurrent readers OR one exclusive writer, which suits
read-heavy state that is occasionally rebuilt as a whole.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class AsyncRWLock:
    """Async read-write lock allowing multiple readers OR one writer.

    - Multiple readers can hold the lock simultaneously
    - Only one writer can hold the lock at a time
    - Waiting writers block new readers to prevent writer starvation

    Example:
        lock = AsyncRWLock()

        async with lock.read_lock():
            value = state.get(key)

        async with lock.write_lock():
            state.clear()
            state.update(fresh)
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer_active = False
        self._writers_waiting = 0

    @property
    def readers(self) -> int:
        """Number of readers currently holding the lock."""
        return self._readers

    @property
    def write_locked(self) -> bool:
        return self._writer_active

    async def acquire_read(self) -> None:
        """Acquire the lock for reading.

        Blocks while a writer holds the lock or is waiting for it.
        """
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer_active and self._writers_waiting == 0
            )
            self._readers += 1

    async def release_read(self) -> None:
        async with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    async def acquire_write(self) -> None:
        """Acquire the lock exclusively.

        Blocks until all readers have released and no other writer holds it.
        """
        async with self._cond:
            self._writers_waiting += 1
            acquired = False
            try:
                await self._cond.wait_for(
                    lambda: not self._writer_active and self._readers == 0
                )
                self._writer_active = True
                acquired = True
            finally:
                self._writers_waiting -= 1
                if not acquired:
                    # Readers parked behind this writer must re-check.
                    self._cond.notify_all()

    async def release_write(self) -> None:
        async with self._cond:
            self._writer_active = False
            self._cond.notify_all()

    @asynccontextmanager
    async def read_lock(self) -> AsyncIterator[None]:
        """Context manager for read access.

        Yields:
            None
        """
        await self.acquire_read()
        try:
            yield
        finally:
            await self.release_read()

    @asynccontextmanager
    async def write_lock(self) -> AsyncIterator[None]:
        """Context manager for exclusive access.

        Yields:
            None
        """
        await self.acquire_write()
        try:
            yield
        finally:
            await self.release_write()
