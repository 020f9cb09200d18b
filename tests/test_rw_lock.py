"""Unit tests for the AsyncRWLock guarding the model cache."""

from __future__ import annotations

import asyncio
import unittest

from llm_facade.core.rw_lock import AsyncRWLock


class TestAsyncRWLock(unittest.IsolatedAsyncioTestCase):
    """Test suite for AsyncRWLock class."""

    async def asyncSetUp(self) -> None:
        self.lock = AsyncRWLock()

    async def test_readers_share_the_lock(self) -> None:
        """Several readers hold the lock at the same time."""
        active = 0
        peak = 0

        async def reader() -> None:
            nonlocal active, peak
            async with self.lock.read_lock():
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.02)
                active -= 1

        await asyncio.gather(*[reader() for _ in range(4)])

        self.assertEqual(peak, 4)
        self.assertEqual(self.lock.readers, 0)

    async def test_writer_blocks_reader(self) -> None:
        results: list[str] = []

        async def writer() -> None:
            async with self.lock.write_lock():
                results.append("write_start")
                await asyncio.sleep(0.03)
                results.append("write_end")

        async def reader() -> None:
            await asyncio.sleep(0.01)
            async with self.lock.read_lock():
                results.append("read")

        await asyncio.gather(writer(), reader())

        self.assertEqual(results, ["write_start", "write_end", "read"])

    async def test_writer_waits_for_readers(self) -> None:
        results: list[str] = []

        async def reader(name: str) -> None:
            async with self.lock.read_lock():
                results.append(f"{name}_start")
                await asyncio.sleep(0.03)
                results.append(f"{name}_end")

        async def writer() -> None:
            await asyncio.sleep(0.01)
            async with self.lock.write_lock():
                results.append("write")

        await asyncio.gather(reader("r1"), reader("r2"), writer())

        self.assertEqual(results[-1], "write")
        self.assertEqual(set(results[:4]), {"r1_start", "r2_start", "r1_end", "r2_end"})

    async def test_writers_are_exclusive(self) -> None:
        holding = False
        overlap = False

        async def writer() -> None:
            nonlocal holding, overlap
            async with self.lock.write_lock():
                if holding:
                    overlap = True
                holding = True
                await asyncio.sleep(0.01)
                holding = False

        await asyncio.gather(*[writer() for _ in range(3)])

        self.assertFalse(overlap)

    async def test_waiting_writer_blocks_new_readers(self) -> None:
        """A queued writer goes before readers that arrive after it."""
        results: list[str] = []
        first_reader_in = asyncio.Event()

        async def first_reader() -> None:
            async with self.lock.read_lock():
                first_reader_in.set()
                await asyncio.sleep(0.03)
                results.append("first_reader")

        async def writer() -> None:
            await first_reader_in.wait()
            async with self.lock.write_lock():
                results.append("writer")

        async def late_reader() -> None:
            await first_reader_in.wait()
            await asyncio.sleep(0.01)
            async with self.lock.read_lock():
                results.append("late_reader")

        await asyncio.gather(first_reader(), writer(), late_reader())

        self.assertEqual(results, ["first_reader", "writer", "late_reader"])

    async def test_readers_never_observe_partial_write(self) -> None:
        """Readers see the state before or after a write, never in between."""
        state = {"a": 1, "b": 1}
        observed: list[tuple[int, int]] = []

        async def writer(value: int) -> None:
            async with self.lock.write_lock():
                state["a"] = value
                await asyncio.sleep(0.005)
                state["b"] = value

        async def reader() -> None:
            for _ in range(10):
                async with self.lock.read_lock():
                    observed.append((state["a"], state["b"]))
                await asyncio.sleep(0.001)

        await asyncio.gather(reader(), writer(2), reader(), writer(3), reader())

        self.assertTrue(all(a == b for a, b in observed))

    async def test_cancelled_writer_releases_parked_readers(self) -> None:
        """Readers queued behind a writer proceed once that writer is cancelled."""
        await self.lock.acquire_read()

        pending_writer = asyncio.create_task(self.lock.acquire_write())
        await asyncio.sleep(0.01)

        parked_reader = asyncio.create_task(self.lock.acquire_read())
        await asyncio.sleep(0.01)
        self.assertFalse(parked_reader.done())

        pending_writer.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await pending_writer

        await asyncio.wait_for(parked_reader, timeout=1)
        self.assertEqual(self.lock.readers, 2)
        self.assertFalse(self.lock.write_locked)

        await self.lock.release_read()
        await self.lock.release_read()

    async def test_lock_released_on_exception(self) -> None:
        class CustomError(Exception):
            pass

        with self.assertRaises(CustomError):
            async with self.lock.write_lock():
                raise CustomError("test error")
        with self.assertRaises(CustomError):
            async with self.lock.read_lock():
                raise CustomError("test error")

        self.assertFalse(self.lock.write_locked)
        self.assertEqual(self.lock.readers, 0)

    async def test_reader_count_tracks_nesting(self) -> None:
        self.assertEqual(self.lock.readers, 0)

        async with self.lock.read_lock():
            self.assertEqual(self.lock.readers, 1)
            async with self.lock.read_lock():
                self.assertEqual(self.lock.readers, 2)
            self.assertEqual(self.lock.readers, 1)

        self.assertEqual(self.lock.readers, 0)

    async def test_manual_acquire_release_write(self) -> None:
        await self.lock.acquire_write()
        self.assertTrue(self.lock.write_locked)

        await self.lock.release_write()
        self.assertFalse(self.lock.write_locked)


if __name__ == "__main__":
    unittest.main()
