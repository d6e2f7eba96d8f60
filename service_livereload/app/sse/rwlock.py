"""
Reader/writer lock for asyncio tasks.
"""

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from typing import Deque, Tuple


class ReadWriteLock:
    """FIFO-fair reader/writer lock.

    Any number of readers may hold the lock together; a writer holds it
    alone. Waiters are granted strictly in arrival order, so a queued writer
    blocks later readers and cannot starve. Release never awaits, which keeps
    it safe inside ``finally`` blocks of cancelled tasks.
    """

    def __init__(self):
        self._readers = 0
        self._writer = False
        self._waiters: Deque[Tuple[bool, asyncio.Future]] = deque()

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def write_locked(self) -> bool:
        return self._writer

    def _compatible(self, exclusive: bool) -> bool:
        if exclusive:
            return not self._writer and self._readers == 0
        return not self._writer

    def _grant(self, exclusive: bool):
        if exclusive:
            self._writer = True
        else:
            self._readers += 1

    def _wake(self):
        while self._waiters:
            exclusive, waiter = self._waiters[0]
            if waiter.done():
                self._waiters.popleft()
                continue
            if not self._compatible(exclusive):
                break
            self._waiters.popleft()
            self._grant(exclusive)
            waiter.set_result(None)
            if exclusive:
                break

    async def _acquire(self, exclusive: bool):
        if not self._waiters and self._compatible(exclusive):
            self._grant(exclusive)
            return

        waiter = asyncio.get_running_loop().create_future()
        entry = (exclusive, waiter)
        self._waiters.append(entry)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Granted just before the cancellation landed
                self._release(exclusive)
            else:
                try:
                    self._waiters.remove(entry)
                except ValueError:
                    pass
                self._wake()
            raise

    def _release(self, exclusive: bool):
        if exclusive:
            self._writer = False
        else:
            self._readers -= 1
        self._wake()

    @asynccontextmanager
    async def reader(self):
        """Hold the lock in shared mode."""
        await self._acquire(False)
        try:
            yield
        finally:
            self._release(False)

    @asynccontextmanager
    async def writer(self):
        """Hold the lock in exclusive mode."""
        await self._acquire(True)
        try:
            yield
        finally:
            self._release(True)
