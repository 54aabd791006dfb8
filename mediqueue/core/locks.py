"""Per-queue write serialization."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID


class QueueLockRegistry:
    """
    Hands out one asyncio.Lock per queue id.

    Writes for the same queue hold its lock for the whole
    mutate -> recompute -> publish sequence. Writes for different queues
    never contend.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._locks: dict[UUID, asyncio.Lock] = {}

    def lock_for(self, queue_id: UUID) -> asyncio.Lock:
        """Return the lock guarding ``queue_id``, creating it on first use."""
        lock = self._locks.get(queue_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[queue_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, queue_id: UUID) -> AsyncIterator[None]:
        """Hold the queue's lock for the duration of the block."""
        async with self.lock_for(queue_id):
            yield


# Process-wide registry shared by every request
queue_locks = QueueLockRegistry()
