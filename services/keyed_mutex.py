"""
Keyed asyncio mutex

Serializes coroutines that share a key while letting coroutines with
different keys run concurrently. Waiters on one key are served in arrival
order. A key's bookkeeping is dropped as soon as nobody holds or waits for it.

Usage:
    mutex = KeyedMutex()
    async with mutex.hold("some-key"):
        ...

Only coroutines in the same process and event loop are excluded from each
other. A deployment with several worker processes needs a cross-process
mechanism on top (serializable transactions with retry, database advisory
locks or a lock service).
"""

import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Deque, Dict

logger = logging.getLogger(__name__)


class KeyedMutex:
    """
    Registry of per-key locks

    A key present in the registry is held; its deque holds the futures of
    the coroutines waiting for it, oldest first.
    """

    def __init__(self):
        self._waiters: Dict[str, Deque[asyncio.Future]] = {}

    def __len__(self):
        return len(self._waiters)

    def locked(self, key: str) -> bool:
        """Check if the key is currently held"""
        return key in self._waiters

    async def acquire(self, key: str) -> Callable[[], None]:
        """
        Wait until the key is free and take it
        Returns a release callable that must be called exactly once.
        """
        queue = self._waiters.get(key)
        if queue is None:
            self._waiters[key] = deque()
            return self._release_handle(key)

        waiter = asyncio.get_running_loop().create_future()
        queue.append(waiter)
        logger.debug(f"Waiting for lock {key!r} behind {len(queue) - 1} other waiter(s)")
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The lock was handed over just before the cancellation landed
                self._release(key)
            elif waiter in queue:
                queue.remove(waiter)
            raise
        return self._release_handle(key)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the key for the duration of the block"""
        release = await self.acquire(key)
        try:
            yield
        finally:
            release()

    def _release_handle(self, key: str) -> Callable[[], None]:
        released = False

        def release():
            nonlocal released
            if released:
                raise RuntimeError(f"Lock {key!r} released more than once")
            released = True
            self._release(key)

        return release

    def _release(self, key: str):
        queue = self._waiters[key]
        while queue:
            waiter = queue.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        del self._waiters[key]
