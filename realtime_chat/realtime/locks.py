"""A FIFO lock that coroutines on different event loops can share.

The Socket.IO handlers run on the server loop while REST views reach the
relay through ``async_to_sync``, each request thread on a loop of its own.
``asyncio.Lock`` wakes waiters only on the loop it is bound to, so a waiter
from another thread would never resume. Here each waiter is woken through its
own loop with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import threading
from collections import deque


class ThreadSafeAsyncLock:
    def __init__(self) -> None:
        self._mutex = threading.Lock()
        self._locked = False
        self._waiters: deque[tuple[asyncio.AbstractEventLoop, asyncio.Future[None]]] = deque()

    def locked(self) -> bool:
        return self._locked

    async def acquire(self) -> None:
        loop = asyncio.get_running_loop()
        with self._mutex:
            if not self._locked:
                self._locked = True
                return
            waiter: asyncio.Future[None] = loop.create_future()
            self._waiters.append((loop, waiter))

        try:
            await waiter
        except asyncio.CancelledError:
            with self._mutex:
                owned = waiter.done() and not waiter.cancelled()
                if not owned and (loop, waiter) in self._waiters:
                    self._waiters.remove((loop, waiter))
            if owned:
                # Ownership was handed over just before the cancellation.
                self.release()
            raise

    def release(self) -> None:
        with self._mutex:
            if not self._locked:
                msg = "Lock is not acquired"
                raise RuntimeError(msg)
            if not self._waiters:
                self._locked = False
                return
            # Hand ownership straight to the next waiter; the lock stays held.
            loop, waiter = self._waiters.popleft()
        loop.call_soon_threadsafe(self._wake, waiter)

    def _wake(self, waiter: asyncio.Future[None]) -> None:
        if waiter.cancelled():
            # The waiter gave up after it was chosen; pass ownership on.
            self.release()
        else:
            waiter.set_result(None)

    async def __aenter__(self) -> None:
        await self.acquire()

    async def __aexit__(self, *exc_info: object) -> None:
        self.release()
