"""Coalesce concurrent requests for the same key into one operation."""

import asyncio
import concurrent.futures
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from functools import partial
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass
class _Entry(Generic[T]):
    future: "concurrent.futures.Future[T]"
    waiters: int = 0


@dataclass
class RequestDeduplicator(Generic[T]):
    """Registry of in-flight operations keyed by a normalized request key.

    Every caller for a key awaits one shared ``concurrent.futures.Future``, so
    callers on different threads and event loops can join the same operation.
    The check-and-insert and the remove-and-complete steps both run under one
    lock.
    """

    cancelled_result: Callable[[], T]
    _in_flight: dict[str, _Entry[T]] = field(
        default_factory=dict, init=False, repr=False
    )
    _tasks: set["asyncio.Task[T]"] = field(default_factory=set, init=False, repr=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def is_in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight

    def waiter_count(self, key: str) -> int:
        with self._lock:
            entry = self._in_flight.get(key)
            return entry.waiters if entry is not None else 0

    @property
    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    async def run(self, key: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Await the shared result for ``key``, starting ``operation`` if needed.

        Cancelling one waiter does not cancel the shared operation.
        """
        return await asyncio.shield(asyncio.wrap_future(self.join(key, operation)))

    def join(
        self, key: str, operation: Callable[[], Awaitable[T]]
    ) -> "concurrent.futures.Future[T]":
        """Return the shared future for ``key``.

        A new operation is started on the running event loop when no entry
        exists for the key.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            entry = self._in_flight.get(key)
            if entry is not None:
                entry.waiters += 1
                return entry.future
            entry = _Entry(future=concurrent.futures.Future(), waiters=1)
            self._in_flight[key] = entry
            task = loop.create_task(_await(operation))
            self._tasks.add(task)
        task.add_done_callback(partial(self._settle, key, entry.future))
        return entry.future

    async def cancel_all(self) -> None:
        """Cancel running operations; their waiters get ``cancelled_result()``."""
        loop = asyncio.get_running_loop()
        with self._lock:
            tasks = list(self._tasks)
        local = [task for task in tasks if task.get_loop() is loop]
        for task in tasks:
            if task.get_loop() is loop:
                task.cancel()
            elif not task.get_loop().is_closed():
                task.get_loop().call_soon_threadsafe(task.cancel)
        await asyncio.gather(*local, return_exceptions=True)

    def _settle(
        self,
        key: str,
        future: "concurrent.futures.Future[T]",
        task: "asyncio.Task[T]",
    ) -> None:
        with self._lock:
            self._tasks.discard(task)
            entry = self._in_flight.get(key)
            if entry is not None and entry.future is future:
                del self._in_flight[key]
            if future.done():
                return
            if task.cancelled():
                future.set_result(self.cancelled_result())
                return
            exc = task.exception()
            if exc is not None:
                future.set_exception(exc)
                return
            future.set_result(task.result())


async def _await(operation: Callable[[], Awaitable[T]]) -> T:
    return await operation()
