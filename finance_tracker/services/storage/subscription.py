"""
Live Snapshot Subscriptions

A subscription is a one-way channel: the store pushes complete snapshots,
the consumer iterates them. The consumer owns the subscription as a scoped
resource; leaving the ``async with`` block releases whatever the store
registered for it, including when setup itself fails halfway.

Usage:
    async with store.watch_collection(path) as snapshots:
        async for documents in snapshots:
            ...
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from finance_tracker.services.storage.errors import SubscriptionError


T = TypeVar("T")

Starter = Callable[["Subscription"], Awaitable[None]]
Release = Callable[[], Any]

_CLOSED = object()


class _Failure:
    def __init__(self, error: BaseException):
        self.error = error


class Subscription(Generic[T]):
    """
    Async iterator of snapshots with guaranteed release.

    Producer side: ``push``, ``fail``, ``add_release``.
    Consumer side: ``async with``, ``async for``, ``first``.

    A failure is terminal: the iterator raises SubscriptionError once, the
    subscription releases itself, and later iteration simply stops.
    """

    def __init__(self, source: str, starter: Starter):
        self.source = source
        self._starter = starter
        self._queue: asyncio.Queue = asyncio.Queue()
        self._releases: list[Release] = []
        self._transforms: list[Callable[[Any], Any]] = []
        self._opened = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # -- producer side --------------------------------------------------------

    def add_release(self, callback: Release) -> None:
        """Register cleanup to run when the consumer lets go."""
        if self._closed:
            result = callback()
            if inspect.isawaitable(result):
                asyncio.ensure_future(result)
            return
        self._releases.append(callback)

    def push(self, snapshot: Any) -> None:
        """Deliver a complete snapshot. Ignored once closed."""
        if not self._closed:
            self._queue.put_nowait(snapshot)

    def fail(self, error: BaseException) -> None:
        """Deliver the terminal failure notification."""
        if not self._closed:
            self._queue.put_nowait(_Failure(error))

    # -- consumer side --------------------------------------------------------

    def map(self, transform: Callable[[Any], Any]) -> "Subscription":
        """Apply ``transform`` to every snapshot before it is yielded."""
        self._transforms.append(transform)
        return self

    async def open(self) -> "Subscription[T]":
        if self._opened:
            return self
        self._opened = True
        try:
            await self._starter(self)
        except BaseException:
            await self.close()
            raise
        return self

    async def close(self) -> None:
        """Release the underlying store handle. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        while self._releases:
            callback = self._releases.pop()
            result = callback()
            if inspect.isawaitable(result):
                await result
        self._queue.put_nowait(_CLOSED)

    async def __aenter__(self) -> "Subscription[T]":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.close()
        return False

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        if not self._opened:
            await self.open()
        if self._closed and self._queue.empty():
            raise StopAsyncIteration

        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            await self.close()
            raise SubscriptionError(self.source, str(item.error)) from item.error

        for transform in self._transforms:
            item = transform(item)
        return item

    async def first(self, timeout: Optional[float] = None) -> T:
        """Wait for the next snapshot, then release the subscription."""
        try:
            async with self:
                return await asyncio.wait_for(self.__anext__(), timeout)
        except StopAsyncIteration:
            raise SubscriptionError(self.source, "closed before the first snapshot")
