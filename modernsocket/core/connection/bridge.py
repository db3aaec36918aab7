import asyncio
import logging
from collections import deque
from typing import Any, Generic, TypeVar

from modernsocket.core.helpers.deferred import Deferred
from modernsocket.core.helpers.sub import Subscription

T = TypeVar("T")

_END = object()


class MessageBridge(Generic[T]):
    """
    Pull-based view over the push-style message stream of a connection.

    A bridge subscribes to the connection's message broadcast when it is
    created and keeps its own FIFO buffer, so several bridges over the same
    connection all observe every message. Each call to `__anext__` returns
    the oldest buffered message, or suspends until either a new message
    arrives or the connection's `closed` future settles.

    Closure always ends the iteration normally, whether it was clean or
    not; callers that need the failure detail inspect `closed` themselves.
    Messages still buffered when `closed` settles are discarded.

    A task waiting in `__anext__` may be cancelled at any time without
    losing a message: a message already handed to the cancelled waiter goes
    back to the head of the buffer and is returned by the next pull.

    `aclose()` unsubscribes, detaches from `closed` and discards the
    buffer; the bridge is then exhausted for good and no longer referenced
    by the connection.
    """
    def __init__(
        self,
        closed: Deferred[Any],
        subscription: Subscription[T],
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._loop = loop or asyncio.get_event_loop()
        self._closed = closed
        self._queue: deque[T] = deque()
        self._waiter: asyncio.Future[Any] | None = None
        self._exhausted = False
        self._unsubscribe = subscription.subscribe(self._on_message)
        self._logger = logging.getLogger("core.connection.bridge")

        self._detach = closed.add_done_callback(lambda _: self._terminate())

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def pending(self) -> int:
        """Number of messages buffered and not yet pulled."""
        return len(self._queue)

    def __aiter__(self) -> "MessageBridge[T]":
        return self

    async def __anext__(self) -> T:
        # The done callback on `closed` runs one loop iteration late.
        if self._closed.done():
            self._terminate()

        if self._exhausted:
            raise StopAsyncIteration

        if self._queue:
            return self._queue.popleft()

        if self._waiter is not None:
            raise RuntimeError("MessageBridge is already awaiting a message")

        waiter = self._waiter = self._loop.create_future()
        try:
            value = await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                self._requeue(waiter.result())
            raise
        finally:
            if self._waiter is waiter:
                self._waiter = None

        if value is _END:
            raise StopAsyncIteration

        return value

    async def aclose(self) -> None:
        """Stop receiving messages. Safe to call several times."""
        self._terminate()

    async def __aenter__(self) -> "MessageBridge[T]":
        return self

    async def __aexit__(self, exc_type, exc_value, exc_tb) -> None:
        await self.aclose()

    def _on_message(self, payload: T) -> None:
        if self._exhausted:
            return

        waiter = self._waiter
        if waiter is not None and not waiter.done():
            waiter.set_result(payload)
        else:
            self._queue.append(payload)

    def _requeue(self, value: Any) -> None:
        if value is _END or self._exhausted:
            return
        self._queue.appendleft(value)

    def _terminate(self) -> None:
        if self._exhausted:
            return

        self._exhausted = True
        self._unsubscribe()
        self._detach()

        if self._queue:
            self._logger.debug(f"Discarding {len(self._queue)} unread message(s)")
            self._queue.clear()

        waiter = self._waiter
        if waiter is not None and not waiter.done():
            waiter.set_result(_END)
