import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from modernsocket.core.connection.bridge import MessageBridge
from modernsocket.core.errors import PostOpenFailure, PreOpenFailure
from modernsocket.core.helpers.deferred import Deferred
from modernsocket.core.helpers.spawn import TaskSpawner
from modernsocket.core.helpers.sub import Subscription
from modernsocket.core.models.cause import (
    BinaryType,
    Cause,
    CloseCode,
    LifecycleState,
    ReadyState,
    validate_close,
)
from modernsocket.core.ports.transport import Transport, TransportFactory

R = TypeVar("R")


def normalize_protocols(protocols: str | Iterable[str] | None) -> tuple[str, ...]:
    if protocols is None:
        return ()
    if isinstance(protocols, str):
        return (protocols,)
    return tuple(protocols)


class ListenScope:
    """
    Capability handed to a `Connection.listen()` handler. It only allows
    minting new message bridges over the listened connection.
    """
    def __init__(self, connection: "Connection") -> None:
        self._connection = connection

    def bridge(self) -> MessageBridge[Any]:
        return self._connection.bridge()


class Connection:
    """
    Future and async-iteration façade over a callback-driven transport.

    The connection instantiates its transport at construction time and
    registers itself as the transport's only handler. Transport callbacks
    are turned into two write-once futures:

    - `ready` resolves when the transport opens. It rejects with
      PreOpenFailure if the transport closes abnormally before opening.
    - `closed` resolves with a Cause when the transport closes cleanly. It
      rejects with PostOpenFailure if the transport closes abnormally after
      having opened.

    A single closure never rejects both futures. An abnormal closure before
    opening leaves `closed` unsettled forever, and a clean closure without
    a prior open leaves `ready` unsettled forever; awaiting the unsettled
    future then blocks indefinitely.

    Inbound messages are broadcast to every live MessageBridge created with
    `bridge()`. The optional cancellation signal is an asyncio.Event: once
    set, the connection requests a normal closure, which then flows through
    the regular close path.
    """
    def __init__(
        self,
        url: str,
        *,
        transport_factory: TransportFactory,
        protocols: str | Iterable[str] | None = None,
        signal: asyncio.Event | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._loop = loop or asyncio.get_event_loop()
        self._url = url
        self._protocols = normalize_protocols(protocols)
        self._ready: Deferred[None] = Deferred(self._loop)
        self._closed: Deferred[Cause] = Deferred(self._loop)
        self._messages: Subscription[Any] = Subscription()
        self._spawner = TaskSpawner(loop=self._loop)
        self._signal_task: asyncio.Task[Any] | None = None

        self._had_opened = False
        self._close_received = False
        self._close_requested = False
        self._logger = logging.getLogger("core.connection.lifecycle")

        self._transport: Transport = transport_factory(url, self._protocols, self)

        if signal is not None and not self._close_received:
            self._signal_task = self._spawner.spawn(
                self._watch_signal(signal),
                name=f"signal-watcher:{url}"
            )

    @property
    def ready(self) -> Deferred[None]:
        return self._ready

    @property
    def closed(self) -> Deferred[Cause]:
        return self._closed

    @property
    def lifecycle(self) -> LifecycleState:
        """
        State derived from the transport events received so far. A close
        event wins over an open event, whichever future it settled.
        """
        if self._close_received:
            return LifecycleState.closed
        if self._had_opened:
            return LifecycleState.open
        return LifecycleState.connecting

    @property
    def binary_type(self) -> BinaryType:
        return self._transport.binary_type

    @binary_type.setter
    def binary_type(self, value: BinaryType) -> None:
        self._transport.binary_type = value

    @property
    def buffered_amount(self) -> int:
        return self._transport.buffered_amount

    @property
    def extensions(self) -> str:
        return self._transport.extensions

    @property
    def protocol(self) -> str:
        return self._transport.protocol

    @property
    def ready_state(self) -> ReadyState:
        return self._transport.ready_state

    @property
    def url(self) -> str:
        return self._transport.url

    async def close(self, code: int | None = None, reason: str | None = None) -> Cause:
        """
        Request closure and wait until the connection is closed.

        Only the first close request of the connection reaches the
        transport, so concurrent or repeated calls all observe the same
        Cause. Raises PostOpenFailure if the closure turns out abnormal.
        """
        validate_close(code, reason)
        self._request_close(code, reason)
        return await self._closed

    def send(self, payload: Any) -> None:
        self._transport.send(payload)

    def bridge(self) -> MessageBridge[Any]:
        """Create a new, independent iterator over inbound messages."""
        return MessageBridge(self._closed, self._messages, loop=self._loop)

    async def listen(self, handler: Callable[[ListenScope], Awaitable[R]]) -> R:
        """
        Wait for the connection to open, then run `handler`.

        If the handler raises, closure is requested with the application
        error code and the exception is propagated unchanged.
        """
        await self._ready

        try:
            return await handler(ListenScope(self))
        except Exception as exc:
            self._logger.warning(
                f"Handler failed on {self._url}, "
                f"closing with code {CloseCode.APPLICATION_ERROR:d}: {exc!r}"
            )
            self._request_close(CloseCode.APPLICATION_ERROR)
            raise

    def on_open(self) -> None:
        if self._had_opened or self._close_received:
            self._logger.warning("Ignoring unexpected open event")
            return

        self._had_opened = True
        self._logger.debug(f"Connection to {self._url} is open")
        self._ready.resolve(None)

    def on_message(self, payload: Any) -> None:
        if self._close_received:
            self._logger.debug("Dropping message received after close")
            return

        self._messages.publish(payload)

    def on_close(self, code: int, reason: str, was_clean: bool) -> None:
        if self._close_received:
            self._logger.warning("Ignoring duplicate close event")
            return

        self._close_received = True
        self._messages.close()
        if self._signal_task is not None:
            self._signal_task.cancel()

        cause = Cause(code=code, reason=reason)

        if was_clean:
            self._logger.debug(f"Connection closed cleanly: {cause}")
            self._closed.resolve(cause)
            return

        self._logger.warning(
            f"Connection closed abnormally with code {code} "
            f"({'after' if self._had_opened else 'before'} open): {reason!r}"
        )
        if self._had_opened:
            self._closed.reject(PostOpenFailure(code, reason))
        else:
            self._ready.reject(PreOpenFailure(code, reason))

    def _request_close(self, code: int | None = None, reason: str | None = None) -> None:
        if self._close_requested or self._close_received:
            self._logger.debug("Close already requested, ignoring")
            return

        self._close_requested = True
        self._transport.close(code, reason)

    async def _watch_signal(self, signal: asyncio.Event) -> None:
        await signal.wait()
        self._logger.debug("Cancellation signal set, requesting normal closure")
        self._request_close(CloseCode.NORMAL)
