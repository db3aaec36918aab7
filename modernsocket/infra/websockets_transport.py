import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from modernsocket.core.errors import InvalidStateError
from modernsocket.core.helpers.spawn import TaskSpawner
from modernsocket.core.models.cause import BinaryType, CloseCode, ReadyState
from modernsocket.core.models.config import TransportConfig
from modernsocket.core.ports.transport import Transport, TransportFactory, TransportHandler


def payload_size(payload: Any) -> int:
    if isinstance(payload, str):
        return len(payload.encode("utf-8"))
    return memoryview(payload).nbytes


class WebsocketsTransport(Transport):
    """
    Transport implementation backed by the websockets asyncio client.

    The opening handshake starts immediately in a background task. The
    transport then behaves like a browser WebSocket:

    - `send()` is rejected while connecting, queued for a writer task while
      open, and silently dropped once closing has begun
    - `close()` aborts the handshake while connecting, starts the closing
      handshake while open, and does nothing afterwards
    - `on_close` fires exactly once, after the TCP connection is gone. The
      closure is clean only if close frames were both sent and received;
      otherwise it is reported with code 1006.
    """
    def __init__(
        self,
        url: str,
        protocols: Sequence[str],
        handler: TransportHandler,
        config: TransportConfig | None = None,
        spawner: TaskSpawner | None = None,
    ) -> None:
        self.binary_type = BinaryType.bytes

        self._url = url
        self._protocols = list(protocols)
        self._handler = handler
        self._config = config or TransportConfig()
        self._spawner = spawner or TaskSpawner()
        self._state = ReadyState.CONNECTING
        self._connection: ClientConnection | None = None
        self._outbox: asyncio.Queue[Any] = asyncio.Queue()
        self._buffered = 0
        self._finished = False
        self._logger = logging.getLogger("infra.websockets")

        self._task = self._spawner.spawn(self._run(), name=f"websocket:{url}")
        self._task.add_done_callback(self._on_task_done)

    @property
    def buffered_amount(self) -> int:
        return self._buffered

    @property
    def extensions(self) -> str:
        if self._connection is None or self._connection.response is None:
            return ""
        return self._connection.response.headers.get("Sec-WebSocket-Extensions", "")

    @property
    def protocol(self) -> str:
        if self._connection is None:
            return ""
        return self._connection.subprotocol or ""

    @property
    def ready_state(self) -> ReadyState:
        return self._state

    @property
    def url(self) -> str:
        return self._url

    def send(self, payload: Any) -> None:
        if self._state is ReadyState.CONNECTING:
            raise InvalidStateError("Cannot send while the connection is still connecting")

        size = payload_size(payload)

        if self._state is not ReadyState.OPEN:
            self._logger.debug(f"Dropping {size} byte(s), connection is {self._state.name}")
            return

        self._buffered += size
        self._outbox.put_nowait(payload)

    def close(self, code: int | None = None, reason: str | None = None) -> None:
        if self._state in (ReadyState.CLOSING, ReadyState.CLOSED):
            return

        previous = self._state
        self._state = ReadyState.CLOSING

        if previous is ReadyState.CONNECTING:
            self._logger.debug(f"Aborting opening handshake with {self._url}")
            self._task.cancel()
            return

        self._spawner.spawn(
            self._connection.close(
                code=code if code is not None else CloseCode.NORMAL,
                reason=reason or ""
            ),
            name=f"websocket-close:{self._url}"
        )

    async def _run(self) -> None:
        config = self._config
        try:
            self._connection = await connect(
                self._url,
                subprotocols=self._protocols or None,
                open_timeout=config.open_timeout,
                close_timeout=config.close_timeout,
                max_size=config.max_size,
                ping_interval=config.ping_interval,
                ping_timeout=config.ping_timeout,
            )
        except Exception as ex:
            # OSError, TimeoutError, InvalidURI or an InvalidHandshake subclass.
            self._logger.warning(f"Opening handshake with {self._url} failed: {ex}")
            self._finish(CloseCode.ABNORMAL, "", False)
            return

        self._state = ReadyState.OPEN
        self._handler.on_open()

        writer = self._spawner.spawn(self._write(), name=f"websocket-writer:{self._url}")
        try:
            await self._receive()
        finally:
            writer.cancel()

    async def _receive(self) -> None:
        connection = self._connection
        try:
            while True:
                message = await connection.recv()
                self._handler.on_message(self._convert(message))
        except ConnectionClosed as exc:
            self._state = ReadyState.CLOSING
            await connection.wait_closed()

            clean = exc.rcvd is not None and exc.sent is not None
            if exc.rcvd is not None:
                code, reason = int(exc.rcvd.code), exc.rcvd.reason
            else:
                code, reason = CloseCode.ABNORMAL, ""

            self._finish(code, reason, clean)

    async def _write(self) -> None:
        connection = self._connection
        while True:
            payload = await self._outbox.get()
            try:
                await connection.send(payload)
            except ConnectionClosed:
                self._logger.debug("Connection closed while sending, writer stops")
                return
            finally:
                self._buffered -= payload_size(payload)

    def _convert(self, message: str | bytes) -> Any:
        if isinstance(message, bytes) and self.binary_type is BinaryType.bytearray:
            return bytearray(message)
        return message

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        if self._finished:
            return

        # Aborted handshake, or a handler callback raised.
        if self._connection is not None:
            self._connection.transport.abort()
        self._finish(CloseCode.ABNORMAL, "", False)

    def _finish(self, code: int, reason: str, was_clean: bool) -> None:
        if self._finished:
            return

        self._finished = True
        self._state = ReadyState.CLOSED
        self._logger.debug(
            f"Connection to {self._url} finished: code={code} clean={was_clean}"
        )
        self._handler.on_close(int(code), reason, was_clean)


def websockets_transport_factory(config: TransportConfig | None = None) -> TransportFactory:
    """Build a TransportFactory producing WebsocketsTransport instances."""
    def factory(
        url: str,
        protocols: Sequence[str],
        handler: TransportHandler,
    ) -> Transport:
        return WebsocketsTransport(url, protocols, handler, config=config)

    return factory
