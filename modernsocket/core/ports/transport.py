from collections.abc import Callable, Sequence
from typing import Any, Protocol

from modernsocket.core.models.cause import BinaryType, ReadyState


class TransportHandler(Protocol):
    """
    Receives the callbacks emitted by a Transport.

    A transport must honour the following contract:
    - `on_open` fires at most once, before any `on_message`
    - `on_message` fires zero or more times, only while open
    - `on_close` fires exactly once and is always the last callback

    Callbacks are invoked synchronously from the event loop thread.
    """

    def on_open(self) -> None:
        """The connection is established and ready to exchange messages."""

    def on_message(self, payload: Any) -> None:
        """A complete message has been received."""

    def on_close(self, code: int, reason: str, was_clean: bool) -> None:
        """The connection is closed, cleanly or not."""


class Transport(Protocol):
    """
    Message-oriented, full-duplex connection driven by callbacks.

    Implementations own the wire protocol (handshake, framing, TLS). The
    connection layer only relies on the primitives declared here.
    """

    binary_type: BinaryType

    @property
    def buffered_amount(self) -> int:
        """Number of bytes queued by `send` but not yet written."""

    @property
    def extensions(self) -> str:
        """Extensions negotiated with the remote endpoint."""

    @property
    def protocol(self) -> str:
        """Sub-protocol selected by the remote endpoint, empty if none."""

    @property
    def ready_state(self) -> ReadyState:
        """Current state of the transport."""

    @property
    def url(self) -> str:
        """Resolved endpoint URL."""

    def send(self, payload: Any) -> None:
        """Queue a message for transmission."""

    def close(self, code: int | None = None, reason: str | None = None) -> None:
        """Start closing the connection. No-op once closing has begun."""


TransportFactory = Callable[[str, Sequence[str], TransportHandler], Transport]
"""
Instantiates a transport for the given endpoint and sub-protocols and
registers the handler that receives its callbacks.
"""
