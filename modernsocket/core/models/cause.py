from dataclasses import dataclass, asdict
from enum import Enum, IntEnum
from typing import Any


MAX_REASON_BYTES = 123
"""
A close frame payload is limited to 125 bytes, two of which hold the code.
"""


class CloseCode(IntEnum):
    """Well-known close codes used by the connection layer."""
    NORMAL = 1000
    GOING_AWAY = 1001
    PROTOCOL_ERROR = 1002
    UNSUPPORTED_DATA = 1003
    NO_STATUS = 1005
    ABNORMAL = 1006
    INVALID_PAYLOAD = 1007
    POLICY_VIOLATION = 1008
    MESSAGE_TOO_BIG = 1009
    MANDATORY_EXTENSION = 1010
    INTERNAL_ERROR = 1011
    TLS_HANDSHAKE = 1015
    APPLICATION_ERROR = 4000


class ReadyState(IntEnum):
    """Raw state reported by a transport."""
    CONNECTING = 0
    OPEN = 1
    CLOSING = 2
    CLOSED = 3


class LifecycleState(str, Enum):
    """
    Composite state of a Connection, derived from the transport events it
    has seen rather than from its futures. A close event always yields
    `closed`, even when the `closed` future stays unsettled after an
    abnormal closure before open.
    """
    connecting = "connecting"
    open = "open"
    closed = "closed"


class BinaryType(str, Enum):
    """Python type used to deliver binary payloads."""
    bytes = "bytes"
    bytearray = "bytearray"


@dataclass(frozen=True)
class Cause:
    """
    Describes how a connection ended. Built once per connection from
    the transport's close notification.
    """
    code: int
    """
    Close code reported by the transport.
    """

    reason: str
    """
    Close reason reported by the transport, possibly empty.
    """

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dictionary representation of the cause."""
        return asdict(self)


def validate_close(code: int | None, reason: str | None) -> None:
    """
    Check close arguments before they reach the transport.

    Only the normal closure code and the 3000-4999 range (registered and
    private use) may be requested by an application. The reason must fit
    into a single close frame once UTF-8 encoded.
    """
    if code is not None and code != CloseCode.NORMAL and not 3000 <= code <= 4999:
        raise ValueError(
            f"Invalid close code {code}: expected 1000 or a value in 3000-4999"
        )

    if reason is not None and len(reason.encode("utf-8")) > MAX_REASON_BYTES:
        raise ValueError(
            f"Close reason must not exceed {MAX_REASON_BYTES} UTF-8 bytes"
        )
