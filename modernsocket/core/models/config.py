from dataclasses import dataclass


@dataclass
class TransportConfig:
    """
    Static configuration for the websockets-backed transport.

    None disables the corresponding limit, following the conventions of the
    websockets client.
    """
    open_timeout: float | None = 10.0
    """
    Maximum time (in seconds) allowed for the opening handshake.
    When exceeded the transport closes abnormally before opening.
    """

    close_timeout: float | None = 10.0
    """
    Maximum time (in seconds) to wait for the closing handshake before
    the TCP connection is dropped.
    """

    max_size: int | None = 1 * 1024 * 1024  # 1MB
    """
    Maximum size of an incoming message. Larger messages close the
    connection with code 1009.
    """

    ping_interval: float | None = 20.0
    """
    Delay (in seconds) between keepalive pings.
    """

    ping_timeout: float | None = 20.0
    """
    Maximum time (in seconds) to wait for a pong before the connection is
    considered broken.
    """
