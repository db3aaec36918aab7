from modernsocket.core.models.cause import Cause


class ModernSocketError(Exception):
    """ Base class for errors raised by the connection layer. """


class InvalidStateError(ModernSocketError):
    """ The transport is not in a state that allows the requested operation. """


class ConnectionClosedError(ModernSocketError):
    """
    The connection ended without a completed closing handshake.

    Carries the close code and reason reported by the transport, so callers
    can inspect the failure the same way they inspect a clean `Cause`.
    """
    def __init__(self, code: int, reason: str) -> None:
        super().__init__(f"Closed with code {code}")
        self.code = code
        self.reason = reason

    @property
    def cause(self) -> Cause:
        return Cause(code=self.code, reason=self.reason)


class PreOpenFailure(ConnectionClosedError):
    """ The transport closed abnormally before it ever opened. Raised by `ready`. """


class PostOpenFailure(ConnectionClosedError):
    """ The transport closed abnormally after it had opened. Raised by `closed`. """
