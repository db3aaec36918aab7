import asyncio
import json
from collections.abc import Iterable
from functools import lru_cache

from pydantic import ValidationError

from modernsocket.bootstrap.config.settings import ModernSocketSettings
from modernsocket.core.connection.lifecycle import Connection
from modernsocket.core.models.config import TransportConfig
from modernsocket.infra.websockets_transport import websockets_transport_factory


def connect(
    url: str,
    *,
    protocols: str | Iterable[str] | None = None,
    signal: asyncio.Event | None = None,
    config: TransportConfig | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Connection:
    """
    Open a Connection to a WebSocket endpoint using the websockets client.

    The opening handshake starts in the background; await `ready` (or use
    `listen()`) before exchanging messages.
    """
    return Connection(
        url,
        transport_factory=websockets_transport_factory(config),
        protocols=protocols,
        signal=signal,
        loop=loop,
    )


@lru_cache
def get_settings() -> ModernSocketSettings:
    try:
        return ModernSocketSettings()
    except FileNotFoundError as ex:
        raise SystemExit(f"Provide a correct configuration file path: {ex}")
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            msg.append(f"  {'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}")
        raise SystemExit("\n".join(msg))
