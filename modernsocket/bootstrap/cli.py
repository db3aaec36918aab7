import asyncio
import contextlib
import logging
import os
import stat
import sys
from collections.abc import Sequence
from typing import Any, BinaryIO, TextIO

from modernsocket.bootstrap.config.loader import get_cli_args
from modernsocket.bootstrap.config.settings import ModernSocketSettings
from modernsocket.bootstrap.deps import connect, get_settings
from modernsocket.core.connection.lifecycle import Connection, ListenScope
from modernsocket.core.errors import ConnectionClosedError
from modernsocket.core.helpers.spawn import TaskSpawner
from modernsocket.core.helpers.utils import setup_logging, setup_signal_handler
from modernsocket.core.models.cause import Cause, CloseCode

logger = logging.getLogger("bootstrap.cli")


def format_message(message: Any) -> str:
    if isinstance(message, str):
        return message
    data = bytes(message)
    return f"<binary {len(data)} byte(s)> {data.hex(' ')}"


async def feed_from_file(reader: asyncio.StreamReader, file: BinaryIO) -> None:
    loop = asyncio.get_running_loop()
    while chunk := await loop.run_in_executor(None, file.readline):
        reader.feed_data(chunk)
    reader.feed_eof()


async def open_stdin(spawner: TaskSpawner, stdin: TextIO | None = None) -> asyncio.StreamReader:
    """
    Expose stdin as a StreamReader.

    Pipes, sockets and terminals are read by the event loop. Regular files,
    as with `modernsocket URL < script.txt`, cannot be registered with the
    selector, so they are read line by line in the default executor.
    """
    stdin = stdin or sys.stdin
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()

    if stat.S_ISREG(os.fstat(stdin.fileno()).st_mode):
        spawner.spawn(feed_from_file(reader, stdin.buffer), name="stdin-file-reader")
    else:
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), stdin)

    return reader


async def pump_input(connection: Connection, reader: asyncio.StreamReader) -> None:
    while line := await reader.readline():
        connection.send(line.decode("utf-8", errors="replace").rstrip("\r\n"))

    logger.info("End of input, closing connection")
    # A failed closure is reported by the caller through `closed`.
    with contextlib.suppress(ConnectionClosedError):
        await connection.close(CloseCode.NORMAL)


async def run(
    url: str,
    protocols: Sequence[str],
    settings: ModernSocketSettings,
    stop_event: asyncio.Event,
) -> Cause:
    connection = connect(
        url,
        protocols=list(protocols) or settings.client.protocols,
        signal=stop_event,
        config=settings.transport.to_config(),
    )
    connection.binary_type = settings.client.binary_type
    spawner = TaskSpawner()

    async def session(scope: ListenScope) -> None:
        print(f"Connected to {connection.url} (protocol={connection.protocol!r})", file=sys.stderr)
        reader = await open_stdin(spawner)
        spawner.spawn(pump_input(connection, reader), name="stdin-pump")
        try:
            async with scope.bridge() as messages:
                async for message in messages:
                    print(format_message(message), flush=True)
        finally:
            spawner.cancel_all()

    await connection.listen(session)
    return await connection.closed


def main() -> None:
    cli = get_cli_args()
    setup_logging(cli.log_level)
    settings = get_settings()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    try:
        with setup_signal_handler(loop) as stop_event:
            cause = loop.run_until_complete(
                run(cli.url, cli.protocol, settings, stop_event)
            )
    except ConnectionClosedError as ex:
        print(f"{type(ex).__name__}: code={ex.code} reason={ex.reason!r}", file=sys.stderr)
        raise SystemExit(1)
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()

    print(f"Connection closed: code={cause.code} reason={cause.reason!r}", file=sys.stderr)


if __name__ == "__main__":
    main()
