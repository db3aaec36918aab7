import asyncio
import pytest

from modernsocket.core.connection.bridge import MessageBridge
from modernsocket.core.connection.lifecycle import Connection, ListenScope
from modernsocket.core.errors import PreOpenFailure
from modernsocket.core.models.cause import Cause, CloseCode


def make_connection(factory) -> Connection:
    return Connection("ws://example.test/feed", transport_factory=factory)


@pytest.mark.ut
@pytest.mark.asyncio
async def test_listen_waits_for_ready_then_returns_handler_result(transport_factory):
    conn = make_connection(transport_factory)
    transport = transport_factory.last
    calls = []

    async def handler(scope):
        calls.append(scope)
        bridge = scope.bridge()
        return await bridge.__anext__()

    task = asyncio.create_task(conn.listen(handler))
    await asyncio.sleep(0)
    assert calls == []

    transport.open()
    for _ in range(5):
        await asyncio.sleep(0)
    transport.deliver("hello")

    assert await task == "hello"
    assert isinstance(calls[0], ListenScope)
    assert transport.close_requests == []


@pytest.mark.ut
@pytest.mark.asyncio
async def test_listen_scope_mints_independent_bridges(transport_factory):
    conn = make_connection(transport_factory)
    transport_factory.last.open()

    async def handler(scope):
        return scope.bridge(), scope.bridge()

    b1, b2 = await conn.listen(handler)

    assert isinstance(b1, MessageBridge)
    assert b1 is not b2


@pytest.mark.ut
@pytest.mark.asyncio
async def test_listen_closes_with_application_error_when_handler_fails(transport_factory):
    conn = make_connection(transport_factory)
    transport = transport_factory.last
    transport.open()
    error = ValueError("bad payload")

    async def handler(scope):
        raise error

    with pytest.raises(ValueError) as exc_info:
        await conn.listen(handler)

    assert exc_info.value is error
    assert transport.close_requests == [(CloseCode.APPLICATION_ERROR, None)]
    assert await conn.closed == Cause(CloseCode.APPLICATION_ERROR, "")


@pytest.mark.ut
@pytest.mark.asyncio
async def test_listen_propagates_pre_open_failure(transport_factory):
    conn = make_connection(transport_factory)
    transport = transport_factory.last
    calls = []

    async def handler(scope):
        calls.append(scope)

    transport.finish(1006, "refused", was_clean=False)

    with pytest.raises(PreOpenFailure):
        await conn.listen(handler)

    assert calls == []
    assert transport.close_requests == []


@pytest.mark.ut
@pytest.mark.asyncio
async def test_listen_handler_consumes_until_closure(transport_factory):
    conn = make_connection(transport_factory)
    transport = transport_factory.last
    transport.open()

    async def handler(scope):
        received = []
        async for message in scope.bridge():
            received.append(message)
            if message == "stop":
                conn.send("ack")
        return received

    task = asyncio.create_task(conn.listen(handler))
    for _ in range(5):
        await asyncio.sleep(0)

    transport.deliver("one", "stop")
    await asyncio.sleep(0)
    await conn.close(1000, "finished")

    assert await task == ["one", "stop"]
    assert transport.sent == ["ack"]
