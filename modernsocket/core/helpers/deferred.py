import asyncio
from collections.abc import Callable, Generator
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class Deferred(Generic[T]):
    """
    Write-once settlement primitive built on an asyncio Future.

    The first call to `resolve()` or `reject()` settles the deferred; any
    later attempt is ignored. Awaiting is allowed any number of times from
    any number of tasks. Waiters go through `asyncio.shield`, so cancelling
    a waiting task never cancels the shared future.

    If the deferred is rejected and nobody ever awaits it, asyncio reports
    the exception as never retrieved when the future is collected.
    """
    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_event_loop()
        self._future: asyncio.Future[T] = self._loop.create_future()

    def __await__(self) -> Generator[Any, None, T]:
        return asyncio.shield(self._future).__await__()

    def done(self) -> bool:
        return self._future.done()

    def resolve(self, value: T) -> bool:
        """
        Settle with a value. Return False if the deferred was already settled.
        """
        if self._future.done():
            return False

        self._future.set_result(value)
        return True

    def reject(self, exc: BaseException) -> bool:
        """
        Settle with an exception. Return False if the deferred was already settled.
        """
        if self._future.done():
            return False

        self._future.set_exception(exc)
        return True

    def add_done_callback(
        self,
        callback: Callable[["Deferred[T]"], None],
    ) -> Callable[[], None]:
        """
        Run `callback(self)` once the deferred settles and return the
        function that unregisters it. The callback does not retrieve a
        rejection, so unobserved failures are still reported.
        """
        def notify(_: asyncio.Future[T]) -> None:
            callback(self)

        self._future.add_done_callback(notify)
        return lambda: self._future.remove_done_callback(notify)
