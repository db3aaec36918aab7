import logging
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class Subscription(Generic[T]):
    """
    Multicast registry of synchronous subscribers.

    Every published value is delivered to each subscriber registered at
    publish time, in subscription order. Nothing is buffered: a value
    published while nobody listens is lost, and a subscriber only sees
    values published after it subscribed.

    Once closed, publishing is a no-op and new subscriptions are inert.
    """
    def __init__(self) -> None:
        self._subscribers: dict[object, Callable[[T], None]] = {}
        self._closed = False
        self._logger = logging.getLogger("core.helpers.sub")

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Register a callback and return the function that unregisters it.
        Unsubscribing more than once is harmless.
        """
        if self._closed:
            return lambda: None

        token = object()
        self._subscribers[token] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    def publish(self, value: T) -> None:
        if self._closed:
            self._logger.debug("Publish on closed subscription ignored")
            return

        # Subscribers may unsubscribe while being notified.
        for callback in list(self._subscribers.values()):
            callback(value)

    def close(self) -> None:
        self._closed = True
        self._subscribers.clear()
