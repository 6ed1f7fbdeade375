"""Push-based event stream — the multicast primitive behind every notification.

Subscribers are plain callables. subscribe() hands back a Disposer that
removes the subscription again; disposers are idempotent. Delivery is
synchronous and runs over a snapshot of the subscriber list, so a callback may
subscribe or unsubscribe (itself or others) while an event is being delivered.

dispose() drops every subscriber and turns later emits into no-ops.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")

Disposer = Callable[[], None]


class EventStream(Generic[T]):
    """Synchronous multicast stream."""

    __slots__ = ("_subscribers", "_disposed")

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T], None]] = []
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, value: T) -> None:
        """Deliver value to every current subscriber, in subscription order.

        Exceptions raised by a subscriber propagate to the emitter.
        """
        if self._disposed:
            return
        for cb in list(self._subscribers):
            cb(value)

    def subscribe(self, callback: Callable[[T], None]) -> Disposer:
        """Register a callback. Returns a function that removes it."""
        if self._disposed:
            return _noop
        self._subscribers.append(callback)
        removed = False

        def _unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass  # stream already cleared

        return _unsubscribe

    def dispose(self) -> None:
        """Drop every subscriber. Later emits and subscribes do nothing."""
        self._disposed = True
        self._subscribers.clear()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else f"{len(self._subscribers)} subscribers"
        return f"EventStream({state})"


def _noop() -> None:
    pass
