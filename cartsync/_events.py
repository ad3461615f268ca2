"""
Event bus: typed observer channel with a bounded listener set.

    bus = EventBus[CartChanged](max_listeners=8)
    unsubscribe = bus.subscribe(lambda e: render(e.view))
    bus.publish(CartChanged(view, "add"))
    unsubscribe()

Listeners are plain callables run synchronously, in subscription order.
A listener that raises is logged and skipped; the publisher never sees it.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

logger = structlog.get_logger(__name__)

type Listener[E] = Callable[[E], None]
type Unsubscribe = Callable[[], None]


class ListenerLimitExceeded(RuntimeError):
    """Raised by subscribe() when the bus is full."""


class EventBus[E]:
    def __init__(self, name: str, max_listeners: int = 32) -> None:
        if max_listeners < 1:
            raise ValueError("max_listeners must be positive")
        self._name = name
        self._max = max_listeners
        self._listeners: list[Listener[E]] = []

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener[E]) -> Unsubscribe:
        """Register listener. Returns a callable that removes it (idempotent)."""
        if len(self._listeners) >= self._max:
            raise ListenerLimitExceeded(
                f"{self._name}: listener limit of {self._max} reached"
            )
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: E) -> None:
        # Copy: a listener may unsubscribe itself while being notified.
        for listener in tuple(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed", bus=self._name)

    def clear(self) -> None:
        self._listeners.clear()


__all__ = ("EventBus", "Listener", "Unsubscribe", "ListenerLimitExceeded")
