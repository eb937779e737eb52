from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Protocol, runtime_checkable

from policysync.core.models import FeedPropertyChangeEvent

logger = logging.getLogger(__name__)

FeedEventHandler = Callable[[FeedPropertyChangeEvent], Any]


@runtime_checkable
class EventSource(Protocol):
    """
    Minimal listener-registration interface for feed-property-change events.
    """

    def subscribe(self, handler: FeedEventHandler) -> None: ...

    def unsubscribe(self, handler: FeedEventHandler) -> None: ...


class HandlerRegistry:
    """Thread-safe handler list shared by the event source implementations."""

    def __init__(self) -> None:
        self._handlers: List[FeedEventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: FeedEventHandler) -> None:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)

    def unsubscribe(self, handler: FeedEventHandler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def handlers(self) -> List[FeedEventHandler]:
        with self._lock:
            return list(self._handlers)

    def deliver(self, event: FeedPropertyChangeEvent) -> None:
        """Call every handler in subscription order; the first failure propagates."""
        for handler in self.handlers():
            handler(event)


class InMemoryEventSource(HandlerRegistry):
    """
    In-process event bus.

    `publish` runs handlers synchronously on the caller's thread. Handler failures are
    logged and propagated to the publisher as unhandled errors.
    """

    def publish(self, event: FeedPropertyChangeEvent) -> None:
        try:
            self.deliver(event)
        except Exception:
            logger.error("Handler failed for feed property change %s", event.identity, exc_info=True)
            raise
