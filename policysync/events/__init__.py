"""
Feed metadata event sources.

The in-process bus is dependency-free; the JetStream source imports `nats` lazily so the
rest of the package runs without it.
"""

from policysync.events.base import EventSource, FeedEventHandler, InMemoryEventSource

__all__ = ["EventSource", "FeedEventHandler", "InMemoryEventSource"]
