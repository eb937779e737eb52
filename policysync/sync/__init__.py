"""Grant synchronization: the synchronizer and the event dispatcher that drives it."""

from policysync.sync.dispatcher import EventDispatcher
from policysync.sync.synchronizer import PolicySynchronizer

__all__ = ["EventDispatcher", "PolicySynchronizer"]
