"""Error taxonomy for grant synchronization.

Every failure carries enough context (feed identity, resource kind, cause) for the
caller to log and act on. Nothing in this package retries.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from policysync.core.models import FeedIdentity, ResourceKind


class PolicySyncError(Exception):
    """Base class for all classified synchronization failures."""

    def __init__(
        self,
        message: str,
        *,
        identity: Optional["FeedIdentity"] = None,
        resource_kind: Optional["ResourceKind"] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.identity = identity
        self.resource_kind = resource_kind

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__


class ValidationError(PolicySyncError):
    """A required registration property or request field is missing."""


class PolicyNotFoundError(PolicySyncError):
    """Search returned zero policies where exactly one was required."""


class AmbiguousPolicyError(PolicySyncError):
    """Search returned more than one policy where exactly one was required."""

    def __init__(self, message: str, *, match_count: int = 0, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(message, **kwargs)
        self.match_count = match_count


class RemoteWriteError(PolicySyncError):
    """A create/update/delete call against the policy engine failed."""


class RemoteReadError(PolicySyncError):
    """A search/lookup call against the policy engine failed."""


class DispatchError(PolicySyncError):
    """Synchronization triggered by a feed-property-change event failed."""
