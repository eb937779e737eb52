from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Protocol, Union, runtime_checkable

from policysync.core.models import FeedIdentity, Group, RemotePolicy, ResourceKind, SyncOutcome
from policysync.events.base import EventSource


@runtime_checkable
class AuthorizationBackend(Protocol):
    """
    One pluggable authorization engine (Ranger today).

    Callers depend on this capability, never on a concrete backend type.
    """

    def get_type(self) -> str: ...

    def get_group(self, name: str) -> Optional[Group]: ...

    def list_groups(self) -> List[Group]: ...

    def create_read_only_grant(
        self,
        identity: FeedIdentity,
        groups: Iterable[str],
        path_resources: Iterable[str],
        table_schema: str,
        table_names: Iterable[str],
    ) -> SyncOutcome: ...

    def update_read_only_grant(
        self,
        identity: FeedIdentity,
        groups: Iterable[str],
        path_resources: Iterable[str],
        table_schema: str,
        table_names: Iterable[str],
    ) -> SyncOutcome: ...

    def delete_grant(self, identity: FeedIdentity, resource_kind: Union[ResourceKind, str]) -> SyncOutcome: ...

    def search_policies(self, criteria: Mapping[str, str]) -> List[RemotePolicy]: ...

    def start(self, event_source: EventSource) -> None: ...

    def stop(self, event_source: EventSource) -> None: ...
