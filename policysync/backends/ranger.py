"""Ranger authorization backend: synchronizer + event dispatcher over one Ranger client."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Union

from policysync.config import RangerConnection
from policysync.core.models import FeedIdentity, Group, RemotePolicy, ResourceKind, SyncOutcome
from policysync.events.base import EventSource
from policysync.providers.ranger_provider import PolicyClient, get_policy_client
from policysync.sync.dispatcher import EventDispatcher
from policysync.sync.synchronizer import PolicySynchronizer

AUTHORIZATION_TYPE_RANGER = "RANGER"


class RangerAuthorizationBackend:
    def __init__(self, connection: RangerConnection, *, client: Optional[PolicyClient] = None) -> None:
        self.connection = connection
        self.client = client or get_policy_client(connection)
        self.synchronizer = PolicySynchronizer(self.client, connection)
        self.dispatcher = EventDispatcher(self.synchronizer, category_prefix=connection.category_prefix)

    def get_type(self) -> str:
        return AUTHORIZATION_TYPE_RANGER

    def get_group(self, name: str) -> Optional[Group]:
        return self.synchronizer.get_group(name)

    def list_groups(self) -> List[Group]:
        return self.synchronizer.list_groups()

    def create_read_only_grant(
        self,
        identity: FeedIdentity,
        groups: Iterable[str],
        path_resources: Iterable[str],
        table_schema: str,
        table_names: Iterable[str],
    ) -> SyncOutcome:
        return self.synchronizer.create_read_only_grant(identity, groups, path_resources, table_schema, table_names)

    def update_read_only_grant(
        self,
        identity: FeedIdentity,
        groups: Iterable[str],
        path_resources: Iterable[str],
        table_schema: str,
        table_names: Iterable[str],
    ) -> SyncOutcome:
        return self.synchronizer.update_read_only_grant(identity, groups, path_resources, table_schema, table_names)

    def delete_grant(self, identity: FeedIdentity, resource_kind: Union[ResourceKind, str]) -> SyncOutcome:
        return self.synchronizer.delete_grant(identity, resource_kind)

    def search_policies(self, criteria: Mapping[str, str]) -> List[RemotePolicy]:
        return self.synchronizer.search_policies(criteria)

    def start(self, event_source: EventSource) -> None:
        self.dispatcher.start(event_source)

    def stop(self, event_source: EventSource) -> None:
        self.dispatcher.stop(event_source)
