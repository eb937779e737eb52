"""
Read-only grant synchronization against the remote policy engine.

The engine has no upsert and no compare-and-swap, so every update/delete is a
search-by-name followed by a mutate-by-id. Policy-name uniqueness is what keeps this
safe: if a name ever matches more than one policy we fail instead of guessing.

Resource kinds are handled in a fixed order (path, then table) and fail-fast: once a
write fails, later kinds in the same call are not attempted and nothing already written
is rolled back.

Concurrency: instances hold no per-call state and may be shared across threads for
different feeds. Two concurrent calls for the *same* feed can both pass the uniqueness
check on a stale read (last write wins); callers that need per-feed serialization must
bring their own lock.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Mapping, Optional, Union

from policysync.config import RangerConnection
from policysync.core.errors import (
    AmbiguousPolicyError,
    PolicyNotFoundError,
    RemoteReadError,
    RemoteWriteError,
)
from policysync.core.models import (
    FeedIdentity,
    GrantRequest,
    Group,
    PolicyRequest,
    RemotePolicy,
    ResourceKind,
    SyncOutcome,
)
from policysync.core.naming import PolicyNameBuilder
from policysync.providers.ranger_provider import PolicyClient

logger = logging.getLogger(__name__)

READ_ONLY_PERMISSIONS = {
    ResourceKind.PATH: ["read"],
    ResourceKind.TABLE: ["select"],
}

# Order matters: fail-fast means a path failure skips the table policy.
RESOURCE_KIND_ORDER = (ResourceKind.PATH, ResourceKind.TABLE)


class PolicySynchronizer:
    def __init__(
        self,
        client: PolicyClient,
        connection: RangerConnection,
        *,
        names: Optional[PolicyNameBuilder] = None,
    ) -> None:
        self.client = client
        self.connection = connection
        self.names = names or PolicyNameBuilder(connection.policy_name_prefix)

    # ------------------------------------------------------------------ requests

    def _repository_name(self, kind: ResourceKind) -> str:
        if kind is ResourceKind.PATH:
            return self.connection.hdfs_repository_name
        return self.connection.hive_repository_name

    def build_request(
        self, identity: FeedIdentity, kind: ResourceKind, grant: GrantRequest, *, verb: str = "created"
    ) -> PolicyRequest:
        """Build the create/update payload for one resource kind."""
        if kind is ResourceKind.PATH:
            resources = list(grant.path_resources)
        else:
            resources = [f"{grant.table_schema}.{t}" for t in grant.table_names]

        common = dict(
            policy_name=self.names.policy_name(identity, kind),
            resource_kind=kind,
            repository_name=self._repository_name(kind),
            description=f"Ranger policy {verb} for group list {grant.groups} for resource {resources}",
            groups=list(grant.groups),
            permissions=list(READ_ONLY_PERMISSIONS[kind]),
        )
        if kind is ResourceKind.PATH:
            return PolicyRequest(
                **common,
                resource_name=self.names.path_resource(grant.path_resources),
                is_recursive=True,
            )

        table = self.names.table_resource(grant.table_schema, grant.table_names)
        return PolicyRequest(
            **common,
            databases=table.databases,
            tables=table.tables,
            columns=table.columns,
            udfs="",
        )

    # ------------------------------------------------------------------ remote calls

    def _write(self, identity: FeedIdentity, kind: ResourceKind, action: str, call: Callable[[], None]) -> None:
        try:
            call()
        except Exception as e:
            logger.error("Error during %s of %s policy for feed %s", action, kind.value, identity, exc_info=True)
            raise RemoteWriteError(
                f"Failed to {action} {kind.value} policy for feed {identity}: {e}",
                identity=identity,
                resource_kind=kind,
            ) from e

    def find_unique_policy(self, identity: FeedIdentity, kind: ResourceKind) -> RemotePolicy:
        """Search by (name, kind) and require exactly one match."""
        query = self.names.query(identity, kind)
        try:
            matches = self.client.search(query.to_criteria())
        except Exception as e:
            logger.error("Policy search failed for %s", query.policy_name, exc_info=True)
            raise RemoteReadError(
                f"Failed to search {kind.value} policy {query.policy_name}: {e}",
                identity=identity,
                resource_kind=kind,
            ) from e

        if not matches:
            raise PolicyNotFoundError(
                f"No {kind.value} policy named {query.policy_name}",
                identity=identity,
                resource_kind=kind,
            )
        if len(matches) > 1:
            raise AmbiguousPolicyError(
                f"Expected one {kind.value} policy named {query.policy_name}, found {len(matches)}",
                identity=identity,
                resource_kind=kind,
                match_count=len(matches),
            )
        return matches[0]

    # ------------------------------------------------------------------ operations

    def create_read_only_grant(
        self,
        identity: FeedIdentity,
        groups: Optional[Iterable[str]],
        path_resources: Optional[Iterable[str]],
        table_schema: Optional[str],
        table_names: Optional[Iterable[str]],
    ) -> SyncOutcome:
        """Create path + table policies unconditionally (no pre-existence check)."""
        grant = GrantRequest.build(
            groups=groups,
            path_resources=path_resources,
            table_schema=table_schema,
            table_names=table_names,
            identity=identity,
        )
        outcome = SyncOutcome(operation="create", identity=identity)
        for kind in RESOURCE_KIND_ORDER:
            request = self.build_request(identity, kind, grant, verb="created")
            self._write(identity, kind, "create", lambda: self.client.create(request))
            outcome.resource_kinds.append(kind)
            outcome.policy_names.append(request.policy_name)
        logger.info("Created read-only grant for feed %s (groups=%s)", identity, grant.groups)
        return outcome

    def update_read_only_grant(
        self,
        identity: FeedIdentity,
        groups: Optional[Iterable[str]],
        path_resources: Optional[Iterable[str]],
        table_schema: Optional[str],
        table_names: Optional[Iterable[str]],
    ) -> SyncOutcome:
        grant = GrantRequest.build(
            groups=groups,
            path_resources=path_resources,
            table_schema=table_schema,
            table_names=table_names,
            identity=identity,
        )
        outcome = SyncOutcome(operation="update", identity=identity)
        for kind in RESOURCE_KIND_ORDER:
            policy = self.find_unique_policy(identity, kind)
            request = self.build_request(identity, kind, grant, verb="updated")
            policy_id = policy.policy_id
            self._write(identity, kind, "update", lambda: self.client.update(request, policy_id))
            outcome.resource_kinds.append(kind)
            outcome.policy_names.append(request.policy_name)
        logger.info("Updated read-only grant for feed %s (groups=%s)", identity, grant.groups)
        return outcome

    def delete_grant(self, identity: FeedIdentity, resource_kind: Union[ResourceKind, str]) -> SyncOutcome:
        kind = ResourceKind.parse(resource_kind)
        policy = self.find_unique_policy(identity, kind)
        self._write(identity, kind, "delete", lambda: self.client.delete(policy.policy_id))
        logger.info("Deleted %s policy %s for feed %s", kind.value, policy.policy_name, identity)
        return SyncOutcome(
            operation="delete",
            identity=identity,
            resource_kinds=[kind],
            policy_names=[policy.policy_name],
        )

    def search_policies(self, criteria: Mapping[str, str]) -> List[RemotePolicy]:
        """Pass-through search; no local filtering."""
        try:
            return list(self.client.search(criteria))
        except Exception as e:
            logger.error("Policy search failed for criteria %s", dict(criteria), exc_info=True)
            raise RemoteReadError(f"Failed to search policies: {e}") from e

    def get_group(self, name: str) -> Optional[Group]:
        try:
            return self.client.get_group(name)
        except Exception as e:
            raise RemoteReadError(f"Failed to look up group {name}: {e}") from e

    def list_groups(self) -> List[Group]:
        try:
            return list(self.client.list_groups())
        except Exception as e:
            raise RemoteReadError(f"Failed to list groups: {e}") from e
