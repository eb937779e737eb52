"""Deterministic policy names and resource strings.

The same builder is used for create, update, delete and search, so whatever we create
is found again by name later.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

from policysync.core.models import FeedIdentity, PolicyQuery, ResourceKind

DEFAULT_POLICY_PREFIX = "nifi_"
RESOURCE_DELIMITER = ","
# Column-level control is out of scope: table grants always cover every column.
ALL_COLUMNS = "*"


class TableResource(NamedTuple):
    databases: str
    tables: str
    columns: str = ALL_COLUMNS


def join_resources(items: Sequence[str]) -> str:
    return RESOURCE_DELIMITER.join(items)


class PolicyNameBuilder:
    def __init__(self, prefix: str = DEFAULT_POLICY_PREFIX) -> None:
        self.prefix = prefix

    def policy_name(self, identity: FeedIdentity, resource_kind: ResourceKind) -> str:
        kind = ResourceKind.parse(resource_kind)
        return f"{self.prefix}{identity.category}_{identity.feed}_{kind.value}"

    def query(self, identity: FeedIdentity, resource_kind: ResourceKind) -> PolicyQuery:
        kind = ResourceKind.parse(resource_kind)
        return PolicyQuery(policy_name=self.policy_name(identity, kind), resource_kind=kind)

    @staticmethod
    def path_resource(paths: Sequence[str]) -> str:
        return join_resources(paths)

    @staticmethod
    def table_resource(schema: str, tables: Sequence[str]) -> TableResource:
        return TableResource(databases=schema, tables=join_resources(tables))
