"""Canonical domain models (single source of truth).

Used across:
- change detection (PropertySnapshot)
- request building (GrantRequest -> PolicyRequest)
- remote lookups (PolicyQuery -> RemotePolicy)
- reporting (SyncOutcome)

Design note:
- Remote payloads are parsed permissively (`extra="ignore"`) because Ranger versions add
  fields freely; everything we build ourselves is strict.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from policysync.core.errors import PolicySyncError, ValidationError

# Feed registration property keys as written by the pipeline's metadata store.
HDFS_FOLDERS_PROPERTY = "nifi:registration:hdfsFolders"
HIVE_SCHEMA_PROPERTY = "nifi:registration:hiveSchema"
HIVE_TABLES_PROPERTY = "nifi:registration:tableNames"

# Wire keys for the string-keyed policy search criteria.
POLICY_NAME_CRITERION = "policyName"
RESOURCE_KIND_CRITERION = "repositoryType"


class BaseModelStrict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class BaseModelLenient(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ResourceKind(str, Enum):
    """Kind of protected resource; the value doubles as Ranger's repository type."""

    PATH = "hdfs"
    TABLE = "hive"

    @classmethod
    def parse(cls, raw: Union[str, "ResourceKind"]) -> "ResourceKind":
        """Accept a member, its value ("HDFS") or its name ("path"), case-insensitively."""
        if isinstance(raw, ResourceKind):
            return raw
        s = str(raw or "").strip().lower()
        for kind in cls:
            if s in (kind.value, kind.name.lower()):
                return kind
        raise ValidationError(f"Unknown resource kind: {raw!r}")


class FeedIdentity(BaseModelStrict):
    model_config = ConfigDict(extra="forbid", frozen=True)

    category: str
    feed: str

    def __str__(self) -> str:
        return f"{self.category}.{self.feed}"


def _dedupe(items: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for item in items:
        seen.setdefault(item, None)
    return list(seen)


class GrantRequest(BaseModelStrict):
    """Desired state for one create/update attempt. Built per call, then discarded."""

    groups: List[str] = Field(default_factory=list)
    path_resources: List[str] = Field(default_factory=list)
    table_schema: str = ""
    table_names: List[str] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        *,
        groups: Optional[Iterable[str]],
        path_resources: Optional[Iterable[str]],
        table_schema: Optional[str],
        table_names: Optional[Iterable[str]],
        identity: Optional[FeedIdentity] = None,
    ) -> "GrantRequest":
        """
        Validate caller input before any remote call.

        Absent (None) inputs are rejected; empty sequences are fine and produce an empty
        permission map / empty resource string downstream.
        """
        missing = [
            name
            for name, value in (
                ("groups", groups),
                ("path_resources", path_resources),
                ("table_schema", table_schema),
                ("table_names", table_names),
            )
            if value is None
        ]
        if missing:
            raise ValidationError(
                f"Grant request for {identity or 'feed'} is missing required fields: {', '.join(missing)}",
                identity=identity,
            )
        return cls(
            groups=_dedupe(groups or []),
            path_resources=list(path_resources or []),
            table_schema=table_schema or "",
            table_names=list(table_names or []),
        )


class RemotePolicy(BaseModelLenient):
    """A policy as known to the remote engine. Referenced, never cached."""

    policy_id: Union[int, str]
    policy_name: str
    repository_type: str = ""
    # None for repository types this service does not manage
    resource_kind: Optional[ResourceKind] = None
    description: str = ""
    enabled: bool = True
    recursive: bool = False
    audit_enabled: bool = True
    group_permission_map: Dict[str, List[str]] = Field(default_factory=dict)


class PropertySnapshot(BaseModelLenient):
    """
    Point-in-time view of a feed's registration properties.

    Accepts either field names or the raw registration property keys, so a property
    mapping from the metadata store can be validated directly.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    hdfs_folders: Optional[str] = Field(default=None, alias=HDFS_FOLDERS_PROPERTY)
    hive_tables: Optional[str] = Field(default=None, alias=HIVE_TABLES_PROPERTY)
    hive_schema: Optional[str] = Field(default=None, alias=HIVE_SCHEMA_PROPERTY)

    @classmethod
    def from_properties(cls, properties: Optional[Mapping[str, Any]]) -> "PropertySnapshot":
        return cls.model_validate(dict(properties or {}))


class FeedPropertyChangeEvent(BaseModelLenient):
    feed_category: str = Field(alias="feedCategory")
    feed_name: str = Field(alias="feedName")
    hadoop_security_group_names: Optional[List[str]] = Field(default=None, alias="hadoopSecurityGroupNames")
    old_properties: PropertySnapshot = Field(default_factory=PropertySnapshot, alias="oldProperties")
    new_properties: PropertySnapshot = Field(default_factory=PropertySnapshot, alias="newProperties")

    @property
    def identity(self) -> FeedIdentity:
        return FeedIdentity(category=self.feed_category, feed=self.feed_name)


class PolicyQuery(BaseModelStrict):
    """Typed search key; the only thing the synchronizer ever searches by."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    policy_name: str
    resource_kind: ResourceKind

    def to_criteria(self) -> Dict[str, str]:
        return {
            POLICY_NAME_CRITERION: self.policy_name,
            RESOURCE_KIND_CRITERION: self.resource_kind.value,
        }


class PolicyRequest(BaseModelStrict):
    """Create/update payload for one resource-kind policy."""

    policy_name: str
    resource_kind: ResourceKind
    repository_name: str
    description: str = ""
    groups: List[str] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)
    is_enabled: bool = True
    is_audit_enabled: bool = True

    # Path policies
    resource_name: Optional[str] = None
    is_recursive: Optional[bool] = None

    # Table policies
    databases: Optional[str] = None
    tables: Optional[str] = None
    columns: Optional[str] = None
    udfs: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        """Ranger v1 public API policy body."""
        body: Dict[str, Any] = {
            "policyName": self.policy_name,
            "description": self.description,
            "repositoryName": self.repository_name,
            "repositoryType": self.resource_kind.value,
            "isEnabled": self.is_enabled,
            "isAuditEnabled": self.is_audit_enabled,
            "permMapList": (
                [{"groupList": list(self.groups), "permList": list(self.permissions)}] if self.groups else []
            ),
        }
        optional = {
            "resourceName": self.resource_name,
            "isRecursive": self.is_recursive,
            "databases": self.databases,
            "tables": self.tables,
            "columns": self.columns,
            "udfs": self.udfs,
        }
        body.update({k: v for k, v in optional.items() if v is not None})
        return body


class Group(BaseModelLenient):
    group_id: Optional[int] = None
    name: str
    description: str = ""


class SyncOutcome(BaseModelStrict):
    """Result of one synchronization attempt: success, or a classified failure."""

    operation: Literal["create", "update", "delete"]
    identity: Optional[FeedIdentity] = None
    status: Literal["ok", "failed"] = "ok"
    resource_kinds: List[ResourceKind] = Field(default_factory=list)
    policy_names: List[str] = Field(default_factory=list)
    failed_resource_kind: Optional[ResourceKind] = None
    error_type: Optional[str] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def failure(cls, operation: str, err: PolicySyncError) -> "SyncOutcome":
        return cls(
            operation=operation,  # type: ignore[arg-type]
            identity=err.identity,
            status="failed",
            failed_resource_kind=err.resource_kind,
            error_type=type(err).__name__,
            message=err.message,
        )
