"""
Feed-property-change event handling.

Per event:
1. no security groups on the event -> ignored
2. no tracked property changed -> ignored
3. split the newline-separated lists; hive schema missing or blank, or no folder or table
   left after splitting -> ValidationError
4. otherwise prefix the category and create the grant
5. failures from step 4 are logged and re-raised as DispatchError (never swallowed)

The dispatcher keeps no state between events.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from policysync.config import DEFAULT_CATEGORY_PREFIX
from policysync.core.change import changed_fields, requires_sync
from policysync.core.errors import DispatchError, ValidationError
from policysync.core.models import (
    HDFS_FOLDERS_PROPERTY,
    HIVE_SCHEMA_PROPERTY,
    HIVE_TABLES_PROPERTY,
    FeedIdentity,
    FeedPropertyChangeEvent,
    SyncOutcome,
)
from policysync.sync.synchronizer import PolicySynchronizer

if TYPE_CHECKING:
    from policysync.events.base import EventSource

logger = logging.getLogger(__name__)


def split_lines(raw: str) -> List[str]:
    """Newline-separated registration value -> ordered list of non-empty entries."""
    return [part.strip() for part in raw.replace("\r", "").split("\n") if part.strip()]


class EventDispatcher:
    def __init__(self, synchronizer: PolicySynchronizer, *, category_prefix: str = DEFAULT_CATEGORY_PREFIX) -> None:
        self.synchronizer = synchronizer
        self.category_prefix = category_prefix

    def start(self, event_source: "EventSource") -> None:
        event_source.subscribe(self.handle)
        logger.info("Feed property change dispatcher subscribed")

    def stop(self, event_source: "EventSource") -> None:
        event_source.unsubscribe(self.handle)
        logger.info("Feed property change dispatcher unsubscribed")

    @staticmethod
    def _validate(identity: FeedIdentity, folders: List[str], schema: str, tables: List[str]) -> None:
        if not folders or not schema or not tables:
            raise ValidationError(
                "Three properties are required in the metadata to create Ranger policies: "
                f"{HDFS_FOLDERS_PROPERTY}, {HIVE_SCHEMA_PROPERTY}, and {HIVE_TABLES_PROPERTY}",
                identity=identity,
            )

    def handle(self, event: FeedPropertyChangeEvent) -> Optional[SyncOutcome]:
        """Returns the create outcome, or None when the event needed no synchronization."""
        if event.hadoop_security_group_names is None:
            logger.debug("Ignoring property change for %s: no security groups", event.identity)
            return None
        if not requires_sync(event.old_properties, event.new_properties):
            logger.debug("Ignoring property change for %s: no tracked field changed", event.identity)
            return None

        new = event.new_properties
        identity = FeedIdentity(category=f"{self.category_prefix}{event.feed_category}", feed=event.feed_name)
        folders = split_lines(new.hdfs_folders or "")
        schema = (new.hive_schema or "").strip()
        tables = split_lines(new.hive_tables or "")
        self._validate(identity, folders, schema, tables)
        logger.info(
            "Authorization-relevant change for %s (fields=%s)",
            identity,
            changed_fields(event.old_properties, event.new_properties),
        )

        try:
            return self.synchronizer.create_read_only_grant(
                identity, event.hadoop_security_group_names, folders, schema, tables
            )
        except Exception as e:
            logger.error("Error creating Ranger policy after metadata property change event", exc_info=True)
            raise DispatchError(
                f"Error creating Ranger policy after property change for feed {identity}: {e}",
                identity=identity,
                resource_kind=getattr(e, "resource_kind", None),
            ) from e
