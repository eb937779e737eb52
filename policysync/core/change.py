"""Decide whether a feed-property change is authorization-relevant."""

from __future__ import annotations

from typing import Optional

from policysync.core.models import PropertySnapshot

TRACKED_FIELDS = ("hdfs_folders", "hive_tables", "hive_schema")


def field_changed(old: Optional[str], new: Optional[str]) -> bool:
    """Null-safe comparison: both absent -> unchanged, one absent -> changed, else string equality."""
    if old is None and new is None:
        return False
    if old is None or new is None:
        return True
    return old != new


def requires_sync(old: PropertySnapshot, new: PropertySnapshot) -> bool:
    return any(field_changed(getattr(old, name), getattr(new, name)) for name in TRACKED_FIELDS)


def changed_fields(old: PropertySnapshot, new: PropertySnapshot) -> list[str]:
    """Names of tracked fields that differ (for logging)."""
    return [name for name in TRACKED_FIELDS if field_changed(getattr(old, name), getattr(new, name))]
