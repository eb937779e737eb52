from __future__ import annotations

import pytest

from policysync.core.change import changed_fields, field_changed, requires_sync
from policysync.core.models import PropertySnapshot


def test_field_changed_null_safe_rules() -> None:
    assert field_changed(None, None) is False
    assert field_changed(None, "/a") is True
    assert field_changed("/a", None) is True
    assert field_changed("/a", "/a") is False
    assert field_changed("/a", "/a\n/b") is True


@pytest.mark.parametrize(
    "snapshot",
    [
        PropertySnapshot(),
        PropertySnapshot(hdfs_folders="/a"),
        PropertySnapshot(hdfs_folders="/a", hive_tables="orders", hive_schema="sales"),
        PropertySnapshot(hive_schema=""),
    ],
)
def test_identical_snapshots_need_no_sync(snapshot: PropertySnapshot) -> None:
    copy = PropertySnapshot(**snapshot.model_dump())
    assert requires_sync(snapshot, copy) is False


@pytest.mark.parametrize(
    "old,new",
    [
        (PropertySnapshot(hdfs_folders="/a"), PropertySnapshot(hdfs_folders="/a\n/b")),
        (PropertySnapshot(), PropertySnapshot(hive_tables="orders")),
        (PropertySnapshot(hive_schema="sales"), PropertySnapshot()),
        (PropertySnapshot(hive_schema="sales"), PropertySnapshot(hive_schema="")),
        (
            PropertySnapshot(hdfs_folders="/a", hive_tables="t", hive_schema="s"),
            PropertySnapshot(hdfs_folders="/a", hive_tables="t", hive_schema="s2"),
        ),
    ],
)
def test_any_tracked_difference_needs_sync(old: PropertySnapshot, new: PropertySnapshot) -> None:
    assert requires_sync(old, new) is True


def test_changed_fields_lists_only_differences() -> None:
    old = PropertySnapshot(hdfs_folders="/a", hive_tables="t1", hive_schema="s")
    new = PropertySnapshot(hdfs_folders="/b", hive_tables="t1")
    assert changed_fields(old, new) == ["hdfs_folders", "hive_schema"]
