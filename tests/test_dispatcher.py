from __future__ import annotations

from typing import Any, Dict, Optional

import pytest

from policysync.core.errors import DispatchError, RemoteWriteError, ValidationError
from policysync.core.models import FeedPropertyChangeEvent, ResourceKind
from policysync.events import InMemoryEventSource
from policysync.sync.dispatcher import EventDispatcher, split_lines
from policysync.sync.synchronizer import PolicySynchronizer


def _event(
    *,
    old: Optional[Dict[str, Any]] = None,
    new: Optional[Dict[str, Any]] = None,
    groups: Optional[list] = None,
) -> FeedPropertyChangeEvent:
    return FeedPropertyChangeEvent.model_validate(
        {
            "feedCategory": "retail",
            "feedName": "orders",
            "hadoopSecurityGroupNames": groups,
            "oldProperties": old or {},
            "newProperties": new or {},
        }
    )


FULL_NEW = {
    "nifi:registration:hdfsFolders": "/a\n/b",
    "nifi:registration:hiveSchema": "sales",
    "nifi:registration:tableNames": "orders",
}


@pytest.fixture
def wired(fake_client, connection):  # type: ignore[no-untyped-def]
    dispatcher = EventDispatcher(PolicySynchronizer(fake_client, connection), category_prefix="kylo_")
    source = InMemoryEventSource()
    dispatcher.start(source)
    return dispatcher, source


def test_split_lines_drops_blanks() -> None:
    assert split_lines("/a\n/b\n") == ["/a", "/b"]
    assert split_lines("/a\r\n /b ") == ["/a", "/b"]
    assert split_lines("orders") == ["orders"]


def test_changed_folders_create_path_and_table_policies(wired, fake_client) -> None:  # type: ignore[no-untyped-def]
    _dispatcher, source = wired
    event = _event(
        old={"nifi:registration:hdfsFolders": "/a", "nifi:registration:hiveSchema": "sales",
             "nifi:registration:tableNames": "orders"},
        new=FULL_NEW,
        groups=["analysts"],
    )

    source.publish(event)

    creates = fake_client.ops("create")
    assert len(creates) == 2
    path, table = creates
    assert path.resource_kind is ResourceKind.PATH
    assert path.resource_name == "/a,/b"
    assert path.permissions == ["read"]
    assert path.groups == ["analysts"]
    assert path.policy_name == "nifi_kylo_retail_orders_hdfs"
    assert table.resource_kind is ResourceKind.TABLE
    assert table.databases == "sales"
    assert table.tables == "orders"
    assert table.permissions == ["select"]
    assert table.groups == ["analysts"]


def test_handle_returns_outcome(wired) -> None:  # type: ignore[no-untyped-def]
    dispatcher, _source = wired
    outcome = dispatcher.handle(_event(new=FULL_NEW, groups=["analysts"]))
    assert outcome is not None and outcome.ok
    assert outcome.identity is not None and outcome.identity.category == "kylo_retail"


def test_identical_snapshots_make_no_calls(wired, fake_client) -> None:  # type: ignore[no-untyped-def]
    dispatcher, source = wired
    event = _event(old=FULL_NEW, new=dict(FULL_NEW), groups=["analysts"])
    source.publish(event)
    assert dispatcher.handle(event) is None
    assert fake_client.calls == []


def test_event_without_groups_is_ignored(wired, fake_client) -> None:  # type: ignore[no-untyped-def]
    _dispatcher, source = wired
    source.publish(_event(new=FULL_NEW, groups=None))
    assert fake_client.calls == []


def test_empty_hive_schema_fails_validation(wired, fake_client) -> None:  # type: ignore[no-untyped-def]
    _dispatcher, source = wired
    new = dict(FULL_NEW, **{"nifi:registration:hiveSchema": ""})

    with pytest.raises(ValidationError):
        source.publish(_event(old={"nifi:registration:hdfsFolders": "/a"}, new=new, groups=["analysts"]))
    assert fake_client.calls == []


def test_missing_folders_fails_validation(wired, fake_client) -> None:  # type: ignore[no-untyped-def]
    dispatcher, _source = wired
    new = {k: v for k, v in FULL_NEW.items() if k != "nifi:registration:hdfsFolders"}
    with pytest.raises(ValidationError):
        dispatcher.handle(_event(new=new, groups=["analysts"]))
    assert fake_client.calls == []


def test_blank_only_folders_fail_validation_before_any_call(wired, fake_client) -> None:  # type: ignore[no-untyped-def]
    dispatcher, _source = wired
    new = dict(FULL_NEW, **{"nifi:registration:hdfsFolders": "\n \n"})

    with pytest.raises(ValidationError) as ei:
        dispatcher.handle(_event(new=new, groups=["analysts"]))
    assert ei.value.identity is not None and ei.value.identity.category == "kylo_retail"
    assert fake_client.calls == []


def test_blank_only_tables_fail_validation(wired, fake_client) -> None:  # type: ignore[no-untyped-def]
    dispatcher, _source = wired
    new = dict(FULL_NEW, **{"nifi:registration:tableNames": "\r\n\t"})
    with pytest.raises(ValidationError):
        dispatcher.handle(_event(new=new, groups=["analysts"]))
    assert fake_client.calls == []


def test_remote_failure_is_wrapped_in_dispatch_error(wired, fake_client) -> None:  # type: ignore[no-untyped-def]
    _dispatcher, source = wired
    fake_client.fail_on.add(("create", "hdfs"))

    with pytest.raises(DispatchError) as ei:
        source.publish(_event(new=FULL_NEW, groups=["analysts"]))

    assert isinstance(ei.value.cause, RemoteWriteError)
    assert "kylo_retail.orders" in ei.value.message
    assert ei.value.identity is not None and ei.value.identity.category == "kylo_retail"
    assert ei.value.resource_kind is ResourceKind.PATH
    assert len(fake_client.ops("create")) == 1


def test_stop_unsubscribes(wired, fake_client) -> None:  # type: ignore[no-untyped-def]
    dispatcher, source = wired
    dispatcher.stop(source)
    source.publish(_event(new=FULL_NEW, groups=["analysts"]))
    assert fake_client.calls == []
    assert source.handlers() == []
