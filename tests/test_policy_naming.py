from __future__ import annotations

from policysync.core.models import FeedIdentity, ResourceKind
from policysync.core.naming import ALL_COLUMNS, PolicyNameBuilder


def test_policy_name_format() -> None:
    names = PolicyNameBuilder("nifi_")
    ident = FeedIdentity(category="sales", feed="orders")
    assert names.policy_name(ident, ResourceKind.PATH) == "nifi_sales_orders_hdfs"
    assert names.policy_name(ident, ResourceKind.TABLE) == "nifi_sales_orders_hive"


def test_policy_name_is_deterministic_and_distinguishes_inputs() -> None:
    names = PolicyNameBuilder()
    a = FeedIdentity(category="sales", feed="orders")
    assert names.policy_name(a, ResourceKind.PATH) == names.policy_name(
        FeedIdentity(category="sales", feed="orders"), ResourceKind.PATH
    )

    seen = {
        names.policy_name(a, ResourceKind.PATH),
        names.policy_name(a, ResourceKind.TABLE),
        names.policy_name(FeedIdentity(category="sales", feed="refunds"), ResourceKind.PATH),
        names.policy_name(FeedIdentity(category="finance", feed="orders"), ResourceKind.PATH),
    }
    assert len(seen) == 4


def test_query_uses_same_name_as_create() -> None:
    names = PolicyNameBuilder("p_")
    ident = FeedIdentity(category="c", feed="f")
    q = names.query(ident, "HDFS")  # type: ignore[arg-type]
    assert q.policy_name == names.policy_name(ident, ResourceKind.PATH)
    assert q.to_criteria() == {"policyName": "p_c_f_hdfs", "repositoryType": "hdfs"}


def test_path_resource_joins_with_commas() -> None:
    assert PolicyNameBuilder.path_resource(["/a", "/b"]) == "/a,/b"
    assert PolicyNameBuilder.path_resource([]) == ""


def test_table_resource_uses_column_wildcard() -> None:
    table = PolicyNameBuilder.table_resource("sales", ["orders", "refunds"])
    assert table.databases == "sales"
    assert table.tables == "orders,refunds"
    assert table.columns == ALL_COLUMNS == "*"
