"""
Pytest config.

Local imports like `import policysync` rely on the repo root being on sys.path; when a
global `pytest` entrypoint is used that doesn't happen reliably during collection, so we
pin it here.

Also provides an in-memory PolicyClient so no test talks to a real Ranger.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

from policysync.config import RangerConnection  # noqa: E402
from policysync.core.models import Group, PolicyRequest, RemotePolicy, ResourceKind  # noqa: E402


class FakePolicyClient:
    """
    Records every call. Search results are keyed by (policyName, repositoryType);
    `fail_on` makes the named operation raise for the given resource kind(s).
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Any]] = []
        self.policies: Dict[Tuple[str, str], List[RemotePolicy]] = {}
        self.fail_on: Set[Tuple[str, str]] = set()
        self.groups: List[Group] = []

    def add_policy(self, name: str, kind: ResourceKind, policy_id: Union[int, str]) -> RemotePolicy:
        policy = RemotePolicy(policy_id=policy_id, policy_name=name, repository_type=kind.value, resource_kind=kind)
        self.policies.setdefault((name, kind.value), []).append(policy)
        return policy

    def _maybe_fail(self, op: str, kind: str) -> None:
        if (op, kind) in self.fail_on:
            raise ConnectionError(f"simulated {op} failure for {kind}")

    def search(self, criteria: Mapping[str, str]) -> List[RemotePolicy]:
        self.calls.append(("search", dict(criteria)))
        self._maybe_fail("search", criteria.get("repositoryType", ""))
        return list(self.policies.get((criteria.get("policyName", ""), criteria.get("repositoryType", "")), []))

    def create(self, request: PolicyRequest) -> None:
        self.calls.append(("create", request))
        self._maybe_fail("create", request.resource_kind.value)

    def update(self, request: PolicyRequest, policy_id: Union[int, str]) -> None:
        self.calls.append(("update", (request, policy_id)))
        self._maybe_fail("update", request.resource_kind.value)

    def delete(self, policy_id: Union[int, str]) -> None:
        self.calls.append(("delete", policy_id))
        self._maybe_fail("delete", "")

    def get_group(self, name: str) -> Optional[Group]:
        self.calls.append(("get_group", name))
        return next((g for g in self.groups if g.name == name), None)

    def list_groups(self) -> List[Group]:
        self.calls.append(("list_groups", None))
        return list(self.groups)

    def ops(self, name: str) -> List[Any]:
        return [arg for op, arg in self.calls if op == name]


@pytest.fixture
def fake_client() -> FakePolicyClient:
    return FakePolicyClient()


@pytest.fixture
def connection() -> RangerConnection:
    return RangerConnection(
        hostname="ranger.test",
        port=6080,
        username="admin",
        password="secret",
        hdfs_repository_name="Sandbox_hadoop",
        hive_repository_name="Sandbox_hive",
    )
