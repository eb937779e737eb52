"""Apache Ranger client for policy search/create/update/delete and group lookups.

Talks to the Ranger v1 public REST API with HTTP basic auth. Connection details come
from an immutable `RangerConnection`; timeouts live here, retries live nowhere.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union, runtime_checkable

import requests

from policysync.config import RangerConnection
from policysync.core.errors import ValidationError
from policysync.core.models import Group, PolicyRequest, RemotePolicy, ResourceKind

logger = logging.getLogger(__name__)

POLICY_PATH = "/service/public/api/policy"
GROUPS_PATH = "/service/xusers/groups"


class PolicyClientError(Exception):
    """Transport or HTTP-level failure talking to the policy engine."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@runtime_checkable
class PolicyClient(Protocol):
    def search(self, criteria: Mapping[str, str]) -> List[RemotePolicy]: ...

    def create(self, request: PolicyRequest) -> None: ...

    def update(self, request: PolicyRequest, policy_id: Union[int, str]) -> None: ...

    def delete(self, policy_id: Union[int, str]) -> None: ...

    def get_group(self, name: str) -> Optional[Group]: ...

    def list_groups(self) -> List[Group]: ...


def parse_policy(raw: Dict[str, Any]) -> RemotePolicy:
    """Map a Ranger `vXPolicy` document onto RemotePolicy."""
    perm_map: Dict[str, List[str]] = {}
    for entry in raw.get("permMapList") or []:
        perms = [str(p) for p in (entry.get("permList") or [])]
        for group in entry.get("groupList") or []:
            bucket = perm_map.setdefault(str(group), [])
            bucket.extend(p for p in perms if p not in bucket)

    repository_type = str(raw.get("repositoryType") or "")
    try:
        kind: Optional[ResourceKind] = ResourceKind.parse(repository_type)
    except ValidationError:
        # yarn, kafka, hbase, ... come back as-is without a kind
        logger.debug("Policy %s has unmanaged repository type %r", raw.get("policyName"), repository_type)
        kind = None

    return RemotePolicy(
        policy_id=raw.get("id"),
        policy_name=raw.get("policyName") or "",
        repository_type=repository_type,
        resource_kind=kind,
        description=raw.get("description") or "",
        enabled=bool(raw.get("isEnabled", True)),
        recursive=bool(raw.get("isRecursive", False)),
        audit_enabled=bool(raw.get("isAuditEnabled", True)),
        group_permission_map=perm_map,
    )


def parse_group(raw: Dict[str, Any]) -> Group:
    return Group(group_id=raw.get("id"), name=raw.get("name") or "", description=raw.get("description") or "")


class RangerPolicyClient:
    """
    Default PolicyClient backed by Ranger's REST API.

    `requests` makes no thread-safety promise for a shared Session, and event handlers run
    on worker threads, so each thread lazily gets its own pooled session. An explicitly
    passed session is used as-is by every thread.
    """

    def __init__(self, connection: RangerConnection, *, session: Optional[requests.Session] = None) -> None:
        self.connection = connection
        self._shared_session = self._configure(session) if session is not None else None
        self._local = threading.local()

    def _configure(self, session: requests.Session) -> requests.Session:
        if self.connection.has_credentials:
            session.auth = (self.connection.username or "", self.connection.password or "")
        session.headers.update({"Accept": "application/json", "Content-Type": "application/json"})
        return session

    @property
    def _session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = self._configure(requests.Session())
        return session

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.connection.base_url}{path}"
        kwargs.setdefault("timeout", self.connection.timeout_seconds)
        try:
            response = self._session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise PolicyClientError(f"Ranger {method} {path} failed: {e}") from e

        if response.status_code >= 400:
            body = (response.text or "")[:2000]
            raise PolicyClientError(
                f"Ranger {method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return response

    @staticmethod
    def _json(response: requests.Response) -> Dict[str, Any]:
        if not (response.content or b"").strip():
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise PolicyClientError("Ranger returned a non-JSON response", status_code=response.status_code) from e
        return data if isinstance(data, dict) else {}

    def search(self, criteria: Mapping[str, str]) -> List[RemotePolicy]:
        response = self._request("GET", POLICY_PATH, params=dict(criteria))
        policies = self._json(response).get("vXPolicies") or []
        logger.debug("Ranger policy search %s matched %d policies", dict(criteria), len(policies))
        return [parse_policy(p) for p in policies]

    def create(self, request: PolicyRequest) -> None:
        self._request("POST", POLICY_PATH, json=request.to_wire())
        logger.info("Created Ranger policy %s", request.policy_name)

    def update(self, request: PolicyRequest, policy_id: Union[int, str]) -> None:
        self._request("PUT", f"{POLICY_PATH}/{policy_id}", json=request.to_wire())
        logger.info("Updated Ranger policy %s (id=%s)", request.policy_name, policy_id)

    def delete(self, policy_id: Union[int, str]) -> None:
        self._request("DELETE", f"{POLICY_PATH}/{policy_id}")
        logger.info("Deleted Ranger policy id=%s", policy_id)

    def get_group(self, name: str) -> Optional[Group]:
        response = self._request("GET", GROUPS_PATH, params={"name": name})
        for raw in self._json(response).get("vXGroups") or []:
            if raw.get("name") == name:
                return parse_group(raw)
        return None

    def list_groups(self) -> List[Group]:
        response = self._request("GET", GROUPS_PATH)
        return [parse_group(g) for g in self._json(response).get("vXGroups") or []]


def get_policy_client(connection: RangerConnection) -> PolicyClient:
    """Seam for swapping client implementations later."""
    return RangerPolicyClient(connection)
