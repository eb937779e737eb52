"""Authorization backend registry.

Backends are looked up by type name (`AUTHORIZATION_TYPE`), case-insensitively.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional

from policysync.backends.base import AuthorizationBackend
from policysync.backends.ranger import AUTHORIZATION_TYPE_RANGER, RangerAuthorizationBackend
from policysync.config import RangerConnection, load_ranger_connection

BackendFactory = Callable[[RangerConnection], AuthorizationBackend]

_BACKENDS: Dict[str, BackendFactory] = {
    AUTHORIZATION_TYPE_RANGER: RangerAuthorizationBackend,
}


def register_backend(kind: str, factory: BackendFactory) -> None:
    _BACKENDS[kind.strip().upper()] = factory


def available_backends() -> list[str]:
    return sorted(_BACKENDS)


def get_authorization_backend(kind: str, connection: Optional[RangerConnection] = None) -> AuthorizationBackend:
    factory = _BACKENDS.get((kind or "").strip().upper())
    if factory is None:
        raise ValueError(f"Unknown authorization backend {kind!r}; available: {', '.join(available_backends())}")
    return factory(connection or load_ranger_connection())


__all__ = [
    "AuthorizationBackend",
    "RangerAuthorizationBackend",
    "available_backends",
    "get_authorization_backend",
    "register_backend",
]
