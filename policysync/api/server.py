"""
Grant management HTTP API.

Explicit (non event-driven) entry points for creating, updating and deleting a feed's
read-only grants, plus read-only views of remote policies and groups. Every failure is
returned as a classified SyncOutcome with a matching status code.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from policysync.backends import AuthorizationBackend, get_authorization_backend
from policysync.config import load_authorization_type
from policysync.core.errors import (
    AmbiguousPolicyError,
    PolicyNotFoundError,
    PolicySyncError,
    RemoteReadError,
    RemoteWriteError,
    ValidationError,
)
from policysync.core.models import FeedIdentity, SyncOutcome

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 422),
    (PolicyNotFoundError, 404),
    (AmbiguousPolicyError, 409),
    (RemoteWriteError, 502),
    (RemoteReadError, 502),
)


def status_for_error(err: PolicySyncError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(err, cls):
            return status
    return 500


class GrantBody(BaseModel):
    category: str
    feed: str
    groups: Optional[List[str]] = None
    path_resources: Optional[List[str]] = None
    table_schema: Optional[str] = None
    table_names: Optional[List[str]] = None

    @property
    def identity(self) -> FeedIdentity:
        return FeedIdentity(category=self.category, feed=self.feed)


def _outcome_response(operation: str, call: Callable[[], SyncOutcome], *, ok_status: int = 200) -> JSONResponse:
    try:
        outcome = call()
    except PolicySyncError as e:
        status = status_for_error(e)
        logger.warning("%s grant failed with %s (HTTP %d): %s", operation, type(e).__name__, status, e.message)
        return JSONResponse(status_code=status, content=SyncOutcome.failure(operation, e).model_dump(mode="json"))
    return JSONResponse(status_code=ok_status, content=outcome.model_dump(mode="json"))


def create_app(backend: AuthorizationBackend) -> FastAPI:
    app = FastAPI(title="policysync", version="0.1.0")
    app.state.backend = backend

    @app.exception_handler(PolicySyncError)
    async def _policy_sync_error(_request: Request, exc: PolicySyncError) -> JSONResponse:
        return JSONResponse(status_code=status_for_error(exc), content={"error": type(exc).__name__, "detail": exc.message})

    @app.get("/healthz")
    def healthz() -> Dict[str, Any]:
        return {"status": "ok", "backend": backend.get_type()}

    @app.post("/grants")
    def create_grant(body: GrantBody) -> JSONResponse:
        return _outcome_response(
            "create",
            lambda: backend.create_read_only_grant(
                body.identity, body.groups, body.path_resources, body.table_schema, body.table_names
            ),
            ok_status=201,
        )

    @app.put("/grants")
    def update_grant(body: GrantBody) -> JSONResponse:
        return _outcome_response(
            "update",
            lambda: backend.update_read_only_grant(
                body.identity, body.groups, body.path_resources, body.table_schema, body.table_names
            ),
        )

    @app.delete("/grants/{category}/{feed}/{resource_kind}")
    def delete_grant(category: str, feed: str, resource_kind: str) -> JSONResponse:
        identity = FeedIdentity(category=category, feed=feed)
        return _outcome_response("delete", lambda: backend.delete_grant(identity, resource_kind))

    @app.get("/policies")
    def search_policies(request: Request) -> List[Dict[str, Any]]:
        # Criteria are forwarded verbatim to the engine's search.
        criteria = {k: v for k, v in request.query_params.items()}
        return [p.model_dump(mode="json") for p in backend.search_policies(criteria)]

    @app.get("/groups")
    def list_groups() -> List[Dict[str, Any]]:
        return [g.model_dump(mode="json") for g in backend.list_groups()]

    @app.get("/groups/{name}")
    def get_group(name: str) -> Dict[str, Any]:
        group = backend.get_group(name)
        if group is None:
            raise HTTPException(status_code=404, detail=f"Group not found: {name}")
        return group.model_dump(mode="json")

    return app


def run(host: str = "0.0.0.0", port: int = 8080) -> None:
    import uvicorn

    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    backend = get_authorization_backend(load_authorization_type())
    logger.info("Starting grant API on %s:%d (backend=%s, log_level=%s)", host, port, backend.get_type(), log_level)
    uvicorn.run(create_app(backend), host=host, port=port, log_level=uvicorn_log_level)
