from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from policysync.core.naming import DEFAULT_POLICY_PREFIX

DEFAULT_CATEGORY_PREFIX = "kylo_"


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name, "") or "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except Exception:
        return default


@dataclass(frozen=True)
class RangerConnection:
    """
    Immutable connection + naming settings for the Ranger backend.

    Built once and handed to constructors; there is no re-assignable "initialize" step.
    """

    hostname: str
    port: int = 6080
    scheme: str = "http"
    username: Optional[str] = None
    password: Optional[str] = None
    hdfs_repository_name: str = "hdfs"
    hive_repository_name: str = "hive"
    timeout_seconds: float = 30.0

    # Naming
    policy_name_prefix: str = DEFAULT_POLICY_PREFIX
    category_prefix: str = DEFAULT_CATEGORY_PREFIX

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.hostname}:{self.port}"

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)


def load_ranger_connection() -> RangerConnection:
    """
    Load Ranger connection settings from env (ConfigMap/Secret friendly).

    Recommended vars:
    - RANGER_HOSTNAME=ranger.internal
    - RANGER_PORT=6080
    - RANGER_SCHEME=http|https
    - RANGER_USERNAME / RANGER_PASSWORD
    - RANGER_HDFS_REPOSITORY_NAME=Sandbox_hadoop
    - RANGER_HIVE_REPOSITORY_NAME=Sandbox_hive
    - RANGER_TIMEOUT_SECONDS=30
    - POLICY_NAME_PREFIX=nifi_
    - FEED_CATEGORY_PREFIX=kylo_
    """
    scheme = _env_str("RANGER_SCHEME", "http").lower()
    if scheme not in ("http", "https"):
        scheme = "http"

    return RangerConnection(
        hostname=_env_str("RANGER_HOSTNAME", "localhost"),
        port=max(1, min(_env_int("RANGER_PORT", 6080), 65535)),
        scheme=scheme,
        username=_env_str("RANGER_USERNAME") or None,
        password=_env_str("RANGER_PASSWORD") or None,
        hdfs_repository_name=_env_str("RANGER_HDFS_REPOSITORY_NAME", "hdfs"),
        hive_repository_name=_env_str("RANGER_HIVE_REPOSITORY_NAME", "hive"),
        timeout_seconds=max(1.0, _env_float("RANGER_TIMEOUT_SECONDS", 30.0)),
        # Prefixes may legitimately be empty, so only fall back when unset.
        policy_name_prefix=os.getenv("POLICY_NAME_PREFIX", DEFAULT_POLICY_PREFIX).strip(),
        category_prefix=os.getenv("FEED_CATEGORY_PREFIX", DEFAULT_CATEGORY_PREFIX).strip(),
    )


@dataclass(frozen=True)
class JetStreamSettings:
    nats_url: str = "nats://127.0.0.1:4222"
    stream: str = "FEEDS"
    subject: str = "feeds.property_changed"
    durable: str = "POLICYSYNC"
    dlq_subject: str = "policysync.dlq"
    concurrency: int = 2
    fetch_batch: int = 10
    fetch_timeout_seconds: int = 1


def load_jetstream_settings() -> JetStreamSettings:
    """
    Env:
    - NATS_URL (default: nats://127.0.0.1:4222)
    - JETSTREAM_STREAM (default: FEEDS)
    - JETSTREAM_SUBJECT (default: <stream>.property_changed)
    - JETSTREAM_DURABLE (default: POLICYSYNC)
    - JETSTREAM_DLQ_SUBJECT (default: policysync.dlq)
    - WORKER_CONCURRENCY (default: 2)
    - WORKER_FETCH_BATCH (default: 10)
    - WORKER_FETCH_TIMEOUT_SECONDS (default: 1)
    """
    stream = _env_str("JETSTREAM_STREAM", "FEEDS")
    return JetStreamSettings(
        nats_url=_env_str("NATS_URL", "nats://127.0.0.1:4222"),
        stream=stream,
        subject=_env_str("JETSTREAM_SUBJECT", f"{stream.lower()}.property_changed"),
        durable=_env_str("JETSTREAM_DURABLE", "POLICYSYNC"),
        dlq_subject=_env_str("JETSTREAM_DLQ_SUBJECT", "policysync.dlq"),
        concurrency=max(1, _env_int("WORKER_CONCURRENCY", 2)),
        fetch_batch=max(1, _env_int("WORKER_FETCH_BATCH", 10)),
        fetch_timeout_seconds=max(1, _env_int("WORKER_FETCH_TIMEOUT_SECONDS", 1)),
    )


@lru_cache(maxsize=1)
def load_authorization_type() -> str:
    return _env_str("AUTHORIZATION_TYPE", "RANGER").upper()
