from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from policysync.config import JetStreamSettings
from policysync.core.errors import PolicySyncError
from policysync.core.models import FeedPropertyChangeEvent, SyncOutcome
from policysync.events.base import HandlerRegistry

logger = logging.getLogger(__name__)


def parse_event(data: bytes | str | Dict[str, Any]) -> FeedPropertyChangeEvent:
    """
    Parse a feed-property-change message.

    Payload is expected to be JSON like:
      {"feedCategory": "sales", "feedName": "orders",
       "hadoopSecurityGroupNames": ["analysts"],
       "oldProperties": {"nifi:registration:hdfsFolders": "/a"},
       "newProperties": {"nifi:registration:hdfsFolders": "/a\\n/b", ...}}
    """
    if isinstance(data, dict):
        return FeedPropertyChangeEvent.model_validate(data)
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    s = str(data or "").strip()
    return FeedPropertyChangeEvent.model_validate(json.loads(s) if s else {})


def encode_event(event: FeedPropertyChangeEvent) -> bytes:
    payload = event.model_dump(mode="json", by_alias=True)
    return json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")


async def _dlq_publish(js: Any, *, dlq_subject: str, payload: dict) -> None:
    try:
        data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), sort_keys=True).encode("utf-8")
    except Exception:
        data = b"{}"
    try:
        await js.publish(dlq_subject, data)
    except Exception:
        # The failure itself is already logged; a broken DLQ must not kill the consumer loop.
        logger.error("Failed to publish to DLQ subject %s", dlq_subject, exc_info=True)


class JetStreamEventSource(HandlerRegistry):
    """
    EventSource backed by a NATS JetStream pull consumer.

    Handlers run in worker threads (`asyncio.to_thread`) since synchronization makes
    blocking HTTP calls. Synchronization is never retried here: a message is acked after
    one attempt, and failures are dead-lettered with a classified outcome.
    """

    def __init__(self, settings: JetStreamSettings) -> None:
        super().__init__()
        self.settings = settings
        self._nc: Any = None
        self._js: Any = None
        self._running = False

    async def _ensure_connected(self) -> None:
        if self._nc is not None and self._js is not None:
            return

        try:
            import nats  # type: ignore[import-not-found]
            from nats.js.errors import NotFoundError  # type: ignore[import-not-found]
        except Exception as e:
            raise RuntimeError("Missing NATS client dependency. Install `nats-py` to use JetStream.") from e

        nc = await nats.connect(servers=[self.settings.nats_url])
        js = nc.jetstream()

        # Best-effort stream provisioning (idempotent); production can pre-provision.
        try:
            await js.stream_info(self.settings.stream)
        except NotFoundError:
            await js.add_stream(name=self.settings.stream, subjects=[self.settings.subject])

        self._nc = nc
        self._js = js

    async def publish(self, event: FeedPropertyChangeEvent) -> str:
        await self._ensure_connected()
        pa = await self._js.publish(self.settings.subject, encode_event(event))
        return str(getattr(pa, "seq", "") or "")

    async def handle_msg(self, js: Any, msg: Any) -> str:
        """
        Handle one message. Returns the disposition: "ack" or "dlq".
        """
        raw = getattr(msg, "data", b"") or b""
        try:
            event = parse_event(raw)
        except Exception as e:
            logger.error("Dropping malformed feed event: %s", e)
            await _dlq_publish(
                js,
                dlq_subject=self.settings.dlq_subject,
                payload={
                    "kind": "poison_message",
                    "reason": "json_or_schema_error",
                    "raw": raw[:4096].decode("utf-8", errors="replace"),
                },
            )
            await msg.ack()
            return "dlq"

        try:
            await asyncio.to_thread(self.deliver, event)
        except PolicySyncError as e:
            logger.error("Feed event for %s failed: %s", event.identity, e.message, exc_info=True)
            await _dlq_publish(
                js,
                dlq_subject=self.settings.dlq_subject,
                payload={
                    "kind": "sync_failed",
                    "outcome": SyncOutcome.failure("create", e).model_dump(mode="json"),
                    "event": event.model_dump(mode="json", by_alias=True),
                },
            )
            await msg.ack()
            return "dlq"
        except Exception as e:
            logger.error("Feed event handler crashed for %s", event.identity, exc_info=True)
            await _dlq_publish(
                js,
                dlq_subject=self.settings.dlq_subject,
                payload={
                    "kind": "handler_error",
                    "error": f"{type(e).__name__}: {e}",
                    "event": event.model_dump(mode="json", by_alias=True),
                },
            )
            await msg.ack()
            return "dlq"

        await msg.ack()
        return "ack"

    def stop(self) -> None:
        self._running = False

    async def run_forever(self, *, max_batches: Optional[int] = None) -> None:
        try:
            from nats.errors import TimeoutError  # type: ignore[import-not-found]
        except Exception as e:
            raise RuntimeError("nats-py is required to run the JetStream event source") from e

        s = self.settings
        logger.info("Connecting to NATS at %s...", s.nats_url)
        await self._ensure_connected()
        sub = await self._js.pull_subscribe(s.subject, durable=s.durable, stream=s.stream)

        sem = asyncio.Semaphore(s.concurrency)

        async def _guarded(msg: Any) -> None:
            async with sem:
                try:
                    await self.handle_msg(self._js, msg)
                except Exception:
                    # Only ack/DLQ transport failures land here; JetStream redelivers unacked messages.
                    logger.error("Failed to settle feed event message", exc_info=True)

        logger.info(
            "Listening for feed events (stream=%s, subject=%s, concurrency=%d)", s.stream, s.subject, s.concurrency
        )
        self._running = True
        batches = 0
        try:
            while self._running:
                if max_batches is not None and batches >= max_batches:
                    break
                try:
                    msgs = await sub.fetch(s.fetch_batch, timeout=s.fetch_timeout_seconds)
                except (TimeoutError, asyncio.TimeoutError):
                    continue
                finally:
                    batches += 1

                tasks = [asyncio.create_task(_guarded(m)) for m in (msgs or [])]
                if tasks:
                    await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            self._running = False
            if self._nc is not None:
                await self._nc.close()
                self._nc = None
                self._js = None
