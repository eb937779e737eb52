#!/usr/bin/env python3
"""
policysync - keep Ranger read-only grants in line with feed registration metadata.
"""

import argparse
import json
import logging
import os
import sys

# Configure logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "info").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)

logger = logging.getLogger("policysync")

#
# NOTE: Keep policysync imports lazy (inside functions) so modes that don't need
# fastapi/nats don't import them.
#


def _backend():
    from policysync.backends import get_authorization_backend
    from policysync.config import load_authorization_type

    return get_authorization_backend(load_authorization_type())


def dispatch_event(payload: str) -> None:
    """Run one feed-property-change event through the dispatcher (dev helper)."""
    from policysync.events import InMemoryEventSource
    from policysync.events.nats_jetstream import parse_event

    event = parse_event(payload)
    backend = _backend()
    source = InMemoryEventSource()
    backend.start(source)
    try:
        source.publish(event)
    finally:
        backend.stop(source)
    print(json.dumps({"ok": True, "feed": str(event.identity)}, indent=2))


def run_worker() -> None:
    import asyncio

    from policysync.config import load_jetstream_settings
    from policysync.events.nats_jetstream import JetStreamEventSource

    backend = _backend()
    source = JetStreamEventSource(load_jetstream_settings())
    backend.start(source)
    try:
        asyncio.run(source.run_forever())
    finally:
        backend.stop(source)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Synchronize Ranger read-only policies with feed metadata",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the grant HTTP API
  python main.py --serve

  # Consume feed property change events from JetStream
  python main.py --run-worker

  # Look up the HDFS policy for a feed
  python main.py --search nifi_kylo_sales_orders_hdfs --resource-kind hdfs

  # Delete a feed's Hive policy
  python main.py --delete kylo_sales orders hive
        """,
    )

    parser.add_argument("--serve", action="store_true", help="Run the grant management HTTP API")
    parser.add_argument(
        "--run-worker", action="store_true", help="Consume feed property change events from NATS JetStream"
    )
    parser.add_argument(
        "--dispatch-event",
        action="store_true",
        help="Dispatch a single feed property change event from JSON (stdin by default). Dev helper.",
    )
    parser.add_argument("--event-file", help="Path to a JSON event payload (used with --dispatch-event)")
    parser.add_argument("--search", metavar="POLICY_NAME", help="Search remote policies by name")
    parser.add_argument("--resource-kind", help="Resource kind filter for --search (hdfs or hive)")
    parser.add_argument(
        "--delete", nargs=3, metavar=("CATEGORY", "FEED", "KIND"), help="Delete one resource-kind policy of a feed"
    )
    parser.add_argument("--host", default="0.0.0.0", help="HTTP API bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="HTTP API listen port (default: 8080)")

    args = parser.parse_args()

    from policysync.core.errors import PolicySyncError

    try:
        if args.serve:
            from policysync.api.server import run as run_api

            run_api(host=args.host, port=args.port)
            return

        if args.run_worker:
            run_worker()
            return

        if args.dispatch_event:
            if args.event_file:
                with open(args.event_file, "r", encoding="utf-8") as f:
                    payload = f.read()
            else:
                payload = sys.stdin.read()
            dispatch_event(payload)
            return

        if args.search:
            from policysync.core.models import POLICY_NAME_CRITERION, RESOURCE_KIND_CRITERION, ResourceKind

            criteria = {POLICY_NAME_CRITERION: args.search}
            if args.resource_kind:
                criteria[RESOURCE_KIND_CRITERION] = ResourceKind.parse(args.resource_kind).value
            policies = _backend().search_policies(criteria)
            print(json.dumps([p.model_dump(mode="json") for p in policies], indent=2))
            return

        if args.delete:
            from policysync.core.models import FeedIdentity

            category, feed, kind = args.delete
            outcome = _backend().delete_grant(FeedIdentity(category=category, feed=feed), kind)
            print(json.dumps(outcome.model_dump(mode="json"), indent=2))
            return

        parser.print_help()
    except PolicySyncError as e:
        logger.error("%s: %s", type(e).__name__, e.message)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
