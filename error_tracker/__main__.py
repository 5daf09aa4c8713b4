"""
Command line helpers.

Usage:
    python -m error_tracker send-test
    python -m error_tracker send-test --dsn http://localhost:7071 --app-id my-app
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from .client import Client
from .config import ErrorTrackerOptions
from .exceptions import ConfigurationError
from .log import configure_logging
from .models import ErrorLevel


async def send_test(client: Client, message: str, level: str) -> Optional[str]:
    """Send one message and wait for delivery."""
    event_id = await client.capture_message(message, level)
    await client.flush(client.config.get("timeout"))
    return event_id


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="error_tracker", description="Error tracker SDK tools")
    subparsers = parser.add_subparsers(dest="command", required=True)

    send = subparsers.add_parser("send-test", help="Send a test message to the ingest endpoint")
    send.add_argument("--dsn", default=None, help="Ingest base URL")
    send.add_argument("--app-id", default=None, help="Application ID")
    send.add_argument("--commit-hash", default=None, help="Commit hash")
    send.add_argument(
        "--environment",
        default=None,
        choices=["Production", "Staging", "Development"],
        help="Deployment environment",
    )
    send.add_argument("--api-key", default=None, help="x-functions-key header value")
    send.add_argument(
        "--message",
        default="ErrorTracker test message",
        help="Message to send",
    )
    send.add_argument(
        "--level",
        default=ErrorLevel.WARNING.value,
        choices=[level.value for level in ErrorLevel],
        help="Event level",
    )
    send.add_argument("--debug", action="store_true", help="Print SDK diagnostics")

    args = parser.parse_args(argv)

    configure_logging(debug=args.debug)

    overrides = {
        "dsn": args.dsn,
        "app_id": args.app_id,
        "commit_hash": args.commit_hash,
        "environment": args.environment,
        "api_key": args.api_key,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if args.debug:
        overrides["debug"] = True

    try:
        client = Client(ErrorTrackerOptions(), auto_capture=False, **overrides)
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        return 1

    print(f"Sending test message to: {client.hub.transport.endpoint}")

    try:
        event_id = asyncio.run(send_test(client, args.message, args.level))
    finally:
        client.close()

    if event_id is None:
        print("✗ Event was not delivered (queued or dropped)")
        return 1

    print(f"✓ Event sent: {event_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
