"""
Command-line entry point for the content checker.

Reads configuration from the environment, applies command-line
overrides, runs either the feed or the identifier mode and reports the
processed and failure totals. Failure rows go to a CSV file.

Exit status is 0 on completion (whatever the number of broken links)
and 1 on invalid configuration or a fatal feed error.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, Optional, Sequence

import httpx
from pydantic import ValidationError

from checker.app.clients.http import build_http_client
from checker.app.config import CheckerConfig
from checker.app.coordinator.pipeline import CheckPipeline
from checker.app.errors import FeedFetchFailed
from checker.app.events import LoggingEventEmitter
from checker.app.schemas.results import RunSummary
from checker.app.sinks.csv_sink import CsvFailureSink

logger = logging.getLogger("checker")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

_FLAG_TO_SETTING = {
    "content": "content_url",
    "notifications": "notifications_url",
    "auth": "auth",
    "since": "since",
    "uuids": "uuids",
    "workers": "worker_pool_size",
    "queue_capacity": "queue_capacity",
    "timeout": "request_timeout",
    "output": "output_path",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="content-checker",
        description=(
            "Verify that every image referenced by recently changed content "
            "is fetchable and that its binary resolves."
        ),
    )
    parser.add_argument("--content", help="Content read endpoint URL")
    parser.add_argument("--notifications", help="Notifications endpoint URL")
    parser.add_argument("--auth", help="Basic authentication as user:password")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--since",
        help="Check content from the given RFC3339 date/time",
    )
    mode.add_argument(
        "--uuids",
        help=(
            "Check one or more identifiers (comma-separated, or "
            "whitespace-separated in quotes) instead of reading the feed"
        ),
    )

    parser.add_argument(
        "--workers",
        type=int,
        help="Number of concurrent check workers (default: 5)",
    )
    parser.add_argument(
        "--queue-capacity",
        type=int,
        help="Capacity of the identifier queue (default: workers - 1)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-request HTTP timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--output",
        help="CSV file receiving failure rows (default: up-content-check.csv)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Map explicitly given flags onto CheckerConfig field names."""
    overrides: Dict[str, Any] = {}
    for flag, setting in _FLAG_TO_SETTING.items():
        value = getattr(args, flag)
        if value is not None:
            overrides[setting] = value
    return overrides


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------

async def run(
    config: CheckerConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RunSummary:
    sink = CsvFailureSink.open(config.output_path)

    try:
        async with build_http_client(config, transport=transport) as client:
            pipeline = CheckPipeline.from_config(
                config,
                client=client,
                sink=sink,
                emitter=LoggingEventEmitter(),
            )

            if config.identifier_mode:
                return await pipeline.run_identifiers(config.identifiers)

            logger.info("Earliest: %s", config.start_cursor)
            return await pipeline.run_feed(config.start_cursor)
    finally:
        sink.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        config = CheckerConfig(**config_overrides(args))
    except ValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    if config.identifier_mode:
        logger.info("Identifiers: %s", " ".join(config.identifiers))

    try:
        summary = asyncio.run(run(config))
    except FeedFetchFailed as exc:
        logger.error("Fatal feed error: %s", exc)
        return 1

    logger.info(
        "Processed: %d failures: %d",
        summary.processed,
        summary.failures,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
