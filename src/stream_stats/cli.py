"""Command-line entry point.

Usage:
    # Monitor the channel configured in stream_stats.conf
    stream-stats

    # Use another config file
    stream-stats -c /etc/stream_stats/prod.conf

With ``TestMode=true`` in the config, one fetch-and-report cycle is run and
printed as JSON instead of the polling loop.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

import structlog

from stream_stats.config.settings import DEFAULT_CONFIG_FILE, Settings, load_settings
from stream_stats.core.database import build_engine
from stream_stats.core.exceptions import ConfigError, PersistError
from stream_stats.core.logging_config import configure_logging
from stream_stats.poller import Poller
from stream_stats.storage.sink import SessionSink
from stream_stats.tracker.machine import SessionTracker
from stream_stats.twitch.fetcher import SnapshotFetcher

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stream-stats",
        description="Monitor a Twitch channel and store per-broadcast viewer statistics",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"specify config file (default: {DEFAULT_CONFIG_FILE})",
    )
    return parser


async def run(settings: Settings) -> None:
    """Set up storage and HTTP, then run the loop or the test-mode report."""
    logger.info(
        "cli: starting monitoring",
        channel=settings.stream_channel,
        interval_seconds=settings.monitor_interval,
        test_mode=settings.test_mode,
    )

    sink = SessionSink(build_engine(settings.dsn))
    fetcher = SnapshotFetcher(settings)
    try:
        try:
            await sink.create_tables()
        except PersistError as exc:
            logger.error("cli: table creation failed", error=str(exc))

        poller = Poller(settings, fetcher, SessionTracker(fetcher), sink)
        if settings.test_mode:
            report = await poller.report()
            print(json.dumps(report, indent=2, default=str))
        else:
            await poller.run()
    finally:
        await fetcher.aclose()
        await sink.dispose()


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, load settings and run until interrupted."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        return 2

    configure_logging(settings.log_level, settings.log_dir)

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("cli: interrupted, exiting")
    return 0


if __name__ == "__main__":
    sys.exit(main())
