"""
Main entry point for Stack Sifter.

Prints the JSON report of one sifting run to stdout. Diagnostics go to
stderr. Exit code 0 on success, 1 on any error.
"""

import argparse
import asyncio
import os
import sys
from datetime import datetime
from typing import List, Optional

from dateutil import parser as date_parser

from .components.classifier import ClassifierFactory
from .components.feed_source import RSSFeedSource, ensure_utc
from .components.notifiers import NotifierFactory, SmtpSettings
from .components.transport import NOTIFY_RETRY_METHODS, HttpTransport
from .interfaces import IConfigurationManager
from .models.result import ProcessingResult
from .orchestrator import SiftingOrchestrator
from .services.config_manager import ConfigurationManager
from .services.report import render_report
from .utils.error_handling import ErrorTracker, describe_error
from .utils.logging import get_logger, setup_logging

DEFAULT_FEED_URL = "https://stackoverflow.com/feeds"


class ArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on invalid arguments."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def parse_since(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    try:
        return ensure_utc(date_parser.isoparse(value))
    except (ValueError, OverflowError):
        raise argparse.ArgumentTypeError(
            f"invalid timestamp '{value}', expected ISO-8601 UTC such as 2025-07-05T12:34:56Z"
        ) from None


def build_parser() -> argparse.ArgumentParser:
    parser = ArgumentParser(
        prog="stack-sifter",
        description="Sift new feed posts through natural-language rules and notify matches.",
    )
    parser.add_argument("since", type=parse_since, help="only consider posts published after this UTC timestamp")
    parser.add_argument(
        "feed_url",
        nargs="?",
        help=f"single feed to report without rules (default: {DEFAULT_FEED_URL})",
    )
    parser.add_argument("--config", dest="config_path", help="path to a YAML or JSON configuration file")
    parser.add_argument(
        "--log-level",
        default=os.getenv("STACK_SIFTER_LOG_LEVEL", "INFO"),
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    parser.add_argument("--log-dir", default=None, help="directory for rotating log files")
    return parser


async def async_main(args: argparse.Namespace) -> ProcessingResult:
    """Run one sifting pass for the parsed command line."""
    transport = HttpTransport()
    notify_transport: Optional[HttpTransport] = None
    error_tracker = ErrorTracker()

    try:
        feed_source = RSSFeedSource(transport)

        if args.config_path:
            config_manager: IConfigurationManager = ConfigurationManager(args.config_path)
            config = config_manager.load_config()
            notify_transport = HttpTransport(retry_methods=NOTIFY_RETRY_METHODS)
            orchestrator = SiftingOrchestrator(
                feed_source=feed_source,
                classifier_factory=ClassifierFactory(
                    transport, os.getenv("OPENAI_API_KEY"), config.classifier
                ),
                notifier_factory=NotifierFactory(
                    notify_transport,
                    slack_webhook_url=os.getenv("SLACK_WEBHOOK_URL"),
                    smtp=SmtpSettings.from_env(),
                    error_tracker=error_tracker,
                ),
                error_tracker=error_tracker,
            )
            return await orchestrator.process(config, args.since)

        orchestrator = SiftingOrchestrator(
            feed_source=feed_source,
            classifier_factory=ClassifierFactory(transport),
            notifier_factory=NotifierFactory(transport, error_tracker=error_tracker),
            error_tracker=error_tracker,
        )
        return await orchestrator.process_unfiltered([args.feed_url or DEFAULT_FEED_URL], args.since)

    finally:
        transport.close()
        if notify_transport is not None:
            notify_transport.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return 0 if e.code in (0, None) else 1

    if args.config_path and args.feed_url:
        print("Error: FEED_URL cannot be combined with --config", file=sys.stderr)
        return 1

    setup_logging(log_level=args.log_level, log_dir=args.log_dir)
    logger = get_logger("main")

    try:
        result = asyncio.run(async_main(args))
    except KeyboardInterrupt:
        print("Error: interrupted", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug("Run failed", extra={"error_type": type(e).__name__}, exc_info=True)
        print(f"Error: {describe_error(e)}", file=sys.stderr)
        return 1

    print(render_report(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
