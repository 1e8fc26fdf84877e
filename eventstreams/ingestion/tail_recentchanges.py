"""
Dump the EventStreams recent changes feed to the terminal.

Run with `eventstreams-tail` or `python -m eventstreams.ingestion.tail_recentchanges`.
"""

import argparse
import logging
import sys
from typing import List, Optional

from eventstreams.common.logging_utils import setup_logging

from .eventstreams import EventStream
from .exceptions import EventStreamError
from .models import EditEvent, LogEvent
from .settings import load_settings

logger = logging.getLogger(__name__)


def format_edit(edit: EditEvent) -> str:
    return f"{edit.server_name}: {edit.user} edited {edit.title}"


def format_log(log: LogEvent) -> str:
    return f"{log.server_name}: {log.user} did {log.log_type}/{log.log_action} on {log.title}"


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print live Wikimedia recent changes.")
    parser.add_argument(
        "--wiki",
        default=None,
        help="Only show events from this server name, e.g. en.wikipedia.org.",
    )
    kinds = parser.add_mutually_exclusive_group()
    kinds.add_argument("--edits-only", action="store_true", help="Only show edits.")
    kinds.add_argument("--logs-only", action="store_true", help="Only show log entries.")
    parser.add_argument(
        "--limit",
        type=_positive_int,
        default=None,
        help="Stop after printing this many events (default: run until interrupted).",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Stream URL (default: from config.yaml, or the recentchange stream).",
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to config.yaml (default: config.yaml).",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Parse CLI arguments and print events until interrupted or --limit is reached."""
    args = parse_args(argv)
    setup_logging(args.config)

    stream = EventStream(args.url, settings=load_settings(args.config))
    printed = 0

    def emit(line: str) -> None:
        nonlocal printed
        if stream.is_closed:
            return
        print(line, flush=True)
        printed += 1
        if args.limit is not None and printed >= args.limit:
            stream.close()

    def emit_edit(edit: EditEvent) -> None:
        emit(format_edit(edit))

    def emit_log(log: LogEvent) -> None:
        emit(format_log(log))

    if not args.logs_only:
        if args.wiki:
            stream.on_wiki_edit(args.wiki, emit_edit)
        else:
            stream.on_edit(emit_edit)
    if not args.edits_only:
        if args.wiki:
            stream.on_wiki_log(args.wiki, emit_log)
        else:
            stream.on_log(emit_log)
    stream.on_open(lambda: print("Connected.", flush=True))

    try:
        stream.run()
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")
    except EventStreamError as exc:
        logger.error("Stopping: %s", exc)
        return 1
    finally:
        stream.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
