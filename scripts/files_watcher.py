#!/usr/bin/env python3
"""Watch individually named files and log every change.

Takes absolute paths of existing files on the command line. Symlinked files
keep being followed when their target is atomically replaced, the way
Kubernetes updates mounted ConfigMap and Secret volumes.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from loguru import logger
from watchdog.observers.polling import PollingObserver

from filewatch.utils.config import get_settings
from filewatch.utils.logging import configure_logging
from filewatch.watching import (
    EventKind,
    FileChangePublisher,
    FileChangeSubscriber,
    PathValidationError,
    RegistrationError,
    WatchdogWatchService,
    resolve_subscriptions,
)


def positive_float(value: str) -> float:
    """Argparse type for strictly positive numbers of seconds."""

    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than zero: {value}")
    return number


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Watch files for create, modify and delete events.",
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="Absolute paths of existing files to watch.",
    )
    parser.add_argument(
        "--events",
        default=None,
        help="Comma separated event kinds to report (default: create,modify,delete).",
    )
    parser.add_argument(
        "--poll-interval",
        type=positive_float,
        default=None,
        help="Poll for events every N seconds instead of blocking on the watch service.",
    )
    parser.add_argument(
        "--polling-observer",
        action="store_true",
        help="Use watchdog's polling observer for filesystems without native events.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: FILEWATCH_LOG_LEVEL or INFO).",
    )

    return parser.parse_args(argv)


def validate_files(files: list[str]) -> Optional[list[Path]]:
    """Validate file arguments, logging what is wrong with them."""

    if not files:
        logger.error("Files to watch are not specified!")
        logger.error("Need specify absolute file names in command line arguments.")
        return None

    try:
        return resolve_subscriptions(files)
    except PathValidationError as e:
        logger.error(f"Files to watch are specified wrong: {e.path} is {e.kind.value}")
        logger.error("Need specify ABSOLUTE names of the EXISTING FILES in command line arguments.")
        return None


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI script."""

    args = parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, settings.log_format)

    paths = validate_files(args.files)
    if paths is None:
        return 1

    try:
        event_kinds = (
            EventKind.parse_many(args.events.split(","))
            if args.events
            else settings.get_event_kinds()
        )
    except ValueError as e:
        logger.error(str(e))
        return 1
    if not event_kinds:
        logger.error("No event kinds to watch.")
        return 1

    poll_interval = args.poll_interval or settings.poll_interval
    if args.polling_observer or settings.use_polling_observer:
        service = WatchdogWatchService(PollingObserver(timeout=settings.polling_observer_timeout))
    else:
        service = WatchdogWatchService()

    publisher = FileChangePublisher(
        [FileChangeSubscriber(paths)],
        service,
        event_kinds=event_kinds,
    )
    stop_event = threading.Event()

    def _signal_handler(signum, frame):  # noqa: D401
        logger.info(f"Received signal {signum}, shutting down.")
        stop_event.set()
        # Closing wakes up the blocked receive; do it off the signal frame
        threading.Thread(target=service.close, daemon=True).start()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        publisher.start()
    except (OSError, RegistrationError) as e:
        logger.error(f"Cannot start watching: {e}")
        publisher.stop()
        return 1

    logger.success("The watch service has started to watch for directories")

    if poll_interval:
        clean = publisher.run_polling(poll_interval, stop_event)
    else:
        clean = publisher.run()

    return 0 if clean else 1


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
