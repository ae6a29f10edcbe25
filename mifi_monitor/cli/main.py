"""
Main CLI Orchestration Module

This module provides the main entry point and orchestration logic for the
MiFi Monitor CLI. The default mode fetches one snapshot; ``--watch`` runs
the background service loop and streams snapshots until interrupted.

License: MIT
"""

import argparse
import logging
import sys
import threading
import time
from datetime import datetime
from typing import Optional, Sequence

from mifi_monitor import MetricsStore, MifiClient, Poller, __version__
from mifi_monitor.models import Metrics
from mifi_monitor.notifier import LoggingNotifier, StreamNotifier

from .args import parse_args
from .formatters import (
    format_json_output,
    print_error_suggestions,
    print_json_output,
    print_summary_to_stderr,
)
from .logging_setup import setup_logging

logger = logging.getLogger(__name__)


def build_client_factory(args: argparse.Namespace):
    """Return a factory that builds a MifiClient from the CLI arguments."""

    def factory() -> MifiClient:
        return MifiClient(
            host=args.host,
            username=args.username,
            password=args.password,
            timeout=(args.timeout, args.timeout),
        )

    return factory


def run_once(args: argparse.Namespace, start_time: float) -> int:
    """
    Fetch a single snapshot and print it.

    Returns:
        Process exit status: 0 when the device was read, 1 otherwise
    """
    logger.info(f"Querying MiFi device at {args.host}")

    with build_client_factory(args)() as client:
        metrics = client.fetch_metrics()

    elapsed = time.time() - start_time

    if not args.quiet:
        print_summary_to_stderr(metrics)

    print_json_output(format_json_output(metrics, args, elapsed))

    if not metrics.is_connected:
        logger.error(f"Failed to read device after {elapsed:.2f}s: {metrics.error}")
        if not args.quiet:
            print_error_suggestions(metrics, debug=args.debug)
        return 1

    logger.info(f"Device metrics retrieved successfully in {elapsed:.2f}s")
    return 0


def run_watch(args: argparse.Namespace, start_time: float) -> int:
    """
    Run the background service loop, printing one JSON line per snapshot.

    Stops after ``--count`` snapshots when set, otherwise on Ctrl-C.
    """
    store = MetricsStore()
    finished = threading.Event()
    seen = 0

    def on_update(metrics: Metrics) -> None:
        nonlocal seen
        if finished.is_set():
            return
        seen += 1
        output = format_json_output(metrics, args, time.time() - start_time)
        print_json_output(output, compact=True)
        if args.count and seen >= args.count:
            finished.set()

    store.add_listener(on_update)

    notifier = LoggingNotifier(level=logging.DEBUG) if args.quiet else StreamNotifier(sys.stderr)
    poller = Poller(store, client_factory=build_client_factory(args), interval=args.interval, notifier=notifier)

    logger.info(f"Watching MiFi device at {args.host} every {args.interval}s")

    with poller:
        poller.start_service()
        try:
            while not finished.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info(f"Watch stopped by user after {seen} snapshots")

    elapsed = time.time() - start_time
    logger.info(f"Watch finished: {seen} snapshots in {elapsed:.2f}s")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point for the CLI application."""
    start_time = time.time()

    try:
        args = parse_args(argv)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(debug=args.debug, quiet=args.quiet, log_file=args.log_file)

    if not args.quiet:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        mode_str = "watch" if args.watch else "one-shot"
        print(f"MiFi Monitor v{__version__} - {timestamp}", file=sys.stderr)
        print(f"Connecting to {args.host} as {args.username} ({mode_str} mode)", file=sys.stderr)

    try:
        if args.watch:
            exit_code = run_watch(args, start_time)
        else:
            exit_code = run_once(args, start_time)

    except KeyboardInterrupt:
        elapsed = time.time() - start_time
        logger.error(f"Operation cancelled by user after {elapsed:.2f}s")
        print(f"Operation cancelled by user after {elapsed:.2f}s", file=sys.stderr)
        sys.exit(1)

    except Exception as e:
        elapsed = time.time() - start_time
        logger.error(f"Failed to query device after {elapsed:.2f}s: {e}")
        print(f"Error after {elapsed:.2f}s: {e}", file=sys.stderr)
        print_error_suggestions(debug=args.debug)
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
