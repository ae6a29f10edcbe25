"""
Command Line Argument Parsing Module

This module handles all argument parsing and validation for the MiFi
Monitor CLI.

License: MIT
"""

import argparse
import logging
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="mifi-monitor",
        description="Query a MiFi hotspot's status and output JSON data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s --host 192.168.0.1 --password "secret"
  %(prog)s --watch
  %(prog)s --watch --count 10 --quiet

Output:
  One-shot mode prints a JSON object with the device metrics to stdout and
  a summary to stderr. Exit status is 1 when the device could not be read.

Watch Mode:
  Polls the device every --interval seconds in background service mode.
  Each snapshot is printed as one JSON line on stdout and a compact status
  line goes to stderr. Stop with Ctrl-C or --count.
        """,
    )

    # Connection settings
    parser.add_argument(
        "--host",
        default="192.168.50.1",
        help="Device hostname or IP address (default: %(default)s)",
    )
    parser.add_argument(
        "--username",
        default="admin",
        help="Device web interface username (default: %(default)s)",
    )
    parser.add_argument(
        "--password",
        default="admin",
        help="Device web interface password (default: %(default)s)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Connect and read timeout in seconds (default: %(default)s)",
    )

    # Polling options
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep polling in background service mode until interrupted",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between polls in watch mode (default: %(default)s)",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=0,
        help="Stop watch mode after this many snapshots, 0 for no limit (default: %(default)s)",
    )

    # Output options
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging output to stderr",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress summary output to stderr (JSON only to stdout)",
    )
    parser.add_argument(
        "--log-file",
        help="Also write log output to this file",
    )

    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logger.debug(f"Parsed arguments: host={args.host}, watch={args.watch}, interval={args.interval}")

    validate_args(args)

    return args


def validate_args(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Args:
        args: Parsed arguments namespace

    Raises:
        ValueError: If arguments are invalid
    """
    if not args.host or not args.host.strip():
        raise ValueError("Host must not be empty")

    if args.timeout <= 0:
        raise ValueError("Timeout must be greater than 0")

    if args.interval <= 0:
        raise ValueError("Interval must be greater than 0")

    if args.count < 0:
        raise ValueError("Count cannot be negative")

    logger.debug("Arguments validated successfully")
