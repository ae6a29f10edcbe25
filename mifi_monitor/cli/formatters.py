"""
Output Formatting Module

This module provides functions for formatting and displaying device
metrics in various formats, including JSON serialization and
human-readable summaries.

License: MIT
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Optional, TextIO

from mifi_monitor import __version__
from mifi_monitor.models import Metrics
from mifi_monitor.time_utils import format_epoch_millis

logger = logging.getLogger(__name__)


def print_summary_to_stderr(metrics: Metrics) -> None:
    """
    Print a human-readable summary to stderr (so JSON output to stdout is clean).

    Args:
        metrics: Snapshot returned by MifiClient.fetch_metrics()
    """
    logger.debug("Printing metrics summary to stderr")

    print("=" * 60, file=sys.stderr)
    print("MIFI HOTSPOT STATUS SUMMARY", file=sys.stderr)
    print("=" * 60, file=sys.stderr)

    if not metrics.is_connected:
        print(f"Status: Disconnected ({metrics.error_kind or 'unknown'})", file=sys.stderr)
        print(f"Error: {metrics.error or 'Offline'}", file=sys.stderr)
        print("=" * 60, file=sys.stderr)
        return

    print(f"Operator: {metrics.operator_name}", file=sys.stderr)
    print(f"Network: {metrics.network_mode}", file=sys.stderr)
    print(f"Signal: {metrics.signal_strength} ({metrics.signal_quality})", file=sys.stderr)
    print(f"Wi-Fi SSID: {metrics.ssid}", file=sys.stderr)
    print(f"Connected Devices: {metrics.connected_devices}", file=sys.stderr)

    charging = " (charging)" if metrics.battery_charging else ""
    print(f"Battery: {metrics.battery_percent}%{charging}", file=sys.stderr)
    print(f"Uptime: {metrics.runtime}", file=sys.stderr)
    print(f"Data: ↓{metrics.received_data} ↑{metrics.sent_data}", file=sys.stderr)
    print(f"Speed: ↓{metrics.download_speed} ↑{metrics.upload_speed}", file=sys.stderr)

    if metrics.software_version != "N/A":
        print(f"Firmware: {metrics.software_version}", file=sys.stderr)

    print("=" * 60, file=sys.stderr)


def format_json_output(metrics: Metrics, args, elapsed_time: float) -> dict[str, Any]:
    """
    Format the complete JSON output with metadata.

    Args:
        metrics: Snapshot from the device
        args: Parsed command line arguments
        elapsed_time: Total elapsed time for the operation

    Returns:
        Complete JSON output dictionary
    """
    logger.debug("Formatting complete JSON output")

    json_output = metrics.to_dict()

    json_output["last_update"] = format_epoch_millis(metrics.last_update_epoch_millis)
    json_output["query_timestamp"] = datetime.now().isoformat()
    json_output["query_host"] = args.host
    json_output["client_version"] = __version__
    json_output["elapsed_time"] = elapsed_time
    json_output["configuration"] = {
        "timeout": (args.timeout, args.timeout),
        "interval": args.interval,
        "watch": args.watch,
    }

    return json_output


def print_json_output(json_data: dict[str, Any], compact: bool = False, stream: Optional[TextIO] = None) -> None:
    """
    Print JSON output to stdout.

    Args:
        json_data: Dictionary to output as JSON
        compact: Write a single line (used for one-snapshot-per-line watch output)
        stream: Override the output stream
    """
    logger.debug("Outputting JSON to stdout")
    output = stream or sys.stdout
    if compact:
        print(json.dumps(json_data, ensure_ascii=False), file=output, flush=True)
    else:
        print(json.dumps(json_data, indent=2, ensure_ascii=False), file=output)


def print_error_suggestions(metrics: Optional[Metrics] = None, debug: bool = False) -> None:
    """
    Print helpful error suggestions.

    Args:
        metrics: The failed snapshot, used to pick suggestions
        debug: Whether debug mode is enabled
    """
    print("\nTroubleshooting suggestions:", file=sys.stderr)

    if metrics is not None and metrics.error_kind == "parsing":
        print("1. The device answered but its data could not be read", file=sys.stderr)
        print("2. Check that the firmware exposes the json_homepage_info page", file=sys.stderr)
        print("3. Run with --debug to log the raw responses", file=sys.stderr)
        return

    print("1. Check that you are connected to the hotspot's Wi-Fi", file=sys.stderr)
    print("2. Verify the device address (--host)", file=sys.stderr)
    print("3. Verify the web interface username and password", file=sys.stderr)
    if not debug:
        print("4. Try with --debug for more detailed error information", file=sys.stderr)
