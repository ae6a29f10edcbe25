"""
Status Notifiers for the MiFi Monitor
=====================================

The background service publishes a one-line status summary after every
cycle. Where that line ends up (a desktop notification, a status bar, a
terminal) belongs to the host application; this module defines the hook
and two simple implementations.

"""

import logging
import sys
from typing import Optional, Protocol, TextIO

from .models import Metrics

logger = logging.getLogger("mifi-monitor")

CONNECTING_SUMMARY = "Connecting..."


def format_status_summary(metrics: Metrics) -> str:
    """
    Build the compact status line shown while the service runs.

    Connected: battery, client count and speeds. Otherwise the error, or
    "Offline" before anything was fetched.
    """
    if metrics.is_connected:
        return (
            f"🔋 {metrics.battery_percent}%  "
            f"👥 {metrics.connected_devices}  "
            f"↓{metrics.download_speed} ↑{metrics.upload_speed}"
        )
    return metrics.error or "Offline"


class StatusNotifier(Protocol):
    """Receives a status summary after every background cycle."""

    def __call__(self, summary: str, metrics: Optional[Metrics]) -> None: ...


class LoggingNotifier:
    """Default notifier: writes each summary to the library logger."""

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    def __call__(self, summary: str, metrics: Optional[Metrics]) -> None:
        logger.log(self.level, f"📶 MiFi Monitor: {summary}")


class StreamNotifier:
    """Writes each summary as a line on a text stream (stderr by default)."""

    def __init__(self, stream: Optional[TextIO] = None, title: str = "MiFi Monitor") -> None:
        self.stream = stream or sys.stderr
        self.title = title
        self.notifications = 0

    def __call__(self, summary: str, metrics: Optional[Metrics]) -> None:
        self.notifications += 1
        print(f"{self.title}: {summary}", file=self.stream, flush=True)

    def close(self) -> None:
        print(f"{self.title}: stopped", file=self.stream, flush=True)


__all__ = [
    "CONNECTING_SUMMARY",
    "LoggingNotifier",
    "StatusNotifier",
    "StreamNotifier",
    "format_status_summary",
]
