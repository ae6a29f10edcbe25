"""
Time Utilities for the MiFi Monitor
===================================

Helpers for the uptime counter reported by the device and for the
millisecond timestamps used as cache busters and snapshot times.

License: MIT
"""

import logging
import time
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)


def epoch_millis() -> int:
    """Current wall clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def format_runtime(total_seconds: int) -> str:
    """
    Format an uptime counter as hours, minutes and seconds.

    Hours are not wrapped into days, matching the device's own web page.

    Args:
        total_seconds: Uptime in whole seconds

    Returns:
        String like "1h 1m 1s"
    """
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours}h {minutes}m {seconds}s"


def format_epoch_millis(timestamp_ms: int) -> Optional[str]:
    """
    Format a snapshot timestamp as local ISO time.

    Args:
        timestamp_ms: Milliseconds since the epoch, 0 for "never"

    Returns:
        ISO 8601 string, or None when the timestamp is unset
    """
    if timestamp_ms <= 0:
        return None

    try:
        return datetime.fromtimestamp(timestamp_ms / 1000).isoformat(timespec="seconds")
    except (OverflowError, OSError, ValueError) as e:
        logger.debug(f"Failed to format timestamp {timestamp_ms}: {e}")
        return None


__all__ = ["epoch_millis", "format_epoch_millis", "format_runtime"]
