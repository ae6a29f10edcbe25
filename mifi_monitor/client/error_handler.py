"""
Error Handler for the MiFi Monitor
==================================

Classifies failed fetch cycles so connectivity problems and parsing
problems stay distinguishable in diagnostics, even though both degrade
to a disconnected Metrics snapshot.

"""

import logging
import threading
import time
from typing import Any

from mifi_monitor.exceptions import (
    MifiAuthenticationError,
    MifiConnectionError,
    MifiHTTPError,
    MifiParsingError,
    MifiTimeoutError,
)
from mifi_monitor.models import ERROR_KIND_CONNECTIVITY, ERROR_KIND_PARSING, ErrorCapture

logger = logging.getLogger("mifi-monitor")


def classify_error(error: Exception) -> tuple[str, str]:
    """
    Classify an exception raised while fetching.

    Returns:
        Tuple of (error_type, error_kind)
    """
    if isinstance(error, MifiParsingError):
        return "parsing", ERROR_KIND_PARSING
    if isinstance(error, MifiTimeoutError):
        return "timeout", ERROR_KIND_CONNECTIVITY
    if isinstance(error, MifiAuthenticationError):
        return "auth", ERROR_KIND_CONNECTIVITY
    if isinstance(error, MifiHTTPError):
        return f"http_{error.status_code}", ERROR_KIND_CONNECTIVITY
    if isinstance(error, MifiConnectionError):
        return "connection", ERROR_KIND_CONNECTIVITY
    # Anything unexpected after the HTTP exchange is a normalization failure
    return "unknown", ERROR_KIND_PARSING


class ErrorAnalyzer:
    """Analyzes and captures fetch errors for debugging and monitoring."""

    def __init__(self, capture_errors: bool = True, max_captures: int = 500):
        """
        Initialize error analyzer.

        Args:
            capture_errors: Whether to keep error captures
            max_captures: Oldest captures are dropped beyond this count
        """
        self.capture_errors = capture_errors
        self.max_captures = max_captures
        self.error_captures: list[ErrorCapture] = []
        self._lock = threading.Lock()

    def analyze_error(self, error: Exception, endpoint: str = "fetch_metrics") -> ErrorCapture:
        """
        Analyze an error for reporting and debugging.

        Args:
            error: The exception that occurred
            endpoint: Endpoint or operation that failed

        Returns:
            ErrorCapture object with analysis
        """
        error_type, error_kind = classify_error(error)
        http_status = getattr(error, "status_code", None) or 0

        details = getattr(error, "details", None) or {}
        endpoint = details.get("endpoint", endpoint)

        capture = ErrorCapture(
            timestamp=time.time(),
            endpoint=endpoint,
            http_status=http_status,
            error_type=error_type,
            error_kind=error_kind,
            raw_error=str(error),
        )

        if self.capture_errors:
            with self._lock:
                self.error_captures.append(capture)
                if len(self.error_captures) > self.max_captures:
                    del self.error_captures[0]

        logger.warning(f"🔍 {error_kind} error on {endpoint} ({error_type}): {str(error)[:200]}")
        return capture

    def mark_recovered(self) -> None:
        """Flag the most recent capture as recovered after a successful cycle."""
        with self._lock:
            if self.error_captures and not self.error_captures[-1].recovery_successful:
                self.error_captures[-1].recovery_successful = True
                logger.info("✅ Device connection recovered")

    def get_error_analysis(self) -> dict[str, Any]:
        """Get error analysis summary."""
        with self._lock:
            captures = list(self.error_captures)

        if not captures:
            return {"message": "No errors captured yet"}

        analysis: dict[str, Any] = {
            "total_errors": len(captures),
            "error_types": {},
            "error_kinds": {ERROR_KIND_CONNECTIVITY: 0, ERROR_KIND_PARSING: 0},
            "recovery_stats": {"total_recoveries": 0, "recovery_rate": 0.0},
            "timeline": [],
        }

        for capture in captures:
            analysis["error_types"][capture.error_type] = analysis["error_types"].get(capture.error_type, 0) + 1
            analysis["error_kinds"][capture.error_kind] = analysis["error_kinds"].get(capture.error_kind, 0) + 1

            if capture.recovery_successful:
                analysis["recovery_stats"]["total_recoveries"] += 1

            analysis["timeline"].append(
                {
                    "timestamp": capture.timestamp,
                    "endpoint": capture.endpoint,
                    "error_type": capture.error_type,
                    "recovered": capture.recovery_successful,
                }
            )

        analysis["recovery_stats"]["recovery_rate"] = analysis["recovery_stats"]["total_recoveries"] / len(captures)
        return analysis
