"""
Main MiFi Client
================

This module contains the client that fetches telemetry from a MiFi hotspot
and turns it into a Metrics snapshot.

License: MIT
"""

import logging
import time
from typing import Any, Optional

import requests

from mifi_monitor.client.auth import DigestAuthenticator
from mifi_monitor.client.error_handler import ErrorAnalyzer
from mifi_monitor.client.http import MifiRequestHandler
from mifi_monitor.client.parser import MifiResponseParser
from mifi_monitor.exceptions import MifiConfigurationError, MifiConnectionError
from mifi_monitor.http_session import create_mifi_session
from mifi_monitor.instrumentation import PerformanceInstrumentation
from mifi_monitor.models import ERROR_KIND_CONNECTIVITY, ERROR_KIND_PARSING, Metrics
from mifi_monitor.time_utils import epoch_millis

logger = logging.getLogger("mifi-monitor")

DEFAULT_HOST = "192.168.50.1"
DEFAULT_TIMEOUT = (10, 10)


class MifiClient:
    """
    Client for the MiFi hotspot's local management interface.

    Each client owns its own Digest session, so nonce-counts never race
    between two polling loops. ``fetch_metrics`` never raises: every failure
    becomes a disconnected Metrics value with a short error message.

    Examples:
        >>> with MifiClient(password="admin") as client:
        ...     metrics = client.fetch_metrics()
        ...     print(metrics.battery_percent, metrics.download_speed)
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        username: str = "admin",
        password: str = "admin",
        timeout: tuple = DEFAULT_TIMEOUT,
        capture_errors: bool = True,
        enable_instrumentation: bool = True,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the MiFi client.

        Args:
            host: Device address (default: "192.168.50.1")
            username: Web interface username (default: "admin")
            password: Web interface password (default: "admin")
            timeout: (connect_timeout, read_timeout) in seconds (default: (10, 10))
            capture_errors: Whether to capture error details for analysis
            enable_instrumentation: Enable request timing instrumentation
            session: Optional pre-built requests Session

        Raises:
            MifiConfigurationError: If host or timeout are invalid
        """
        host = (host or "").strip()
        if not host:
            raise MifiConfigurationError("Device host is required", details={"parameter": "host"})
        if "://" in host:
            raise MifiConfigurationError(
                "Device host must not include a scheme",
                details={"parameter": "host", "value": host},
            )
        if isinstance(timeout, (int, float)):
            timeout = (timeout, timeout)
        if len(timeout) != 2 or any(value <= 0 for value in timeout):
            raise MifiConfigurationError(
                "Timeout must be a (connect, read) pair of positive numbers",
                details={"parameter": "timeout", "value": timeout},
            )

        self.host = host
        self.username = username
        self.base_url = f"http://{host}"
        self.timeout = tuple(timeout)
        self.capture_errors = capture_errors

        self.instrumentation = PerformanceInstrumentation() if enable_instrumentation else None
        self.error_analyzer = ErrorAnalyzer(capture_errors=capture_errors)
        self.authenticator = DigestAuthenticator(username, password)
        self.parser = MifiResponseParser()
        self.session = session or create_mifi_session()
        self.request_handler = MifiRequestHandler(
            session=self.session,
            base_url=self.base_url,
            authenticator=self.authenticator,
            timeout=self.timeout,
            instrumentation=self.instrumentation,
        )

        logger.info(f"📡 MifiClient initialized for {host} as {username}")

    def fetch_metrics(self) -> Metrics:
        """
        Fetch both device endpoints and normalize them.

        Returns:
            Connected Metrics, or a disconnected Metrics with ``error`` set
        """
        start_time = self.instrumentation.start_timer("fetch_metrics") if self.instrumentation else time.time()

        try:
            responses = {
                "homepage_info": self.request_handler.fetch("homepage_info"),
                "status_info": self.request_handler.fetch("status_info"),
            }
        except MifiConnectionError as e:
            return self._failed(e, f"Connection error: {e.message}", ERROR_KIND_CONNECTIVITY, start_time)
        except Exception as e:
            # Transport errors always arrive wrapped as MifiConnectionError
            logger.exception(f"💥 Unexpected {type(e).__name__} while fetching from {self.host}")
            return self._failed(e, f"Unexpected error: {type(e).__name__}: {e}", ERROR_KIND_PARSING, start_time)

        try:
            metrics = self.parser.parse_responses(responses, timestamp_ms=epoch_millis())
        except Exception as e:
            message = getattr(e, "message", str(e))
            return self._failed(e, f"Parsing error: {message}", ERROR_KIND_PARSING, start_time)

        self.error_analyzer.mark_recovered()
        if self.instrumentation:
            self.instrumentation.record_timing("fetch_metrics", start_time, success=True)

        logger.debug(
            f"✅ Metrics fetched: {metrics.network_mode} {metrics.signal_strength}, "
            f"↓{metrics.download_speed} ↑{metrics.upload_speed}"
        )
        return metrics

    def _failed(self, error: Exception, message: str, kind: str, start_time: float) -> Metrics:
        self.error_analyzer.analyze_error(error)
        if self.instrumentation:
            self.instrumentation.record_timing(
                "fetch_metrics", start_time, success=False, error_type=type(error).__name__
            )
        return Metrics.failure(message, kind, timestamp_ms=epoch_millis())

    def get_status(self) -> dict[str, Any]:
        """Fetch metrics and return them as a JSON-ready dictionary."""
        return self.fetch_metrics().to_dict()

    def get_performance_metrics(self) -> dict[str, Any]:
        """Get performance metrics from instrumentation."""
        if not self.instrumentation:
            return {"error": "Performance instrumentation not enabled"}
        return self.instrumentation.get_performance_summary()

    def get_error_analysis(self) -> dict[str, Any]:
        """Get error analysis for failed fetch cycles."""
        return self.error_analyzer.get_error_analysis()

    def close(self) -> None:
        """Close the HTTP session."""
        logger.debug(f"🔒 Closing MifiClient session for {self.host}")
        self.session.close()

    def __enter__(self) -> "MifiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
