"""
MiFi Monitor
============

Python library for polling a mobile hotspot ("MiFi") over its local HTTP
management interface, with HTTP Digest authentication, lenient
normalization of the device's string-typed telemetry and a polling
lifecycle that republishes a stable Metrics snapshot to any number of
subscribers.

Quick Start:
    One-off fetch with automatic resource management:

    >>> from mifi_monitor import MifiClient
    >>> with MifiClient(host="192.168.50.1", password="admin") as client:
    ...     metrics = client.fetch_metrics()
    ...     print(f"Battery: {metrics.battery_percent}%")
    ...     print(f"Network: {metrics.network_mode} ({metrics.signal_strength})")

    Continuous polling:

    >>> from mifi_monitor import MetricsStore, Poller
    >>> store = MetricsStore()
    >>> poller = Poller(store)
    >>> poller.start_auto_refresh()      # in-process, 1 second cadence
    >>> poller.start_service()           # takes over as the background loop
    >>> poller.stop_service()

Error Handling:
    ``MifiClient.fetch_metrics`` never raises. Failures come back as a
    Metrics value with ``is_connected=False`` and ``error`` set, and
    ``error_kind`` tells connectivity problems from parsing problems.

License: MIT
"""

from .client.main import MifiClient
from .exceptions import (
    MifiAuthenticationError,
    MifiChallengeError,
    MifiConfigurationError,
    MifiConnectionError,
    MifiHTTPError,
    MifiMonitorError,
    MifiParsingError,
    MifiTimeoutError,
)
from .models import Metrics, PollerMode, PollerState
from .notifier import format_status_summary
from .poller import PeriodicTask, Poller
from .store import MetricsStore, Subscription

# Version information
__version__ = "1.0.0"
__license__ = "MIT"

# Public API
__all__ = [
    "Metrics",
    "MetricsStore",
    "MifiAuthenticationError",
    "MifiChallengeError",
    "MifiClient",
    "MifiConfigurationError",
    "MifiConnectionError",
    "MifiHTTPError",
    "MifiMonitorError",
    "MifiParsingError",
    "MifiTimeoutError",
    "PeriodicTask",
    "Poller",
    "PollerMode",
    "PollerState",
    "Subscription",
    "__license__",
    "__version__",
    "format_status_summary",
]
