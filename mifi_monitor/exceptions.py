"""
Custom exceptions for the MiFi Monitor.

This module defines all custom exceptions used throughout the mifi-monitor
library. All exceptions inherit from MifiMonitorError for easy catching of
library-specific errors.

The hierarchy mirrors the two failure classes that must stay distinguishable
in diagnostics: connectivity problems (MifiConnectionError and its
subclasses) and normalization problems (MifiParsingError). Neither is ever
fatal to the poller; both end up as ``Metrics.error`` strings.

Example usage:
    try:
        body = client.request_handler.fetch("homepage_info")
    except MifiAuthenticationError as e:
        print(f"Device rejected credentials: {e}")
    except MifiConnectionError as e:
        print(f"Device unreachable: {e}")
    except MifiParsingError as e:
        print(f"Unexpected payload: {e}")

License: MIT
"""

import socket
from typing import Any, Optional

import requests


class MifiMonitorError(Exception):
    """
    Base exception for all MiFi Monitor errors.

    All exceptions include contextual details to help with debugging.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class MifiChallengeError(MifiMonitorError):
    """
    Raised when a WWW-Authenticate Digest challenge is unusable.

    This exception is raised when:
    - The header does not name the Digest scheme
    - The realm or nonce directive is missing

    It is never fatal: the caller treats it as "no credentials available".
    """


class MifiConnectionError(MifiMonitorError):
    """
    Raised when the device cannot be reached or answers with an error.

    This exception is raised when:
    - Network connection cannot be established (refused, DNS, unreachable)
    - The device answers with a non-2xx status
    - The device answers with an empty body

    Attributes:
        message: Human-readable error message
        details: May include 'host', 'endpoint', 'original_error'
    """


class MifiTimeoutError(MifiConnectionError):
    """
    Raised when a connect or read deadline is exceeded.

    Attributes:
        message: Human-readable error message
        details: May include 'timeout', 'endpoint'
    """


class MifiHTTPError(MifiConnectionError):
    """
    Raised when the device answers with a non-2xx HTTP status.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code if available
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        if status_code and self.details is not None:
            self.details["status_code"] = status_code


class MifiAuthenticationError(MifiHTTPError):
    """
    Raised when the device keeps answering 401.

    This happens when the authenticated retry is rejected as well (bad
    credentials) or when the 401 carries no usable Digest challenge.
    """


class MifiParsingError(MifiMonitorError):
    """
    Raised when a successful response cannot be normalized.

    This exception is raised when:
    - The body is not valid JSON
    - The JSON is not an object
    - Normalization fails structurally

    Attributes:
        message: Human-readable error message
        details: May include 'endpoint', 'parse_error', 'response'
    """


class MifiConfigurationError(MifiMonitorError):
    """
    Raised when configuration validation fails.

    Attributes:
        message: Human-readable error message
        details: May include 'parameter', 'value'
    """


def wrap_connection_error(original_error: Exception, host: str, endpoint: str) -> MifiConnectionError:
    """
    Wrap a transport-level exception in MifiConnectionError.

    Args:
        original_error: The original exception
        host: Device host that failed
        endpoint: Endpoint name that was being fetched

    Returns:
        MifiConnectionError (or MifiTimeoutError) with context
    """
    details = {
        "host": host,
        "endpoint": endpoint,
        "error_type": type(original_error).__name__,
        "original_error": str(original_error),
    }

    if isinstance(original_error, (requests.exceptions.Timeout, socket.timeout)):
        return MifiTimeoutError(f"Request to {host} timed out", details=details)

    if isinstance(original_error, ConnectionRefusedError):
        return MifiConnectionError(f"Connection refused by {host} - device may be offline", details=details)

    return MifiConnectionError(f"Failed to connect to {host}", details=details)


__all__ = [
    "MifiAuthenticationError",
    "MifiChallengeError",
    "MifiConfigurationError",
    "MifiConnectionError",
    "MifiHTTPError",
    "MifiMonitorError",
    "MifiParsingError",
    "MifiTimeoutError",
    "wrap_connection_error",
]
