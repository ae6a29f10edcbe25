"""
HTTP Request Handling for the MiFi Monitor
==========================================

This module issues the device GET requests and performs the single Digest
retry the device's 401 challenge calls for.

"""

import logging
import time
from typing import Any, Optional
from urllib.parse import urlsplit

import requests

from mifi_monitor.client.auth import DigestAuthenticator
from mifi_monitor.exceptions import (
    MifiAuthenticationError,
    MifiConnectionError,
    MifiHTTPError,
    wrap_connection_error,
)
from mifi_monitor.time_utils import epoch_millis

logger = logging.getLogger("mifi-monitor")

ENDPOINT_PATH = "/xml_action.cgi?method=get&module=duster&file=json_{name}"


class MifiRequestHandler:
    """Handles MiFi HTTP requests with the one-shot Digest retry."""

    def __init__(
        self,
        session: requests.Session,
        base_url: str,
        authenticator: DigestAuthenticator,
        timeout: tuple = (10, 10),
        instrumentation: Optional[Any] = None,
    ):
        """
        Initialize MiFi request handler.

        Args:
            session: HTTP session to use
            base_url: Base URL for the device, e.g. "http://192.168.50.1"
            authenticator: Digest authenticator owning this client's nonce-count
            timeout: Request timeout (connect, read)
            instrumentation: Optional performance instrumentation
        """
        self.session = session
        self.base_url = base_url
        self.authenticator = authenticator
        self.timeout = timeout
        self.instrumentation = instrumentation
        self._last_timestamp = 0

    @property
    def host(self) -> str:
        return urlsplit(self.base_url).netloc

    def build_url(self, endpoint: str) -> str:
        """
        Build the endpoint URL with a cache-busting timestamp suffix.

        The timestamp is glued onto the file name, the way the device's own
        web page does it. Consecutive calls never reuse a value.
        """
        timestamp = max(epoch_millis(), self._last_timestamp + 1)
        self._last_timestamp = timestamp
        return f"{self.base_url}{ENDPOINT_PATH.format(name=endpoint)}{timestamp}"

    def fetch(self, endpoint: str) -> str:
        """
        Fetch one endpoint, authenticating once if challenged.

        Args:
            endpoint: "homepage_info" or "status_info"

        Returns:
            Non-empty response body

        Raises:
            MifiAuthenticationError: If the device answers 401 twice
            MifiHTTPError: If the device answers with another non-2xx status
            MifiConnectionError: On transport failure or empty body
        """
        url = self.build_url(endpoint)
        logger.debug(f"📤 GET {endpoint}")

        response = self._get(endpoint, url)

        if response.status_code == 401:
            response = self._retry_with_digest(endpoint, url, response)

            if response.status_code == 401:
                raise MifiAuthenticationError(
                    f"Authentication rejected for {endpoint}",
                    status_code=401,
                    details={"endpoint": endpoint},
                )

        if not 200 <= response.status_code < 300:
            raise MifiHTTPError(
                f"HTTP {response.status_code} response from device",
                status_code=response.status_code,
                details={"endpoint": endpoint, "reason": response.reason or ""},
            )

        body = response.text
        if not body or not body.strip():
            raise MifiConnectionError(
                f"Empty response body from {endpoint}",
                details={"endpoint": endpoint},
            )

        logger.debug(f"📥 {endpoint}: {len(body)} chars")
        return body

    def _retry_with_digest(self, endpoint: str, url: str, response: requests.Response) -> requests.Response:
        """Re-issue a challenged request once, with credentials when the challenge allows."""
        header = response.headers.get("WWW-Authenticate")
        challenge = self.authenticator.challenge(header)

        if challenge is None:
            logger.warning(f"🔐 {endpoint}: no usable Digest challenge, retrying without credentials")
            return self._get(endpoint, url)

        # The device hashes the path only, without the query string
        uri = urlsplit(url).path or "/"
        authorization = self.authenticator.authorize("GET", uri, challenge)

        logger.debug(f"🔐 {endpoint}: retrying with Digest credentials")
        return self._get(f"{endpoint}_authenticated", url, headers={"Authorization": authorization})

    def _get(self, operation: str, url: str, headers: Optional[dict[str, str]] = None) -> requests.Response:
        """Issue one GET, mapping transport failures onto MifiConnectionError."""
        start_time = self.instrumentation.start_timer(operation) if self.instrumentation else time.time()

        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout)
        except (requests.exceptions.RequestException, OSError) as e:
            if self.instrumentation:
                self.instrumentation.record_timing(operation, start_time, success=False, error_type=type(e).__name__)
            logger.debug(f"🔧 {operation}: transport error {type(e).__name__}: {e}")
            raise wrap_connection_error(e, self.host, operation) from e

        if self.instrumentation:
            success = 200 <= response.status_code < 300
            self.instrumentation.record_timing(
                operation,
                start_time,
                success=success,
                error_type=None if success else f"HTTP_{response.status_code}",
                http_status=response.status_code,
                response_size=len(response.text or ""),
            )

        return response
