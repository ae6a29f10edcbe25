"""
Authentication module for the MiFi Monitor
==========================================

This module handles HTTP Digest authentication with the MiFi device.

The device implements the legacy MD5 Digest variant with a fixed client
nonce.

"""

import hashlib
import logging
import threading
from typing import Optional

from mifi_monitor.exceptions import MifiChallengeError
from mifi_monitor.models import Credentials, DigestChallenge, DigestSession

logger = logging.getLogger("mifi-monitor")

CLIENT_NONCE = "test"


def md5_hex(value: str) -> str:
    """Lowercase hex MD5 of a UTF-8 string."""
    return hashlib.md5(value.encode("utf-8")).hexdigest()  # noqa: S324


def parse_auth_header(header: str) -> dict[str, str]:
    """
    Split a WWW-Authenticate value into its directives.

    Args:
        header: Raw header value, e.g. 'Digest realm="x", nonce="y"'

    Returns:
        Mapping of directive name (lowercase) to unquoted value
    """
    params: dict[str, str] = {}

    # Some firmware prefixes the scheme token with extra text
    scheme_at = header.lower().find("digest")
    if scheme_at != -1:
        header = header[scheme_at + len("digest"):]

    for part in header.split(","):
        part = part.strip()
        if "=" not in part:
            continue

        key, value = part.split("=", 1)
        key = key.strip().lower()
        value = value.strip()
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]

        if key:
            params[key] = value

    return params


def _select_qop(raw_qop: str) -> str:
    options = [option.strip() for option in raw_qop.split(",") if option.strip()]
    if "auth" in options:
        return "auth"
    return options[0] if options else ""


class DigestAuthenticator:
    """Handles HTTP Digest authentication for the MiFi device."""

    def __init__(self, username: str, password: str):
        """
        Initialize Digest authenticator.

        Args:
            username: Login username
            password: Login password
        """
        self.credentials = Credentials(username=username, password=password)
        self.session = DigestSession()
        self._lock = threading.Lock()

    @property
    def username(self) -> str:
        return self.credentials.username

    def parse_challenge(self, header: Optional[str]) -> DigestChallenge:
        """
        Parse a WWW-Authenticate header into a DigestChallenge.

        Args:
            header: Raw WWW-Authenticate header value

        Returns:
            DigestChallenge with realm, nonce, qop and opaque

        Raises:
            MifiChallengeError: If the header is not a usable Digest challenge
        """
        if not header or "digest" not in header.lower():
            raise MifiChallengeError(
                "Not a Digest challenge",
                details={"header": (header or "")[:200]},
            )

        # qop may carry a quoted list ("auth,auth-int") that the comma split breaks up
        params = parse_auth_header(header)
        lowered = header.lower()
        if 'qop="' in lowered:
            start = lowered.index('qop="') + len('qop="')
            end = header.find('"', start)
            if end != -1:
                params["qop"] = header[start:end]

        realm = params.get("realm")
        nonce = params.get("nonce")
        if not realm or not nonce:
            missing = [name for name, value in (("realm", realm), ("nonce", nonce)) if not value]
            raise MifiChallengeError(
                "Digest challenge is missing required directives",
                details={"missing": missing},
            )

        return DigestChallenge(
            realm=realm,
            nonce=nonce,
            qop=_select_qop(params.get("qop", "")),
            opaque=params.get("opaque", ""),
        )

    def challenge(self, header: Optional[str]) -> Optional[DigestChallenge]:
        """
        Parse a challenge, returning None when no credentials can be produced.

        Args:
            header: Raw WWW-Authenticate header value

        Returns:
            DigestChallenge, or None when the challenge is unusable
        """
        try:
            return self.parse_challenge(header)
        except MifiChallengeError as e:
            logger.warning(f"🔐 Ignoring unusable challenge: {e}")
            return None

    def compute_response(self, method: str, uri: str, challenge: DigestChallenge, nc: str = "") -> str:
        """
        Compute the Digest response hash.

        Args:
            method: HTTP method of the request being authorized
            uri: Request URI exactly as sent
            challenge: Parsed server challenge
            nc: Formatted nonce-count, used only when qop is "auth"

        Returns:
            Lowercase hex response value
        """
        ha1 = md5_hex(f"{self.credentials.username}:{challenge.realm}:{self.credentials.password}")
        ha2 = md5_hex(f"{method}:{uri}")

        if challenge.qop == "auth":
            return md5_hex(f"{ha1}:{challenge.nonce}:{nc}:{CLIENT_NONCE}:{challenge.qop}:{ha2}")
        return md5_hex(f"{ha1}:{challenge.nonce}:{ha2}")

    def authorize(self, method: str, uri: str, challenge: DigestChallenge) -> str:
        """
        Build the Authorization header value for a request.

        Each call with qop "auth" consumes one nonce-count value.

        Args:
            method: HTTP method of the request being authorized
            uri: Request URI exactly as sent (path and query)
            challenge: Parsed server challenge

        Returns:
            Authorization header value
        """
        with self._lock:
            self.session.last_nonce = challenge.nonce
            self.session.last_realm = challenge.realm
            self.session.last_qop = challenge.qop

            nc = ""
            if challenge.qop == "auth":
                self.session.nonce_count += 1
                nc = f"{self.session.nonce_count:08d}"

        response = self.compute_response(method, uri, challenge, nc)

        directives = [
            f'username="{self.credentials.username}"',
            f'realm="{challenge.realm}"',
            f'nonce="{challenge.nonce}"',
            f'uri="{uri}"',
            f'response="{response}"',
        ]
        if challenge.qop == "auth":
            directives.extend([f"qop={challenge.qop}", f"nc={nc}", f'cnonce="{CLIENT_NONCE}"'])
        if challenge.opaque:
            directives.append(f'opaque="{challenge.opaque}"')

        logger.debug(f"🔐 Digest authorization built for {method} {uri} (nc={nc or 'none'})")
        return "Digest " + ", ".join(directives)
