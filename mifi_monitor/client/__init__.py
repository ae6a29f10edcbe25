"""
Client package for the MiFi Monitor.

- auth.py: HTTP Digest challenge parsing and Authorization headers
- http.py: Device GET requests with the one-shot Digest retry
- parser.py: JSON decoding and normalization into Metrics
- error_handler.py: Error classification for diagnostics
- main.py: MifiClient tying the pieces together
"""

from .main import MifiClient

__all__ = ["MifiClient"]
