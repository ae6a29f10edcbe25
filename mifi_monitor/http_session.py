"""
HTTP Session Setup for the MiFi Monitor
=======================================

Builds the requests Session used to talk to the device. The device lives
on the local subnet behind plain HTTP, so the session is small: one pooled
connection and no urllib3-level retries. Request timing is recorded by
MifiRequestHandler under each endpoint's name.

"""

import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger("mifi-monitor")


def create_mifi_session() -> requests.Session:
    """
    Create a requests Session for the MiFi management interface.

    Returns:
        requests.Session with a single-connection adapter mounted for http://
    """
    session = requests.Session()

    adapter = HTTPAdapter(
        pool_connections=1,
        pool_maxsize=2,
        max_retries=Retry(total=0, redirect=False, raise_on_status=False),
        pool_block=False,
    )
    session.mount("http://", adapter)

    session.headers.update(
        {
            "User-Agent": "MifiMonitor/1.0.0",
            "Accept": "application/json",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )

    logger.debug("🔧 Created MiFi HTTP session")
    return session


__all__ = ["create_mifi_session"]
