import json
from unittest.mock import Mock, patch

import pytest

DIGEST_CHALLENGE = 'Digest realm="Highwmg", nonce="6a2f4c1b", qop="auth"'


def make_response(status_code=200, text="", headers=None, reason="OK"):
    """Build a stand-in for requests.Response with the attributes the client reads."""
    return Mock(status_code=status_code, text=text, headers=headers or {}, reason=reason)


@pytest.fixture
def mock_device_responses():
    """Fixture providing realistic device payloads."""
    homepage = {
        "network_name": "T-Mobile",
        "mac": "00:11:22:33:44:55",
        "imei": "860000000000001",
        "sw_version": "MIFI_V1.2.3",
        "msisdn": "+15550100",
        "lan_ip": "192.168.50.1",
        "ssid": "MiFi-5G".encode("utf-16-be").hex().upper(),
    }
    status = {
        "rssi": "-85",
        "signal_quality": "3",
        "sys_mode": "17",
        "wifi_clients_num": "2",
        "run_seconds": "3661",
        "battery_percent": "80",
        "battery_charging": "1",
        "tx_byte_all": "1073741824",
        "rx_byte_all": "2147483648",
        "tx_speed": "2048",
        "rx_speed": "2097152",
    }
    return {
        "homepage_info": json.dumps(homepage),
        "status_info": json.dumps(status),
        "homepage_dict": homepage,
        "status_dict": status,
    }


@pytest.fixture(name="make_response")
def make_response_fixture():
    """Factory for device responses."""
    return make_response


@pytest.fixture
def challenge_response():
    """Factory for a 401 carrying a usable Digest challenge."""

    def factory():
        return make_response(401, headers={"WWW-Authenticate": DIGEST_CHALLENGE}, reason="Unauthorized")

    return factory


@pytest.fixture
def mock_successful_fetch(mock_device_responses):
    """Mock an unauthenticated device answering both endpoints."""
    with patch("requests.Session.get") as mock_get:
        mock_get.side_effect = [
            make_response(text=mock_device_responses["homepage_info"]),
            make_response(text=mock_device_responses["status_info"]),
        ]
        yield mock_get


@pytest.fixture
def mock_digest_fetch(mock_device_responses):
    """Mock a device that challenges every request once."""
    challenge = make_response(401, headers={"WWW-Authenticate": DIGEST_CHALLENGE}, reason="Unauthorized")
    with patch("requests.Session.get") as mock_get:
        mock_get.side_effect = [
            challenge,
            make_response(text=mock_device_responses["homepage_info"]),
            challenge,
            make_response(text=mock_device_responses["status_info"]),
        ]
        yield mock_get


@pytest.fixture
def client_kwargs():
    """Default client kwargs for testing."""
    return {
        "host": "192.168.50.1",
        "username": "admin",
        "password": "admin",
        "timeout": (2, 2),
        "capture_errors": True,
        "enable_instrumentation": True,
    }
