"""
Data Models for the MiFi Monitor
================================

This module contains all dataclasses and data models used by the
MiFi Monitor: credentials and Digest state, the raw device records,
the normalized Metrics snapshot, poller states and diagnostic records.

"""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Optional

NOT_AVAILABLE = "N/A"

ERROR_KIND_CONNECTIVITY = "connectivity"
ERROR_KIND_PARSING = "parsing"


@dataclass(frozen=True)
class Credentials:
    """Username and password for the device web interface."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class DigestChallenge:
    """
    Directives parsed from a ``WWW-Authenticate: Digest ...`` header.

    Attributes:
        realm: Protection space announced by the device
        nonce: Server nonce for this challenge
        qop: Quality of protection ("auth" or empty when absent)
        opaque: Opaque value to echo back, may be empty
    """

    realm: str
    nonce: str
    qop: str = ""
    opaque: str = ""


@dataclass
class DigestSession:
    """Mutable Digest state owned by a single authenticator."""

    last_nonce: str = ""
    last_realm: str = ""
    last_qop: str = ""
    nonce_count: int = 0


def _coerce_fields(cls: type, data: Any) -> dict[str, str]:
    if not isinstance(data, dict):
        raise TypeError(f"{cls.__name__} payload must be a JSON object, got {type(data).__name__}")
    values = {}
    for f in fields(cls):
        raw = data.get(f.name)
        values[f.name] = "" if raw is None else str(raw)
    return values


@dataclass(frozen=True)
class HomepageInfo:
    """
    Raw ``json_homepage_info`` record.

    The device serializes everything as strings; field names are part of
    the device contract and must not be renamed.
    """

    network_name: str = ""
    mac: str = ""
    imei: str = ""
    sw_version: str = ""
    msisdn: str = ""
    lan_ip: str = ""
    ssid: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "HomepageInfo":
        """Build from decoded JSON, defaulting missing fields to ""."""
        return cls(**_coerce_fields(cls, data))


@dataclass(frozen=True)
class StatusInfo:
    """Raw ``json_status_info`` record with string-typed numerics."""

    rssi: str = ""
    signal_quality: str = ""
    sys_mode: str = ""
    wifi_clients_num: str = ""
    run_seconds: str = ""
    battery_percent: str = ""
    battery_charging: str = ""
    tx_byte_all: str = ""
    rx_byte_all: str = ""
    tx_speed: str = ""
    rx_speed: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "StatusInfo":
        """Build from decoded JSON, defaulting missing fields to ""."""
        return cls(**_coerce_fields(cls, data))


@dataclass(frozen=True)
class Metrics:
    """
    Normalized, display-ready snapshot of the device.

    A default-constructed Metrics is the "nothing fetched yet" value held
    by the store before the first cycle completes. Every later snapshot is
    either fully populated with ``is_connected=True`` or carries an
    ``error`` with ``is_connected=False``.

    Attributes:
        is_connected: True only for a fully normalized record
        signal_strength_dbm: RSSI as integer dBm (0 when unparsable)
        signal_strength: RSSI formatted as "<rssi> dBm"
        signal_quality: Signal bars, 0-5
        network_mode: "4G" or "Unknown"
        operator_name: Carrier network name
        connected_devices: Wi-Fi client count
        runtime_seconds: Device uptime in seconds
        runtime: Uptime formatted as "{h}h {m}m {s}s"
        battery_percent: Battery level
        battery_charging: True when charging
        bytes_sent / bytes_received: Raw byte counters
        sent_data / received_data: Counters formatted as "x.xxx GB"
        upload_speed / download_speed: Human readable speeds
        ssid: Decoded Wi-Fi network name
        imei, mac, phone_number, software_version: Device details
        last_update_epoch_millis: Wall clock time the snapshot was built
        error: Short human readable error, None when connected
        error_kind: "connectivity" or "parsing" when error is set
    """

    is_connected: bool = False
    signal_strength_dbm: int = 0
    signal_strength: str = NOT_AVAILABLE
    signal_quality: int = 0
    network_mode: str = NOT_AVAILABLE
    operator_name: str = NOT_AVAILABLE
    connected_devices: int = 0
    runtime_seconds: int = 0
    runtime: str = NOT_AVAILABLE
    battery_percent: int = 0
    battery_charging: bool = False
    bytes_sent: int = 0
    bytes_received: int = 0
    sent_data: str = "0.0 GB"
    received_data: str = "0.0 GB"
    upload_speed: str = "0 KB/s"
    download_speed: str = "0 KB/s"
    ssid: str = NOT_AVAILABLE
    imei: str = NOT_AVAILABLE
    mac: str = NOT_AVAILABLE
    phone_number: str = NOT_AVAILABLE
    software_version: str = NOT_AVAILABLE
    last_update_epoch_millis: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def __post_init__(self) -> None:
        if self.error is not None and self.is_connected:
            raise ValueError("Metrics with an error cannot be connected")

    @classmethod
    def failure(cls, error: str, kind: str, timestamp_ms: int = 0) -> "Metrics":
        """Build a disconnected snapshot carrying ``error``."""
        return cls(
            is_connected=False,
            error=error,
            error_kind=kind,
            last_update_epoch_millis=timestamp_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping of all fields."""
        return asdict(self)


class PollerMode(Enum):
    """Which loop owns the store."""

    IN_PROCESS = "in_process"
    BACKGROUND = "background"


class PollerState(Enum):
    """Process-wide poller lifecycle state."""

    IDLE = "idle"
    RUNNING_IN_PROCESS = "running_in_process"
    RUNNING_BACKGROUND = "running_background"

    @property
    def mode(self) -> Optional[PollerMode]:
        if self is PollerState.RUNNING_IN_PROCESS:
            return PollerMode.IN_PROCESS
        if self is PollerState.RUNNING_BACKGROUND:
            return PollerMode.BACKGROUND
        return None


@dataclass
class TimingMetrics:
    """Detailed timing metrics for performance analysis."""

    operation: str
    start_time: float
    end_time: float
    duration: float
    success: bool
    error_type: Optional[str] = None
    http_status: Optional[int] = None
    response_size: int = 0

    @property
    def duration_ms(self) -> float:
        """Duration in milliseconds."""
        return self.duration * 1000


@dataclass
class ErrorCapture:
    """Captures details about a failed fetch cycle for analysis."""

    timestamp: float
    endpoint: str
    http_status: int
    error_type: str
    error_kind: str
    raw_error: str
    recovery_successful: bool = False


__all__ = [
    "ERROR_KIND_CONNECTIVITY",
    "ERROR_KIND_PARSING",
    "NOT_AVAILABLE",
    "Credentials",
    "DigestChallenge",
    "DigestSession",
    "ErrorCapture",
    "HomepageInfo",
    "Metrics",
    "PollerMode",
    "PollerState",
    "StatusInfo",
    "TimingMetrics",
]
