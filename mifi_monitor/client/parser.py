"""
Response Parser for the MiFi Monitor
====================================

This module decodes the device's JSON payloads and normalizes them into
Metrics. The device serializes every number as a string and firmware
versions disagree on which fields they fill, so every field is parsed
leniently: unparsable values fall back to zero or "N/A" instead of
failing the whole snapshot.

"""

import binascii
import json
import logging
from typing import Any, Optional

from mifi_monitor.exceptions import MifiParsingError
from mifi_monitor.models import NOT_AVAILABLE, HomepageInfo, Metrics, StatusInfo
from mifi_monitor.time_utils import epoch_millis, format_runtime

logger = logging.getLogger("mifi-monitor")

GIB = 1024**3

# sys_mode codes with a known label; everything else is "Unknown"
NETWORK_MODES = {17: "4G"}


def parse_int(value: Any, default: int = 0) -> int:
    """Parse a device integer field, returning ``default`` when unparsable."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def parse_float(value: Any, default: float = 0.0) -> float:
    """Parse a device decimal field, returning ``default`` when unparsable."""
    try:
        result = float(str(value).strip())
    except (TypeError, ValueError):
        return default
    # float() accepts "nan" and "inf"
    if result != result or result in (float("inf"), float("-inf")):
        return default
    return result


def decode_ssid(raw: str) -> str:
    """
    Decode the SSID, which the device sends as hex-encoded UTF-16BE.

    Falls back to the raw value when it is not valid hex of even length
    or does not decode as UTF-16BE.
    """
    if not raw or len(raw) % 2:
        return raw

    try:
        data = binascii.unhexlify(raw)
    except (binascii.Error, ValueError):
        return raw

    if len(data) % 2:
        return raw

    try:
        return data.decode("utf-16-be")
    except UnicodeDecodeError:
        return raw


def format_data_size(byte_count: int) -> str:
    """Format a byte counter in gigabytes, e.g. "1.000 GB"."""
    return f"{byte_count / GIB:.3f} GB"


def format_speed(raw_speed: Any) -> str:
    """
    Format a device speed field.

    The device reports speed in a small unit per second; dividing by 1024
    gives KB/s, which is then scaled to MB/s or GB/s by magnitude.
    """
    kb = parse_float(raw_speed) / 1024.0
    if kb >= 1_048_576:
        return f"{kb / 1_048_576.0:.1f} GB/s"
    if kb >= 1_024:
        return f"{kb / 1_024.0:.1f} MB/s"
    return f"{kb:.1f} KB/s"


def network_mode_label(sys_mode: Any) -> str:
    """Map the device's sys_mode code to a label."""
    return NETWORK_MODES.get(parse_int(sys_mode, default=-1), "Unknown")


def _text(value: str) -> str:
    value = value.strip()
    return value if value else NOT_AVAILABLE


class MifiResponseParser:
    """Parses MiFi JSON responses into normalized Metrics."""

    def decode_json(self, endpoint: str, content: str) -> dict[str, Any]:
        """
        Decode a response body into a JSON object.

        Args:
            endpoint: Endpoint name, for error context
            content: Raw response text

        Returns:
            Decoded JSON object

        Raises:
            MifiParsingError: If the body is not a JSON object
        """
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"JSON decode failed for {endpoint}: {e}")
            raise MifiParsingError(
                f"Invalid JSON from {endpoint}",
                details={"endpoint": endpoint, "parse_error": str(e), "response": content[:200]},
            ) from e

        if not isinstance(data, dict):
            raise MifiParsingError(
                f"Expected a JSON object from {endpoint}",
                details={"endpoint": endpoint, "type": type(data).__name__},
            )
        return data

    def parse_homepage(self, content: str) -> HomepageInfo:
        """Decode a ``json_homepage_info`` body."""
        return HomepageInfo.from_dict(self.decode_json("homepage_info", content))

    def parse_status(self, content: str) -> StatusInfo:
        """Decode a ``json_status_info`` body."""
        return StatusInfo.from_dict(self.decode_json("status_info", content))

    def build_metrics(
        self,
        homepage: HomepageInfo,
        status: StatusInfo,
        timestamp_ms: Optional[int] = None,
    ) -> Metrics:
        """
        Normalize raw device records into a connected Metrics snapshot.

        Args:
            homepage: Raw homepage record
            status: Raw status record
            timestamp_ms: Snapshot time, defaults to now

        Returns:
            Metrics with is_connected=True

        Raises:
            MifiParsingError: If normalization fails structurally
        """
        if timestamp_ms is None:
            timestamp_ms = epoch_millis()

        try:
            runtime_seconds = max(parse_int(status.run_seconds), 0)
            bytes_sent = max(parse_int(status.tx_byte_all), 0)
            bytes_received = max(parse_int(status.rx_byte_all), 0)
            rssi = status.rssi.strip()

            metrics = Metrics(
                is_connected=True,
                signal_strength_dbm=parse_int(rssi),
                signal_strength=f"{rssi} dBm" if rssi else NOT_AVAILABLE,
                signal_quality=parse_int(status.signal_quality),
                network_mode=network_mode_label(status.sys_mode),
                operator_name=_text(homepage.network_name),
                connected_devices=parse_int(status.wifi_clients_num),
                runtime_seconds=runtime_seconds,
                runtime=format_runtime(runtime_seconds),
                battery_percent=parse_int(status.battery_percent),
                battery_charging=parse_int(status.battery_charging, default=-1) == 1,
                bytes_sent=bytes_sent,
                bytes_received=bytes_received,
                sent_data=format_data_size(bytes_sent),
                received_data=format_data_size(bytes_received),
                upload_speed=format_speed(status.tx_speed),
                download_speed=format_speed(status.rx_speed),
                ssid=_text(decode_ssid(homepage.ssid)),
                imei=_text(homepage.imei),
                mac=_text(homepage.mac),
                phone_number=_text(homepage.msisdn),
                software_version=_text(homepage.sw_version),
                last_update_epoch_millis=timestamp_ms,
            )
        except Exception as e:
            logger.error(f"Normalization failed: {e}")
            raise MifiParsingError(
                f"Failed to normalize device data: {e}",
                details={"error_type": type(e).__name__},
            ) from e

        logger.debug(
            f"Parsed metrics: mode={metrics.network_mode}, signal={metrics.signal_strength}, "
            f"battery={metrics.battery_percent}%, clients={metrics.connected_devices}"
        )
        return metrics

    def parse_responses(self, responses: dict[str, str], timestamp_ms: Optional[int] = None) -> Metrics:
        """
        Parse both raw bodies into Metrics.

        Args:
            responses: Mapping with "homepage_info" and "status_info" bodies
            timestamp_ms: Snapshot time, defaults to now

        Raises:
            MifiParsingError: If either body is missing or cannot be normalized
        """
        missing = [name for name in ("homepage_info", "status_info") if name not in responses]
        if missing:
            raise MifiParsingError("Missing device responses", details={"missing": missing})

        homepage = self.parse_homepage(responses["homepage_info"])
        status = self.parse_status(responses["status_info"])
        return self.build_metrics(homepage, status, timestamp_ms)
