"""
Tests for the MiFi Monitor CLI.

This module tests the CLI package with its modular structure.
"""

import argparse
import json
import logging
from unittest.mock import patch

import pytest

from mifi_monitor.cli import logging_setup
from mifi_monitor.cli.args import create_parser, parse_args, validate_args
from mifi_monitor.cli.formatters import (
    format_json_output,
    print_error_suggestions,
    print_json_output,
    print_summary_to_stderr,
)
from mifi_monitor.cli.main import main
from mifi_monitor.models import Metrics


def _connected_metrics():
    return Metrics(
        is_connected=True,
        operator_name="T-Mobile",
        network_mode="4G",
        signal_strength="-85 dBm",
        signal_quality=3,
        battery_percent=80,
        battery_charging=True,
        connected_devices=2,
        ssid="MiFi-5G",
        download_speed="2.0 MB/s",
        upload_speed="2.0 KB/s",
        last_update_epoch_millis=1_700_000_000_000,
    )


@pytest.fixture
def mock_client_class():
    """Patch MifiClient in the CLI so no request leaves the process."""
    with patch("mifi_monitor.cli.main.MifiClient") as client_class:
        instance = client_class.return_value
        instance.__enter__.return_value = instance
        instance.fetch_metrics.return_value = _connected_metrics()
        yield client_class


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("mifi_monitor.cli.main.setup_logging") as mock_setup:
        yield mock_setup


@pytest.mark.unit
@pytest.mark.cli
class TestCLIArgs:
    """Test argument parsing module."""

    def test_defaults(self):
        args = create_parser().parse_args([])

        assert args.host == "192.168.50.1"
        assert args.username == "admin"
        assert args.password == "admin"
        assert args.timeout == 10.0
        assert args.interval == 1.0
        assert args.watch is False
        assert args.count == 0

    def test_parse_all_args(self):
        args = parse_args(
            [
                "--host", "10.0.0.1",
                "--username", "root",
                "--password", "secret",
                "--timeout", "3",
                "--watch",
                "--interval", "0.5",
                "--count", "4",
                "--debug",
                "--quiet",
                "--log-file", "mifi.log",
            ]
        )

        assert args.host == "10.0.0.1"
        assert args.username == "root"
        assert args.password == "secret"
        assert args.timeout == 3.0
        assert args.watch is True
        assert args.interval == 0.5
        assert args.count == 4
        assert args.debug is True
        assert args.quiet is True
        assert args.log_file == "mifi.log"

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"host": " "}, "Host"),
            ({"timeout": 0}, "Timeout"),
            ({"interval": -1}, "Interval"),
            ({"count": -2}, "Count"),
        ],
    )
    def test_validate_args_rejects(self, overrides, message):
        values = {"host": "192.168.50.1", "timeout": 10.0, "interval": 1.0, "count": 0}
        values.update(overrides)

        with pytest.raises(ValueError, match=message):
            validate_args(argparse.Namespace(**values))


@pytest.mark.unit
@pytest.mark.cli
class TestCLIFormatters:
    """Test output formatting."""

    def test_summary_connected(self, capsys):
        print_summary_to_stderr(_connected_metrics())

        err = capsys.readouterr().err
        assert "MIFI HOTSPOT STATUS SUMMARY" in err
        assert "Operator: T-Mobile" in err
        assert "Battery: 80% (charging)" in err
        assert "Wi-Fi SSID: MiFi-5G" in err

    def test_summary_disconnected(self, capsys):
        print_summary_to_stderr(Metrics.failure("Connection error: down", "connectivity"))

        err = capsys.readouterr().err
        assert "Disconnected (connectivity)" in err
        assert "Error: Connection error: down" in err
        assert "Operator" not in err

    def test_format_json_output(self):
        args = create_parser().parse_args(["--host", "10.0.0.1", "--timeout", "4"])

        output = format_json_output(_connected_metrics(), args, 0.25)

        assert output["is_connected"] is True
        assert output["query_host"] == "10.0.0.1"
        assert output["elapsed_time"] == 0.25
        assert output["configuration"]["timeout"] == (4.0, 4.0)
        assert output["last_update"] is not None
        assert "client_version" in output

    def test_print_json_output_compact(self, capsys):
        print_json_output({"ssid": "Café"}, compact=True)

        out = capsys.readouterr().out
        assert out == '{"ssid": "Café"}\n'

    def test_error_suggestions_for_parsing(self, capsys):
        print_error_suggestions(Metrics.failure("Parsing error: x", "parsing"))

        err = capsys.readouterr().err
        assert "could not be read" in err

    def test_error_suggestions_for_connectivity(self, capsys):
        print_error_suggestions(Metrics.failure("Connection error: x", "connectivity"))

        err = capsys.readouterr().err
        assert "--host" in err
        assert "--debug" in err


@pytest.mark.unit
@pytest.mark.cli
class TestCLIMain:
    """Test main entry point."""

    def test_one_shot_success(self, mock_client_class, capsys):
        main(["--host", "10.0.0.1", "--password", "pw", "--timeout", "5"])

        captured = capsys.readouterr()
        data = json.loads(captured.out)
        assert data["is_connected"] is True
        assert data["operator_name"] == "T-Mobile"
        assert "MIFI HOTSPOT STATUS SUMMARY" in captured.err
        mock_client_class.assert_called_once_with(
            host="10.0.0.1", username="admin", password="pw", timeout=(5.0, 5.0)
        )

    def test_one_shot_quiet(self, mock_client_class, capsys):
        main(["--quiet"])

        captured = capsys.readouterr()
        assert json.loads(captured.out)["is_connected"] is True
        assert captured.err == ""

    def test_one_shot_disconnected_exits_1(self, mock_client_class, capsys):
        failure = Metrics.failure("Connection error: Request to 192.168.50.1 timed out", "connectivity")
        mock_client_class.return_value.fetch_metrics.return_value = failure

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        captured = capsys.readouterr()
        assert json.loads(captured.out)["error_kind"] == "connectivity"
        assert "Troubleshooting suggestions" in captured.err

    def test_invalid_args_exit_2(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--interval", "0"])

        assert exc_info.value.code == 2
        assert "Interval" in capsys.readouterr().err

    def test_unexpected_error_exits_1(self, mock_client_class, capsys):
        mock_client_class.side_effect = RuntimeError("boom")

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert "boom" in capsys.readouterr().err

    def test_keyboard_interrupt_exits_1(self, mock_client_class, capsys):
        mock_client_class.return_value.fetch_metrics.side_effect = KeyboardInterrupt

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert "cancelled by user" in capsys.readouterr().err

    def test_watch_stops_after_count(self, mock_client_class, capsys):
        main(["--watch", "--count", "2", "--interval", "0.01", "--quiet"])

        lines = [line for line in capsys.readouterr().out.splitlines() if line]
        assert len(lines) == 2
        assert all(json.loads(line)["is_connected"] for line in lines)
        assert mock_client_class.return_value.fetch_metrics.call_count >= 2

    def test_watch_writes_status_lines(self, mock_client_class, capsys):
        main(["--watch", "--count", "1", "--interval", "0.01"])

        err = capsys.readouterr().err
        assert "MiFi Monitor: Connecting..." in err
        assert "MiFi Monitor: 🔋 80%" in err
        assert "MiFi Monitor: stopped" in err


@pytest.mark.unit
@pytest.mark.cli
class TestCLILogging:
    """Test logging configuration."""

    def setup_method(self):
        logging_setup.reset_logging()

    def teardown_method(self):
        logging_setup.reset_logging()

    def test_levels(self):
        with patch("logging.basicConfig") as mock_config:
            logging_setup.setup_logging(debug=True)
            assert mock_config.call_args.kwargs["level"] == logging.DEBUG

        logging_setup.reset_logging()
        with patch("logging.basicConfig") as mock_config:
            logging_setup.setup_logging(quiet=True)
            assert mock_config.call_args.kwargs["level"] == logging.WARNING

    def test_configured_once(self):
        with patch("logging.basicConfig") as mock_config:
            logging_setup.setup_logging()
            logging_setup.setup_logging(debug=True)

        assert mock_config.call_count == 1

    def test_log_file_handler(self, tmp_path):
        log_file = tmp_path / "mifi.log"
        with patch("logging.basicConfig") as mock_config:
            logging_setup.setup_logging(log_file=str(log_file))

        handlers = mock_config.call_args.kwargs["handlers"]
        assert len(handlers) == 2
        assert any(isinstance(h, logging.FileHandler) for h in handlers)
        for handler in handlers:
            handler.close()
