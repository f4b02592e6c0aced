"""Tests for logging configuration."""

import json

import pytest
import structlog

from device_probes.logging import configure_logging


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_json_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        """stdout is reserved for the status line."""
        configure_logging(log_format="json", log_level="INFO")

        structlog.get_logger("test").info("probe_starting", probe="pdu")

        captured = capsys.readouterr()
        assert captured.out == ""
        record = json.loads(captured.err)
        assert record["event"] == "probe_starting"
        assert record["probe"] == "pdu"
        assert record["level"] == "info"
        assert "timestamp" in record

    def test_level_filters_records(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_level="ERROR")

        structlog.get_logger("test").warning("quiet")

        assert capsys.readouterr().err == ""

    def test_reconfiguration_applies_to_existing_loggers(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        log = structlog.get_logger("test")
        configure_logging(log_level="ERROR")
        log.info("hidden")

        configure_logging(log_format="json", log_level="DEBUG")
        log.debug("shown")

        assert json.loads(capsys.readouterr().err)["event"] == "shown"
