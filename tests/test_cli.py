"""Tests for the command line entry point and probe registry."""

from unittest.mock import patch

import pytest

from device_probes import __version__
from device_probes.__main__ import build_parser, main, parse_args, settings_overrides
from device_probes.exceptions import NotFound, ProbeError
from device_probes.models import PerfData, Status, Verdict
from device_probes.probes import PduProbe, Probe, ProbeRegistry


class TestProbeRegistry:
    """Tests for ProbeRegistry."""

    def test_all_probes_registered_in_order(self) -> None:
        assert ProbeRegistry.names() == [
            "pdu",
            "firewall",
            "storage",
            "wireless",
            "radius",
            "pbx",
            "droplets",
        ]

    def test_get(self) -> None:
        assert ProbeRegistry.get("pdu") is PduProbe

    def test_unknown_probe(self) -> None:
        with pytest.raises(ProbeError) as exc_info:
            ProbeRegistry.get("toaster")

        assert "pdu" in exc_info.value.hint

    def test_register_and_clear(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(ProbeRegistry, "_probe_classes", {})

        @ProbeRegistry.register
        class DummyProbe(Probe):
            name = "dummy"

            def run(self) -> Verdict:
                return Verdict(status=Status.OK, message="fine")

        assert ProbeRegistry.all() == [DummyProbe]
        ProbeRegistry.clear()
        assert ProbeRegistry.names() == []


class TestParseArgs:
    """Tests for argument parsing."""

    def test_probe_options(self) -> None:
        args = parse_args(["pdu", "-H", "pdu01", "-C", "public", "-w", "12", "-c", "14", "-f"])

        assert args.probe == "pdu"
        assert args.host == "pdu01"
        assert args.community == "public"
        assert args.perfdata is True

    def test_overrides_skip_unset_options(self) -> None:
        args = parse_args(["firewall", "-H", "fw01", "-m", "cpu", "--no-verify-ssl"])

        overrides = settings_overrides(args)

        assert overrides == {"host": "fw01", "mode": "cpu", "verify_ssl": False}

    def test_mode_choices_enforced(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["firewall", "-H", "fw01", "-m", "voltage"])

    def test_probe_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])

    def test_modeless_probe_has_no_mode_option(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["radius", "-H", "radius01", "-m", "auth"])

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestMain:
    """Tests for main() output and exit codes."""

    def test_configuration_error_is_unknown(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["pdu", "-C", "public"])

        captured = capsys.readouterr()
        assert code == 3
        assert captured.out.startswith("UNKNOWN: Configuration error: 'host' is required.")
        assert "configuration_invalid" in captured.err

    def test_verdict_printed_with_perfdata(self, capsys: pytest.CaptureFixture[str]) -> None:
        verdict = Verdict(
            status=Status.WARNING,
            message="Load is 12.3A",
            perfdata=(PerfData(name="Load", value=12.3, warn="10", crit="14", uom="A"),),
        )
        with patch.object(PduProbe, "run", return_value=verdict):
            code = main(["pdu", "-H", "pdu01", "-C", "public", "-f"])

        assert code == 1
        assert capsys.readouterr().out == "WARNING: Load is 12.3A | Load=12.3A;10;14\n"

    def test_legacy_exit_codes(self, capsys: pytest.CaptureFixture[str]) -> None:
        verdict = Verdict(status=Status.CRITICAL, message="Load is 15A")
        with patch.object(PduProbe, "run", return_value=verdict):
            code = main(["pdu", "-H", "pdu01", "--legacy-exit-codes"])

        captured = capsys.readouterr()
        assert code == 1
        assert captured.out == "CRITICAL: Load is 15A\n"
        assert "legacy_exit_codes_enabled" in captured.err

    def test_probe_error_is_unknown(self, capsys: pytest.CaptureFixture[str]) -> None:
        error = NotFound(message="OID 1.3.6.1 not found on pdu01")
        with patch.object(PduProbe, "run", side_effect=error):
            code = main(["pdu", "-H", "pdu01"])

        captured = capsys.readouterr()
        assert code == 3
        assert captured.out == "UNKNOWN: OID 1.3.6.1 not found on pdu01\n"
        assert "probe_failed" in captured.err

    def test_missing_credential_is_unknown(self, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["droplets", "-H", "api.digitalocean.com"])

        assert code == 3
        assert capsys.readouterr().out == "UNKNOWN: The droplets probe needs an API token\n"

    def test_unexpected_exception_is_unknown(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch.object(PduProbe, "run", side_effect=RuntimeError("boom")):
            code = main(["pdu", "-H", "pdu01"])

        captured = capsys.readouterr()
        assert code == 3
        assert captured.out == "UNKNOWN: unexpected error: boom\n"
        assert "probe_crashed" in captured.err

    def test_json_logs_on_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch.object(PduProbe, "run", side_effect=NotFound(message="gone")):
            main(["pdu", "-H", "pdu01", "--log-format", "json", "--log-level", "info"])

        captured = capsys.readouterr()
        assert captured.out == "UNKNOWN: gone\n"
        assert '"event": "probe_failed"' in captured.err
        assert '"event": "probe_starting"' in captured.err
