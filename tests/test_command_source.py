"""Tests for command runners and the command metric source."""

import subprocess
from unittest.mock import MagicMock, patch

import paramiko
import pytest

from device_probes.exceptions import (
    AuthFailure,
    ConnectionFailed,
    MalformedResponse,
    NotFound,
    SourceError,
    Timeout,
)
from device_probes.models import MetricValue
from device_probes.sources import (
    CommandResult,
    CommandSource,
    LocalRunner,
    SshRunner,
    collect,
    runner_from_settings,
)
from device_probes.sources.command import FingerprintVerifyPolicy, WarningHostKeyPolicy


class TestLocalRunner:
    """Tests for LocalRunner."""

    def test_captures_output(self) -> None:
        completed = MagicMock(returncode=0, stdout="ok\n", stderr="")
        with patch("device_probes.sources.command.subprocess.run", return_value=completed) as run:
            result = LocalRunner().run(["radtest", "a"], timeout=5)

        assert result == CommandResult(returncode=0, stdout="ok\n", stderr="")
        assert run.call_args.kwargs["timeout"] == 5
        assert run.call_args.args[0] == ["radtest", "a"]

    def test_timeout(self) -> None:
        error = subprocess.TimeoutExpired(cmd="radtest", timeout=5)
        with patch("device_probes.sources.command.subprocess.run", side_effect=error):
            with pytest.raises(Timeout):
                LocalRunner().run(["radtest"], timeout=5)

    def test_missing_tool(self) -> None:
        with patch(
            "device_probes.sources.command.subprocess.run",
            side_effect=FileNotFoundError("radtest"),
        ):
            with pytest.raises(ConnectionFailed) as exc_info:
                LocalRunner().run(["radtest"], timeout=5)

        assert "radtest" in exc_info.value.message


class TestSshRunner:
    """Tests for SshRunner with a mocked paramiko client."""

    @pytest.fixture
    def ssh_client(self):
        with patch("device_probes.sources.command.paramiko.SSHClient") as client_cls:
            client = client_cls.return_value
            stdout = MagicMock()
            stdout.read.return_value = b"SIP/a-01!x\n"
            stdout.channel.recv_exit_status.return_value = 0
            stderr = MagicMock()
            stderr.read.return_value = b""
            client.exec_command.return_value = (MagicMock(), stdout, stderr)
            yield client

    def test_runs_quoted_command(self, ssh_client) -> None:
        runner = SshRunner(host="pbx01", username="monitor", password="pw")

        result = runner.run(["asterisk", "-rx", "core show channels concise"], timeout=7)

        assert result.ok
        assert result.stdout == "SIP/a-01!x\n"
        command = ssh_client.exec_command.call_args.args[0]
        assert command == "asterisk -rx 'core show channels concise'"
        ssh_client.close.assert_called_once()

    def test_password_disables_keys_and_agent(self, ssh_client) -> None:
        SshRunner(host="pbx01", username="monitor", password="pw").run(["true"], timeout=7)

        kwargs = ssh_client.connect.call_args.kwargs
        assert kwargs["look_for_keys"] is False
        assert kwargs["allow_agent"] is False
        assert kwargs["timeout"] == 7

    def test_keys_used_without_password(self, ssh_client) -> None:
        SshRunner(host="pbx01", username="monitor").run(["true"], timeout=7)

        assert ssh_client.connect.call_args.kwargs["look_for_keys"] is True

    def test_fingerprint_policy_selected(self, ssh_client) -> None:
        SshRunner(host="pbx01", username="monitor", host_key_fingerprint="aa:bb").run(
            ["true"], timeout=7
        )

        policy = ssh_client.set_missing_host_key_policy.call_args.args[0]
        assert isinstance(policy, FingerprintVerifyPolicy)

    def test_warning_policy_by_default(self, ssh_client) -> None:
        SshRunner(host="pbx01", username="monitor").run(["true"], timeout=7)

        policy = ssh_client.set_missing_host_key_policy.call_args.args[0]
        assert isinstance(policy, WarningHostKeyPolicy)

    def test_authentication_failure(self, ssh_client) -> None:
        ssh_client.connect.side_effect = paramiko.AuthenticationException("denied")

        with pytest.raises(AuthFailure):
            SshRunner(host="pbx01", username="monitor", password="pw").run(["true"], timeout=7)
        ssh_client.close.assert_called_once()

    def test_unreachable_host(self, ssh_client) -> None:
        ssh_client.connect.side_effect = OSError("No route to host")

        with pytest.raises(ConnectionFailed):
            SshRunner(host="pbx01", username="monitor").run(["true"], timeout=7)

    def test_command_timeout(self, ssh_client) -> None:
        ssh_client.exec_command.side_effect = TimeoutError()

        with pytest.raises(Timeout):
            SshRunner(host="pbx01", username="monitor").run(["true"], timeout=7)
        ssh_client.close.assert_called_once()


class TestFingerprintVerifyPolicy:
    """Tests for host key fingerprint checks."""

    def _key(self, fingerprint: bytes) -> MagicMock:
        key = MagicMock()
        key.get_fingerprint.return_value = fingerprint
        key.get_name.return_value = "ssh-ed25519"
        return key

    def test_matching_fingerprint(self) -> None:
        policy = FingerprintVerifyPolicy("AA:BB:CC")

        policy.missing_host_key(MagicMock(), "pbx01", self._key(bytes.fromhex("aabbcc")))

    def test_mismatch_rejected(self) -> None:
        policy = FingerprintVerifyPolicy("aa:bb:cc")

        with pytest.raises(paramiko.SSHException, match="mismatch"):
            policy.missing_host_key(MagicMock(), "pbx01", self._key(bytes.fromhex("ddeeff")))


class TestRunnerFromSettings:
    """Tests for runner_from_settings()."""

    def test_local_by_default(self, make_settings) -> None:
        assert isinstance(runner_from_settings(make_settings()), LocalRunner)

    def test_ssh_when_user_configured(self, make_settings) -> None:
        settings = make_settings(host="pbx01", ssh_username="monitor", ssh_port=2222)

        runner = runner_from_settings(settings)

        assert isinstance(runner, SshRunner)
        assert runner.host == "pbx01"
        assert runner.port == 2222


class TestCommandSource:
    """Tests for CommandSource.fetch()."""

    def test_fetch_returns_trimmed_output(self, fake_runner) -> None:
        runner = fake_runner([CommandResult(0, "42\n")])
        source = CommandSource(runner, timeout=3)

        metric = source.fetch("users", "who --count 'all users'")

        assert metric == MetricValue(name="users", raw_value="42")
        assert runner.calls == [(["who", "--count", "all users"], 3)]

    def test_non_zero_exit(self, fake_runner) -> None:
        source = CommandSource(fake_runner([CommandResult(1, "", "line1\npermission denied\n")]))

        with pytest.raises(SourceError) as exc_info:
            source.fetch("users", "who")

        assert exc_info.value.message == "who exited with status 1: permission denied"

    def test_empty_output(self, fake_runner) -> None:
        source = CommandSource(fake_runner([CommandResult(0, "  \n")]))

        with pytest.raises(MalformedResponse):
            source.fetch("users", "who")

    def test_empty_command(self, fake_runner) -> None:
        with pytest.raises(MalformedResponse):
            CommandSource(fake_runner()).fetch("users", "   ")


class TestCollect:
    """Tests for collect()."""

    def test_failed_query_becomes_unavailable(self, fake_snmp) -> None:
        source = fake_snmp(values={"1.1": "10", "1.3": Timeout(message="no response")})

        metrics = collect(source, [("a", "1.1"), ("b", "1.2"), ("c", "1.3")])

        assert [m.name for m in metrics] == ["a", "b", "c"]
        assert metrics[0].raw_value == "10"
        assert metrics[1].available is False
        assert metrics[2].error == "no response"

    def test_non_source_errors_propagate(self, fake_snmp) -> None:
        source = fake_snmp(values={"1.1": ValueError("bug")})

        with pytest.raises(ValueError):
            collect(source, [("a", "1.1")])

    def test_not_found_is_a_source_error(self) -> None:
        assert issubclass(NotFound, SourceError)
