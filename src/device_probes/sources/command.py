"""Wrapped CLI tools, run locally or on a remote host over SSH.

Probes such as the RADIUS and PBX checks shell out to a tool (``radtest``,
``asterisk -rx``) and parse its output. The runner abstracts where the tool
runs; CommandSource turns its output into metrics.
"""

import shlex
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

import paramiko
import structlog
from paramiko import MissingHostKeyPolicy, PKey

from device_probes.exceptions import (
    AuthFailure,
    ConnectionFailed,
    MalformedResponse,
    SourceError,
    Timeout,
)
from device_probes.models import MetricValue

if TYPE_CHECKING:
    from device_probes.config import ProbeSettings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Exit status and captured output of one command."""

    returncode: int
    stdout: str
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    """Executes an argv and captures its output."""

    def run(self, argv: Sequence[str], timeout: float) -> CommandResult:
        ...


class LocalRunner:
    """Run commands on the probe host with subprocess."""

    def run(self, argv: Sequence[str], timeout: float) -> CommandResult:
        logger.debug("command_starting", command=argv[0], runner="local")
        try:
            completed = subprocess.run(
                list(argv),
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise Timeout(
                message=f"{argv[0]} did not finish within {timeout:g}s",
            ) from e
        except FileNotFoundError as e:
            raise ConnectionFailed(
                message=f"Command not found: {argv[0]}",
                hint="Install the tool on the probe host or run it over SSH.",
            ) from e
        except PermissionError as e:
            raise ConnectionFailed(message=f"Cannot execute {argv[0]}: permission denied") from e

        return CommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )


class WarningHostKeyPolicy(MissingHostKeyPolicy):
    """Host key policy that logs a warning but allows connections.

    For stricter validation, configure ssh_host_key_fingerprint.
    """

    def missing_host_key(
        self,
        client: paramiko.SSHClient,
        hostname: str,
        key: PKey,
    ) -> None:
        """Log warning when host key is not in known_hosts."""
        logger.warning(
            "ssh_host_key_not_verified",
            hostname=hostname,
            key_type=key.get_name(),
            fingerprint=key.get_fingerprint().hex(":"),
            hint="Set PROBE_SSH_HOST_KEY_FINGERPRINT for strict validation",
        )


class FingerprintVerifyPolicy(MissingHostKeyPolicy):
    """Host key policy that rejects keys not matching an expected fingerprint."""

    def __init__(self, expected_fingerprint: str) -> None:
        """Initialize with expected fingerprint.

        Args:
            expected_fingerprint: Hex fingerprint with or without colons.
        """
        super().__init__()
        self.expected = expected_fingerprint.lower().replace(":", "")

    def missing_host_key(
        self,
        client: paramiko.SSHClient,
        hostname: str,
        key: PKey,
    ) -> None:
        """Verify host key fingerprint matches expected value."""
        actual = key.get_fingerprint().hex()
        if actual != self.expected:
            raise paramiko.SSHException(
                f"Host key fingerprint mismatch for {hostname}: "
                f"expected {self.expected}, got {actual}"
            )
        logger.debug("ssh_host_key_verified", hostname=hostname, key_type=key.get_name())


class SshRunner:
    """Run commands on a remote host with paramiko.

    Opens one connection per command; probes run a single command per
    invocation.

    Example:
        >>> runner = SshRunner(host="pbx01", username="monitor", password="secret")
        >>> result = runner.run(["asterisk", "-rx", "core show channels concise"], 10)
    """

    def __init__(
        self,
        host: str,
        username: str,
        password: Optional[str] = None,
        port: int = 22,
        host_key_fingerprint: Optional[str] = None,
    ) -> None:
        """Initialize the SSH runner.

        Args:
            host: Remote hostname or IP address.
            username: SSH username.
            password: SSH password; key and agent authentication when None.
            port: SSH port.
            host_key_fingerprint: Expected host key fingerprint (hex with colons).
                If provided, connection fails if fingerprint doesn't match.
                If not provided, connection proceeds with a warning.
        """
        self.host = host
        self.username = username
        self.password = password
        self.port = port
        self.host_key_fingerprint = host_key_fingerprint

    def run(self, argv: Sequence[str], timeout: float) -> CommandResult:
        command = shlex.join(argv)
        logger.debug("command_starting", command=argv[0], runner="ssh", host=self.host)

        client = self._connect(timeout)
        try:
            _, stdout, stderr = client.exec_command(command, timeout=timeout)
            channel = stdout.channel
            channel.settimeout(timeout)
            output = stdout.read().decode("utf-8", errors="replace")
            error_output = stderr.read().decode("utf-8", errors="replace")
            returncode = channel.recv_exit_status()
        except TimeoutError as e:
            raise Timeout(message=f"{argv[0]} on {self.host} did not finish within {timeout:g}s") from e
        except paramiko.SSHException as e:
            raise ConnectionFailed(message=f"SSH command failed on {self.host}: {e}") from e
        finally:
            client.close()

        return CommandResult(returncode=returncode, stdout=output, stderr=error_output)

    def _connect(self, timeout: float) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        if self.host_key_fingerprint:
            client.set_missing_host_key_policy(FingerprintVerifyPolicy(self.host_key_fingerprint))
        else:
            client.set_missing_host_key_policy(WarningHostKeyPolicy())

        use_password = self.password is not None
        try:
            client.connect(
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                timeout=timeout,
                look_for_keys=not use_password,
                allow_agent=not use_password,
            )
        except paramiko.AuthenticationException as e:
            client.close()
            raise AuthFailure(
                message=f"SSH authentication failed for {self.username}@{self.host}",
                hint="Check PROBE_SSH_USERNAME and PROBE_SSH_PASSWORD.",
            ) from e
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise ConnectionFailed(message=f"SSH connection to {self.host}:{self.port} failed: {e}") from e

        logger.debug("ssh_connected", host=self.host, port=self.port)
        return client


def runner_from_settings(settings: "ProbeSettings") -> CommandRunner:
    """SSH runner when an SSH user is configured, local runner otherwise."""
    if settings.ssh_username:
        return SshRunner(
            host=settings.host,
            username=settings.ssh_username,
            password=settings.ssh_password,
            port=settings.ssh_port,
            host_key_fingerprint=settings.ssh_host_key_fingerprint,
        )
    return LocalRunner()


class CommandSource:
    """Metric source backed by a command runner.

    ``fetch`` runs the query as a command line and returns its trimmed
    standard output as the raw value.
    """

    def __init__(self, runner: CommandRunner, timeout: float = 10.0) -> None:
        self.runner = runner
        self.timeout = timeout

    def run(self, argv: Sequence[str]) -> CommandResult:
        """Run ``argv`` and return the raw result, whatever its exit code."""
        return self.runner.run(argv, self.timeout)

    def fetch(self, name: str, query: str) -> MetricValue:
        argv = shlex.split(query)
        if not argv:
            raise MalformedResponse(message=f"Empty command for metric {name}")

        result = self.run(argv)
        if not result.ok:
            detail = (result.stderr or result.stdout).strip().splitlines()
            raise SourceError(
                message=f"{argv[0]} exited with status {result.returncode}"
                + (f": {detail[-1]}" if detail else ""),
            )

        output = result.stdout.strip()
        if not output:
            raise MalformedResponse(message=f"{argv[0]} returned no output for {name}")
        return MetricValue(name=name, raw_value=output)
