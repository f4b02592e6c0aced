"""SNMP through the net-snmp command line tools.

Used for TCP transports and wherever pysnmp is not wanted. The security
context is turned into ``snmpget``/``snmpwalk`` options; output is requested
with numeric OIDs and bare values (``-On -OQ``) so each line reads
``.1.3.6.1.2.1.1.3.0 = 12345``.
"""

from typing import List, Tuple

import structlog

from device_probes.exceptions import (
    AuthFailure,
    BuildError,
    ConnectionFailed,
    MalformedResponse,
    NotFound,
    SourceError,
    Timeout,
)
from device_probes.models import MetricValue, SecurityLevel
from device_probes.snmp import CommunityAuth, SecurityContext
from device_probes.sources.command import CommandRunner

logger = structlog.get_logger(__name__)

_OUTPUT_OPTIONS = ["-On", "-OQ", "-Oe", "-Ot"]

# net-snmp spells the protocols in upper case
_AUTH_FLAGS = {
    "md5": "MD5",
    "sha": "SHA",
    "sha224": "SHA-224",
    "sha256": "SHA-256",
    "sha384": "SHA-384",
    "sha512": "SHA-512",
}
_PRIV_FLAGS = {
    "des": "DES",
    "3des": "3DES",
    "aes": "AES",
    "aes192": "AES-192",
    "aes256": "AES-256",
}

_MISSING_VALUES = (
    "No Such Object",
    "No Such Instance",
    "No more variables left",
)


def security_options(context: SecurityContext) -> List[str]:
    """net-snmp command line options for the context's credentials."""
    if isinstance(context.auth, CommunityAuth):
        return [f"-v{context.version.value}", "-c", context.auth.community]

    usm = context.auth
    options = ["-v3", "-l", usm.security_level.value, "-u", usm.security_name]
    if usm.security_level == SecurityLevel.NO_AUTH_NO_PRIV:
        return options

    if usm.auth_protocol is None or usm.auth_password is None:
        raise BuildError(f"SNMP v3 level {usm.security_level.value} needs an auth protocol and password")
    options += ["-a", _AUTH_FLAGS[usm.auth_protocol.value], "-A", usm.auth_password]
    if usm.security_level == SecurityLevel.AUTH_PRIV:
        if usm.priv_protocol is None or usm.priv_password is None:
            raise BuildError("SNMP v3 level authPriv needs a privacy protocol and password")
        options += ["-x", _PRIV_FLAGS[usm.priv_protocol.value], "-X", usm.priv_password]
    return options


def build_command(tool: str, context: SecurityContext, oid: str) -> List[str]:
    """Complete argv for ``tool`` (snmpget or snmpwalk) against ``oid``."""
    command = [tool]
    command += security_options(context)
    # No MIB loading; all OIDs are numeric
    command += ["-m", "", "-M", ""]
    command += ["-t", f"{context.timeout:0.2f}", "-r", str(context.retries)]
    command += _OUTPUT_OPTIONS
    if tool == "snmpwalk":
        command.append("-Cc")
    command += [context.endpoint, oid]
    return command


def strip_value(value: str) -> str:
    """Remove surrounding quotes from a net-snmp value."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def parse_output(output: str) -> List[Tuple[str, str]]:
    """Split ``oid = value`` lines into pairs.

    Lines without a separator continue the previous value (multi-line
    strings).
    """
    rows: List[Tuple[str, str]] = []
    for line in output.splitlines():
        if " = " in line:
            oid, value = line.split(" = ", 1)
            rows.append((oid.strip(), value.strip()))
        elif line.strip() and rows:
            oid, value = rows[-1]
            rows[-1] = (oid, f"{value}\n{line.strip()}")
    return [(oid, strip_value(value)) for oid, value in rows]


def _raise_for_stderr(stderr: str, context: SecurityContext) -> None:
    text = stderr.strip()
    lowered = text.lower()
    if "timeout" in lowered:
        raise Timeout(
            message=f"No SNMP response from {context.endpoint}",
            hint="Check host, port, transport and that the agent allows this client.",
        )
    if any(
        marker in lowered
        for marker in ("authentication failure", "unknown user name", "decryption error",
                       "unsupported security level", "wrong digest")
    ):
        raise AuthFailure(
            message=f"SNMP authentication failed against {context.endpoint}: {text}",
            hint="Check the community or the v3 user, passwords and protocols.",
        )
    if "nosuchname" in lowered or "no such" in lowered:
        raise NotFound(message=f"OID not found on {context.endpoint}: {text}")
    if "unknown host" in lowered or "connection refused" in lowered:
        raise ConnectionFailed(message=f"Cannot reach {context.endpoint}: {text}")
    raise SourceError(message=f"SNMP request to {context.endpoint} failed: {text}")


class NetSnmpSource:
    """SNMP metric source running snmpget/snmpwalk through a command runner."""

    def __init__(self, context: SecurityContext, runner: CommandRunner) -> None:
        self.context = context
        self.runner = runner

    @property
    def _command_timeout(self) -> float:
        # The tool handles its own retries; allow all of them plus slack
        return self.context.timeout * (self.context.retries + 1) + 5

    def _run(self, tool: str, oid: str) -> List[Tuple[str, str]]:
        argv = build_command(tool, self.context, oid)
        result = self.runner.run(argv, self._command_timeout)
        if not result.ok:
            _raise_for_stderr(result.stderr or result.stdout, self.context)
        return parse_output(result.stdout)

    def fetch(self, name: str, query: str) -> MetricValue:
        rows = self._run("snmpget", query)
        if not rows:
            raise MalformedResponse(message=f"Empty snmpget output for {query}")

        _, value = rows[0]
        if any(value.startswith(marker) for marker in _MISSING_VALUES):
            raise NotFound(message=f"OID {query} not found on {self.context.host}")

        logger.debug("snmp_value_fetched", metric=name, oid=query, backend="netsnmp")
        return MetricValue(name=name, raw_value=value)

    def walk(self, query: str) -> List[Tuple[str, str]]:
        """Walk the subtree below ``query``.

        Returns:
            ``(oid, value)`` pairs in agent order, OIDs without leading dot.
        """
        rows = [
            (oid.lstrip("."), value)
            for oid, value in self._run("snmpwalk", query)
            if not any(value.startswith(marker) for marker in _MISSING_VALUES)
        ]
        logger.debug("snmp_walk_complete", oid=query, rows=len(rows), backend="netsnmp")
        return rows
