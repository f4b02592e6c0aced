"""
Entry point for the device-probes CLI.

Usage:
    device-probes <probe> -H HOST [options]   Run one check and exit
    device-probes <probe> --help              Show the probe's options
    device-probes --version                   Show version and exit

Exit Codes (standard plugin convention):
    0 - OK
    1 - WARNING
    2 - CRITICAL
    3 - UNKNOWN (configuration, credential or retrieval failure)
"""

from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, List, Optional, Type

import structlog

from device_probes import __version__
from device_probes.config import ConfigurationError, load_config
from device_probes.exceptions import ProbeError
from device_probes.logging import configure_logging
from device_probes.models import Status, Verdict
from device_probes.output import STANDARD_EXIT_CODES, exit_code, render_status_line
from device_probes.probes import Probe, ProbeRegistry

log = structlog.get_logger(__name__)

# Namespace entries that are not settings
_CLI_ONLY = {"config", "probe"}

EPILOG = """
Environment Variables:
  CONFIG_PATH                 Path to YAML configuration file
  PROBE_<OPTION>              Any option, e.g. PROBE_HOST, PROBE_COMMUNITY
  PROBE_<OPTION>_FILE         Read a secret from a file (Docker secrets)
  PROBE_LOG_LEVEL             Logging level on stderr: DEBUG, INFO, WARNING, ERROR
  PROBE_LOG_FORMAT            Log format on stderr: json or text

Thresholds:
  Range expressions         10, 5:20, ~:40, 30:, @10:20 (alert outside, @ inside)
  Plain limits              80 or 80% (alert at or above)

Examples:
  device-probes pdu -H pdu01 -C public -w 12 -c 14 -f
  device-probes firewall -H fw01 -U monitor -A authpass -X privpass -m temperature -w 60 -c 70
  device-probes droplets -H api.digitalocean.com -w 1 -c 10% --tag production
"""


def _add_common_options(parser: argparse.ArgumentParser, probe_cls: Type[Probe]) -> None:
    target = parser.add_argument_group("target")
    target.add_argument("-H", "--host", help="Target hostname or IP address")
    target.add_argument("-p", "--port", type=int, help="Target port")
    target.add_argument("-t", "--timeout", type=float, help="Per-request timeout in seconds")
    target.add_argument("--retries", type=int, help="Retries per request")
    if probe_cls.modes:
        target.add_argument(
            "-m",
            "--mode",
            choices=probe_cls.modes,
            help=f"Check mode (default: {probe_cls.modes[0]})",
        )

    thresholds = parser.add_argument_group("thresholds")
    thresholds.add_argument("-w", "--warning", help="Warning threshold")
    thresholds.add_argument("-c", "--critical", help="Critical threshold")
    thresholds.add_argument(
        "--capacity", type=float, help="Total that percentage limits refer to"
    )
    thresholds.add_argument(
        "-f",
        "--perfdata",
        action="store_const",
        const=True,
        help="Append performance data",
    )
    thresholds.add_argument(
        "--legacy-exit-codes",
        action="store_const",
        const=True,
        help="Exit 2 on WARNING and 1 on CRITICAL (legacy load check behavior)",
    )


def _add_snmp_options(parser: argparse.ArgumentParser) -> None:
    snmp = parser.add_argument_group("SNMP")
    snmp.add_argument("-v", "--snmp-version", choices=("1", "2c", "3"), help="SNMP version hint")
    snmp.add_argument("-C", "--community", help="SNMP v1/v2c community")
    snmp.add_argument("-U", "--security-name", help="SNMP v3 user name")
    snmp.add_argument("-A", "--auth-password", help="SNMP v3 authentication password")
    snmp.add_argument("-X", "--priv-password", help="SNMP v3 privacy password")
    snmp.add_argument(
        "-P", "--protocols", help="SNMP v3 '<auth>,<priv>' protocols (default: sha,aes)"
    )
    snmp.add_argument(
        "-T", "--transport", choices=("udp", "tcp", "udp6", "tcp6"), help="SNMP transport"
    )
    snmp.add_argument(
        "--snmp-backend",
        choices=("auto", "pysnmp", "netsnmp"),
        help="SNMP implementation (default: auto)",
    )


def _add_http_options(parser: argparse.ArgumentParser) -> None:
    http = parser.add_argument_group("HTTP")
    http.add_argument("-u", "--username", help="API or test account user name")
    http.add_argument("--password", help="API or test account password")
    http.add_argument("--api-token", help="Bearer token")
    http.add_argument(
        "--no-verify-ssl",
        dest="verify_ssl",
        action="store_const",
        const=False,
        help="Skip SSL certificate verification",
    )
    http.add_argument("--tag", help="Only consider resources carrying this tag")
    http.add_argument("--cache-dir", help="Directory for cached session keys")
    http.add_argument("--ticket-ttl", type=int, help="Session key freshness in seconds")


def _add_command_options(parser: argparse.ArgumentParser) -> None:
    ssh = parser.add_argument_group("remote execution")
    ssh.add_argument("--ssh-username", help="Run the tool over SSH as this user")
    ssh.add_argument("--ssh-password", help="SSH password (keys and agent if omitted)")
    ssh.add_argument("--ssh-port", type=int, help="SSH port")
    ssh.add_argument("--ssh-host-key-fingerprint", help="Expected SSH host key fingerprint")
    ssh.add_argument("--secret", help="RADIUS shared secret")
    ssh.add_argument("--nas-port", type=int, help="NAS port number for RADIUS requests")


def build_parser() -> argparse.ArgumentParser:
    """Argument parser with one sub-command per registered probe."""
    parser = argparse.ArgumentParser(
        prog="device-probes",
        description="Monitoring plugins for network devices and services",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("--config", help="Path to YAML configuration file")

    subparsers = parser.add_subparsers(dest="probe", metavar="<probe>", required=True)
    for probe_cls in ProbeRegistry.all():
        sub = subparsers.add_parser(
            probe_cls.name,
            help=probe_cls.description,
            description=probe_cls.description,
        )
        _add_common_options(sub, probe_cls)
        _add_snmp_options(sub)
        _add_http_options(sub)
        _add_command_options(sub)
        sub.add_argument("--log-level", help="Logging level on stderr")
        sub.add_argument("--log-format", choices=("json", "text"), help="Log format on stderr")

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    return build_parser().parse_args(argv)


def settings_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Options given on the command line, ready for load_config."""
    return {
        key: value
        for key, value in vars(args).items()
        if key not in _CLI_ONLY and value is not None
    }


def run_probe(probe_cls: Type[Probe], args: argparse.Namespace) -> int:
    """Load settings, run the probe and print its status line.

    Returns:
        Exit code from the probe's exit-code table.
    """
    # Defaults until the configured level and format are known
    configure_logging()
    try:
        settings = load_config(args.config, settings_overrides(args))
    except ConfigurationError as e:
        for message in e.messages:
            log.error("configuration_invalid", error=message)
        print(render_status_line(Verdict.unknown(e.messages[0])))
        return exit_code(Status.UNKNOWN)

    configure_logging(log_format=settings.log_format, log_level=settings.log_level)

    table = STANDARD_EXIT_CODES
    try:
        probe = probe_cls(settings)
        table = probe.exit_code_table
        verdict = probe.execute()
    except ProbeError as e:
        log.error(
            "probe_failed",
            probe=probe_cls.name,
            error_type=type(e).__name__,
            error=e.message,
            hint=e.hint,
        )
        verdict = Verdict.unknown(e.message)
    except Exception as e:
        # Still exactly one status line; the traceback goes to stderr
        log.exception("probe_crashed", probe=probe_cls.name)
        verdict = Verdict.unknown(f"unexpected error: {e}")

    print(render_status_line(verdict, include_perfdata=settings.perfdata))
    return exit_code(verdict.status, table)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for device-probes.

    Returns:
        Plugin exit code (0=OK, 1=WARNING, 2=CRITICAL, 3=UNKNOWN unless the
        probe uses the legacy table).
    """
    args = parse_args(argv)
    return run_probe(ProbeRegistry.get(args.probe), args)


if __name__ == "__main__":
    sys.exit(main())
