"""RADIUS authentication probe wrapping FreeRADIUS ``radtest``.

Sends one Access-Request for a test account. An Access-Reject is CRITICAL;
an Access-Accept is judged by its response time against plain limits in
seconds.
"""

import time
from typing import List, Optional

import structlog

from device_probes.aggregation import ResultAggregator, SingleMetricPolicy
from device_probes.config import ProbeSettings
from device_probes.exceptions import MalformedResponse, ProbeError, Timeout
from device_probes.models import MetricValue, PerfData, Status, Verdict
from device_probes.probes.base import Probe
from device_probes.probes.registry import ProbeRegistry
from device_probes.sources import CommandSource, runner_from_settings

logger = structlog.get_logger(__name__)

DEFAULT_RADIUS_PORT = 1812


@ProbeRegistry.register
class RadiusProbe(Probe):
    """Authenticate a test account against a RADIUS server."""

    name = "radius"
    description = "RADIUS authentication with a test account (radtest)"

    def __init__(self, settings: ProbeSettings, source: Optional[CommandSource] = None) -> None:
        super().__init__(settings)
        self.source = source or CommandSource(
            runner_from_settings(settings), timeout=settings.timeout
        )

    def command(self) -> List[str]:
        port = self.settings.port or DEFAULT_RADIUS_PORT
        return [
            "radtest",
            self.settings.username or "",
            self.settings.password or "",
            f"{self.settings.host}:{port}",
            str(self.settings.nas_port),
            self.settings.secret or "",
        ]

    def run(self) -> Verdict:
        if not (self.settings.username and self.settings.password and self.settings.secret):
            raise ProbeError(
                message="The RADIUS probe needs a test user, its password and the shared secret",
                hint="Pass --username, --password and --secret.",
            )

        started = time.monotonic()
        result = self.source.run(self.command())
        elapsed = time.monotonic() - started
        output = f"{result.stdout}\n{result.stderr}"

        if "Access-Reject" in output:
            logger.info("radius_access_rejected", host=self.settings.host)
            return Verdict(
                status=Status.CRITICAL,
                message=f"Access-Reject for {self.settings.username}",
                perfdata=(PerfData(name="time", value=round(elapsed, 3), uom="s"),),
            )
        if "Access-Accept" not in output:
            if "no reply" in output.lower() or "no response" in output.lower():
                raise Timeout(message=f"No reply from RADIUS server {self.settings.host}")
            last_line = output.strip().splitlines()[-1] if output.strip() else "no output"
            raise MalformedResponse(message=f"Unexpected radtest output: {last_line}")

        metric = MetricValue(name="time", raw_value=f"{elapsed:.3f}", uom="s")
        policy = SingleMetricPolicy(
            warning=self.warning_limit(),
            critical=self.critical_limit(),
        )
        verdict = ResultAggregator(policy, label="response time").aggregate([metric])
        return verdict.with_message(f"Access-Accept, {verdict.message}")
