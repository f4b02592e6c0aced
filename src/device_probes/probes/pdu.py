"""APC rack PDU load probe (PowerNet MIB).

The PDU reports load per phase in tenths of amps. Thresholds are plain
limits in amps, or percentages of ``capacity`` (the rated current).
"""

import structlog

from device_probes.aggregation import ResultAggregator, SingleMetricPolicy, WorstOfPolicy
from device_probes.exceptions import NotFound
from device_probes.models import MetricValue, Verdict
from device_probes.output import STANDARD_EXIT_CODES, SWAPPED_EXIT_CODES, ExitCodeTable
from device_probes.probes.base import SnmpProbe
from device_probes.probes.registry import ProbeRegistry

logger = structlog.get_logger(__name__)

# rPDULoadStatusLoad, indexed by phase/bank
LOAD_STATUS_OID = "1.3.6.1.4.1.318.1.1.12.2.3.1.1.2"
PHASE_ONE_OID = f"{LOAD_STATUS_OID}.1"

TENTHS = 0.1


@ProbeRegistry.register
class PduProbe(SnmpProbe):
    """Load of an APC switched/metered rack PDU."""

    name = "pdu"
    description = "APC rack PDU load in amps (modes: load, phases)"
    modes = ("load", "phases")

    @property
    def exit_code_table(self) -> ExitCodeTable:
        if self.settings.legacy_exit_codes:
            logger.warning(
                "legacy_exit_codes_enabled",
                probe=self.name,
                detail="WARNING exits 2 and CRITICAL exits 1",
            )
            return SWAPPED_EXIT_CODES
        return STANDARD_EXIT_CODES

    def run(self) -> Verdict:
        if self.mode == "phases":
            return self._phases()
        return self._load()

    def _load(self) -> Verdict:
        metric = self.source.fetch("Load", PHASE_ONE_OID).scaled(TENTHS, uom="A")
        policy = SingleMetricPolicy(
            warning=self.warning_limit(),
            critical=self.critical_limit(),
            total=self.settings.capacity,
        )
        return ResultAggregator(policy, label="load").aggregate([metric])

    def _phases(self) -> Verdict:
        rows = self.walk_column(LOAD_STATUS_OID)
        if not rows:
            raise NotFound(
                message=f"No phase load readings on {self.settings.host}",
                hint="Check that the target is an APC rack PDU.",
            )

        metrics = [
            MetricValue(name=f"phase{index}", raw_value=value).scaled(TENTHS, uom="A")
            for index, value in rows
        ]
        policy = WorstOfPolicy(
            warning=self.warning_limit(),
            critical=self.critical_limit(),
            total=self.settings.capacity,
        )
        return ResultAggregator(policy, label="phases").aggregate(metrics)
