"""Base class for device probes.

A probe is a thin adapter: it knows which OIDs, endpoints or commands to
query for a device family and which aggregation policy applies to each
mode. Connecting, thresholds and rendering are shared.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, List, Optional, Tuple

import structlog

from device_probes.config import ProbeSettings
from device_probes.exceptions import ProbeError
from device_probes.models import Verdict
from device_probes.output import STANDARD_EXIT_CODES, ExitCodeTable
from device_probes.snmp import SnmpOptions, build_security_context
from device_probes.sources import WalkableSource, snmp_source_for
from device_probes.thresholds import Limit, ThresholdSpec, parse_limit, parse_range

logger = structlog.get_logger(__name__)


class Probe(ABC):
    """A monitoring check for one device family.

    Subclasses set ``name``, ``description`` and ``modes`` and implement
    ``run``. Metric sources are built lazily from the settings unless a
    test injects one.

    Attributes:
        settings: Frozen probe configuration.
        mode: Selected mode, one of ``modes``.
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    modes: ClassVar[Tuple[str, ...]] = ()
    exit_codes: ClassVar[ExitCodeTable] = STANDARD_EXIT_CODES

    def __init__(self, settings: ProbeSettings) -> None:
        self.settings = settings
        self.mode = self._select_mode(settings.mode)

    def _select_mode(self, requested: Optional[str]) -> Optional[str]:
        if not self.modes:
            return None
        if requested is None:
            return self.modes[0]
        if requested not in self.modes:
            raise ProbeError(
                message=f"Unknown mode '{requested}' for probe {self.name}",
                hint=f"Choose one of: {', '.join(self.modes)}.",
            )
        return requested

    @property
    def exit_code_table(self) -> ExitCodeTable:
        """Exit codes this probe reports with."""
        return self.exit_codes

    def warning_limit(self) -> Optional[Limit]:
        return parse_limit(self.settings.warning)

    def critical_limit(self) -> Optional[Limit]:
        return parse_limit(self.settings.critical)

    def warning_range(self) -> Optional[ThresholdSpec]:
        return parse_range(self.settings.warning)

    def critical_range(self) -> Optional[ThresholdSpec]:
        return parse_range(self.settings.critical)

    def execute(self) -> Verdict:
        """Run the probe and log its outcome."""
        logger.info("probe_starting", probe=self.name, mode=self.mode, host=self.settings.host)
        verdict = self.run()
        logger.info(
            "probe_complete",
            probe=self.name,
            mode=self.mode,
            status=verdict.status.value,
        )
        return verdict

    @abstractmethod
    def run(self) -> Verdict:
        """Collect metrics and evaluate them.

        Raises:
            ProbeError: Any failure that leaves the probe without a verdict.
        """


class SnmpProbe(Probe):
    """Probe reading its metrics over SNMP.

    The security context is built on first use, so a credential problem
    surfaces from ``run`` like any other probe failure.
    """

    def __init__(self, settings: ProbeSettings, source: Optional[WalkableSource] = None) -> None:
        super().__init__(settings)
        self._source = source

    @property
    def source(self) -> WalkableSource:
        if self._source is None:
            context = build_security_context(SnmpOptions.from_settings(self.settings))
            self._source = snmp_source_for(context, self.settings.snmp_backend)
        return self._source

    def walk_column(self, oid: str) -> List[Tuple[str, str]]:
        """Walk one table column and key the values by row index.

        Returns:
            ``(index, value)`` pairs, the index being the OID suffix below
            ``oid``.
        """
        prefix = oid.strip(".") + "."
        rows: List[Tuple[str, str]] = []
        for row_oid, value in self.source.walk(oid):
            row_oid = row_oid.lstrip(".")
            if row_oid.startswith(prefix):
                rows.append((row_oid[len(prefix):], value))
        return rows
