"""FortiGate firewall probe (FORTINET-FORTIGATE-MIB).

Modes ``cpu``, ``memory`` and ``sessions`` read one system gauge each.
``temperature`` walks the hardware sensor table, evaluates every sensor on
its own and decodes the sensor alarm field through a fixed bit table.
"""

from dataclasses import replace
from typing import Dict, List, Tuple

import structlog

from device_probes.aggregation import (
    DEFAULT_PRECEDENCE,
    ResultAggregator,
    SingleMetricPolicy,
    WorstOfPolicy,
    worst_of,
)
from device_probes.exceptions import NotFound
from device_probes.models import MetricValue, Status, Verdict
from device_probes.probes.base import SnmpProbe
from device_probes.probes.registry import ProbeRegistry
from device_probes.sources import collect

logger = structlog.get_logger(__name__)

SYSTEM_OIDS: Dict[str, Tuple[str, str, str]] = {
    # mode: (metric name, OID, unit)
    "cpu": ("cpu", "1.3.6.1.4.1.12356.101.4.1.3.0", "%"),
    "memory": ("memory", "1.3.6.1.4.1.12356.101.4.1.4.0", "%"),
    "sessions": ("sessions", "1.3.6.1.4.1.12356.101.4.1.8.0", ""),
}

# fgHwSensorEntry columns
SENSOR_NAME_OID = "1.3.6.1.4.1.12356.101.4.3.2.1.2"
SENSOR_VALUE_OID = "1.3.6.1.4.1.12356.101.4.3.2.1.3"
SENSOR_ALARM_OID = "1.3.6.1.4.1.12356.101.4.3.2.1.4"

# Extended sensor status bits, decoded verbatim
EXTENDED_STATUS_BITS: Tuple[Tuple[int, str], ...] = (
    (0x01, "threshold alarm"),
    (0x02, "fan failure"),
    (0x04, "fan speed low"),
    (0x08, "sensor failure"),
    (0x10, "power supply failure"),
    (0x20, "sensor not responding"),
)


def decode_extended_status(value: int) -> List[str]:
    """Reasons for every bit set in ``value``.

    Bits outside the table are reported by value.
    """
    reasons = [reason for bit, reason in EXTENDED_STATUS_BITS if value & bit]
    known = 0
    for bit, _ in EXTENDED_STATUS_BITS:
        known |= bit
    unknown = value & ~known
    if unknown:
        reasons.append(f"unknown status bits 0x{unknown:x}")
    return reasons


def _sensor_uom(name: str) -> str:
    return "C" if "temp" in name.lower() else ""


@ProbeRegistry.register
class FirewallProbe(SnmpProbe):
    """System and hardware sensor health of a FortiGate firewall."""

    name = "firewall"
    description = "FortiGate firewall health (modes: cpu, memory, sessions, temperature)"
    modes = ("cpu", "memory", "sessions", "temperature")

    def run(self) -> Verdict:
        if self.mode == "temperature":
            return self._temperature()
        return self._system_gauge()

    def _system_gauge(self) -> Verdict:
        metric_name, oid, uom = SYSTEM_OIDS[self.mode]
        metric = self.source.fetch(metric_name, oid)
        metric = MetricValue(name=metric.name, raw_value=metric.raw_value, uom=uom)

        policy = SingleMetricPolicy(
            warning=self.warning_limit(),
            critical=self.critical_limit(),
            total=self.settings.capacity,
        )
        return ResultAggregator(policy, label=metric_name).aggregate([metric])

    def _temperature(self) -> Verdict:
        names = dict(self.walk_column(SENSOR_NAME_OID))
        if not names:
            raise NotFound(
                message=f"No hardware sensors on {self.settings.host}",
                hint="Virtual and small desktop models expose no sensor table.",
            )
        values = dict(self.walk_column(SENSOR_VALUE_OID))
        alarms = dict(self.walk_column(SENSOR_ALARM_OID))

        readings: Dict[str, MetricValue] = {
            index: MetricValue(name=name, raw_value=values[index])
            for index, name in names.items()
            if index in values
        }

        # Rows the walk skipped are fetched one by one
        missing = [(index, name) for index, name in names.items() if index not in readings]
        if missing:
            logger.debug("sensor_values_incomplete", missing=len(missing))
            fetched = collect(
                self.source, [(name, f"{SENSOR_VALUE_OID}.{index}") for index, name in missing]
            )
            readings.update((index, metric) for (index, _), metric in zip(missing, fetched))

        metrics = [replace(readings[index], uom=_sensor_uom(name)) for index, name in names.items()]

        policy = WorstOfPolicy(
            warning=self.warning_range(),
            critical=self.critical_range(),
            precedence=DEFAULT_PRECEDENCE,
        )
        verdict = ResultAggregator(policy, label="sensors").aggregate(metrics)

        alarm_reasons, alarm_status = self._alarm_reasons(names, alarms)
        if not alarm_reasons:
            return verdict

        status = worst_of([verdict.status, alarm_status], DEFAULT_PRECEDENCE)
        detail = "; ".join(f"{name}: {', '.join(reasons)}" for name, reasons in alarm_reasons)
        logger.info("sensor_alarms", count=len(alarm_reasons))
        return Verdict(
            status=status,
            message=f"{verdict.message}; alarms: {detail}",
            perfdata=verdict.perfdata,
        )

    @staticmethod
    def _alarm_reasons(
        names: Dict[str, str], alarms: Dict[str, str]
    ) -> Tuple[List[Tuple[str, List[str]]], Status]:
        """Decoded alarms per sensor and the status they imply.

        A set alarm is CRITICAL; an alarm field that is not a number is
        UNKNOWN.
        """
        found: List[Tuple[str, List[str]]] = []
        statuses: List[Status] = []
        for index, raw in alarms.items():
            name = names.get(index, index)
            try:
                value = int(raw)
            except ValueError:
                found.append((name, [f"unreadable status '{raw}'"]))
                statuses.append(Status.UNKNOWN)
                continue
            if value:
                found.append((name, decode_extended_status(value)))
                statuses.append(Status.CRITICAL)
        return found, worst_of(statuses, DEFAULT_PRECEDENCE)
