"""Aggregation policies turning metric samples into a single verdict.

Every policy evaluates an ordered list of MetricValue objects against an
optional warning and critical threshold and returns a Verdict. Thresholds
are anything implementing the Threshold protocol (range expressions or
plain limits); a percentage limit is resolved against ``total``.

Unavailable or non-numeric samples never abort evaluation. They land in an
unknown bucket and the precedence order decides whether that bucket wins
over the threshold outcome.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from device_probes.models import MetricValue, PerfData, Status, Verdict
from device_probes.thresholds import Threshold

Precedence = Tuple[Status, ...]

# Worst first; compared by position, never by exit code
DEFAULT_PRECEDENCE: Precedence = (
    Status.CRITICAL,
    Status.WARNING,
    Status.UNKNOWN,
    Status.OK,
)
UNKNOWN_OVER_WARNING: Precedence = (
    Status.CRITICAL,
    Status.UNKNOWN,
    Status.WARNING,
    Status.OK,
)


def worst_of(statuses: Iterable[Status], precedence: Precedence = DEFAULT_PRECEDENCE) -> Status:
    """Pick the highest-precedence status present in ``statuses``.

    Returns OK for an empty input.
    """
    present = set(statuses)
    for status in precedence:
        if status in present:
            return status
    return Status.OK


def classify(
    value: float,
    warning: Optional[Threshold],
    critical: Optional[Threshold],
    total: Optional[float] = None,
) -> Status:
    """Status of a single numeric value, critical checked before warning."""
    for status, threshold in ((Status.CRITICAL, critical), (Status.WARNING, warning)):
        if threshold is None:
            continue
        breached = threshold.breached(value, total)
        if breached is None:
            return Status.UNKNOWN
        if breached:
            return status
    return Status.OK


def _render(threshold: Optional[Threshold], total: Optional[float]) -> str:
    return threshold.render(total) if threshold is not None else ""


def _perf_name(label: str) -> str:
    return label.strip()


def _percent_suffix(value: float, total: Optional[float]) -> str:
    if not total or total <= 0:
        return ""
    return f" of {total:g} ({value / total * 100.0:.1f}%)"


class AggregationPolicy(Protocol):
    """Strategy combining samples into a verdict."""

    def evaluate(self, metrics: Sequence[MetricValue], label: str) -> Verdict:
        ...


@dataclass(frozen=True)
class SingleMetricPolicy:
    """One metric, two thresholds, critical checked first.

    Used by load and CPU style checks. A missing or non-numeric sample
    yields UNKNOWN.
    """

    warning: Optional[Threshold] = None
    critical: Optional[Threshold] = None
    total: Optional[float] = None

    def evaluate(self, metrics: Sequence[MetricValue], label: str) -> Verdict:
        if not metrics:
            return Verdict.unknown(f"no {label} data retrieved")

        metric = metrics[0]
        value = metric.numeric_value
        if value is None:
            reason = metric.error or f"value '{metric.raw_value}' is not numeric"
            return Verdict.unknown(f"{metric.name}: {reason}")

        status = classify(value, self.warning, self.critical, self.total)
        message = f"{metric.name} is {value:g}{metric.uom}" + _percent_suffix(value, self.total)
        perf = PerfData(
            name=_perf_name(metric.name),
            value=value,
            warn=_render(self.warning, self.total),
            crit=_render(self.critical, self.total),
            uom=metric.uom,
            minimum=0 if self.total else None,
            maximum=self.total,
        )
        return Verdict(status=status, message=message, perfdata=(perf,))


@dataclass(frozen=True)
class WorstOfPolicy:
    """Evaluate each metric on its own and report the worst status.

    Used by sensor-array checks. Every numeric metric is listed in the
    performance data regardless of its status.
    """

    warning: Optional[Threshold] = None
    critical: Optional[Threshold] = None
    total: Optional[float] = None
    precedence: Precedence = DEFAULT_PRECEDENCE

    def evaluate(self, metrics: Sequence[MetricValue], label: str) -> Verdict:
        if not metrics:
            return Verdict.unknown(f"no {label} data retrieved")

        buckets: Dict[Status, List[str]] = {status: [] for status in Status}
        perfdata: List[PerfData] = []

        for metric in metrics:
            value = metric.numeric_value
            if value is None:
                buckets[Status.UNKNOWN].append(metric.name)
                continue
            buckets[classify(value, self.warning, self.critical, self.total)].append(metric.name)
            perfdata.append(
                PerfData(
                    name=_perf_name(metric.name),
                    value=value,
                    warn=_render(self.warning, self.total),
                    crit=_render(self.critical, self.total),
                    uom=metric.uom,
                )
            )

        status = worst_of((s for s, names in buckets.items() if names), self.precedence)
        if status == Status.OK:
            message = f"all {len(metrics)} {label} OK"
        else:
            parts = [
                f"{len(buckets[s])} {s.value.lower()} ({', '.join(buckets[s])})"
                for s in self.precedence
                if s != Status.OK and buckets[s]
            ]
            message = f"{len(metrics)} {label}: " + ", ".join(parts)

        return Verdict(status=status, message=message, perfdata=tuple(perfdata))


def _split_numeric(
    metrics: Sequence[MetricValue],
) -> Tuple[List[Tuple[MetricValue, float]], List[str]]:
    numeric: List[Tuple[MetricValue, float]] = []
    unavailable: List[str] = []
    for metric in metrics:
        value = metric.numeric_value
        if value is None:
            unavailable.append(metric.name)
        else:
            numeric.append((metric, value))
    return numeric, unavailable


def _unavailable_suffix(unavailable: List[str]) -> str:
    if not unavailable:
        return ""
    return f", {len(unavailable)} unavailable ({', '.join(unavailable)})"


@dataclass(frozen=True)
class SumPolicy:
    """Sum the numeric metrics and compare the sum.

    Used for counts (offline droplets, busy channels). Limits may be
    percentages of ``total``.
    """

    warning: Optional[Threshold] = None
    critical: Optional[Threshold] = None
    total: Optional[float] = None
    detail_perfdata: bool = True
    precedence: Precedence = DEFAULT_PRECEDENCE

    def evaluate(self, metrics: Sequence[MetricValue], label: str) -> Verdict:
        numeric, unavailable = _split_numeric(metrics)
        if not numeric:
            return Verdict.unknown(f"no {label} data retrieved" + _unavailable_suffix(unavailable))

        summed = sum(value for _, value in numeric)
        statuses = [classify(summed, self.warning, self.critical, self.total)]
        if unavailable:
            statuses.append(Status.UNKNOWN)
        status = worst_of(statuses, self.precedence)

        uom = numeric[0][0].uom
        message = (
            f"{label} {summed:g}{uom}"
            + _percent_suffix(summed, self.total)
            + _unavailable_suffix(unavailable)
        )

        perfdata: List[PerfData] = []
        if self.detail_perfdata:
            perfdata.extend(
                PerfData(name=_perf_name(metric.name), value=value, uom=metric.uom)
                for metric, value in numeric
            )
        perfdata.append(
            PerfData(
                name=_perf_name(label),
                value=summed,
                warn=_render(self.warning, self.total),
                crit=_render(self.critical, self.total),
                uom=uom,
                minimum=0 if self.total else None,
                maximum=self.total,
            )
        )
        return Verdict(status=status, message=message, perfdata=tuple(perfdata))


@dataclass(frozen=True)
class AveragePolicy:
    """Average the numeric metrics and compare the mean.

    Used for sensor temperatures. With no numeric metric the verdict is
    UNKNOWN rather than an average over zero readings.
    """

    warning: Optional[Threshold] = None
    critical: Optional[Threshold] = None
    precedence: Precedence = DEFAULT_PRECEDENCE

    def evaluate(self, metrics: Sequence[MetricValue], label: str) -> Verdict:
        numeric, unavailable = _split_numeric(metrics)
        if not numeric:
            return Verdict.unknown(f"no {label} data retrieved" + _unavailable_suffix(unavailable))

        average = sum(value for _, value in numeric) / len(numeric)
        statuses = [classify(average, self.warning, self.critical)]
        if unavailable:
            statuses.append(Status.UNKNOWN)
        status = worst_of(statuses, self.precedence)

        uom = numeric[0][0].uom
        message = (
            f"{label} average {average:.1f}{uom} over {len(numeric)} readings"
            + _unavailable_suffix(unavailable)
        )

        perfdata = [
            PerfData(name=_perf_name(metric.name), value=value, uom=metric.uom)
            for metric, value in numeric
        ]
        perfdata.append(
            PerfData(
                name=_perf_name(f"{label}_avg"),
                value=round(average, 2),
                warn=_render(self.warning, None),
                crit=_render(self.critical, None),
                uom=uom,
            )
        )
        return Verdict(status=status, message=message, perfdata=tuple(perfdata))
