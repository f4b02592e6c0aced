"""Threshold parsing and evaluation.

Two threshold flavours share one protocol so aggregation policies can use
either: full Nagios range expressions (ThresholdSpec) and plain ``N``/``N%``
limits (Limit).
"""

from typing import Optional, Protocol, runtime_checkable

from device_probes.thresholds.limits import Limit
from device_probes.thresholds.spec import (
    NEG_INF,
    POS_INF,
    ThresholdSpec,
    evaluate,
    parse_threshold,
)


@runtime_checkable
class Threshold(Protocol):
    """Anything that can decide whether a value alerts."""

    def breached(self, value: float, total: Optional[float] = None) -> Optional[bool]:
        """True/False, or None when the decision needs a missing total."""
        ...

    def render(self, total: Optional[float] = None) -> str:
        """Text for the warn/crit perfdata fields."""
        ...


def parse_limit(spec: Optional[str]) -> Optional[Limit]:
    """Parse an optional plain limit."""
    if spec is None or not spec.strip():
        return None
    return Limit.parse(spec)


def parse_range(spec: Optional[str]) -> Optional[ThresholdSpec]:
    """Parse an optional range threshold."""
    if spec is None or not spec.strip():
        return None
    return ThresholdSpec.parse(spec)


__all__ = [
    "Limit",
    "NEG_INF",
    "POS_INF",
    "Threshold",
    "ThresholdSpec",
    "evaluate",
    "parse_limit",
    "parse_range",
    "parse_threshold",
]
