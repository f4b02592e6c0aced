"""Nagios range thresholds.

Parses the compact range-threshold language used by monitoring plugins and
decides whether a value raises an alert::

    spec  := ["@"] range
    range := end | start ":" [end]
    start := "~" | number
    end   := number

A bare ``end`` means "alert above end" (the lower bound is negative
infinity), ``start:`` leaves the upper bound open and ``~`` stands for
negative infinity. A leading ``@`` inverts the match so values *inside*
the closed range alert. Fractional numbers are truncated toward zero.
"""

import math
import re
from dataclasses import dataclass
from typing import Optional

from device_probes.exceptions import ParseError

NEG_INF = float("-inf")
POS_INF = float("inf")

_NUMBER = r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)"
_RANGE = re.compile(
    rf"^(?:(?P<start>~|{_NUMBER}):(?P<end>{_NUMBER})?|(?P<bare>{_NUMBER}))$"
)


def _truncate(atom: str) -> float:
    return float(math.trunc(float(atom)))


def _format_bound(value: float) -> str:
    return f"{value:g}"


@dataclass(frozen=True)
class ThresholdSpec:
    """A parsed range threshold.

    Attributes:
        lower: Lower bound, ``-inf`` when unbounded.
        upper: Upper bound, ``+inf`` when unbounded.
        inverted: Alert inside the range instead of outside it.
    """

    lower: float = NEG_INF
    upper: float = POS_INF
    inverted: bool = False

    def __post_init__(self) -> None:
        if self.lower > self.upper:
            raise ValueError(
                f"lower bound {self.lower} must not exceed upper bound {self.upper}"
            )

    @classmethod
    def parse(cls, spec: str) -> "ThresholdSpec":
        """Parse a range expression such as ``10``, ``5:20`` or ``@~:0``.

        Raises:
            ParseError: The expression is malformed or start exceeds end.
        """
        text = spec.strip()
        inverted = text.startswith("@")
        if inverted:
            text = text[1:]

        match = _RANGE.match(text)
        if match is None:
            raise ParseError(spec)

        if match.group("bare") is not None:
            lower = NEG_INF
            upper = _truncate(match.group("bare"))
        else:
            start = match.group("start")
            end = match.group("end")
            lower = NEG_INF if start == "~" else _truncate(start)
            upper = POS_INF if end is None else _truncate(end)

        if lower > upper:
            raise ParseError(spec, reason="range start exceeds end")

        return cls(lower=lower, upper=upper, inverted=inverted)

    def evaluate(self, value: float) -> bool:
        """Return True when ``value`` meets the alert condition."""
        if self.inverted:
            return self.lower <= value <= self.upper
        return value > self.upper or value < self.lower

    def breached(self, value: float, total: Optional[float] = None) -> Optional[bool]:
        """Threshold protocol hook; ranges never depend on a total."""
        return self.evaluate(value)

    def render(self, total: Optional[float] = None) -> str:
        """Range in perfdata form."""
        return str(self)

    def __str__(self) -> str:
        prefix = "@" if self.inverted else ""
        if self.upper == POS_INF:
            start = "~" if self.lower == NEG_INF else _format_bound(self.lower)
            return f"{prefix}{start}:"
        if self.lower == NEG_INF:
            return f"{prefix}{_format_bound(self.upper)}"
        return f"{prefix}{_format_bound(self.lower)}:{_format_bound(self.upper)}"


def parse_threshold(spec: str) -> ThresholdSpec:
    """Parse a range-threshold expression into a ThresholdSpec."""
    return ThresholdSpec.parse(spec)


def evaluate(spec: ThresholdSpec, value: float) -> bool:
    """Return True when ``value`` alerts against ``spec``."""
    return spec.evaluate(value)
