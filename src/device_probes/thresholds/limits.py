"""Plain warning/critical limits.

Load and counter style checks take bare numbers instead of full range
expressions: a value at or above the limit alerts. A trailing ``%`` makes
the limit relative to a separately supplied total (capacity, fleet size).
"""

from dataclasses import dataclass
from typing import Optional

from device_probes.exceptions import ParseError


@dataclass(frozen=True)
class Limit:
    """A ``N`` or ``N%`` threshold compared with ``>=``.

    Attributes:
        value: Threshold number.
        percent: Whether ``value`` is a percentage of a total.
    """

    value: float
    percent: bool = False

    @classmethod
    def parse(cls, spec: str) -> "Limit":
        """Parse ``80`` or ``80%``.

        Raises:
            ParseError: The text is not a non-negative number.
        """
        text = spec.strip()
        percent = text.endswith("%")
        if percent:
            text = text[:-1].strip()
        try:
            value = float(text)
        except ValueError:
            raise ParseError(spec, reason="invalid limit")
        if value < 0 or value != value:
            raise ParseError(spec, reason="invalid limit")
        return cls(value=value, percent=percent)

    def resolve(self, total: Optional[float] = None) -> Optional[float]:
        """Absolute threshold, or None if a percentage has no usable total."""
        if not self.percent:
            return self.value
        if not total or total <= 0:
            return None
        return total * self.value / 100.0

    def breached(self, value: float, total: Optional[float] = None) -> Optional[bool]:
        """Whether ``value`` reaches the limit.

        Returns:
            True/False, or None when a percentage limit lacks a positive total.
        """
        if not self.percent:
            return value >= self.value
        if not total or total <= 0:
            return None
        return value / total * 100.0 >= self.value

    def render(self, total: Optional[float] = None) -> str:
        """Limit in perfdata form, resolved against ``total`` when possible."""
        resolved = self.resolve(total)
        if resolved is None:
            return ""
        return f"{resolved:g}"

    def __str__(self) -> str:
        suffix = "%" if self.percent else ""
        return f"{self.value:g}{suffix}"
