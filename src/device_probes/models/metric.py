"""Metric samples retrieved from a metric source."""

import math
import re
from dataclasses import dataclass, replace
from typing import Optional

# Leading number of a unit-suffixed reading such as "72 C" or "12.5%"
_LEADING_NUMBER = re.compile(r"^[-+]?(?:\d+(?:\.\d*)?|\.\d+)")


@dataclass(frozen=True)
class MetricValue:
    """A named sample as returned by a metric source.

    Sources return text, so ``raw_value`` is kept verbatim and the numeric
    reading is derived on demand. A sample whose fetch failed carries
    ``raw_value=None`` and the reason in ``error``; it counts as unknown
    during aggregation.
    """

    name: str
    raw_value: Optional[str] = None
    uom: str = ""
    error: Optional[str] = None

    @property
    def available(self) -> bool:
        """Whether the source returned anything for this metric."""
        return self.raw_value is not None

    @property
    def numeric_value(self) -> Optional[float]:
        """Parse the raw value as a number, or None if it is not one.

        ``nan`` and ``inf`` readings are not numbers a threshold can judge
        and yield None as well.
        """
        if self.raw_value is None:
            return None

        text = self.raw_value.strip().strip('"')
        try:
            value = float(text)
        except ValueError:
            match = _LEADING_NUMBER.match(text)
            if match is None:
                return None
            value = float(match.group(0))
        return value if math.isfinite(value) else None

    def scaled(self, factor: float, uom: Optional[str] = None) -> "MetricValue":
        """Return a copy with the numeric value multiplied by ``factor``.

        Non-numeric samples are returned unchanged apart from the unit.
        """
        value = self.numeric_value
        new_uom = self.uom if uom is None else uom
        if value is None:
            return replace(self, uom=new_uom)
        return replace(self, raw_value=f"{value * factor:g}", uom=new_uom)

    @classmethod
    def unavailable(cls, name: str, reason: str) -> "MetricValue":
        """Factory for a metric that could not be retrieved."""
        return cls(name=name, raw_value=None, error=reason)
