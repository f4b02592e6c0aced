"""Check verdicts and performance data.

A Verdict is the single outcome of one probe run: a four-state status, a
human readable message and the ordered performance data to append to the
status line.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from .enums import Status


def _format_number(value: Optional[float]) -> str:
    if value is None:
        return ""
    return f"{value:g}"


@dataclass(frozen=True)
class PerfData:
    """One ``label=value[uom];warn;crit[;min;max]`` performance data item."""

    name: str
    value: float
    warn: str = ""
    crit: str = ""
    uom: str = ""
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    @property
    def label(self) -> str:
        """Label quoted the way monitoring cores expect."""
        if any(c in self.name for c in " ='"):
            return "'" + self.name.replace("'", "''") + "'"
        return self.name

    def __str__(self) -> str:
        fields = [
            f"{self.label}={_format_number(self.value)}{self.uom}",
            self.warn,
            self.crit,
        ]
        if self.minimum is not None or self.maximum is not None:
            fields.append(_format_number(self.minimum))
            fields.append(_format_number(self.maximum))
        return ";".join(fields).rstrip(";")


@dataclass(frozen=True)
class Verdict:
    """Outcome of a probe run.

    Attributes:
        status: Four-state result.
        message: Human readable summary (without the status prefix).
        perfdata: Ordered performance data items.
    """

    status: Status
    message: str
    perfdata: Tuple[PerfData, ...] = field(default_factory=tuple)

    @property
    def is_ok(self) -> bool:
        return self.status == Status.OK

    def with_message(self, message: str) -> "Verdict":
        """Copy of this verdict with a different message."""
        return replace(self, message=message)

    @classmethod
    def unknown(cls, message: str) -> "Verdict":
        """Factory for an UNKNOWN verdict without performance data."""
        return cls(status=Status.UNKNOWN, message=message)
