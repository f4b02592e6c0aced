"""Status line rendering and exit-code tables.

A probe prints exactly one line on stdout::

    CRITICAL: 3 sensors: 1 critical (psu) | cpu=15;10;15 psu=72C;60;70

and exits with the code its exit-code table assigns to the status.
"""

from types import MappingProxyType
from typing import Mapping

from device_probes.models import Status, Verdict

ExitCodeTable = Mapping[Status, int]

STANDARD_EXIT_CODES: ExitCodeTable = MappingProxyType(
    {
        Status.OK: 0,
        Status.WARNING: 1,
        Status.CRITICAL: 2,
        Status.UNKNOWN: 3,
    }
)

# WARNING and CRITICAL trade places; emitted by the legacy PDU load check
SWAPPED_EXIT_CODES: ExitCodeTable = MappingProxyType(
    {
        Status.OK: 0,
        Status.WARNING: 2,
        Status.CRITICAL: 1,
        Status.UNKNOWN: 3,
    }
)


def render_status_line(verdict: Verdict, include_perfdata: bool = False) -> str:
    """Format a verdict as a single plugin output line.

    Newlines in the message are flattened so the line stays single.
    """
    message = " ".join(verdict.message.split())
    line = f"{verdict.status.value}: {message}" if message else verdict.status.value
    if include_perfdata and verdict.perfdata:
        line += " | " + " ".join(str(item) for item in verdict.perfdata)
    return line


def exit_code(status: Status, table: ExitCodeTable = STANDARD_EXIT_CODES) -> int:
    """Process exit code for ``status`` under ``table``."""
    return table[status]
