"""Data models for Device Probes."""

from .enums import (
    AuthProtocol,
    PrivProtocol,
    SecurityLevel,
    SnmpVersion,
    Status,
    Transport,
)
from .metric import MetricValue
from .verdict import PerfData, Verdict

__all__ = [
    "AuthProtocol",
    "MetricValue",
    "PerfData",
    "PrivProtocol",
    "SecurityLevel",
    "SnmpVersion",
    "Status",
    "Transport",
    "Verdict",
]
