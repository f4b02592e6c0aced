"""Metric sources: SNMP, HTTP and wrapped CLI tools."""

from device_probes.sources.base import MetricSource, WalkableSource, collect
from device_probes.sources.cache import CachedTicket, TicketCache, cache_key
from device_probes.sources.command import (
    CommandResult,
    CommandRunner,
    CommandSource,
    LocalRunner,
    SshRunner,
    runner_from_settings,
)
from device_probes.sources.http import HttpSource
from device_probes.sources.netsnmp import NetSnmpSource
from device_probes.sources.snmp import SnmpSource, snmp_source_for

__all__ = [
    "CachedTicket",
    "CommandResult",
    "CommandRunner",
    "CommandSource",
    "HttpSource",
    "LocalRunner",
    "MetricSource",
    "NetSnmpSource",
    "SnmpSource",
    "SshRunner",
    "TicketCache",
    "WalkableSource",
    "cache_key",
    "collect",
    "runner_from_settings",
    "snmp_source_for",
]
