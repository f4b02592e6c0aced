"""SNMP security context negotiation shared by all SNMP probes."""

from device_probes.snmp.context import (
    DEFAULT_PORT,
    DEFAULT_PROTOCOLS,
    LEGACY_PROTOCOLS,
    CommunityAuth,
    SecurityContext,
    SnmpOptions,
    UsmAuth,
    build_security_context,
    derive_security_level,
    split_protocols,
)

__all__ = [
    "DEFAULT_PORT",
    "DEFAULT_PROTOCOLS",
    "LEGACY_PROTOCOLS",
    "CommunityAuth",
    "SecurityContext",
    "SnmpOptions",
    "UsmAuth",
    "build_security_context",
    "derive_security_level",
    "split_protocols",
]
