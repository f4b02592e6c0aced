"""
Device Probes - Nagios/Icinga style health checks for network devices.

This package provides monitoring probes for PDUs, firewalls, storage arrays,
RADIUS servers, PBX channel usage, cloud droplet fleets and wireless
controllers. Each probe emits one status line with optional performance data
and exits with the matching plugin status code.

Features:
- Nagios range-threshold parsing and evaluation
- SNMP v1/v2c/v3 security context negotiation
- Configuration via CLI arguments, environment variables and YAML
- Structured logging to stderr (JSON or console)
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
