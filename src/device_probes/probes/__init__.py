"""Device probes.

Importing this package registers every probe with ProbeRegistry.
"""

from device_probes.probes.base import Probe, SnmpProbe
from device_probes.probes.registry import ProbeRegistry
from device_probes.probes.pdu import PduProbe
from device_probes.probes.firewall import FirewallProbe
from device_probes.probes.storage import StorageProbe
from device_probes.probes.wireless import WirelessProbe
from device_probes.probes.radius import RadiusProbe
from device_probes.probes.pbx import PbxProbe
from device_probes.probes.droplets import DropletsProbe

__all__ = [
    "DropletsProbe",
    "FirewallProbe",
    "PbxProbe",
    "PduProbe",
    "Probe",
    "ProbeRegistry",
    "RadiusProbe",
    "SnmpProbe",
    "StorageProbe",
    "WirelessProbe",
]
