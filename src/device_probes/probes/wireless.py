"""Cisco wireless LAN controller probe (AIRESPACE-WIRELESS-MIB).

Modes:
    aps      Access points not associated with the controller. Limits are
             counts or percentages of all known access points.
    clients  Associated clients summed over all SSIDs, checked against
             range thresholds (``@~:0`` alerts on an empty network).
"""

from typing import List

from device_probes.aggregation import ResultAggregator, SumPolicy
from device_probes.exceptions import NotFound
from device_probes.models import MetricValue, Verdict
from device_probes.probes.base import SnmpProbe
from device_probes.probes.registry import ProbeRegistry

# bsnAPTable columns
AP_NAME_OID = "1.3.6.1.4.1.14179.2.2.1.1.3"
AP_OPERATION_STATUS_OID = "1.3.6.1.4.1.14179.2.2.1.1.6"
AP_ASSOCIATED = "1"

# bsnDot11EssTable columns
ESS_SSID_OID = "1.3.6.1.4.1.14179.2.1.1.1.2"
ESS_CLIENTS_OID = "1.3.6.1.4.1.14179.2.1.1.1.38"


@ProbeRegistry.register
class WirelessProbe(SnmpProbe):
    """Access point and client counts of a Cisco WLC."""

    name = "wireless"
    description = "Cisco wireless LAN controller (modes: aps, clients)"
    modes = ("aps", "clients")

    def run(self) -> Verdict:
        if self.mode == "clients":
            return self._clients()
        return self._access_points()

    def _access_points(self) -> Verdict:
        names = dict(self.walk_column(AP_NAME_OID))
        states = self.walk_column(AP_OPERATION_STATUS_OID)
        if not states:
            raise NotFound(
                message=f"No access points known to {self.settings.host}",
                hint="Check that the target is a wireless LAN controller.",
            )

        metrics: List[MetricValue] = [
            MetricValue(
                name=names.get(index, f"ap{index}"),
                raw_value="0" if state == AP_ASSOCIATED else "1",
            )
            for index, state in states
        ]
        offline = [m.name for m in metrics if m.raw_value == "1"]

        policy = SumPolicy(
            warning=self.warning_limit(),
            critical=self.critical_limit(),
            total=float(len(metrics)),
            detail_perfdata=False,
        )
        verdict = ResultAggregator(policy, label="offline_aps").aggregate(metrics)
        if offline:
            verdict = verdict.with_message(f"{verdict.message}: {', '.join(offline)}")
        return verdict

    def _clients(self) -> Verdict:
        ssids = dict(self.walk_column(ESS_SSID_OID))
        counts = self.walk_column(ESS_CLIENTS_OID)
        if not counts:
            raise NotFound(message=f"No WLANs configured on {self.settings.host}")

        metrics = [
            MetricValue(name=ssids.get(index, f"wlan{index}"), raw_value=value)
            for index, value in counts
        ]
        policy = SumPolicy(
            warning=self.warning_range(),
            critical=self.critical_range(),
        )
        return ResultAggregator(policy, label="clients").aggregate(metrics)
