"""Asterisk PBX channel usage probe.

Counts active channels per trunk from ``core show channels concise``,
locally or on the PBX host over SSH. Limits are channel counts or
percentages of ``capacity`` (the number of lines the trunks provide).
"""

import re
from collections import Counter
from typing import List, Optional

from device_probes.aggregation import ResultAggregator, SumPolicy
from device_probes.config import ProbeSettings
from device_probes.exceptions import SourceError
from device_probes.models import MetricValue, Verdict
from device_probes.probes.base import Probe
from device_probes.probes.registry import ProbeRegistry
from device_probes.sources import CommandSource, runner_from_settings

CHANNELS_COMMAND = ["asterisk", "-rx", "core show channels concise"]

# SIP/provider-00000a1f -> provider
_CHANNEL_SUFFIX = re.compile(r"-[0-9a-f]+(?:;\d+)?$")


def trunk_of(channel: str) -> str:
    """Trunk (peer) name of a channel, without technology and call id."""
    _, _, peer = channel.partition("/")
    return _CHANNEL_SUFFIX.sub("", peer or channel)


def count_channels(output: str) -> Counter:
    """Active channels per trunk in concise channel output."""
    counts: Counter = Counter()
    for line in output.splitlines():
        if "!" not in line:
            continue
        channel = line.split("!", 1)[0].strip()
        if channel:
            counts[trunk_of(channel)] += 1
    return counts


@ProbeRegistry.register
class PbxProbe(Probe):
    """Active call channels on an Asterisk PBX."""

    name = "pbx"
    description = "Asterisk channel usage per trunk"

    def __init__(self, settings: ProbeSettings, source: Optional[CommandSource] = None) -> None:
        super().__init__(settings)
        self.source = source or CommandSource(
            runner_from_settings(settings), timeout=settings.timeout
        )

    def run(self) -> Verdict:
        result = self.source.run(CHANNELS_COMMAND)
        if not result.ok:
            detail = (result.stderr or result.stdout).strip()
            raise SourceError(
                message=f"asterisk exited with status {result.returncode}: {detail}",
                hint="The probe user needs access to the Asterisk control socket.",
            )

        counts = count_channels(result.stdout)
        metrics: List[MetricValue] = [
            MetricValue(name=trunk, raw_value=str(count))
            for trunk, count in sorted(counts.items())
        ]
        if not metrics:
            metrics = [MetricValue(name="channels", raw_value="0")]

        policy = SumPolicy(
            warning=self.warning_limit(),
            critical=self.critical_limit(),
            total=self.settings.capacity,
        )
        return ResultAggregator(policy, label="active_channels").aggregate(metrics)
