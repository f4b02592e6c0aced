"""Result aggregator combining metric samples into a verdict.

Wraps an aggregation policy the same way every probe uses it: the probe
collects samples, the aggregator applies the policy and logs the outcome.
"""

from typing import Sequence

import structlog

from device_probes.aggregation.policies import AggregationPolicy
from device_probes.models import MetricValue, Verdict

logger = structlog.get_logger(__name__)


class ResultAggregator:
    """Aggregator for evaluated metrics.

    Example:
        >>> aggregator = ResultAggregator(
        ...     WorstOfPolicy(critical=Limit(15)), label="sensors"
        ... )
        >>> verdict = aggregator.aggregate(samples)
    """

    def __init__(self, policy: AggregationPolicy, label: str = "value") -> None:
        """Initialize the aggregator.

        Args:
            policy: Strategy used to combine samples.
            label: Noun used in messages and summary perfdata (e.g. "sensors").
        """
        self.policy = policy
        self.label = label

    def aggregate(self, metrics: Sequence[MetricValue]) -> Verdict:
        """Combine ``metrics`` into a single verdict."""
        verdict = self.policy.evaluate(list(metrics), self.label)
        logger.debug(
            "metrics_aggregated",
            policy=type(self.policy).__name__,
            label=self.label,
            metrics=len(metrics),
            unavailable=sum(1 for m in metrics if not m.available),
            status=verdict.status.value,
        )
        return verdict
