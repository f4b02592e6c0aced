"""Aggregation of metric samples into four-state verdicts."""

from device_probes.aggregation.aggregator import ResultAggregator
from device_probes.aggregation.policies import (
    DEFAULT_PRECEDENCE,
    UNKNOWN_OVER_WARNING,
    AggregationPolicy,
    AveragePolicy,
    SingleMetricPolicy,
    SumPolicy,
    WorstOfPolicy,
    classify,
    worst_of,
)

__all__ = [
    "DEFAULT_PRECEDENCE",
    "UNKNOWN_OVER_WARNING",
    "AggregationPolicy",
    "AveragePolicy",
    "ResultAggregator",
    "SingleMetricPolicy",
    "SumPolicy",
    "WorstOfPolicy",
    "classify",
    "worst_of",
]
