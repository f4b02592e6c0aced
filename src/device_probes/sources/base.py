"""Metric source capability.

A metric source turns a query (an OID, an endpoint, a command line) into a
MetricValue. Probes only depend on this protocol, so tests can hand them a
fake.
"""

from typing import Iterable, List, Protocol, Tuple, runtime_checkable

import structlog

from device_probes.exceptions import SourceError
from device_probes.models import MetricValue

logger = structlog.get_logger(__name__)


@runtime_checkable
class MetricSource(Protocol):
    """Anything able to fetch a named metric."""

    def fetch(self, name: str, query: str) -> MetricValue:
        """Fetch one metric.

        Raises:
            SourceError: Timeout, AuthFailure, NotFound, MalformedResponse
                or ConnectionFailed.
        """
        ...


def collect(source: MetricSource, queries: Iterable[Tuple[str, str]]) -> List[MetricValue]:
    """Fetch several metrics, keeping failed ones as unavailable samples.

    A SourceError for one query does not abort the scan; the metric is
    returned with its error so aggregation can count it as unknown.

    Args:
        source: Metric source to query.
        queries: ``(name, query)`` pairs in output order.

    Returns:
        One MetricValue per query, in order.
    """
    metrics: List[MetricValue] = []
    for name, query in queries:
        try:
            metrics.append(source.fetch(name, query))
        except SourceError as e:
            logger.info(
                "metric_unavailable",
                metric=name,
                query=query,
                error_type=type(e).__name__,
                error=e.message,
            )
            metrics.append(MetricValue.unavailable(name, e.message))
    return metrics


@runtime_checkable
class WalkableSource(MetricSource, Protocol):
    """A metric source that can also enumerate a table (SNMP walk)."""

    def walk(self, query: str) -> List[Tuple[str, str]]:
        """``(oid, value)`` pairs below ``query`` in agent order."""
        ...
