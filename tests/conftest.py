"""Shared fixtures for device probe tests."""

import os
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pytest
import structlog

from device_probes.config import ProbeSettings
from device_probes.exceptions import NotFound
from device_probes.models import MetricValue
from device_probes.sources import CommandResult


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch):
    """Hide PROBE_* variables and CONFIG_PATH, reset logging afterwards."""
    for key in list(os.environ):
        if key.startswith("PROBE_") or key == "CONFIG_PATH":
            monkeypatch.delenv(key)
    # load_config writes CONFIG_PATH itself; register it so teardown removes it
    monkeypatch.setenv("CONFIG_PATH", "")
    monkeypatch.delenv("CONFIG_PATH")
    yield
    structlog.reset_defaults()


@pytest.fixture
def make_settings():
    """Factory for ProbeSettings with a default host."""

    def _make(**kwargs) -> ProbeSettings:
        kwargs.setdefault("host", "device01")
        return ProbeSettings(**kwargs)

    return _make


class FakeSnmpSource:
    """In-memory walkable source keyed by OID."""

    def __init__(
        self,
        values: Optional[Dict[str, object]] = None,
        tables: Optional[Dict[str, List[Tuple[str, str]]]] = None,
    ) -> None:
        self.values = values or {}
        self.tables = tables or {}
        self.fetched: List[str] = []

    def fetch(self, name: str, query: str) -> MetricValue:
        self.fetched.append(query)
        if query not in self.values:
            raise NotFound(message=f"OID {query} not found")
        value = self.values[query]
        if isinstance(value, Exception):
            raise value
        return MetricValue(name=name, raw_value=str(value))

    def walk(self, query: str) -> List[Tuple[str, str]]:
        return list(self.tables.get(query, []))


def column(oid: str, values: Dict[int, str]) -> List[Tuple[str, str]]:
    """Walk rows for one table column, ``{index: value}`` in index order."""
    return [(f"{oid}.{index}", value) for index, value in sorted(values.items())]


class FakeRunner:
    """Command runner returning canned results and recording calls."""

    def __init__(self, results: Iterable[CommandResult] = (), error: Optional[Exception] = None) -> None:
        self.results = list(results)
        self.error = error
        self.calls: List[Tuple[List[str], float]] = []

    def run(self, argv: Sequence[str], timeout: float) -> CommandResult:
        self.calls.append((list(argv), timeout))
        if self.error is not None:
            raise self.error
        return self.results.pop(0)


@pytest.fixture
def fake_snmp():
    """Factory for FakeSnmpSource."""
    return FakeSnmpSource


@pytest.fixture
def snmp_column():
    """Helper building walk rows for a table column."""
    return column


@pytest.fixture
def fake_runner():
    """Factory for FakeRunner."""
    return FakeRunner
