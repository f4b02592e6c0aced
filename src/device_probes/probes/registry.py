"""Registry of available probes.

Probe modules register their class at import time; the CLI builds one
sub-command per registered probe.
"""

from __future__ import annotations

from typing import Dict, List, Type

from device_probes.exceptions import ProbeError
from device_probes.probes.base import Probe


class ProbeRegistry:
    """Registry for available probes.

    Example usage::

        @ProbeRegistry.register
        class PduProbe(Probe):
            name = "pdu"

        probe_cls = ProbeRegistry.get("pdu")
    """

    _probe_classes: Dict[str, Type[Probe]] = {}

    @classmethod
    def register(cls, probe_class: Type[Probe]) -> Type[Probe]:
        """Register a probe class under its ``name``.

        Usable as a class decorator. Registration order determines the
        order of CLI sub-commands.
        """
        cls._probe_classes.setdefault(probe_class.name, probe_class)
        return probe_class

    @classmethod
    def get(cls, name: str) -> Type[Probe]:
        """Look up a probe class by name.

        Raises:
            ProbeError: No probe with that name is registered.
        """
        try:
            return cls._probe_classes[name]
        except KeyError:
            raise ProbeError(
                message=f"Unknown probe '{name}'",
                hint=f"Available probes: {', '.join(cls.names())}.",
            )

    @classmethod
    def names(cls) -> List[str]:
        return list(cls._probe_classes)

    @classmethod
    def all(cls) -> List[Type[Probe]]:
        return list(cls._probe_classes.values())

    @classmethod
    def clear(cls) -> None:
        """Clear all registered probes.

        Primarily for testing purposes.
        """
        cls._probe_classes = {}
