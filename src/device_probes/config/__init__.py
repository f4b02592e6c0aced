"""Configuration management for device probes."""

from device_probes.config.loader import (
    ConfigurationError,
    format_validation_errors,
    load_config,
    resolve_file_secrets,
)
from device_probes.config.settings import ProbeSettings

__all__ = [
    "ConfigurationError",
    "ProbeSettings",
    "format_validation_errors",
    "load_config",
    "resolve_file_secrets",
]
