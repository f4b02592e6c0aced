"""Pydantic settings models for device probe configuration."""

from __future__ import annotations

import os
import tempfile
from typing import Any, Dict, Literal, Optional, Tuple, Type

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads values from a YAML file.

    The YAML file path is determined by the CONFIG_PATH environment variable.
    """

    def get_field_value(
        self, field: Any, field_name: str
    ) -> Tuple[Any, str, bool]:
        """Get field value from YAML config."""
        yaml_config = self._load_yaml_config()
        field_value = yaml_config.get(field_name)
        return field_value, field_name, False

    def _load_yaml_config(self) -> Dict[str, Any]:
        """Load YAML configuration file."""
        config_path = os.environ.get("CONFIG_PATH")
        if not config_path:
            return {}

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except (FileNotFoundError, yaml.YAMLError, PermissionError):
            # Errors will be handled by loader.py
            return {}

    def __call__(self) -> Dict[str, Any]:
        """Return the YAML config values."""
        return self._load_yaml_config()


class ProbeSettings(BaseSettings):
    """Device probe configuration settings.

    Built once per run and never mutated afterwards. Configuration is
    loaded in the following precedence (highest to lowest):
    1. Command line arguments (passed as constructor arguments)
    2. Environment variables (PROBE_ prefix)
    3. Docker secrets (_FILE pattern, applied via env)
    4. YAML configuration file (via CONFIG_PATH)
    5. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="PROBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Target
    host: str = Field(
        ...,
        description="Target hostname or IP address",
    )
    port: Optional[int] = Field(
        default=None,
        description="Target port (probe default if not set: 161 for SNMP, 443 for HTTPS)",
        ge=1,
        le=65535,
    )
    timeout: float = Field(
        default=10.0,
        description="Per-request timeout in seconds",
        gt=0,
    )
    retries: int = Field(
        default=1,
        description="Retries per request, handled by the metric source",
        ge=0,
    )
    mode: Optional[str] = Field(
        default=None,
        description="Probe mode (probe specific, e.g. cpu, temperature)",
    )

    # Thresholds
    warning: Optional[str] = Field(
        default=None,
        description="Warning threshold (range expression or N/N% limit)",
    )
    critical: Optional[str] = Field(
        default=None,
        description="Critical threshold (range expression or N/N% limit)",
    )
    capacity: Optional[float] = Field(
        default=None,
        description="Total capacity used to resolve percentage limits",
        gt=0,
    )
    perfdata: bool = Field(
        default=False,
        description="Append performance data to the status line",
    )
    legacy_exit_codes: bool = Field(
        default=False,
        description="Use the swapped WARNING/CRITICAL exit codes of the legacy load check",
    )

    # SNMP
    transport: Literal["udp", "tcp", "udp6", "tcp6"] = Field(
        default="udp",
        description="SNMP transport",
    )
    snmp_version: Optional[Literal["1", "2c", "3"]] = Field(
        default=None,
        description="SNMP version hint (inferred from credentials if not set)",
    )
    community: str = Field(
        default="",
        description="SNMP v1/v2c community",
    )
    security_name: str = Field(
        default="",
        description="SNMP v3 security (user) name",
    )
    auth_password: str = Field(
        default="",
        description="SNMP v3 authentication password",
    )
    priv_password: str = Field(
        default="",
        description="SNMP v3 privacy password",
    )
    protocols: str = Field(
        default="sha,aes",
        description="SNMP v3 '<auth>,<priv>' protocol pair",
    )
    snmp_backend: Literal["auto", "pysnmp", "netsnmp"] = Field(
        default="auto",
        description="SNMP implementation: pysnmp, net-snmp tools, or auto by transport",
    )

    # HTTP / REST
    username: Optional[str] = Field(
        default=None,
        description="API or test account user name",
    )
    password: Optional[str] = Field(
        default=None,
        description="API or test account password",
    )
    api_token: Optional[str] = Field(
        default=None,
        description="Bearer token for token-authenticated APIs",
    )
    verify_ssl: bool = Field(
        default=True,
        description="Verify SSL certificates (set to false for self-signed certs)",
    )
    tag: Optional[str] = Field(
        default=None,
        description="Restrict cloud resources to this tag",
    )

    # SSH for wrapped CLI tools on remote hosts
    ssh_username: Optional[str] = Field(
        default=None,
        description="Run CLI tools over SSH as this user (local execution if not set)",
    )
    ssh_password: Optional[str] = Field(
        default=None,
        description="SSH password",
    )
    ssh_port: int = Field(
        default=22,
        ge=1,
        le=65535,
        description="SSH port",
    )
    ssh_host_key_fingerprint: Optional[str] = Field(
        default=None,
        description="Expected SSH host key fingerprint (hex with colons)",
    )

    # RADIUS
    secret: Optional[str] = Field(
        default=None,
        description="RADIUS shared secret",
    )
    nas_port: int = Field(
        default=0,
        ge=0,
        description="NAS port number sent with RADIUS test requests",
    )

    # Auth ticket cache
    cache_dir: str = Field(
        default_factory=tempfile.gettempdir,
        description="Directory for cached session keys",
    )
    ticket_ttl: Optional[int] = Field(
        default=None,
        gt=0,
        description="Freshness window of cached session keys in seconds (probe default if not set)",
    )

    # Logging settings
    log_level: str = Field(
        default="WARNING",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log output format on stderr: json or text",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to set precedence.

        Order (first = highest priority):
        1. init_settings (command line arguments)
        2. env_settings (environment variables with PROBE_ prefix)
        3. dotenv_settings (.env file)
        4. yaml_settings (CONFIG_PATH YAML file)
        5. file_secret_settings (not used, handled by loader)
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized == "WARN":
            normalized = "WARNING"
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: DEBUG, INFO, WARNING, ERROR"
            )
        return normalized

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Validate host is not empty."""
        if not v or not v.strip():
            raise ValueError("Host cannot be empty")
        return v.strip()

    @field_validator("protocols")
    @classmethod
    def validate_protocols(cls, v: str) -> str:
        """Normalize the protocol pair; its shape only matters once v3 auth is in use."""
        return ",".join(token.strip().lower() for token in v.split(","))

    @field_validator("snmp_version", mode="before")
    @classmethod
    def normalize_snmp_version(cls, v: Any) -> Any:
        """Accept '2' and 'v2c' style spellings."""
        if v is None:
            return None
        text = str(v).strip().lower().lstrip("v")
        return "2c" if text == "2" else text

    @model_validator(mode="after")
    def validate_ssh_config(self) -> "ProbeSettings":
        """Validate SSH configuration consistency.

        An SSH password without an SSH user name cannot be used.
        """
        if self.ssh_password and not self.ssh_username:
            raise ValueError("ssh_username is required when ssh_password is set")
        return self
