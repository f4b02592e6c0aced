"""Shared enumerations for the device probe models."""

from enum import Enum


class Status(str, Enum):
    """Four-state plugin result."""

    OK = "OK"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    UNKNOWN = "UNKNOWN"


class SnmpVersion(str, Enum):
    """SNMP protocol version."""

    V1 = "1"
    V2C = "2c"
    V3 = "3"


class Transport(str, Enum):
    """Transport domain for SNMP requests."""

    UDP = "udp"
    TCP = "tcp"
    UDP6 = "udp6"
    TCP6 = "tcp6"

    @property
    def is_ipv6(self) -> bool:
        return self in (Transport.UDP6, Transport.TCP6)

    @property
    def is_stream(self) -> bool:
        return self in (Transport.TCP, Transport.TCP6)


class SecurityLevel(str, Enum):
    """SNMP v3 security level (net-snmp spelling)."""

    NO_AUTH_NO_PRIV = "noAuthNoPriv"
    AUTH_NO_PRIV = "authNoPriv"
    AUTH_PRIV = "authPriv"


class AuthProtocol(str, Enum):
    """SNMP v3 authentication protocol."""

    MD5 = "md5"
    SHA = "sha"
    SHA224 = "sha224"
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"


class PrivProtocol(str, Enum):
    """SNMP v3 privacy protocol."""

    DES = "des"
    TRIPLE_DES = "3des"
    AES = "aes"
    AES192 = "aes192"
    AES256 = "aes256"
