"""SNMP security context negotiation.

Turns the partial credentials an operator passes on the command line into a
fully specified SNMP transport and authentication configuration:

- an explicit ``2c`` (or ``1``) version needs a community string;
- no version and no community means SNMP v3 with a security name;
- no version but a community means SNMP v1;
- under v3 the security level follows from which passwords are present,
  and the ``auth,priv`` protocol pair is split from a single option.

Example:
    >>> options = SnmpOptions(host="10.0.0.1", security_name="monitor",
    ...                       auth_password="secret1", protocols="sha,aes")
    >>> ctx = build_security_context(options)
    >>> ctx.security_level.value
    'authNoPriv'
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Tuple, Union

import structlog

from device_probes.exceptions import BuildError, InvalidProtocolList, MissingCredential
from device_probes.models.enums import (
    AuthProtocol,
    PrivProtocol,
    SecurityLevel,
    SnmpVersion,
    Transport,
)

if TYPE_CHECKING:
    from device_probes.config import ProbeSettings

logger = structlog.get_logger(__name__)

DEFAULT_PORT = 161
DEFAULT_PROTOCOLS = "sha,aes"
# Older probe generations defaulted to the weaker pair
LEGACY_PROTOCOLS = "md5,des"

_AUTH_ALIASES = {"sha1": "sha", "sha-224": "sha224", "sha-256": "sha256",
                 "sha-384": "sha384", "sha-512": "sha512"}
_PRIV_ALIASES = {"aes128": "aes", "aes-128": "aes", "aes-192": "aes192",
                 "aes-256": "aes256", "3des-ede": "3des"}


@dataclass(frozen=True)
class SnmpOptions:
    """Raw SNMP connection options as supplied by configuration."""

    host: str
    port: int = DEFAULT_PORT
    version: Optional[str] = None
    community: str = field(default="", repr=False)
    security_name: str = ""
    auth_password: str = field(default="", repr=False)
    priv_password: str = field(default="", repr=False)
    protocols: str = DEFAULT_PROTOCOLS
    transport: Transport = Transport.UDP
    timeout: float = 10.0
    retries: int = 1

    @classmethod
    def from_settings(cls, settings: "ProbeSettings") -> "SnmpOptions":
        """Factory for SnmpOptions from the probe configuration."""
        return cls(
            host=settings.host,
            port=settings.port or DEFAULT_PORT,
            version=settings.snmp_version,
            community=settings.community,
            security_name=settings.security_name,
            auth_password=settings.auth_password,
            priv_password=settings.priv_password,
            protocols=settings.protocols,
            transport=Transport(settings.transport),
            timeout=settings.timeout,
            retries=settings.retries,
        )


@dataclass(frozen=True)
class CommunityAuth:
    """SNMP v1/v2c community authentication."""

    community: str = field(repr=False)


@dataclass(frozen=True)
class UsmAuth:
    """SNMP v3 user-based security model parameters."""

    security_name: str
    security_level: SecurityLevel
    auth_protocol: Optional[AuthProtocol] = None
    auth_password: Optional[str] = field(default=None, repr=False)
    priv_protocol: Optional[PrivProtocol] = None
    priv_password: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True)
class SecurityContext:
    """Fully resolved SNMP connection and authentication parameters.

    Built once per probe run and used read-only by every SNMP request.
    """

    version: SnmpVersion
    transport: Transport
    host: str
    port: int
    timeout: float
    retries: int
    auth: Union[CommunityAuth, UsmAuth]

    @property
    def is_v3(self) -> bool:
        return self.version == SnmpVersion.V3

    @property
    def community(self) -> Optional[str]:
        if isinstance(self.auth, CommunityAuth):
            return self.auth.community
        return None

    @property
    def security_level(self) -> Optional[SecurityLevel]:
        if isinstance(self.auth, UsmAuth):
            return self.auth.security_level
        return None

    @property
    def endpoint(self) -> str:
        """Target in ``transport:host:port`` form, IPv6 hosts bracketed."""
        host = f"[{self.host}]" if self.transport.is_ipv6 else self.host
        return f"{self.transport.value}:{host}:{self.port}"


def derive_security_level(auth_password: str, priv_password: str) -> SecurityLevel:
    """Security level implied by which v3 passwords are present."""
    if not auth_password:
        return SecurityLevel.NO_AUTH_NO_PRIV
    if not priv_password:
        return SecurityLevel.AUTH_NO_PRIV
    return SecurityLevel.AUTH_PRIV


def split_protocols(protocols: str) -> Tuple[AuthProtocol, PrivProtocol]:
    """Split an ``auth,priv`` pair into protocol enums.

    Raises:
        InvalidProtocolList: Not exactly two tokens, or an unknown protocol.
    """
    tokens = [token.strip().lower() for token in protocols.split(",")]
    if len(tokens) != 2 or not all(tokens):
        raise InvalidProtocolList(protocols)

    auth_token = _AUTH_ALIASES.get(tokens[0], tokens[0])
    priv_token = _PRIV_ALIASES.get(tokens[1], tokens[1])
    try:
        return AuthProtocol(auth_token), PrivProtocol(priv_token)
    except ValueError:
        raise InvalidProtocolList(protocols)


def build_security_context(options: SnmpOptions) -> SecurityContext:
    """Assemble a SecurityContext from partial credentials.

    Args:
        options: Raw SNMP options.

    Returns:
        The resolved SecurityContext.

    Raises:
        MissingCredential: No usable community or v3 security name.
        InvalidProtocolList: The v3 protocol pair is malformed.
        BuildError: Unsupported version hint.
    """
    hint = options.version
    if hint is not None and hint not in {v.value for v in SnmpVersion}:
        raise BuildError(
            message=f"Unsupported SNMP version '{hint}'",
            hint="Use 1, 2c or 3.",
        )

    if hint in (SnmpVersion.V1.value, SnmpVersion.V2C.value):
        if not options.community:
            raise MissingCredential(f"SNMP v{hint} requires a community string")
        return _context(options, SnmpVersion(hint), CommunityAuth(options.community))

    if hint is None and options.community:
        return _context(options, SnmpVersion.V1, CommunityAuth(options.community))

    if not options.security_name:
        raise MissingCredential("SNMP v3 requires a security name")

    return _context(options, SnmpVersion.V3, _usm_auth(options))


def _usm_auth(options: SnmpOptions) -> UsmAuth:
    level = derive_security_level(options.auth_password, options.priv_password)

    if options.priv_password and level == SecurityLevel.NO_AUTH_NO_PRIV:
        logger.warning(
            "snmp_priv_password_ignored",
            security_name=options.security_name,
            reason="privacy requires an authentication password",
        )

    if level == SecurityLevel.NO_AUTH_NO_PRIV:
        return UsmAuth(security_name=options.security_name, security_level=level)

    auth_protocol, priv_protocol = split_protocols(options.protocols)

    if level == SecurityLevel.AUTH_NO_PRIV:
        return UsmAuth(
            security_name=options.security_name,
            security_level=level,
            auth_protocol=auth_protocol,
            auth_password=options.auth_password,
        )

    return UsmAuth(
        security_name=options.security_name,
        security_level=level,
        auth_protocol=auth_protocol,
        auth_password=options.auth_password,
        priv_protocol=priv_protocol,
        priv_password=options.priv_password,
    )


def _context(
    options: SnmpOptions,
    version: SnmpVersion,
    auth: Union[CommunityAuth, UsmAuth],
) -> SecurityContext:
    context = SecurityContext(
        version=version,
        transport=options.transport,
        host=options.host,
        port=options.port,
        timeout=options.timeout,
        retries=options.retries,
        auth=auth,
    )
    logger.debug(
        "snmp_context_built",
        version=version.value,
        transport=options.transport.value,
        host=options.host,
        port=options.port,
        security_level=context.security_level.value if context.security_level else None,
    )
    return context
