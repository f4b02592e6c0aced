"""SNMP metric source backed by pysnmp.

pysnmp's high-level API is asyncio based; every request runs in its own
event loop via ``asyncio.run`` so probes stay synchronous. pysnmp only
covers UDP here, so ``snmp_source_for`` falls back to the net-snmp tools
for TCP transports.
"""

import asyncio
from typing import Any, List, Optional, Tuple

import structlog
from pysnmp.entity import config
from pysnmp.error import PySnmpError
from pysnmp.hlapi.v3arch.asyncio import (
    CommunityData,
    ContextData,
    ObjectIdentity,
    ObjectType,
    SnmpEngine,
    Udp6TransportTarget,
    UdpTransportTarget,
    UsmUserData,
    get_cmd,
    walk_cmd,
)
from pysnmp.proto import errind
from pysnmp.proto.rfc1905 import EndOfMibView, NoSuchInstance, NoSuchObject

from device_probes.exceptions import (
    AuthFailure,
    BuildError,
    ConnectionFailed,
    MalformedResponse,
    NotFound,
    SourceError,
    Timeout,
)
from device_probes.models import AuthProtocol, MetricValue, PrivProtocol, SnmpVersion
from device_probes.snmp import CommunityAuth, SecurityContext
from device_probes.sources.base import WalkableSource
from device_probes.sources.command import CommandRunner, LocalRunner
from device_probes.sources.netsnmp import NetSnmpSource

logger = structlog.get_logger(__name__)

AUTH_PROTOCOLS = {
    AuthProtocol.MD5: config.USM_AUTH_HMAC96_MD5,
    AuthProtocol.SHA: config.USM_AUTH_HMAC96_SHA,
    AuthProtocol.SHA224: config.USM_AUTH_HMAC128_SHA224,
    AuthProtocol.SHA256: config.USM_AUTH_HMAC192_SHA256,
    AuthProtocol.SHA384: config.USM_AUTH_HMAC256_SHA384,
    AuthProtocol.SHA512: config.USM_AUTH_HMAC384_SHA512,
}

PRIV_PROTOCOLS = {
    PrivProtocol.DES: config.USM_PRIV_CBC56_DES,
    PrivProtocol.TRIPLE_DES: config.USM_PRIV_CBC168_3DES,
    PrivProtocol.AES: config.USM_PRIV_CFB128_AES,
    PrivProtocol.AES192: config.USM_PRIV_CFB192_AES,
    PrivProtocol.AES256: config.USM_PRIV_CFB256_AES,
}

_AUTH_INDICATIONS = {
    "UnknownUserName",
    "WrongDigest",
    "AuthenticationFailure",
    "DecryptionError",
    "UnsupportedSecLevel",
    "NotInTimeWindow",
}

_MISSING = (NoSuchObject, NoSuchInstance, EndOfMibView)


def auth_data(context: SecurityContext) -> Any:
    """pysnmp authentication data for the context."""
    if isinstance(context.auth, CommunityAuth):
        mp_model = 0 if context.version == SnmpVersion.V1 else 1
        return CommunityData(context.auth.community, mpModel=mp_model)

    usm = context.auth
    kwargs = {}
    if usm.auth_protocol is not None:
        kwargs["authKey"] = usm.auth_password
        kwargs["authProtocol"] = AUTH_PROTOCOLS[usm.auth_protocol]
    if usm.priv_protocol is not None:
        kwargs["privKey"] = usm.priv_password
        kwargs["privProtocol"] = PRIV_PROTOCOLS[usm.priv_protocol]
    return UsmUserData(usm.security_name, **kwargs)


class SnmpSource:
    """Metric source issuing SNMP GET and WALK requests with pysnmp.

    Example:
        >>> source = SnmpSource(build_security_context(options))
        >>> source.fetch("sysUpTime", "1.3.6.1.2.1.1.3.0")
    """

    def __init__(self, context: SecurityContext) -> None:
        if context.transport.is_stream:
            raise BuildError(
                message=f"Transport {context.transport.value} is not supported by the pysnmp backend",
                hint="Use --snmp-backend netsnmp (or auto) for TCP transports.",
            )
        self.context = context
        self._auth = auth_data(context)

    async def _target(self) -> Any:
        target_cls = Udp6TransportTarget if self.context.transport.is_ipv6 else UdpTransportTarget
        try:
            return await target_cls.create(
                (self.context.host, self.context.port),
                timeout=self.context.timeout,
                retries=self.context.retries,
            )
        except PySnmpError as e:
            raise ConnectionFailed(message=f"Cannot resolve {self.context.host}: {e}") from e

    def _check(self, error_indication: Any, error_status: Any, query: str) -> None:
        if error_indication:
            if isinstance(error_indication, errind.RequestTimedOut):
                raise Timeout(
                    message=f"No SNMP response from {self.context.endpoint}",
                    hint="Check host, port, transport and that the agent allows this client.",
                )
            if type(error_indication).__name__ in _AUTH_INDICATIONS:
                raise AuthFailure(
                    message=f"SNMP authentication failed against {self.context.endpoint}: {error_indication}",
                    hint="Check the community or the v3 user, passwords and protocols.",
                )
            raise SourceError(message=f"SNMP request to {self.context.endpoint} failed: {error_indication}")

        if error_status:
            status = error_status.prettyPrint()
            if status == "noSuchName":
                raise NotFound(message=f"OID {query} not found on {self.context.host}")
            if status == "authorizationError":
                raise AuthFailure(message=f"Access to {query} denied on {self.context.host}")
            raise MalformedResponse(message=f"SNMP error {status} for {query}")

    async def _get(self, query: str) -> Any:
        engine = SnmpEngine()
        try:
            error_indication, error_status, _, var_binds = await get_cmd(
                engine,
                self._auth,
                await self._target(),
                ContextData(),
                ObjectType(ObjectIdentity(query)),
            )
        finally:
            engine.close_dispatcher()

        self._check(error_indication, error_status, query)
        if not var_binds:
            raise MalformedResponse(message=f"Empty SNMP response for {query}")
        return var_binds[0][1]

    async def _walk(self, query: str) -> List[Tuple[str, str]]:
        engine = SnmpEngine()
        rows: List[Tuple[str, str]] = []
        try:
            async for error_indication, error_status, _, var_binds in walk_cmd(
                engine,
                self._auth,
                await self._target(),
                ContextData(),
                ObjectType(ObjectIdentity(query)),
                lexicographicMode=False,
            ):
                self._check(error_indication, error_status, query)
                for var_bind in var_binds:
                    value = var_bind[1]
                    if isinstance(value, _MISSING):
                        continue
                    rows.append((str(var_bind[0]), value.prettyPrint()))
        finally:
            engine.close_dispatcher()
        return rows

    def fetch(self, name: str, query: str) -> MetricValue:
        value = asyncio.run(self._get(query))
        if isinstance(value, _MISSING):
            raise NotFound(message=f"OID {query} not found on {self.context.host}")

        logger.debug("snmp_value_fetched", metric=name, oid=query, backend="pysnmp")
        return MetricValue(name=name, raw_value=value.prettyPrint())

    def walk(self, query: str) -> List[Tuple[str, str]]:
        """Walk the subtree below ``query``.

        Returns:
            ``(oid, value)`` pairs in agent order.
        """
        rows = asyncio.run(self._walk(query))
        logger.debug("snmp_walk_complete", oid=query, rows=len(rows), backend="pysnmp")
        return rows


def snmp_source_for(
    context: SecurityContext,
    backend: str = "auto",
    runner: Optional[CommandRunner] = None,
) -> WalkableSource:
    """Pick the SNMP implementation for a context.

    Args:
        context: Resolved security context.
        backend: ``pysnmp``, ``netsnmp`` or ``auto`` (pysnmp for UDP,
            net-snmp tools for TCP).
        runner: Command runner for the net-snmp tools.

    Returns:
        A SnmpSource or NetSnmpSource.
    """
    if backend == "netsnmp" or (backend == "auto" and context.transport.is_stream):
        return NetSnmpSource(context, runner or LocalRunner())
    return SnmpSource(context)
