"""Tests for SNMP security context negotiation."""

import pytest

from device_probes.exceptions import BuildError, InvalidProtocolList, MissingCredential
from device_probes.models import (
    AuthProtocol,
    PrivProtocol,
    SecurityLevel,
    SnmpVersion,
    Transport,
)
from device_probes.snmp import (
    CommunityAuth,
    SnmpOptions,
    UsmAuth,
    build_security_context,
    derive_security_level,
    split_protocols,
)


class TestCommunityVersions:
    """Tests for v1/v2c negotiation."""

    def test_explicit_v2c_with_community(self) -> None:
        ctx = build_security_context(
            SnmpOptions(host="10.0.0.1", version="2c", community="public")
        )

        assert ctx.version == SnmpVersion.V2C
        assert ctx.community == "public"
        assert ctx.security_level is None
        assert ctx.is_v3 is False

    @pytest.mark.parametrize("version", ["1", "2c"])
    def test_explicit_community_version_without_community(self, version: str) -> None:
        with pytest.raises(MissingCredential):
            build_security_context(SnmpOptions(host="10.0.0.1", version=version))

    def test_community_without_version_means_v1(self) -> None:
        ctx = build_security_context(SnmpOptions(host="10.0.0.1", community="public"))

        assert ctx.version == SnmpVersion.V1
        assert isinstance(ctx.auth, CommunityAuth)

    def test_explicit_v3_ignores_community(self) -> None:
        ctx = build_security_context(
            SnmpOptions(host="10.0.0.1", version="3", community="public", security_name="mon")
        )

        assert ctx.version == SnmpVersion.V3
        assert ctx.community is None

    def test_unsupported_version(self) -> None:
        with pytest.raises(BuildError):
            build_security_context(SnmpOptions(host="10.0.0.1", version="4", community="x"))

    def test_community_hidden_from_repr(self) -> None:
        assert "public" not in repr(CommunityAuth("public"))


class TestUsmNegotiation:
    """Tests for SNMP v3 security levels and protocols."""

    def test_no_credentials_at_all(self) -> None:
        with pytest.raises(MissingCredential):
            build_security_context(SnmpOptions(host="10.0.0.1"))

    def test_security_name_only(self) -> None:
        ctx = build_security_context(SnmpOptions(host="10.0.0.1", security_name="monitor"))

        assert ctx.version == SnmpVersion.V3
        assert ctx.security_level == SecurityLevel.NO_AUTH_NO_PRIV
        assert isinstance(ctx.auth, UsmAuth)
        assert ctx.auth.auth_protocol is None
        assert ctx.auth.priv_protocol is None

    def test_auth_password_only(self) -> None:
        ctx = build_security_context(
            SnmpOptions(host="10.0.0.1", security_name="monitor", auth_password="authpass")
        )

        assert ctx.security_level == SecurityLevel.AUTH_NO_PRIV
        assert ctx.auth.auth_protocol == AuthProtocol.SHA
        assert ctx.auth.priv_protocol is None

    def test_auth_and_priv_passwords(self) -> None:
        ctx = build_security_context(
            SnmpOptions(
                host="10.0.0.1",
                security_name="monitor",
                auth_password="authpass",
                priv_password="privpass",
                protocols="md5,des",
            )
        )

        assert ctx.security_level == SecurityLevel.AUTH_PRIV
        assert ctx.auth.auth_protocol == AuthProtocol.MD5
        assert ctx.auth.priv_protocol == PrivProtocol.DES
        assert ctx.auth.priv_password == "privpass"

    def test_priv_without_auth_is_dropped(self) -> None:
        """Privacy needs authentication, so the level stays noAuthNoPriv."""
        ctx = build_security_context(
            SnmpOptions(host="10.0.0.1", security_name="monitor", priv_password="privpass")
        )

        assert ctx.security_level == SecurityLevel.NO_AUTH_NO_PRIV
        assert ctx.auth.priv_password is None

    def test_invalid_protocols_need_auth_to_matter(self) -> None:
        ctx = build_security_context(
            SnmpOptions(host="10.0.0.1", security_name="monitor", protocols="bogus")
        )

        assert ctx.security_level == SecurityLevel.NO_AUTH_NO_PRIV

    def test_invalid_protocols_with_auth(self) -> None:
        with pytest.raises(InvalidProtocolList):
            build_security_context(
                SnmpOptions(
                    host="10.0.0.1",
                    security_name="monitor",
                    auth_password="authpass",
                    protocols="sha,blowfish",
                )
            )


class TestHelpers:
    """Tests for protocol splitting and security level derivation."""

    def test_split_protocols_with_aliases(self) -> None:
        assert split_protocols("SHA-256, AES-256") == (AuthProtocol.SHA256, PrivProtocol.AES256)
        assert split_protocols("sha1,aes128") == (AuthProtocol.SHA, PrivProtocol.AES)

    @pytest.mark.parametrize("protocols", ["sha", "sha,aes,des", "sha,", ",aes", "rot13,aes"])
    def test_split_protocols_rejects(self, protocols: str) -> None:
        with pytest.raises(InvalidProtocolList):
            split_protocols(protocols)

    @pytest.mark.parametrize(
        "auth,priv,level",
        [
            ("", "", SecurityLevel.NO_AUTH_NO_PRIV),
            ("", "p", SecurityLevel.NO_AUTH_NO_PRIV),
            ("a", "", SecurityLevel.AUTH_NO_PRIV),
            ("a", "p", SecurityLevel.AUTH_PRIV),
        ],
    )
    def test_derive_security_level(self, auth: str, priv: str, level: SecurityLevel) -> None:
        assert derive_security_level(auth, priv) == level


class TestContextFromSettings:
    """Tests for SnmpOptions.from_settings() and the endpoint string."""

    def test_defaults_from_settings(self, make_settings) -> None:
        settings = make_settings(host="pdu01", community="public", snmp_version="2")

        options = SnmpOptions.from_settings(settings)

        assert options.port == 161
        assert options.version == "2c"
        assert options.transport == Transport.UDP
        assert options.timeout == 10

    def test_endpoint_ipv4(self) -> None:
        ctx = build_security_context(SnmpOptions(host="10.0.0.1", community="public"))

        assert ctx.endpoint == "udp:10.0.0.1:161"

    def test_endpoint_ipv6_is_bracketed(self) -> None:
        ctx = build_security_context(
            SnmpOptions(host="::1", port=1161, community="public", transport=Transport.TCP6)
        )

        assert ctx.endpoint == "tcp6:[::1]:1161"
