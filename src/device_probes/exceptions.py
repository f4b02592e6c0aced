"""Custom exceptions for device probes.

All probe failures inherit from ProbeError so the CLI can turn any of them
into a single UNKNOWN status line. Each exception carries an optional hint
for the operator, logged to stderr.
"""

from typing import Optional

from device_probes.models.enums import Status


class ProbeError(Exception):
    """Base exception for all probe errors.

    Attributes:
        message: Human-readable error message.
        hint: Optional troubleshooting hint.
        status: Plugin status the failure maps to.
    """

    status: Status = Status.UNKNOWN

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        self.message = message
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional hint."""
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


class ParseError(ProbeError, ValueError):
    """A threshold or limit expression could not be parsed."""

    def __init__(self, spec: str, reason: str = "invalid threshold") -> None:
        self.spec = spec
        super().__init__(
            message=f"{reason}: '{spec}'",
            hint="Use [@]end, [@]start:end, [@]~:end or [@]start: (e.g. 10, 5:20, @~:0).",
        )


class BuildError(ProbeError):
    """The SNMP security context could not be assembled."""


class MissingCredential(BuildError):
    """Neither a community nor a v3 security name was supplied.

    This typically occurs when:
    - SNMP v2c was requested without a community string
    - No community was given and no v3 user name was configured
    """

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        if hint is None:
            hint = (
                "Pass a community with -C for SNMP v1/v2c, or a security name "
                "with -U (plus -A/-X passwords as needed) for SNMP v3."
            )
        super().__init__(message=message, hint=hint)


class InvalidProtocolList(BuildError):
    """The v3 protocol list is not a pair of known protocols."""

    def __init__(self, protocols: str) -> None:
        self.protocols = protocols
        super().__init__(
            message=f"Invalid SNMP v3 protocol list '{protocols}'",
            hint=(
                "Use '<auth>,<priv>' with auth one of md5, sha, sha224, sha256, "
                "sha384, sha512 and priv one of des, 3des, aes, aes192, aes256."
            ),
        )


class SourceError(ProbeError):
    """A metric source could not deliver a value."""


class Timeout(SourceError):
    """No response within the source's timeout and retry policy."""


class AuthFailure(SourceError):
    """The target rejected the supplied credentials."""


class NotFound(SourceError):
    """The queried object does not exist on the target."""


class MalformedResponse(SourceError):
    """The target answered with something that cannot be interpreted."""


class ConnectionFailed(SourceError):
    """The target could not be reached at all."""
