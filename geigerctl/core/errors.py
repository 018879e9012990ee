"""Domain-specific errors for geigerctl."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from geigerctl.core.model import PortAttempt


class GeigerctlError(Exception):
    """Base error for geigerctl."""


class ProfileValidationError(GeigerctlError):
    """Raised when a device profile does not conform to schema or semantics."""


class ProfileLoadError(GeigerctlError):
    """Raised when loading profile sources fails."""


class CommandResolutionError(GeigerctlError):
    """Raised when a profile does not define the requested command."""


class ProtocolDecodeError(GeigerctlError):
    """Raised when response bytes do not fit the command's response shape."""


class DeviceNotFoundError(GeigerctlError):
    """Raised when probing exhausts every port without a signature match."""

    def __init__(self, message: str, attempts: tuple[PortAttempt, ...] = ()) -> None:
        super().__init__(message)
        self.attempts = attempts

    @property
    def attempted_ports(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(attempt.port for attempt in self.attempts))


class TransportError(GeigerctlError):
    """Base transport error.

    Carries the port and, once a controller has seen it, the command that was
    in flight.
    """

    def __init__(
        self,
        message: str,
        *,
        port: str | None = None,
        command: str | None = None,
    ) -> None:
        super().__init__(message)
        self.port = port
        self.command = command

    def __str__(self) -> str:
        message = super().__str__()
        context = ", ".join(
            f"{key}={value}"
            for key, value in (("port", self.port), ("command", self.command))
            if value
        )
        return f"{message} ({context})" if context else message


class TransportNotOpenError(TransportError):
    """Raised when I/O is attempted on a channel that is not open."""


class TransportIOError(TransportError):
    """Raised when the underlying serial channel reports a fault."""


class TransportTimeoutError(TransportError):
    """Raised when a read or write does not complete within its timeout."""


class ProfileSelectionError(GeigerctlError):
    """Raised when a requested profile id is not loaded."""
