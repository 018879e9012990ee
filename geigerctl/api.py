"""Public entry points for applications that read a Geiger counter.

Scripts, loggers and dashboards should import from here. Names re-exported
below stay put across releases; anything reached through `geigerctl.core` or
`geigerctl.transports` directly may move.
"""

from __future__ import annotations

from geigerctl.core.codec import decode_response, encode_command, frame_command
from geigerctl.core.controller import DeviceController, GeigerCounter
from geigerctl.core.errors import (
    CommandResolutionError,
    DeviceNotFoundError,
    GeigerctlError,
    ProfileLoadError,
    ProfileSelectionError,
    ProfileValidationError,
    ProtocolDecodeError,
    TransportError,
    TransportIOError,
    TransportNotOpenError,
    TransportTimeoutError,
)
from geigerctl.core.model import (
    AttemptOutcome,
    CommandSpec,
    DeviceIdentity,
    DeviceProfile,
    PortAttempt,
    ProbeResult,
    ResponseSpec,
    SerialSettings,
    TransportConfig,
)
from geigerctl.core.probe import PortLister, TransportFactory
from geigerctl.core.service import GeigerService
from geigerctl.transports.base import Transport
from geigerctl.transports.serial_port import SerialTransport, list_serial_ports

__all__ = [
    "GeigerctlError",
    "CommandResolutionError",
    "DeviceNotFoundError",
    "ProfileLoadError",
    "ProfileSelectionError",
    "ProfileValidationError",
    "ProtocolDecodeError",
    "TransportError",
    "TransportIOError",
    "TransportNotOpenError",
    "TransportTimeoutError",
    "AttemptOutcome",
    "CommandSpec",
    "DeviceIdentity",
    "DeviceProfile",
    "PortAttempt",
    "ProbeResult",
    "ResponseSpec",
    "SerialSettings",
    "TransportConfig",
    "DeviceController",
    "GeigerCounter",
    "Transport",
    "SerialTransport",
    "list_serial_ports",
    "frame_command",
    "encode_command",
    "decode_response",
    "Client",
]


class Client:
    """Public client for discovering and driving Geiger counters.

    A `Client` wraps profile loading and port probing behind a stable API
    intended for third-party tools. Probing is explicit: `probe()` returns a
    `ProbeResult` whether or not a device was found, while `connect()` raises
    `DeviceNotFoundError` on failure.
    """

    def __init__(
        self,
        *,
        port_lister: PortLister | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._service = GeigerService(
            port_lister=port_lister,
            transport_factory=transport_factory,
        )

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_profiles(self) -> list[DeviceProfile]:
        return self._service.list_profiles()

    def list_ports(self) -> list[str]:
        return self._service.list_ports()

    def probe(
        self,
        *,
        profile_id: str | None = None,
        port: str | None = None,
    ) -> ProbeResult:
        return self._service.probe(profile_id=profile_id, port=port)

    def connect(
        self,
        *,
        profile_id: str | None = None,
        port: str | None = None,
    ) -> DeviceController:
        return self._service.connect(profile_id=profile_id, port=port)
