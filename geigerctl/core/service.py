"""Service layer used by CLI and the public client."""

from __future__ import annotations

from geigerctl.core.controller import DeviceController
from geigerctl.core.errors import ProfileSelectionError
from geigerctl.core.model import DeviceProfile, ProbeResult
from geigerctl.core.probe import PortLister, TransportFactory, probe
from geigerctl.core.profile_loader import load_profiles
from geigerctl.transports.serial_port import SerialTransport, list_serial_ports


class GeigerService:
    def __init__(
        self,
        *,
        port_lister: PortLister | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        loaded = load_profiles()
        self.profiles = loaded.profiles
        self.load_warnings = loaded.warnings
        self.port_lister = port_lister or list_serial_ports
        self.transport_factory = transport_factory or SerialTransport

    def list_profiles(self) -> list[DeviceProfile]:
        return sorted(self.profiles.values(), key=lambda p: p.id)

    def list_ports(self) -> list[str]:
        return list(self.port_lister())

    def resolve_profiles(self, profile_id: str | None = None) -> list[DeviceProfile]:
        if profile_id is None:
            return self.list_profiles()
        profile = self.profiles.get(profile_id)
        if profile is None:
            available = ", ".join(sorted(self.profiles))
            raise ProfileSelectionError(
                f"Unknown profile '{profile_id}'. Available: {available}"
            )
        return [profile]

    def probe(
        self,
        *,
        profile_id: str | None = None,
        port: str | None = None,
    ) -> ProbeResult:
        """Scan ports (or just ``port``) for a device answering a known signature."""
        return probe(
            self.resolve_profiles(profile_id),
            port_lister=self.port_lister,
            transport_factory=self.transport_factory,
            ports=[port] if port else None,
        )

    def connect(
        self,
        *,
        profile_id: str | None = None,
        port: str | None = None,
    ) -> DeviceController:
        return self.probe(profile_id=profile_id, port=port).unwrap()
