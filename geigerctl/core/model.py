"""Core data models used across loader, codec, probe, and CLI."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

from geigerctl.core.errors import DeviceNotFoundError

if TYPE_CHECKING:
    from geigerctl.core.controller import DeviceController


@dataclass(frozen=True)
class TransportConfig:
    port: str
    baud_rate: int = 9600
    parity: str = "none"
    data_bits: int = 8
    stop_bits: float = 1
    read_timeout_s: float = 10.0
    write_timeout_s: float = 10.0
    settle_s: float = 0.05


@dataclass(frozen=True)
class SerialSettings:
    baud_rate: int = 57600
    parity: str = "none"
    data_bits: int = 8
    stop_bits: float = 1
    read_timeout_s: float = 10.0
    write_timeout_s: float = 10.0

    def bind(self, port: str) -> TransportConfig:
        return TransportConfig(
            port=port,
            baud_rate=self.baud_rate,
            parity=self.parity,
            data_bits=self.data_bits,
            stop_bits=self.stop_bits,
            read_timeout_s=self.read_timeout_s,
            write_timeout_s=self.write_timeout_s,
        )


@dataclass(frozen=True)
class ResponseSpec:
    kind: str
    length: int | None = None
    max_length: int | None = None
    divisor: float | None = None

    @property
    def fixed_width(self) -> bool:
        return self.length is not None


@dataclass(frozen=True)
class CommandSpec:
    name: str
    token: str
    response: ResponseSpec | None = None


@dataclass(frozen=True)
class DeviceProfile:
    id: str
    name: str
    signature: str
    serial: SerialSettings
    commands: dict[str, CommandSpec]


@dataclass(frozen=True)
class DeviceIdentity:
    port: str
    profile_id: str
    version: str


class AttemptOutcome(enum.Enum):
    OPEN_FAILED = "open_failed"
    TRANSPORT_ERROR = "transport_error"
    SIGNATURE_MISMATCH = "signature_mismatch"
    MATCHED = "matched"


@dataclass(frozen=True)
class PortAttempt:
    port: str
    profile_id: str
    outcome: AttemptOutcome
    detail: str = ""


@dataclass(frozen=True)
class ProbeResult:
    controller: DeviceController | None
    identity: DeviceIdentity | None
    attempts: tuple[PortAttempt, ...]

    @property
    def found(self) -> bool:
        return self.controller is not None

    @property
    def attempted_ports(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(attempt.port for attempt in self.attempts))

    def unwrap(self) -> DeviceController:
        """Return the bound controller or raise `DeviceNotFoundError`."""
        if self.controller is None:
            tried = " ".join(self.attempted_ports) or "<no ports>"
            raise DeviceNotFoundError(
                f"Unable to find a supported Geiger counter. Tried: {tried}",
                attempts=self.attempts,
            )
        return self.controller
