"""Device capability surface bound to one probed transport."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from geigerctl.core.codec import Decoded, decode_response, encode_command
from geigerctl.core.errors import CommandResolutionError, ProtocolDecodeError, TransportError
from geigerctl.core.model import CommandSpec, DeviceProfile
from geigerctl.transports.base import Transport

LOGGER = logging.getLogger(__name__)

IDENTIFY = "identify"
SERIAL = "serial"
VOLTAGE = "voltage"
COUNT_RATE = "cpm"
POWER_OFF = "power_off"
POWER_ON = "power_on"
REBOOT = "reboot"


class GeigerCounter(Protocol):
    """Operations every supported Geiger counter model offers."""

    def get_device_version(self) -> str: ...

    def get_serial_number(self) -> str: ...

    def power_off(self) -> None: ...

    def power_on(self) -> None: ...

    def reboot(self) -> None: ...

    def get_voltage(self) -> float:
        """Battery voltage in volts."""

    def get_cpm(self) -> int:
        """Count rate in counts per minute."""


class DeviceController:
    """`GeigerCounter` driven by a profile's command table.

    Owns ``transport`` exclusively; closing the controller closes the port.
    Commands are serialised with a lock since the protocol is half-duplex.
    """

    def __init__(self, transport: Transport, profile: DeviceProfile) -> None:
        if not transport.is_open:
            transport.open()
        self.transport = transport
        self.profile = profile
        self._lock = threading.Lock()

    @property
    def port(self) -> str:
        return self.transport.port

    def __enter__(self) -> DeviceController:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.transport.close()

    def get_device_version(self) -> str:
        return str(self.execute(IDENTIFY))

    def get_serial_number(self) -> str:
        return str(self.execute(SERIAL))

    def power_off(self) -> None:
        self.execute(POWER_OFF)

    def power_on(self) -> None:
        self.execute(POWER_ON)

    def reboot(self) -> None:
        self.execute(REBOOT)

    def get_voltage(self) -> float:
        return float(self.execute(VOLTAGE))

    def get_cpm(self) -> int:
        return int(self.execute(COUNT_RATE))

    def command(self, name: str) -> CommandSpec:
        spec = self.profile.commands.get(name)
        if spec is None:
            available = ", ".join(sorted(self.profile.commands))
            raise CommandResolutionError(
                f"Profile '{self.profile.id}' does not define command '{name}'. Available: {available}"
            )
        return spec

    def execute(self, name: str, payload: bytes | None = None) -> Decoded | None:
        """Encode, write, read and decode one command."""
        spec = self.command(name)
        with self._lock:
            try:
                return exchange(self.transport, spec, payload)
            except TransportError as exc:
                exc.command = spec.token
                raise


def exchange(transport: Transport, spec: CommandSpec, payload: bytes | None) -> Decoded | None:
    LOGGER.debug("TX %s on %s", spec.token, transport.port)
    # Bytes that arrived after an earlier timeout must not answer this command.
    transport.discard_input()
    transport.write_bytes(encode_command(spec, payload))
    response = spec.response
    if response is None:
        return None
    if response.length is not None:
        data = transport.read_exact(response.length)
    elif response.max_length is not None:
        data = transport.read_up_to(response.max_length)
    else:
        raise ProtocolDecodeError(f"{spec.token} response has neither length nor max_length")
    LOGGER.debug("RX %s on %s: %s", spec.token, transport.port, data.hex())
    return decode_response(spec, data)
