from __future__ import annotations

import pytest

from geigerctl.core.codec import frame_command
from geigerctl.core.controller import DeviceController
from geigerctl.core.errors import (
    CommandResolutionError,
    ProtocolDecodeError,
    TransportNotOpenError,
    TransportTimeoutError,
)
from geigerctl.core.model import CommandSpec, DeviceProfile, ResponseSpec, SerialSettings
from geigerctl.core.profile_loader import load_profiles


class FakeTransport:
    """Queues ``responses`` once a command is written."""

    def __init__(self, responses: bytes = b"", port: str = "/dev/ttyUSB0") -> None:
        self._port = port
        self._open = False
        self.pending = responses
        self.responses = bytearray()
        self.written: list[bytes] = []
        self.reads: list[int] = []
        self.discards = 0

    @property
    def port(self) -> str:
        return self._port

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self._open = True

    def close(self) -> None:
        self._open = False

    def write_bytes(self, data: bytes) -> None:
        if not self._open:
            raise TransportNotOpenError("Serial port is not open", port=self._port)
        self.written.append(data)
        self.responses += self.pending
        self.pending = b""

    def discard_input(self) -> None:
        if not self._open:
            raise TransportNotOpenError("Serial port is not open", port=self._port)
        self.discards += 1
        self.responses.clear()

    def write_framed_command(self, name: str, payload: bytes = b"") -> None:
        self.write_bytes(frame_command(name, payload))

    def _take(self, count: int) -> bytes:
        self.reads.append(count)
        data = bytes(self.responses[:count])
        del self.responses[:count]
        return data

    def read_exact(self, count: int) -> bytes:
        data = self._take(count)
        if len(data) < count:
            raise TransportTimeoutError(f"Expected {count} bytes", port=self._port)
        return data

    def read_up_to(self, max_count: int) -> bytes:
        data = self._take(max_count)
        if not data:
            raise TransportTimeoutError("No response", port=self._port)
        return data

    def read_line(self) -> str:
        raise NotImplementedError


class ShortReadTransport(FakeTransport):
    """Returns whatever is buffered, even when short."""

    def read_exact(self, count: int) -> bytes:
        return self._take(count)


@pytest.fixture(scope="module")
def gmc300e() -> DeviceProfile:
    return load_profiles().profiles["gmc300e"]


def test_get_device_version(gmc300e: DeviceProfile) -> None:
    transport = FakeTransport(b"GMC-300E V4.54\x00\x00")
    controller = DeviceController(transport, gmc300e)
    assert controller.get_device_version() == "GMC-300E V4.54"
    assert transport.written == [b"<GETVER>>"]
    assert transport.reads == [100]


def test_get_serial_number(gmc300e: DeviceProfile) -> None:
    transport = FakeTransport(bytes.fromhex("f488ab0c1d2e3f"))
    controller = DeviceController(transport, gmc300e)
    assert controller.get_serial_number() == "F488AB0C1D2E3F"
    assert transport.written == [b"<GETSERIAL>>"]
    assert transport.reads == [7]


def test_get_voltage(gmc300e: DeviceProfile) -> None:
    transport = FakeTransport(bytes([123]))
    controller = DeviceController(transport, gmc300e)
    assert controller.get_voltage() == 12.3
    assert transport.written == [b"<GETVOLT>>"]


def test_get_cpm(gmc300e: DeviceProfile) -> None:
    transport = FakeTransport(bytes([0x01, 0x2C]))
    controller = DeviceController(transport, gmc300e)
    assert controller.get_cpm() == 300
    assert transport.written == [b"<GETCPM>>"]


def test_fire_and_forget_commands_never_read(gmc300e: DeviceProfile) -> None:
    transport = FakeTransport()
    controller = DeviceController(transport, gmc300e)
    controller.power_off()
    controller.power_on()
    controller.reboot()
    assert transport.written == [b"<POWEROFF>>", b"<POWERON>>", b"<REBOOT>>"]
    assert transport.reads == []


def test_short_read_never_decodes_as_zero(gmc300e: DeviceProfile) -> None:
    controller = DeviceController(ShortReadTransport(b"\x01"), gmc300e)
    with pytest.raises(ProtocolDecodeError):
        controller.get_cpm()


def test_transport_error_carries_command_context(gmc300e: DeviceProfile) -> None:
    controller = DeviceController(FakeTransport(b"\x01"), gmc300e)
    with pytest.raises(TransportTimeoutError) as exc:
        controller.get_cpm()
    assert exc.value.port == "/dev/ttyUSB0"
    assert exc.value.command == "GETCPM"
    assert "command=GETCPM" in str(exc.value)


def test_unknown_command_lists_available(gmc300e: DeviceProfile) -> None:
    transport = FakeTransport()
    controller = DeviceController(transport, gmc300e)
    with pytest.raises(CommandResolutionError) as exc:
        controller.execute("get_temperature")
    assert "Available:" in str(exc.value)
    assert "cpm" in str(exc.value)
    assert transport.written == []


def test_context_manager_closes_transport(gmc300e: DeviceProfile) -> None:
    transport = FakeTransport()
    with DeviceController(transport, gmc300e) as controller:
        assert controller.port == "/dev/ttyUSB0"
        assert transport.is_open
    assert transport.is_open is False


def test_closed_controller_raises_not_open(gmc300e: DeviceProfile) -> None:
    transport = FakeTransport(bytes([0x01, 0x2C]))
    controller = DeviceController(transport, gmc300e)
    controller.close()
    with pytest.raises(TransportNotOpenError):
        controller.get_cpm()
    assert transport.written == []


def test_late_bytes_from_timed_out_command_are_discarded(gmc300e: DeviceProfile) -> None:
    transport = FakeTransport(b"\x00")
    controller = DeviceController(transport, gmc300e)
    with pytest.raises(TransportTimeoutError):
        controller.get_cpm()

    # The missing byte of the first reply shows up after the timeout.
    transport.responses += b"\x12"
    transport.pending = bytes([0x01, 0x2C])
    assert controller.get_cpm() == 300
    assert transport.discards == 2


def test_response_without_width_is_rejected() -> None:
    profile = DeviceProfile(
        id="broken",
        name="Broken",
        signature="BROKEN",
        serial=SerialSettings(),
        commands={"cpm": CommandSpec(name="cpm", token="GETCPM", response=ResponseSpec(kind="uint_be"))},
    )
    transport = FakeTransport(b"\x01\x2c")
    controller = DeviceController(transport, profile)
    with pytest.raises(ProtocolDecodeError, match="neither length nor max_length"):
        controller.execute("cpm")
    assert transport.reads == []
