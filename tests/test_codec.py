from __future__ import annotations

import pytest

from geigerctl.core.codec import decode_response, encode_command, frame_command
from geigerctl.core.errors import ProtocolDecodeError
from geigerctl.core.model import CommandSpec, DeviceProfile, ResponseSpec
from geigerctl.core.profile_loader import load_profiles


@pytest.fixture(scope="module")
def gmc300e() -> DeviceProfile:
    return load_profiles().profiles["gmc300e"]


def test_framing_is_one_open_two_close() -> None:
    framed = frame_command("GETVER")
    assert framed == b"<GETVER>>"
    assert framed.count(b"<") == 1
    assert framed.count(b">") == 2


def test_payload_sits_inside_frame() -> None:
    spec = CommandSpec(name="set_year", token="SETDATEYY", response=None)
    assert encode_command(spec, b"\x18") == b"<SETDATEYY\x18>>"


def test_non_ascii_token_rejected() -> None:
    with pytest.raises(ValueError):
        frame_command("GETVÉR")


def test_voltage_decodes_decivolts(gmc300e: DeviceProfile) -> None:
    assert decode_response(gmc300e.commands["voltage"], bytes([123])) == 12.3


def test_cpm_decodes_big_endian(gmc300e: DeviceProfile) -> None:
    value = decode_response(gmc300e.commands["cpm"], bytes([0x01, 0x2C]))
    assert value == 300
    assert isinstance(value, int)


def test_serial_decodes_uppercase_hex(gmc300e: DeviceProfile) -> None:
    value = decode_response(gmc300e.commands["serial"], bytes.fromhex("f488ab0c1d2e3f"))
    assert value == "F488AB0C1D2E3F"
    assert len(value) == 14


@pytest.mark.parametrize(
    ("command", "data"),
    [
        ("serial", b""),
        ("serial", bytes(6)),
        ("voltage", b""),
        ("cpm", b""),
        ("cpm", b"\x01"),
    ],
)
def test_short_fixed_width_response_rejected(gmc300e: DeviceProfile, command: str, data: bytes) -> None:
    with pytest.raises(ProtocolDecodeError):
        decode_response(gmc300e.commands[command], data)


def test_long_fixed_width_response_rejected(gmc300e: DeviceProfile) -> None:
    with pytest.raises(ProtocolDecodeError):
        decode_response(gmc300e.commands["cpm"], b"\x00\x01\x02")


def test_identity_strips_null_padding(gmc300e: DeviceProfile) -> None:
    data = b"GMC-300E V4.54" + bytes(20)
    assert decode_response(gmc300e.commands["identify"], data) == "GMC-300E V4.54"


def test_identity_partial_read_is_kept(gmc300e: DeviceProfile) -> None:
    assert decode_response(gmc300e.commands["identify"], b"GMC-3") == "GMC-3"


def test_identity_over_max_length_rejected(gmc300e: DeviceProfile) -> None:
    with pytest.raises(ProtocolDecodeError):
        decode_response(gmc300e.commands["identify"], b"x" * 101)


def test_fire_and_forget_has_nothing_to_decode(gmc300e: DeviceProfile) -> None:
    with pytest.raises(ProtocolDecodeError):
        decode_response(gmc300e.commands["reboot"], b"")


def test_unknown_kind_rejected() -> None:
    spec = CommandSpec(name="temp", token="GETTEMP", response=ResponseSpec(kind="float", length=4))
    with pytest.raises(ProtocolDecodeError):
        decode_response(spec, bytes(4))
