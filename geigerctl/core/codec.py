"""Command framing and response decoding.

Commands go out as ``<`` + token + payload + ``>>``. The closing marker is two
characters and the firmware rejects anything else.

Nothing here touches a transport: callers hand in the bytes they read.
"""

from __future__ import annotations

from geigerctl.core.errors import ProtocolDecodeError
from geigerctl.core.model import CommandSpec, ResponseSpec

FRAME_OPEN = b"<"
FRAME_CLOSE = b">>"
_TEXT_PADDING = b"\x00\r\n\t "

Decoded = str | int | float


def frame_command(token: str, payload: bytes = b"") -> bytes:
    try:
        encoded = token.encode("ascii")
    except UnicodeEncodeError as exc:
        raise ValueError(f"Command token must be ASCII: {token!r}") from exc
    return FRAME_OPEN + encoded + bytes(payload) + FRAME_CLOSE


def encode_command(spec: CommandSpec, payload: bytes | None = None) -> bytes:
    return frame_command(spec.token, payload or b"")


def decode_response(spec: CommandSpec, data: bytes) -> Decoded:
    response = spec.response
    if response is None:
        raise ProtocolDecodeError(f"{spec.token} does not produce a response")

    if response.fixed_width and len(data) != response.length:
        raise ProtocolDecodeError(
            f"{spec.token} expects exactly {response.length} bytes, got {len(data)}"
        )

    if response.kind == "text":
        return _decode_text(spec, response, data)
    if response.kind == "hex":
        return data.hex().upper()
    if response.kind == "uint_be":
        value = int.from_bytes(data, "big", signed=False)
        if response.divisor is not None:
            return value / response.divisor
        return value
    raise ProtocolDecodeError(f"Unknown response kind '{response.kind}' for {spec.token}")


def _decode_text(spec: CommandSpec, response: ResponseSpec, data: bytes) -> str:
    if response.max_length is not None and len(data) > response.max_length:
        raise ProtocolDecodeError(
            f"{spec.token} response exceeds {response.max_length} bytes ({len(data)})"
        )
    return data.rstrip(_TEXT_PADDING).decode("ascii", errors="replace")
