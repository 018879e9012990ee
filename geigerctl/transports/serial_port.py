"""Serial transport implementation using pyserial."""

from __future__ import annotations

import logging
import time

import serial
from serial.tools import list_ports

from geigerctl.core.codec import frame_command
from geigerctl.core.errors import (
    TransportIOError,
    TransportNotOpenError,
    TransportTimeoutError,
)
from geigerctl.core.model import TransportConfig

LOGGER = logging.getLogger(__name__)

_PARITY = {
    "none": serial.PARITY_NONE,
    "even": serial.PARITY_EVEN,
    "odd": serial.PARITY_ODD,
    "mark": serial.PARITY_MARK,
    "space": serial.PARITY_SPACE,
}
_STOP_BITS = {
    1: serial.STOPBITS_ONE,
    1.5: serial.STOPBITS_ONE_POINT_FIVE,
    2: serial.STOPBITS_TWO,
}
_LINE_TERMINATOR = b"\n"


def list_serial_ports() -> list[str]:
    """Return the serial port identifiers currently visible to the host."""
    return [info.device for info in sorted(list_ports.comports(), key=lambda p: p.device)]


class SerialTransport:
    """One serial channel with bounded read/write timeouts.

    ``config.port`` may be a device path (``/dev/ttyUSB0``, ``COM3``) or any
    pyserial URL such as ``loop://``.
    """

    def __init__(self, config: TransportConfig) -> None:
        self.config = config
        self._serial: serial.SerialBase | None = None

    @property
    def port(self) -> str:
        return self.config.port

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def __enter__(self) -> SerialTransport:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self) -> None:
        if self.is_open:
            return
        try:
            parity = _PARITY[self.config.parity]
            stop_bits = _STOP_BITS[self.config.stop_bits]
        except KeyError as exc:
            raise TransportIOError(
                f"Unsupported serial framing: {exc.args[0]!r}", port=self.port
            ) from exc

        LOGGER.debug("Opening %s at %d baud", self.port, self.config.baud_rate)
        try:
            self._serial = serial.serial_for_url(
                self.port,
                baudrate=self.config.baud_rate,
                bytesize=self.config.data_bits,
                parity=parity,
                stopbits=stop_bits,
                timeout=self.config.read_timeout_s,
                write_timeout=self.config.write_timeout_s,
            )
        except (serial.SerialException, OSError, ValueError) as exc:
            self._serial = None
            raise TransportIOError(f"Could not open serial port: {exc}", port=self.port) from exc

    def close(self) -> None:
        if self._serial is None:
            return
        handle, self._serial = self._serial, None
        try:
            handle.close()
        except (serial.SerialException, OSError) as exc:
            LOGGER.debug("Ignoring error while closing %s: %s", self.port, exc)
        LOGGER.debug("Closed %s", self.port)

    def discard_input(self) -> None:
        handle = self._require_open()
        try:
            handle.reset_input_buffer()
        except (serial.SerialException, OSError) as exc:
            raise TransportIOError(f"Could not discard input: {exc}", port=self.port) from exc

    def write_bytes(self, data: bytes) -> None:
        handle = self._require_open()
        try:
            handle.write(data)
            handle.flush()
        except serial.SerialTimeoutException as exc:
            raise TransportTimeoutError(
                f"Write did not complete within {self.config.write_timeout_s}s", port=self.port
            ) from exc
        except (serial.SerialException, OSError) as exc:
            raise TransportIOError(f"Serial write failed: {exc}", port=self.port) from exc

    def write_framed_command(self, name: str, payload: bytes = b"") -> None:
        self._require_open()
        self.write_bytes(frame_command(name, payload))

    def read_exact(self, count: int) -> bytes:
        handle = self._require_open()
        data = self._read(handle, count)
        if len(data) < count:
            raise TransportTimeoutError(
                f"Expected {count} bytes within {self.config.read_timeout_s}s, received {len(data)}",
                port=self.port,
            )
        return data

    def read_up_to(self, max_count: int) -> bytes:
        """Block for the first byte, then drain until the line goes quiet.

        Stops at ``max_count`` bytes or once no new bytes arrive within
        ``config.settle_s``.
        """
        handle = self._require_open()
        data = bytearray(self._read(handle, 1))
        if not data:
            raise TransportTimeoutError(
                f"No response within {self.config.read_timeout_s}s", port=self.port
            )
        while len(data) < max_count:
            time.sleep(self.config.settle_s)
            try:
                waiting = handle.in_waiting
            except (serial.SerialException, OSError) as exc:
                raise TransportIOError(f"Serial read failed: {exc}", port=self.port) from exc
            if not waiting:
                break
            data += self._read(handle, min(waiting, max_count - len(data)))
        return bytes(data)

    def read_line(self) -> str:
        handle = self._require_open()
        try:
            line = handle.read_until(_LINE_TERMINATOR)
        except (serial.SerialException, OSError) as exc:
            raise TransportIOError(f"Serial read failed: {exc}", port=self.port) from exc
        if not line.endswith(_LINE_TERMINATOR):
            raise TransportTimeoutError(
                f"No line terminator within {self.config.read_timeout_s}s", port=self.port
            )
        return line.rstrip(b"\r\n").decode("ascii", errors="replace")

    def _read(self, handle: serial.SerialBase, count: int) -> bytes:
        try:
            return bytes(handle.read(count))
        except (serial.SerialException, OSError) as exc:
            raise TransportIOError(f"Serial read failed: {exc}", port=self.port) from exc

    def _require_open(self) -> serial.SerialBase:
        if self._serial is None or not self._serial.is_open:
            raise TransportNotOpenError("Serial port is not open", port=self.port)
        return self._serial
