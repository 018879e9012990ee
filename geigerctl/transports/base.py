"""Transport interfaces."""

from __future__ import annotations

from typing import Protocol


class Transport(Protocol):
    """One serial channel with an explicit open/close lifecycle."""

    @property
    def port(self) -> str: ...

    @property
    def is_open(self) -> bool: ...

    def open(self) -> None: ...

    def close(self) -> None: ...

    def discard_input(self) -> None:
        """Drop any received bytes not yet read."""

    def write_bytes(self, data: bytes) -> None: ...

    def write_framed_command(self, name: str, payload: bytes = b"") -> None: ...

    def read_exact(self, count: int) -> bytes:
        """Read exactly ``count`` bytes or raise `TransportTimeoutError`."""

    def read_up_to(self, max_count: int) -> bytes:
        """Read a variable-length reply of at most ``max_count`` bytes."""

    def read_line(self) -> str: ...
