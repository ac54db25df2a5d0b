# transport/interface.py
from __future__ import annotations

from typing import Protocol

DEFAULT_MAGIC_TABLE = bytes(8)


class TransportError(Exception):
    """The device could not be opened, armed or read; the session must reconnect."""


class Device(Protocol):
    """
    One open sensor handle.

    ``read_frame`` blocks until the device delivers the next frame and raises
    ``TransportError`` on any failure (including EOF or a read timeout).
    """

    def arm(self, magic_table: bytes) -> bool:
        ...

    def read_frame(self) -> bytes:
        ...

    def close(self) -> None:
        ...


class DeviceTransport(Protocol):
    """Opens devices either by discovery or by an explicit path."""

    def open(self) -> Device:
        ...

    def open_path(self, path: str) -> Device:
        ...
