# transport/hid_device.py
from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import hid  # pip install hidapi

from models.records import FRAME_SENTINEL
from transport.interface import DEFAULT_MAGIC_TABLE, TransportError

logger = logging.getLogger(__name__)

VENDOR_ID = 0x04D9
PRODUCT_ID = 0xA052
FRAME_LENGTH = 8

# "Htemp99e" with the nibbles of every byte swapped
MAGIC_WORD = bytes(((c >> 4) | (c << 4)) & 0xFF for c in b"Htemp99e")

_SWAPS = ((0, 2), (1, 4), (3, 7), (5, 6))


def deobfuscate(data: Sequence[int], magic_table: Sequence[int]) -> bytes:
    """
    Undo the scrambling applied by older firmware.

    Swap byte pairs, XOR with the magic table, rotate the whole 64-bit
    block right by three bits and subtract the magic word bytewise.
    """
    buf = bytearray(data[:FRAME_LENGTH])
    for a, b in _SWAPS:
        buf[a], buf[b] = buf[b], buf[a]
    for i in range(FRAME_LENGTH):
        buf[i] ^= magic_table[i]
    rotated = [((buf[i] >> 3) | (buf[i - 1] << 5)) & 0xFF for i in range(FRAME_LENGTH)]
    return bytes((rotated[i] - MAGIC_WORD[i]) & 0xFF for i in range(FRAME_LENGTH))


class HidDevice:
    """
    Driver for a single USB-HID CO2 monitor (Holtek 04d9:a052).

    The device starts streaming once it receives the magic table as a
    feature report. Every read returns one 8-byte frame, scrambled with the
    magic table unless the firmware already sends plain frames.
    """

    def __init__(self, handle: Any, read_timeout_ms: int = 0, path: Optional[str] = None) -> None:
        self._handle = handle
        self._read_timeout_ms = read_timeout_ms
        self._magic_table = DEFAULT_MAGIC_TABLE
        self.path = path

    def arm(self, magic_table: bytes = DEFAULT_MAGIC_TABLE) -> bool:
        if len(magic_table) != FRAME_LENGTH:
            raise ValueError(f"Magic table must be {FRAME_LENGTH} bytes, got {len(magic_table)}.")
        report = [0x00, *magic_table]
        try:
            sent = self._handle.send_feature_report(report)
        except (OSError, ValueError) as exc:
            logger.error("Feature report failed", extra={"reason": str(exc)})
            return False
        if sent != len(report):
            return False
        self._magic_table = bytes(magic_table)
        return True

    def read_frame(self) -> bytes:
        try:
            data = self._handle.read(FRAME_LENGTH, timeout_ms=self._read_timeout_ms)
        except (OSError, ValueError) as exc:
            raise TransportError(f"read failed: {exc}") from exc

        if not data:
            raise TransportError("no data from device")
        if len(data) != FRAME_LENGTH:
            raise TransportError(f"transferred {len(data)} bytes, expected {FRAME_LENGTH}")

        raw = bytes(data)
        if raw[4] == FRAME_SENTINEL:
            return raw
        return deobfuscate(raw, self._magic_table)

    def close(self) -> None:
        self._handle.close()


class HidTransport:

    def __init__(
        self,
        vendor_id: int = VENDOR_ID,
        product_id: int = PRODUCT_ID,
        read_timeout_ms: int = 0,
    ) -> None:
        self.vendor_id = vendor_id
        self.product_id = product_id
        self.read_timeout_ms = read_timeout_ms

    def open(self) -> HidDevice:
        handle = hid.device()
        try:
            handle.open(self.vendor_id, self.product_id)
        except (OSError, ValueError) as exc:
            raise TransportError(
                f"unable to open {self.vendor_id:04x}:{self.product_id:04x}: {exc}"
            ) from exc
        return HidDevice(handle, read_timeout_ms=self.read_timeout_ms)

    def open_path(self, path: str) -> HidDevice:
        handle = hid.device()
        try:
            handle.open_path(path.encode("utf-8"))
        except (OSError, ValueError) as exc:
            raise TransportError(f"unable to open {path}: {exc}") from exc
        return HidDevice(handle, read_timeout_ms=self.read_timeout_ms, path=path)
