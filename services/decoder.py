"""Validation and decoding of raw sensor frames."""

from __future__ import annotations

from typing import Optional, Sequence

from models.records import (
    CO2_MAX_PPM,
    CODE_CNTR,
    CODE_TAMB,
    FRAME_MIN_LENGTH,
    FRAME_SENTINEL,
    DecodeResult,
    Malformed,
    Reading,
)


def checksum(b0: int, b1: int, b2: int) -> int:
    return (b0 + b1 + b2) & 0xFF


def decode_frame(frame: Sequence[int]) -> DecodeResult:
    """Turn a raw device frame into a ``Reading`` or a ``Malformed`` result.

    The sentinel in byte 4 is checked before the checksum in byte 3, so a
    frame with a bad sentinel is rejected even when its checksum is valid.
    """
    if len(frame) < FRAME_MIN_LENGTH:
        return Malformed(reason=f"short frame ({len(frame)} bytes, want {FRAME_MIN_LENGTH})")

    b0, b1, b2, b3, b4 = (value & 0xFF for value in frame[:FRAME_MIN_LENGTH])
    if b4 != FRAME_SENTINEL:
        return Malformed(reason=f"unexpected data (data[4] = {b4:02x}, want 0x0d)")

    expected = checksum(b0, b1, b2)
    if expected != b3:
        return Malformed(reason=f"checksum error ({expected:02x}, await {b3:02x})")

    return Reading(code=b0, raw=(b1 << 8) | b2)


def decode_temperature(raw: int) -> float:
    return raw * 0.0625 - 273.15


def in_range(reading: Reading) -> bool:
    """CO2 values above 3000 ppm are sensor noise; everything else passes."""
    if reading.code == CODE_CNTR:
        return reading.raw <= CO2_MAX_PPM
    return True


def format_value(reading: Reading) -> Optional[str]:
    """Render the derived metric value the way it is echoed and stored."""
    if reading.code == CODE_TAMB:
        return f"{decode_temperature(reading.raw):.4f}"
    if reading.code == CODE_CNTR:
        return f"{reading.raw:d}"
    return None
