"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

CODE_TAMB = 0x42  # ambient temperature
CODE_CNTR = 0x50  # relative CO2 concentration

FRAME_SENTINEL = 0x0D
FRAME_MIN_LENGTH = 5

CO2_MAX_PPM = 3000

METRIC_NAMES = {
    CODE_TAMB: "Tamb",
    CODE_CNTR: "CntR",
}


@dataclass(frozen=True, slots=True)
class Reading:
    """A validated frame: one metric code and its big-endian 16-bit raw value."""

    code: int
    raw: int

    @property
    def metric(self) -> Optional[str]:
        return METRIC_NAMES.get(self.code)

    @property
    def is_known(self) -> bool:
        return self.code in METRIC_NAMES


@dataclass(frozen=True, slots=True)
class Malformed:
    """A frame that failed sentinel or checksum validation."""

    reason: str


DecodeResult = Union[Reading, Malformed]
