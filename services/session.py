"""One armed device: read frames, decode, deduplicate and dispatch until the transport fails."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from datastore.value_cache import ValueCache
from models.records import Malformed, Reading
from services.decoder import decode_frame, format_value, in_range
from services.dispatcher import SinkDispatcher
from transport.interface import DEFAULT_MAGIC_TABLE, Device, TransportError

logger = logging.getLogger(__name__)

Echo = Callable[[str], None]


class SessionResult(str, Enum):
    """How a device session ended."""

    arm_failed = "arm_failed"
    transport_error = "transport_error"
    stopped = "stopped"


@dataclass
class SessionStats:
    frames: int = 0
    malformed: int = 0
    discarded: int = 0
    dispatched: int = 0
    failed: int = 0


class DeviceSession:
    """Drives a single open device until a read fails or ``stop`` is set.

    ``echo`` receives the console lines (``Tamb\\t21.4375``); pass ``None``
    when running detached.
    """

    def __init__(
        self,
        device: Device,
        cache: ValueCache,
        dispatcher: SinkDispatcher,
        echo: Optional[Echo] = None,
        print_unknown: bool = False,
        magic_table: bytes = DEFAULT_MAGIC_TABLE,
        stop: Optional[threading.Event] = None,
    ) -> None:
        self.device = device
        self.cache = cache
        self.dispatcher = dispatcher
        self.echo = echo
        self.print_unknown = print_unknown
        self.magic_table = magic_table
        self.stop = stop or threading.Event()
        self.stats = SessionStats()

    def run(self) -> SessionResult:
        try:
            armed = self.device.arm(self.magic_table)
        except TransportError as exc:
            logger.error("Unable to send magic table to CO2 device", extra={"reason": str(exc)})
            return SessionResult.arm_failed
        if not armed:
            logger.error("Unable to send magic table to CO2 device")
            return SessionResult.arm_failed

        while not self.stop.is_set():
            try:
                frame = self.device.read_frame()
            except TransportError as exc:
                logger.error("Error while reading data from device", extra={"reason": str(exc)})
                return SessionResult.transport_error
            if not frame:
                logger.error("Error while reading data from device", extra={"reason": "empty frame"})
                return SessionResult.transport_error
            self.process_frame(frame)

        return SessionResult.stopped

    def process_frame(self, frame: bytes) -> None:
        self.stats.frames += 1
        result = decode_frame(frame)
        if isinstance(result, Malformed):
            self.stats.malformed += 1
            logger.warning("Unexpected data from device", extra={"reason": result.reason})
            return

        if result.is_known:
            self._handle_metric(result)
        else:
            self._handle_unknown(result)

    def _handle_metric(self, reading: Reading) -> None:
        if not in_range(reading):
            self.stats.discarded += 1
            return

        value = format_value(reading)
        if value is None:
            return
        if self.echo is not None:
            self.echo(f"{reading.metric}\t{value}")

        if self.cache.is_changed(reading.code, reading.raw):
            if self.dispatcher.dispatch(reading, value):
                self.cache.commit(reading.code, reading.raw)
                self.stats.dispatched += 1
            else:
                self.stats.failed += 1
                logger.warning(
                    "Reading dropped",
                    extra={"metric": reading.metric, "value": value, "sink": self.dispatcher.kind},
                )

        if self.dispatcher.uses_heartbeat:
            self.dispatcher.heartbeat()

    def _handle_unknown(self, reading: Reading) -> None:
        if self.print_unknown and self.echo is not None:
            self.echo(f"0x{reading.code:02x}\t{reading.raw:d}")
        self.cache.observe(reading.code, reading.raw)
