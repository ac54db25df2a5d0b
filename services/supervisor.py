"""Device lifecycle: open, run a session, close, and retry forever."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from datastore.value_cache import ValueCache, build_cache
from services.dispatcher import SinkDispatcher, build_dispatcher
from services.session import DeviceSession, Echo, SessionResult
from settings import Settings
from transport.hid_device import HidTransport
from transport.interface import DEFAULT_MAGIC_TABLE, Device, DeviceTransport, TransportError

logger = logging.getLogger(__name__)


class Supervisor:
    """Reconnects to the sensor whenever a session ends.

    An open failure is logged once when a failure streak starts; further
    attempts in the same streak are logged at debug level only. Between
    attempts the supervisor waits ``retry_interval`` seconds on ``stop``,
    which is also the only way out of ``run``.
    """

    def __init__(
        self,
        transport: DeviceTransport,
        cache: ValueCache,
        dispatcher: SinkDispatcher,
        echo: Optional[Echo] = None,
        print_unknown: bool = False,
        device_path: Optional[str] = None,
        retry_interval: float = 1.0,
        magic_table: bytes = DEFAULT_MAGIC_TABLE,
        stop: Optional[threading.Event] = None,
    ) -> None:
        self.transport = transport
        self.cache = cache
        self.dispatcher = dispatcher
        self.echo = echo
        self.print_unknown = print_unknown
        self.device_path = device_path
        self.retry_interval = retry_interval
        self.magic_table = magic_table
        self.stop = stop or threading.Event()
        self.open_failures = 0
        self.sessions = 0
        self.last_result: Optional[SessionResult] = None

    def run(self) -> None:
        error_shown = False
        while not self.stop.is_set():
            try:
                device = self._open()
            except TransportError as exc:
                self.open_failures += 1
                if not error_shown:
                    logger.error("Unable to open CO2 device", extra={"reason": str(exc)})
                    error_shown = True
                else:
                    logger.debug(
                        "Still unable to open CO2 device",
                        extra={"attempt": self.open_failures, "reason": str(exc)},
                    )
                self.stop.wait(self.retry_interval)
                continue

            error_shown = False
            self.open_failures = 0
            logger.info("CO2 device opened", extra={"path": self.device_path})
            try:
                self.last_result = self.run_session(device)
            finally:
                self._close(device)

    def run_session(self, device: Device) -> SessionResult:
        self.sessions += 1
        session = DeviceSession(
            device,
            cache=self.cache,
            dispatcher=self.dispatcher,
            echo=self.echo,
            print_unknown=self.print_unknown,
            magic_table=self.magic_table,
            stop=self.stop,
        )
        return session.run()

    def _open(self) -> Device:
        if self.device_path:
            return self.transport.open_path(self.device_path)
        return self.transport.open()

    @staticmethod
    def _close(device: Device) -> None:
        try:
            device.close()
        except (OSError, TransportError) as exc:
            logger.warning("Error while closing CO2 device", extra={"reason": str(exc)})


def build_supervisor(
    settings: Settings,
    echo: Optional[Echo] = None,
    stop: Optional[threading.Event] = None,
) -> Supervisor:
    """Factory that wires the supervisor to the HID transport and the configured sink."""
    return Supervisor(
        transport=HidTransport(read_timeout_ms=settings.read_timeout_ms),
        cache=build_cache(settings.dispatch_first_zero),
        dispatcher=build_dispatcher(settings),
        echo=None if settings.daemonize else echo,
        print_unknown=settings.print_unknown,
        device_path=settings.device_path,
        retry_interval=settings.retry_interval,
        stop=stop,
    )
