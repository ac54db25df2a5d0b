"""Routing of decoded readings to the single configured sink."""

from __future__ import annotations

import logging
from typing import Optional, Union

from models.records import Reading
from settings import FileSinkConfig, Settings, TelemetrySinkConfig
from storage.file_sink import FileSink
from storage.influx import InfluxClient, TelemetrySink

logger = logging.getLogger(__name__)

Sink = Union[FileSink, TelemetrySink]


class SinkDispatcher:
    """Chooses between the file and telemetry sinks once, at construction.

    Without a sink every write is accepted as a no-op so that the console-only
    mode still tracks values in the cache.
    """

    def __init__(self, sink: Optional[Sink] = None) -> None:
        self.sink = sink

    @property
    def kind(self) -> str:
        return self.sink.kind if self.sink is not None else "console"

    @property
    def uses_heartbeat(self) -> bool:
        return isinstance(self.sink, FileSink)

    def dispatch(self, reading: Reading, value: str) -> bool:
        metric = reading.metric
        if metric is None:
            raise ValueError(f"Code 0x{reading.code:02x} is diagnostic-only and cannot be dispatched.")
        if self.sink is None:
            return True
        if isinstance(self.sink, FileSink):
            return self.sink.write_value(metric, value)
        return self.sink.write(reading)

    def heartbeat(self) -> bool:
        if not isinstance(self.sink, FileSink):
            return True
        return self.sink.write_heartbeat()

    def close(self) -> None:
        if isinstance(self.sink, TelemetrySink):
            self.sink.close()


def build_dispatcher(settings: Settings) -> SinkDispatcher:
    config = settings.sink
    if isinstance(config, TelemetrySinkConfig):
        logger.info(
            "Delivering readings to InfluxDB",
            extra={"sink": "telemetry", "path": f"{config.host}:{config.port}/{config.database}"},
        )
        return SinkDispatcher(TelemetrySink(InfluxClient(config)))
    if isinstance(config, FileSinkConfig):
        logger.info("Storing readings in data directory", extra={"sink": "file", "path": str(config.datadir)})
        return SinkDispatcher(FileSink(config.datadir))
    return SinkDispatcher()
