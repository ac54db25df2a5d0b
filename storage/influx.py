from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional

import httpx

from models.points import DataPoint
from models.records import CODE_CNTR, CODE_TAMB, Reading
from services.decoder import decode_temperature
from settings import TelemetrySinkConfig

logger = logging.getLogger(__name__)

MEASUREMENTS = {
    CODE_TAMB: "temp",
    CODE_CNTR: "co2",
}


class InfluxClient:
    """Minimal InfluxDB 1.x line-protocol writer."""

    def __init__(
        self,
        config: TelemetrySinkConfig,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=f"http://{config.host}:{config.port}",
            timeout=timeout,
            transport=transport,
        )

    @property
    def config(self) -> TelemetrySinkConfig:
        return self._config

    def close(self) -> None:
        self._client.close()

    def _params(self) -> dict[str, str]:
        params = {"db": self._config.database, "precision": "ns"}
        if self._config.username:
            params["u"] = self._config.username
        if self._config.password:
            params["p"] = self._config.password
        return params

    def write_points(self, points: Iterable[DataPoint]) -> None:
        body = "\n".join(point.to_line() for point in points)
        response = self._client.post(
            "/write",
            params=self._params(),
            content=body.encode("utf-8"),
            headers={"Content-Type": "text/plain; charset=utf-8"},
        )
        response.raise_for_status()


def build_point(reading: Reading, timestamp_ns: int) -> DataPoint:
    if reading.code == CODE_TAMB:
        return DataPoint(
            measurement=MEASUREMENTS[CODE_TAMB],
            fields={"value": decode_temperature(reading.raw)},
            precision={"value": 4},
            timestamp_ns=timestamp_ns,
        )
    if reading.code == CODE_CNTR:
        return DataPoint(
            measurement=MEASUREMENTS[CODE_CNTR],
            fields={"value": reading.raw},
            timestamp_ns=timestamp_ns,
        )
    raise ValueError(f"No measurement is defined for code 0x{reading.code:02x}.")


class TelemetrySink:
    """Posts each changed reading as a single point; failures drop the reading."""

    kind = "telemetry"

    def __init__(self, client: InfluxClient, clock: Callable[[], int] = time.time_ns) -> None:
        self.client = client
        self._clock = clock

    def write(self, reading: Reading) -> bool:
        point = build_point(reading, self._clock())
        try:
            self.client.write_points([point])
        except httpx.HTTPStatusError as exc:
            logger.error(
                "InfluxDB rejected point",
                extra={
                    "metric": point.measurement,
                    "status": exc.response.status_code,
                    "reason": exc.response.text.strip() or None,
                },
            )
            return False
        except httpx.HTTPError as exc:
            logger.error(
                "Unable to reach InfluxDB",
                extra={"metric": point.measurement, "reason": str(exc) or type(exc).__name__},
            )
            return False
        return True

    def close(self) -> None:
        self.client.close()
