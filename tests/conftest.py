from __future__ import annotations

import pytest

from settings import get_settings

_ENV_VARS = (
    "CO2MOND_DATADIR",
    "CO2MOND_DEVICE",
    "CO2MOND_PIDFILE",
    "CO2MOND_LOGFILE",
    "CO2MOND_PRINT_UNKNOWN",
    "CO2MOND_RETRY_INTERVAL",
    "CO2MOND_READ_TIMEOUT_MS",
    "CO2MOND_DISPATCH_FIRST_ZERO",
    "INFLUXDB_HOST",
    "INFLUXDB_PORT",
    "INFLUXDB_DB",
    "INFLUXDB_USER",
    "INFLUXDB_PASSWORD",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
