from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union


_DATADIR_ENV = "CO2MOND_DATADIR"
_DEVICE_ENV = "CO2MOND_DEVICE"
_PIDFILE_ENV = "CO2MOND_PIDFILE"
_LOGFILE_ENV = "CO2MOND_LOGFILE"
_PRINT_UNKNOWN_ENV = "CO2MOND_PRINT_UNKNOWN"
_RETRY_INTERVAL_ENV = "CO2MOND_RETRY_INTERVAL"
_READ_TIMEOUT_ENV = "CO2MOND_READ_TIMEOUT_MS"
_FIRST_ZERO_ENV = "CO2MOND_DISPATCH_FIRST_ZERO"
_INFLUX_HOST_ENV = "INFLUXDB_HOST"
_INFLUX_PORT_ENV = "INFLUXDB_PORT"
_INFLUX_DB_ENV = "INFLUXDB_DB"
_INFLUX_USER_ENV = "INFLUXDB_USER"
_INFLUX_PASSWORD_ENV = "INFLUXDB_PASSWORD"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_INFLUX_HOST = "influxdb"
DEFAULT_INFLUX_PORT = 8086
DEFAULT_RETRY_INTERVAL = 1.0

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class FileSinkConfig:
    datadir: Path


@dataclass(frozen=True)
class TelemetrySinkConfig:
    database: str
    host: str = DEFAULT_INFLUX_HOST
    port: int = DEFAULT_INFLUX_PORT
    username: Optional[str] = None
    password: Optional[str] = None


SinkConfig = Union[FileSinkConfig, TelemetrySinkConfig]


@dataclass(frozen=True)
class Settings:
    data_dir: Optional[str]
    device_path: Optional[str]
    pidfile: Optional[str]
    logfile: Optional[str]
    daemonize: bool
    print_unknown: bool
    retry_interval: float
    read_timeout_ms: int
    dispatch_first_zero: bool
    influx_host: str
    influx_port: int
    influx_db: Optional[str]
    influx_user: Optional[str]
    influx_password: Optional[str]
    log_level: str

    @property
    def sink(self) -> Optional[SinkConfig]:
        """The single active sink; telemetry wins over the data directory."""
        if self.influx_db:
            return TelemetrySinkConfig(
                database=self.influx_db,
                host=self.influx_host,
                port=self.influx_port,
                username=self.influx_user,
                password=self.influx_password,
            )
        if self.data_dir:
            return FileSinkConfig(datadir=Path(self.data_dir))
        return None


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if not candidate:
        return default
    return candidate in _TRUE_VALUES


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_non_negative_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def _read_port(default: int) -> int:
    port = _read_non_negative_int(_INFLUX_PORT_ENV, default)
    return port if 0 < port < 65536 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        data_dir=_read_optional_env(_DATADIR_ENV, None),
        device_path=_read_optional_env(_DEVICE_ENV, None),
        pidfile=_read_optional_env(_PIDFILE_ENV, None),
        logfile=_read_optional_env(_LOGFILE_ENV, None),
        daemonize=False,
        print_unknown=_read_bool_env(_PRINT_UNKNOWN_ENV, False),
        retry_interval=_read_positive_float(_RETRY_INTERVAL_ENV, DEFAULT_RETRY_INTERVAL),
        read_timeout_ms=_read_non_negative_int(_READ_TIMEOUT_ENV, 0),
        dispatch_first_zero=_read_bool_env(_FIRST_ZERO_ENV, False),
        influx_host=_read_str_env(_INFLUX_HOST_ENV, DEFAULT_INFLUX_HOST),
        influx_port=_read_port(DEFAULT_INFLUX_PORT),
        influx_db=_read_optional_env(_INFLUX_DB_ENV, None),
        influx_user=_read_optional_env(_INFLUX_USER_ENV, None),
        influx_password=_read_optional_env(_INFLUX_PASSWORD_ENV, None),
        log_level=_read_log_level("INFO"),
    )


def load_settings(
    data_dir: Optional[str] = None,
    device_path: Optional[str] = None,
    pidfile: Optional[str] = None,
    logfile: Optional[str] = None,
    daemonize: Optional[bool] = None,
    print_unknown: Optional[bool] = None,
    influx_host: Optional[str] = None,
    influx_port: Optional[int] = None,
    influx_db: Optional[str] = None,
    influx_user: Optional[str] = None,
    influx_password: Optional[str] = None,
) -> Settings:
    """Merge explicit (command line) values over the environment defaults."""
    base = get_settings()
    return Settings(
        data_dir=data_dir or base.data_dir,
        device_path=device_path or base.device_path,
        pidfile=pidfile or base.pidfile,
        logfile=logfile or base.logfile,
        daemonize=base.daemonize if daemonize is None else daemonize,
        print_unknown=base.print_unknown if print_unknown is None else print_unknown,
        retry_interval=base.retry_interval,
        read_timeout_ms=base.read_timeout_ms,
        dispatch_first_zero=base.dispatch_first_zero,
        influx_host=influx_host or base.influx_host,
        influx_port=base.influx_port if influx_port is None else influx_port,
        influx_db=influx_db or base.influx_db,
        influx_user=influx_user or base.influx_user,
        influx_password=influx_password or base.influx_password,
        log_level=base.log_level,
    )
