from __future__ import annotations

from pathlib import Path

from settings import (
    DEFAULT_INFLUX_HOST,
    DEFAULT_INFLUX_PORT,
    FileSinkConfig,
    TelemetrySinkConfig,
    get_settings,
    load_settings,
)


def test_defaults_without_environment() -> None:
    settings = get_settings()

    assert settings.sink is None
    assert settings.influx_host == DEFAULT_INFLUX_HOST
    assert settings.influx_port == DEFAULT_INFLUX_PORT
    assert settings.retry_interval == 1.0
    assert settings.read_timeout_ms == 0
    assert settings.dispatch_first_zero is False
    assert settings.log_level == "INFO"


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("CO2MOND_DATADIR", str(tmp_path))
    monkeypatch.setenv("CO2MOND_DEVICE", "/dev/hidraw4")
    monkeypatch.setenv("CO2MOND_PRINT_UNKNOWN", "yes")
    monkeypatch.setenv("CO2MOND_RETRY_INTERVAL", "2.5")
    monkeypatch.setenv("CO2MOND_READ_TIMEOUT_MS", "5000")
    monkeypatch.setenv("CO2MOND_DISPATCH_FIRST_ZERO", "1")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.sink == FileSinkConfig(datadir=Path(tmp_path))
    assert settings.device_path == "/dev/hidraw4"
    assert settings.print_unknown is True
    assert settings.retry_interval == 2.5
    assert settings.read_timeout_ms == 5000
    assert settings.dispatch_first_zero is True
    assert settings.log_level == "DEBUG"


def test_invalid_numbers_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("CO2MOND_RETRY_INTERVAL", "soon")
    monkeypatch.setenv("CO2MOND_READ_TIMEOUT_MS", "-3")
    monkeypatch.setenv("INFLUXDB_PORT", "99999")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.retry_interval == 1.0
    assert settings.read_timeout_ms == 0
    assert settings.influx_port == DEFAULT_INFLUX_PORT


def test_telemetry_database_wins_over_datadir(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("INFLUXDB_DB", "sensors")
    monkeypatch.setenv("INFLUXDB_USER", "reader")
    get_settings.cache_clear()

    settings = load_settings(data_dir=str(tmp_path), influx_host="db.local")

    assert settings.sink == TelemetrySinkConfig(
        database="sensors", host="db.local", port=DEFAULT_INFLUX_PORT, username="reader"
    )


def test_command_line_values_override_environment(monkeypatch) -> None:
    monkeypatch.setenv("CO2MOND_DEVICE", "/dev/hidraw4")
    monkeypatch.setenv("INFLUXDB_PORT", "9000")
    get_settings.cache_clear()

    settings = load_settings(device_path="/dev/hidraw9", influx_port=8087, print_unknown=True)

    assert settings.device_path == "/dev/hidraw9"
    assert settings.influx_port == 8087
    assert settings.print_unknown is True
