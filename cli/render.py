from __future__ import annotations

from typing import Optional

import typer

from settings import FileSinkConfig, Settings, TelemetrySinkConfig


def echo_reading(line: str) -> None:
    typer.echo(line)


def describe_sink(settings: Settings) -> str:
    sink = settings.sink
    if isinstance(sink, TelemetrySinkConfig):
        return f"influxdb http://{sink.host}:{sink.port} db={sink.database}"
    if isinstance(sink, FileSinkConfig):
        return f"files in {sink.datadir}"
    return "console only"


def render_startup(settings: Settings, device: Optional[str]) -> None:
    typer.secho("co2mond", bold=True, err=True)
    typer.echo(f"device: {device or 'auto-detect'}", err=True)
    typer.echo(f"sink: {describe_sink(settings)}", err=True)
