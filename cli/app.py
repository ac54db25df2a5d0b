from __future__ import annotations

import threading
from typing import Optional

import typer

from cli.config import StartupError, validate_settings
from cli.process import daemonize, install_stop_handlers, open_pidfile, write_pid
from cli.render import echo_reading, render_startup
from logging_config import configure_logging
from services.supervisor import build_supervisor
from settings import load_settings

app = typer.Typer(
    help="Collect readings from a USB CO2 monitor and store changed values.",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
)


def _fail(message: str) -> None:
    typer.secho(f"co2mond: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.command()
def main(
    daemon: bool = typer.Option(False, "-d", "--daemon", help="Run as a daemon."),
    print_unknown: bool = typer.Option(
        False, "-u", "--print-unknown", help="Print values for unknown items."
    ),
    datadir: Optional[str] = typer.Option(
        None, "-D", "--datadir", help="Store values from the sensor in this directory."
    ),
    device: Optional[str] = typer.Option(
        None, "-f", "--device", help="Path to a device (e.g., /dev/hidraw0)."
    ),
    pidfile: Optional[str] = typer.Option(
        None, "-p", "--pidfile", help="Write the PID to this file."
    ),
    logfile: Optional[str] = typer.Option(
        None, "-l", "--logfile", help="Write diagnostic information to this file."
    ),
    influx_host: Optional[str] = typer.Option(
        None, "-H", "--influx-host", help="InfluxDB hostname (default: influxdb)."
    ),
    influx_port: Optional[int] = typer.Option(
        None, "-P", "--influx-port", min=1, max=65535, help="InfluxDB port (default: 8086)."
    ),
    influx_db: Optional[str] = typer.Option(
        None, "-B", "--influx-db", help="InfluxDB database (turns on InfluxDB delivery)."
    ),
    influx_user: Optional[str] = typer.Option(
        None, "-U", "--influx-user", help="InfluxDB username (optional)."
    ),
    influx_password: Optional[str] = typer.Option(
        None, "-W", "--influx-password", help="InfluxDB password (optional)."
    ),
) -> None:
    """Poll the sensor forever, reconnecting whenever the device goes away."""
    settings = load_settings(
        data_dir=datadir,
        device_path=device,
        pidfile=pidfile,
        logfile=logfile,
        daemonize=daemon or None,
        print_unknown=print_unknown or None,
        influx_host=influx_host,
        influx_port=influx_port,
        influx_db=influx_db,
        influx_user=influx_user,
        influx_password=influx_password,
    )

    try:
        settings = validate_settings(settings)
        pid_fd = open_pidfile(settings.pidfile) if settings.pidfile else None
        if settings.daemonize:
            daemonize()
        if pid_fd is not None:
            write_pid(pid_fd)
    except StartupError as exc:
        _fail(str(exc))

    configure_logging(logfile=settings.logfile)
    if not settings.daemonize:
        render_startup(settings, settings.device_path)

    stop = threading.Event()
    install_stop_handlers(stop, graceful=settings.read_timeout_ms > 0)
    supervisor = build_supervisor(settings, echo=echo_reading, stop=stop)
    try:
        supervisor.run()
    finally:
        supervisor.dispatcher.close()
