from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Optional

from settings import Settings


class StartupError(Exception):
    """Invalid option combination or unusable path; the daemon must not start."""


def _resolve_datadir(value: str) -> str:
    try:
        path = Path(value).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise StartupError(f"{value}: {getattr(exc, 'strerror', None) or exc}") from exc
    if not path.is_dir():
        raise StartupError(f"{value}: Not a directory")
    return str(path)


def _absolute(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return os.path.abspath(value)


def _check_writable(value: str) -> None:
    try:
        with open(value, "a", encoding="utf-8"):
            pass
    except OSError as exc:
        raise StartupError(f"{value}: {exc.strerror or exc}") from exc


def validate_settings(settings: Settings) -> Settings:
    """Check the startup rules and return settings with absolute paths.

    Paths are made absolute because daemonizing changes the working directory.
    """
    if settings.daemonize and not (settings.data_dir or settings.influx_db):
        raise StartupError("it is useless to use -d without -D or -B.")

    data_dir = _resolve_datadir(settings.data_dir) if settings.data_dir else None
    logfile = _absolute(settings.logfile)
    if logfile:
        _check_writable(logfile)

    return dataclasses.replace(
        settings,
        data_dir=data_dir,
        pidfile=_absolute(settings.pidfile),
        logfile=logfile,
    )
