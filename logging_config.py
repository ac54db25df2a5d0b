from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "code",
    "raw",
    "metric",
    "value",
    "sink",
    "path",
    "reason",
    "status",
    "attempt",
)

_configured = False


class ContextualFormatter(logging.Formatter):

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context_parts: list[str] = []
        for key in self._extra_keys:
            if not hasattr(record, key):
                continue
            value = getattr(record, key, None)
            if value is None:
                continue
            context_parts.append(f"{key}={value}")
        if context_parts:
            return f"{message} | {' '.join(context_parts)}"
        return message


def _handler_config(log_level: str | int, logfile: str | None) -> Dict[str, Any]:
    if logfile:
        return {
            "class": "logging.FileHandler",
            "level": log_level,
            "formatter": "contextual",
            "filename": logfile,
            "mode": "a",
            "encoding": "utf-8",
        }
    return {
        "class": "logging.StreamHandler",
        "level": log_level,
        "formatter": "contextual",
        "stream": "ext://sys.stderr",
    }


def configure_logging(
    level: str | int | None = None,
    logfile: str | None = None,
    force: bool = False,
) -> None:
    """Configure process-wide logging; diagnostics go to stderr or ``logfile``."""
    global _configured
    if _configured and not force:
        return

    settings = get_settings()
    log_level = level if level is not None else settings.log_level
    target = logfile if logfile is not None else settings.logfile

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": {"default": _handler_config(log_level, target)},
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
