from __future__ import annotations

import fcntl
import logging
import os
import time
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

HEARTBEAT_NAME = "heartbeat"
VALUE_MAX = 20


def write_locked(fd: int, value: str) -> bool:
    """Replace the contents of ``fd`` with ``value`` and a newline under an exclusive lock."""
    data = f"{value}\n".encode("ascii")[: VALUE_MAX + 1]

    try:
        fcntl.lockf(fd, fcntl.LOCK_EX)
    except OSError as exc:
        logger.error("Unable to lock file", extra={"reason": exc.strerror or str(exc)})
        return False

    ok = True
    try:
        os.ftruncate(fd, 0)
        os.lseek(fd, 0, os.SEEK_SET)
        written = os.write(fd, data)
        if written != len(data):
            logger.error(
                "Short write",
                extra={"reason": f"wrote {written} of {len(data)} bytes"},
            )
            ok = False
    except OSError as exc:
        logger.error("Unable to rewrite file", extra={"reason": exc.strerror or str(exc)})
        ok = False

    try:
        fcntl.lockf(fd, fcntl.LOCK_UN)
    except OSError as exc:
        logger.error("Unable to unlock file", extra={"reason": exc.strerror or str(exc)})
        ok = False
    return ok


class FileSink:
    """One small text file per metric inside ``datadir``, rewritten in place."""

    kind = "file"

    def __init__(self, datadir: Path) -> None:
        self.datadir = datadir

    def path_for(self, name: str) -> Path:
        return self.datadir / name

    def write_value(self, name: str, value: str) -> bool:
        path = self.path_for(name)
        try:
            fd = os.open(path, os.O_CREAT | os.O_WRONLY, 0o666)
        except OSError as exc:
            logger.error(
                "Unable to open data file",
                extra={"path": str(path), "reason": exc.strerror or str(exc)},
            )
            return False

        try:
            return write_locked(fd, value)
        finally:
            os.close(fd)

    def write_heartbeat(self, now: Optional[float] = None) -> bool:
        timestamp = int(time.time() if now is None else now)
        return self.write_value(HEARTBEAT_NAME, str(timestamp))
