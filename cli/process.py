from __future__ import annotations

import os
import signal
import threading

from cli.config import StartupError
from storage.file_sink import write_locked


def open_pidfile(path: str) -> int:
    try:
        return os.open(path, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o666)
    except OSError as exc:
        raise StartupError(f"{path}: {exc.strerror or exc}") from exc


def write_pid(fd: int) -> None:
    """Record the current PID in an already opened pidfile and close it."""
    try:
        if not write_locked(fd, str(os.getpid())):
            raise StartupError("unable to write pidfile")
    finally:
        os.close(fd)


def daemonize() -> None:
    """Detach like daemon(0, 0): fork, new session, cwd ``/``, stdio on /dev/null."""
    try:
        if os.fork() > 0:
            os._exit(0)
        os.setsid()
        os.chdir("/")
        devnull = os.open(os.devnull, os.O_RDWR)
    except OSError as exc:
        raise StartupError(f"daemon: {exc.strerror or exc}") from exc

    for fd in (0, 1, 2):
        os.dup2(devnull, fd)
    if devnull > 2:
        os.close(devnull)


def install_stop_handlers(stop: threading.Event, graceful: bool = False) -> None:
    """Route SIGTERM/SIGINT to ``stop`` when reads can time out.

    A blocking read never returns to check ``stop``, so without a read timeout
    both signals keep their default action and end the process immediately.
    A second signal while stopping does the same.
    """
    if not graceful:
        signal.signal(signal.SIGTERM, signal.SIG_DFL)
        signal.signal(signal.SIGINT, signal.SIG_DFL)
        return

    def _handler(signum, _frame) -> None:
        if stop.is_set():
            signal.signal(signum, signal.SIG_DFL)
            os.kill(os.getpid(), signum)
            return
        stop.set()

    signal.signal(signal.SIGTERM, _handler)
    signal.signal(signal.SIGINT, _handler)
