from __future__ import annotations

import os
import signal
import subprocess
import sys
import threading
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from cli import process
from cli.config import StartupError

ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture()
def installed(monkeypatch) -> Dict[int, object]:
    handlers: Dict[int, object] = {}
    monkeypatch.setattr(process.signal, "signal", lambda signum, handler: handlers.__setitem__(signum, handler))
    return handlers


def test_blocking_reads_keep_default_signal_action(installed) -> None:
    process.install_stop_handlers(threading.Event(), graceful=False)

    assert installed == {signal.SIGTERM: signal.SIG_DFL, signal.SIGINT: signal.SIG_DFL}


def test_first_signal_sets_stop_second_terminates(installed, monkeypatch) -> None:
    kills: List[Tuple[int, int]] = []
    monkeypatch.setattr(process.os, "kill", lambda pid, signum: kills.append((pid, signum)))
    stop = threading.Event()

    process.install_stop_handlers(stop, graceful=True)
    handler = installed[signal.SIGTERM]
    assert installed[signal.SIGINT] is handler

    handler(signal.SIGTERM, None)
    assert stop.is_set()
    assert kills == []

    handler(signal.SIGTERM, None)
    assert installed[signal.SIGTERM] == signal.SIG_DFL
    assert kills == [(os.getpid(), signal.SIGTERM)]


def test_sigterm_ends_process_blocked_without_read_timeout() -> None:
    script = (
        "import threading\n"
        "from cli.process import install_stop_handlers\n"
        "install_stop_handlers(threading.Event(), graceful=False)\n"
        "print('ready', flush=True)\n"
        "threading.Event().wait()\n"
    )
    env = dict(os.environ, PYTHONPATH=str(ROOT))
    child = subprocess.Popen([sys.executable, "-c", script], stdout=subprocess.PIPE, env=env, text=True)
    try:
        assert child.stdout.readline().strip() == "ready"
        child.send_signal(signal.SIGTERM)
        assert child.wait(timeout=10) == -signal.SIGTERM
    finally:
        if child.poll() is None:
            child.kill()
            child.wait()
        child.stdout.close()


class FakeOs:
    """Records the detach sequence instead of forking the test runner."""

    def __init__(self, monkeypatch, fork_result: object = 0, devnull_fd: int = 7) -> None:
        self.calls: List[tuple] = []
        self.fork_result = fork_result
        self.devnull_fd = devnull_fd
        for name in ("fork", "setsid", "chdir", "open", "dup2", "close", "_exit"):
            monkeypatch.setattr(process.os, name, getattr(self, name))

    def fork(self) -> int:
        self.calls.append(("fork",))
        if isinstance(self.fork_result, OSError):
            raise self.fork_result
        return self.fork_result

    def setsid(self) -> None:
        self.calls.append(("setsid",))

    def chdir(self, path: str) -> None:
        self.calls.append(("chdir", path))

    def open(self, path: str, flags: int) -> int:
        self.calls.append(("open", path))
        return self.devnull_fd

    def dup2(self, fd: int, fd2: int) -> None:
        self.calls.append(("dup2", fd, fd2))

    def close(self, fd: int) -> None:
        self.calls.append(("close", fd))

    def _exit(self, code: int) -> None:
        self.calls.append(("_exit", code))
        raise SystemExit(code)


def test_daemonize_child_detaches_onto_devnull(monkeypatch) -> None:
    fake = FakeOs(monkeypatch)

    process.daemonize()

    assert fake.calls == [
        ("fork",),
        ("setsid",),
        ("chdir", "/"),
        ("open", os.devnull),
        ("dup2", 7, 0),
        ("dup2", 7, 1),
        ("dup2", 7, 2),
        ("close", 7),
    ]


def test_daemonize_keeps_devnull_when_it_lands_on_stdio(monkeypatch) -> None:
    fake = FakeOs(monkeypatch, devnull_fd=0)

    process.daemonize()

    assert ("close", 0) not in fake.calls


def test_daemonize_parent_exits(monkeypatch) -> None:
    fake = FakeOs(monkeypatch, fork_result=4321)

    with pytest.raises(SystemExit):
        process.daemonize()

    assert fake.calls == [("fork",), ("_exit", 0)]


def test_daemonize_fork_failure_is_startup_error(monkeypatch) -> None:
    FakeOs(monkeypatch, fork_result=OSError(11, "Resource temporarily unavailable"))

    with pytest.raises(StartupError, match="daemon: Resource temporarily unavailable"):
        process.daemonize()


def test_write_pid_failure_closes_descriptor(monkeypatch, tmp_path) -> None:
    closed: List[int] = []
    monkeypatch.setattr(process, "write_locked", lambda fd, value: False)
    fd = process.open_pidfile(str(tmp_path / "co2mond.pid"))
    real_close = os.close

    def close(descriptor: int) -> None:
        closed.append(descriptor)
        real_close(descriptor)

    monkeypatch.setattr(process.os, "close", close)

    with pytest.raises(StartupError, match="unable to write pidfile"):
        process.write_pid(fd)

    assert closed == [fd]


def test_open_pidfile_reports_path(tmp_path) -> None:
    path = tmp_path / "missing" / "co2mond.pid"

    with pytest.raises(StartupError, match="co2mond.pid"):
        process.open_pidfile(str(path))
