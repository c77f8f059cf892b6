from __future__ import annotations

import os
import subprocess
import sys
from collections.abc import Callable, Iterator
from typing import Any

import pytest

# Restores the default SIGINT action (it may be inherited as ignored), then
# reports readiness so a test never signals a half-started interpreter.
SLEEPER = """
import signal, sys, time
signal.signal(signal.SIGINT, signal.SIG_DFL)
sys.stdout.write("ready\\n")
sys.stdout.flush()
time.sleep(float(sys.argv[1]))
"""

Spawner = Callable[[float], "subprocess.Popen[bytes]"]


def _popen_kwargs() -> dict[str, Any]:
    if os.name != "nt":
        return {}
    # A console of its own, so CTRL_C_EVENT reaches the sleeper and not pytest's console.
    si = subprocess.STARTUPINFO()
    si.dwFlags |= subprocess.STARTF_USESHOWWINDOW
    si.wShowWindow = 0  # SW_HIDE
    return {"creationflags": subprocess.CREATE_NEW_CONSOLE, "startupinfo": si}


@pytest.fixture
def spawn_sleeper() -> Iterator[Spawner]:
    procs: list[subprocess.Popen[bytes]] = []

    def _spawn(seconds: float) -> subprocess.Popen[bytes]:
        proc = subprocess.Popen(
            [sys.executable, "-c", SLEEPER, str(seconds)],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            **_popen_kwargs(),
        )
        procs.append(proc)
        assert proc.stdout is not None
        assert proc.stdout.readline().strip() == b"ready"
        return proc

    yield _spawn

    for proc in procs:
        if proc.poll() is None:
            proc.kill()
        proc.wait()
        if proc.stdout is not None:
            proc.stdout.close()


@pytest.fixture
def dead_pid() -> int:
    """PID of a process that has exited and been reaped."""
    proc = subprocess.Popen([sys.executable, "-c", "pass"], **_popen_kwargs())
    proc.wait()
    return proc.pid
