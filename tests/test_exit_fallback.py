from __future__ import annotations

import os
import select
import signal
import threading

import pytest

from graceful import Canceled, background, force_terminate, request_exit, with_cancel, with_timeout
from graceful.platform import posix

pytestmark = pytest.mark.skipif(os.name == "nt", reason="POSIX delivery")


@pytest.fixture(params=["pidfd", "kqueue", "probe"])
def resolver(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> str:
    """Force one exit-watching strategy for the duration of a test."""
    mode = request.param
    if mode == "pidfd" and not posix._HAS_PIDFD:
        pytest.skip("no pidfd support")
    if mode == "kqueue" and not hasattr(select, "kqueue"):
        pytest.skip("no kqueue")
    monkeypatch.setattr(posix, "_HAS_PIDFD", mode == "pidfd")
    monkeypatch.setattr(posix, "_HAS_KQUEUE", mode == "kqueue")
    return mode


def test_handle_matches_strategy(spawn_sleeper, resolver: str) -> None:
    proc = spawn_sleeper(5.0)
    with posix.platform_impl.open_process(proc.pid) as h:
        assert (h.pidfd is not None) == (resolver == "pidfd")
        assert h.signal_op == ("pidfd_send_signal" if resolver == "pidfd" else "kill")
        if resolver == "kqueue":
            assert h.kq is not None
    assert h.pidfd is None
    assert h.kq is None


def test_interrupt_and_wait(spawn_sleeper, resolver: str) -> None:
    proc = spawn_sleeper(5.0)
    request_exit(with_timeout(background(), 5.0), proc, signal.SIGINT)
    assert proc.wait(timeout=1.0) == -signal.SIGINT


def test_cancel_while_waiting(spawn_sleeper, resolver: str) -> None:
    proc = spawn_sleeper(30.0)
    ctx = with_cancel(background())
    threading.Timer(0.2, ctx.cancel).start()
    with pytest.raises(Canceled):
        request_exit(ctx, proc, signal.SIGWINCH)
    assert proc.poll() is None


@pytest.mark.skipif(not hasattr(os, "waitid"), reason="needs waitid to observe a zombie")
def test_zombie_counts_as_exited(spawn_sleeper, resolver: str) -> None:
    proc = spawn_sleeper(0.0)
    os.waitid(os.P_PID, proc.pid, os.WEXITED | os.WNOWAIT)
    request_exit(with_timeout(background(), 5.0), proc, signal.SIGINT)
    force_terminate(proc, signal.SIGKILL)
    assert proc.wait(timeout=1.0) == 0


def test_exit_between_resolve_and_interrupt(spawn_sleeper, resolver: str) -> None:
    plat = posix.platform_impl
    proc = spawn_sleeper(0.0)
    with plat.open_process(proc.pid) as h:
        assert proc.wait(timeout=5.0) == 0  # reaped: gone for good
        plat.interrupt(h, signal.SIGINT, background(), poll_interval=0.05)
        assert plat.wait_exited(h, 1.0) is True
        plat.terminate(h)
