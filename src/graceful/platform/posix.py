"""
graceful.platform.posix
=======================

Direct signal delivery. Prefers a pidfd (Linux 5.3+) so the PID cannot be
recycled under us and exit can be polled; otherwise falls back to kill(2),
watching exit with kqueue where available and a liveness probe elsewhere.
"""

from __future__ import annotations

import errno
import math
import os
import select
import signal
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, ClassVar, Literal

from graceful.constants import MAX_POSIX_PID
from graceful.context import Context
from graceful.errors import DeliveryFailed, InvalidTarget, TerminateFailed, WaitFailed
from graceful.signals import Translation, translate_posix

from .base import PlatformOps

_HAS_PIDFD = hasattr(os, "pidfd_open") and hasattr(signal, "pidfd_send_signal")
_HAS_KQUEUE = hasattr(select, "kqueue")

# Liveness probe cadence when neither pidfd nor kqueue is available.
_PROBE_INTERVAL = 0.02


@dataclass(slots=True)
class PosixHandle:
    pid: int
    pidfd: int | None = None
    kq: Any = None  # select.kqueue watching NOTE_EXIT
    exited: bool = False

    @property
    def signal_op(self) -> str:
        return "pidfd_send_signal" if self.pidfd is not None else "kill"


class _Posix(PlatformOps):
    name: ClassVar[Literal["posix", "nt"]] = "posix"

    def translate_signal(self, signum: int) -> Translation:
        return translate_posix(signum)

    # ---- resolver -----------------------------------------------------------

    @contextmanager
    def open_process(self, pid: int) -> Iterator[PosixHandle]:
        handle = self._resolve(int(pid))
        try:
            yield handle
        finally:
            self._release(handle)

    def _resolve(self, pid: int) -> PosixHandle:
        op = "pidfd_open" if _HAS_PIDFD else "kill"
        # 0 and negative values address process groups; never let them through.
        if pid <= 0:
            raise InvalidTarget.from_errno(op, errno.EINVAL)
        if pid > MAX_POSIX_PID:
            raise InvalidTarget.from_errno(op, errno.ESRCH)

        if _HAS_PIDFD:
            try:
                fd = os.pidfd_open(pid)
            except OSError as exc:
                if exc.errno != errno.ENOSYS:
                    raise InvalidTarget.from_os_error("pidfd_open", exc) from exc
            else:
                handle = PosixHandle(pid, pidfd=fd)
                try:
                    signal.pidfd_send_signal(fd, 0)
                except OSError as exc:
                    os.close(fd)
                    raise InvalidTarget.from_os_error("pidfd_send_signal", exc) from exc
                return handle

        try:
            os.kill(pid, 0)
        except OSError as exc:
            raise InvalidTarget.from_os_error("kill", exc) from exc

        handle = PosixHandle(pid)
        if _HAS_KQUEUE:
            self._watch_exit(handle)
        return handle

    def _watch_exit(self, handle: PosixHandle) -> None:
        kq = select.kqueue()
        ev = select.kevent(
            handle.pid,
            filter=select.KQ_FILTER_PROC,
            flags=select.KQ_EV_ADD | select.KQ_EV_ONESHOT,
            fflags=select.KQ_NOTE_EXIT,
        )
        try:
            kq.control([ev], 0, 0)
        except ProcessLookupError:
            # kill(pid, 0) succeeded a moment ago: a zombie, or it just died.
            kq.close()
            handle.exited = True
            return
        except OSError:
            kq.close()
            return
        handle.kq = kq

    def _release(self, handle: PosixHandle) -> None:
        if handle.pidfd is not None:
            os.close(handle.pidfd)
            handle.pidfd = None
        if handle.kq is not None:
            handle.kq.close()
            handle.kq = None

    # ---- delivery -----------------------------------------------------------

    def _send(self, handle: PosixHandle, sig: int) -> None:
        if handle.pidfd is not None:
            signal.pidfd_send_signal(handle.pidfd, sig)
        else:
            os.kill(handle.pid, sig)

    def interrupt(
        self, handle: PosixHandle, native: int, ctx: Context, *, poll_interval: float
    ) -> None:
        # A single kill(2); nothing shared to serialize, nothing worth cancelling.
        _ = ctx
        _ = poll_interval
        try:
            self._send(handle, native)
        except ProcessLookupError:
            # Resolved, then exited before delivery: nothing left to interrupt.
            handle.exited = True
            return
        except OSError as exc:
            raise DeliveryFailed.from_os_error(handle.signal_op, exc) from exc

    def terminate(self, handle: PosixHandle) -> None:
        try:
            self._send(handle, signal.SIGKILL)
        except ProcessLookupError:
            return
        except OSError as exc:
            raise TerminateFailed.from_os_error(handle.signal_op, exc) from exc

    # ---- waiting ------------------------------------------------------------

    def wait_exited(self, handle: PosixHandle, timeout: float) -> bool:
        if handle.exited:
            return True
        timeout = max(0.0, timeout)

        if handle.pidfd is not None:
            poller = select.poll()
            poller.register(handle.pidfd, select.POLLIN)
            try:
                ready = poller.poll(math.ceil(timeout * 1000))
            except OSError as exc:
                raise WaitFailed.from_os_error("poll", exc) from exc
            handle.exited = bool(ready)
        elif handle.kq is not None:
            try:
                events = handle.kq.control(None, 1, timeout)
            except OSError as exc:
                raise WaitFailed.from_os_error("kevent", exc) from exc
            # a zombie registered after exiting never posts NOTE_EXIT
            handle.exited = bool(events) or _gone(handle.pid)
        else:
            deadline = time.monotonic() + timeout
            while not _gone(handle.pid):
                rem = deadline - time.monotonic()
                if rem <= 0:
                    break
                time.sleep(min(_PROBE_INTERVAL, rem))
            else:
                handle.exited = True

        return handle.exited


def _gone(pid: int) -> bool:
    """True once `pid` has exited. Zombie children count as exited and are left unreaped."""
    if hasattr(os, "waitid"):
        try:
            if os.waitid(os.P_PID, pid, os.WEXITED | os.WNOHANG | os.WNOWAIT) is not None:
                return True
        except ChildProcessError:
            pass
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    except PermissionError:
        return False
    return False


platform_impl: PlatformOps = _Posix()
