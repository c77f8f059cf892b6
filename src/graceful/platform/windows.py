"""
graceful.platform.windows
=========================

Windows has no per-process asynchronous signal. The closest cooperative
primitive, GenerateConsoleCtrlEvent, broadcasts CTRL_C_EVENT to every process
attached to the *caller's* console. Reaching a target therefore means
temporarily swapping our own console for the target's:

    FreeConsole -> AttachConsole(target) -> SetConsoleCtrlHandler(NULL, TRUE)
    -> GenerateConsoleCtrlEvent(CTRL_C_EVENT, 0) -> restore everything

A process has exactly one console attachment, so the swap is guarded by a
single process-wide lock (ConsoleAttachment) and undone by _ConsoleSwap on
every path. Other processes sharing the target's console receive the event
as well; that is inherent to the primitive.

The ignore flag set by SetConsoleCtrlHandler(NULL, TRUE) cannot be read
back, so restoring always turns CTRL_C handling on again. A caller that was
already ignoring CTRL_C (e.g. started with CREATE_NEW_PROCESS_GROUP) must
re-apply that after an interrupt.
"""

from __future__ import annotations

import os
import threading
import time
import warnings
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, ClassVar, Literal

from graceful.constants import (
    DEFAULT_CONSOLE_SETTLE,
    FORCED_EXIT_CODE,
    MAX_WIN32_PID,
)
from graceful.context import Context
from graceful.errors import (
    DeliveryFailed,
    GracefulError,
    InvalidTarget,
    TerminateFailed,
    WaitFailed,
)
from graceful.reporting import GracefulWarning
from graceful.signals import Translation, translate_console

from .base import PlatformOps

PROCESS_TERMINATE = 0x0001
PROCESS_QUERY_LIMITED_INFORMATION = 0x1000
SYNCHRONIZE = 0x00100000
# Wait rights come on top of query + terminate; WaitForSingleObject needs them.
PROCESS_ACCESS = PROCESS_QUERY_LIMITED_INFORMATION | PROCESS_TERMINATE | SYNCHRONIZE

ATTACH_PARENT_PROCESS = 0xFFFFFFFF  # (DWORD)-1
STILL_ACTIVE = 259

ERROR_ACCESS_DENIED = 5
ERROR_INVALID_PARAMETER = 87

WAIT_OBJECT_0 = 0x0
WAIT_TIMEOUT = 0x102


@dataclass(slots=True)
class Win32CallError(Exception):
    op: str
    code: int
    message: str

    def __str__(self) -> str:
        return f"{self.op}: {self.message}"


class Kernel32:
    """Thin ctypes binding to the kernel32 calls used here. Failures raise Win32CallError."""

    def __init__(self) -> None:
        import ctypes
        from ctypes import wintypes

        k = ctypes.WinDLL("kernel32", use_last_error=True)

        k.OpenProcess.argtypes = [wintypes.DWORD, wintypes.BOOL, wintypes.DWORD]
        k.OpenProcess.restype = wintypes.HANDLE
        k.CloseHandle.argtypes = [wintypes.HANDLE]
        k.CloseHandle.restype = wintypes.BOOL
        k.GetExitCodeProcess.argtypes = [wintypes.HANDLE, ctypes.POINTER(wintypes.DWORD)]
        k.GetExitCodeProcess.restype = wintypes.BOOL
        k.TerminateProcess.argtypes = [wintypes.HANDLE, wintypes.UINT]
        k.TerminateProcess.restype = wintypes.BOOL
        k.WaitForSingleObject.argtypes = [wintypes.HANDLE, wintypes.DWORD]
        k.WaitForSingleObject.restype = wintypes.DWORD
        k.GetConsoleProcessList.argtypes = [ctypes.POINTER(wintypes.DWORD), wintypes.DWORD]
        k.GetConsoleProcessList.restype = wintypes.DWORD
        k.FreeConsole.argtypes = []
        k.FreeConsole.restype = wintypes.BOOL
        k.AttachConsole.argtypes = [wintypes.DWORD]
        k.AttachConsole.restype = wintypes.BOOL
        k.SetConsoleCtrlHandler.argtypes = [ctypes.c_void_p, wintypes.BOOL]
        k.SetConsoleCtrlHandler.restype = wintypes.BOOL
        k.GenerateConsoleCtrlEvent.argtypes = [wintypes.DWORD, wintypes.DWORD]
        k.GenerateConsoleCtrlEvent.restype = wintypes.BOOL

        self._ctypes = ctypes
        self._wintypes = wintypes
        self._k = k

    def format_error(self, code: int) -> str:
        return self._ctypes.FormatError(code).rstrip()

    def _fail(self, op: str) -> Win32CallError:
        code = self._ctypes.get_last_error()
        return Win32CallError(op, code, self.format_error(code))

    def open_process(self, access: int, pid: int) -> int:
        h = self._k.OpenProcess(access, False, pid)
        if not h:
            raise self._fail("OpenProcess")
        return h

    def close_handle(self, h: int) -> None:
        if not self._k.CloseHandle(h):
            raise self._fail("CloseHandle")

    def get_exit_code_process(self, h: int) -> int:
        code = self._wintypes.DWORD()
        if not self._k.GetExitCodeProcess(h, self._ctypes.byref(code)):
            raise self._fail("GetExitCodeProcess")
        return code.value

    def terminate_process(self, h: int, exit_code: int) -> None:
        if not self._k.TerminateProcess(h, exit_code):
            raise self._fail("TerminateProcess")

    def wait_for_single_object(self, h: int, timeout_ms: int) -> bool:
        rc = self._k.WaitForSingleObject(h, timeout_ms)
        if rc == WAIT_OBJECT_0:
            return True
        if rc == WAIT_TIMEOUT:
            return False
        raise self._fail("WaitForSingleObject")

    def get_console_process_list(self) -> list[int]:
        """PIDs attached to our console; empty when we have none."""
        size = 16
        while True:
            buf = (self._wintypes.DWORD * size)()
            n = self._k.GetConsoleProcessList(buf, size)
            if n == 0:
                return []
            if n <= size:
                return [int(buf[i]) for i in range(n)]
            size = n

    def free_console(self) -> None:
        if not self._k.FreeConsole():
            raise self._fail("FreeConsole")

    def attach_console(self, pid: int) -> None:
        if not self._k.AttachConsole(pid):
            raise self._fail("AttachConsole")

    def set_console_ctrl_handler(self, ignore: bool) -> None:
        if not self._k.SetConsoleCtrlHandler(None, ignore):
            raise self._fail("SetConsoleCtrlHandler")

    def generate_console_ctrl_event(self, event: int, group: int) -> None:
        if not self._k.GenerateConsoleCtrlEvent(event, group):
            raise self._fail("GenerateConsoleCtrlEvent")


@dataclass(slots=True)
class WinHandle:
    pid: int
    handle: int
    exited: bool = False


class ConsoleAttachment:
    """
    The calling process's console attachment. Process-wide state: one lock for
    every delivery, never per target.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @contextmanager
    def held(self, ctx: Context, poll_interval: float) -> Iterator[None]:
        """
        Take the lock, giving up with the context's error if it fires first,
        so a caller is never stuck behind someone else's slow delivery.
        """
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        while not self._lock.acquire(timeout=poll_interval):
            ctx.raise_if_done()
        try:
            ctx.raise_if_done()
            yield
        finally:
            self._lock.release()

    def locked(self) -> bool:
        return self._lock.locked()


class _ConsoleSwap:
    """
    Scoped console swap. Each step records what it changed; leaving the
    `with` block undoes exactly those changes, in an order that keeps the
    caller ignoring CTRL_C_EVENT until it has left the target's console.
    """

    def __init__(self, kernel: Any, settle: float) -> None:
        self._k = kernel
        self._settle = settle
        self._original: list[int] = []
        self._had_console = False
        self._attached = False
        self._ignoring = False

    def __enter__(self) -> _ConsoleSwap:
        return self

    def __exit__(self, exc_type: Any, exc: BaseException | None, tb: Any) -> None:
        problems = self.restore()
        if exc is not None:
            for p in problems:
                exc.add_note(f"while restoring console: {p}")
        elif problems:
            for p in problems:
                warnings.warn(f"console not restored: {p}", GracefulWarning, stacklevel=3)

    # ---- steps --------------------------------------------------------------

    def detach_own(self) -> None:
        procs = self._k.get_console_process_list()
        if not procs:
            return
        me = os.getpid()
        self._original = [p for p in procs if p != me]
        try:
            self._k.free_console()
        except Win32CallError as exc:
            raise DeliveryFailed(exc.op, exc.message, exc.code) from exc
        self._had_console = True

    def attach_target(self, pid: int) -> None:
        try:
            self._k.attach_console(pid)
        except Win32CallError as exc:
            kind = InvalidTarget if exc.code == ERROR_INVALID_PARAMETER else DeliveryFailed
            raise kind(exc.op, exc.message, exc.code) from exc
        self._attached = True

    def ignore_interrupt(self) -> None:
        try:
            self._k.set_console_ctrl_handler(True)
        except Win32CallError as exc:
            raise DeliveryFailed(exc.op, exc.message, exc.code) from exc
        self._ignoring = True

    def broadcast(self, event: int) -> None:
        try:
            self._k.generate_console_ctrl_event(event, 0)
        except Win32CallError as exc:
            raise DeliveryFailed(exc.op, exc.message, exc.code) from exc

    # ---- undo ---------------------------------------------------------------

    def restore(self) -> list[GracefulError]:
        problems: list[GracefulError] = []

        if self._attached:
            self._guard(problems, self._k.free_console)
            self._attached = False

        if self._ignoring:
            # The event reaches each process asynchronously; keep ignoring a little longer.
            time.sleep(self._settle)
            self._guard(problems, self._k.set_console_ctrl_handler, False)
            self._ignoring = False

        if self._had_console:
            last: Win32CallError | None = None
            for pid in [*self._original, ATTACH_PARENT_PROCESS]:
                try:
                    self._k.attach_console(pid)
                except Win32CallError as exc:
                    last = exc
                    continue
                last = None
                break
            if last is not None:
                problems.append(DeliveryFailed(last.op, last.message, last.code))
            self._had_console = False

        return problems

    @staticmethod
    def _guard(problems: list[GracefulError], fn: Any, *args: Any) -> None:
        try:
            fn(*args)
        except Win32CallError as exc:
            problems.append(DeliveryFailed(exc.op, exc.message, exc.code))


class _Win(PlatformOps):
    name: ClassVar[Literal["posix", "nt"]] = "nt"

    def __init__(self, kernel: Any = None, *, settle: float = DEFAULT_CONSOLE_SETTLE) -> None:
        self._kernel = kernel
        self.settle = settle
        self.console = ConsoleAttachment()

    @property
    def kernel(self) -> Any:
        if self._kernel is None:
            self._kernel = Kernel32()
        return self._kernel

    def translate_signal(self, signum: int) -> Translation:
        return translate_console(signum)

    # ---- resolver -----------------------------------------------------------

    @contextmanager
    def open_process(self, pid: int) -> Iterator[WinHandle]:
        k = self.kernel
        pid = int(pid)
        if pid <= 0 or pid > MAX_WIN32_PID:
            raise InvalidTarget(
                "OpenProcess", k.format_error(ERROR_INVALID_PARAMETER), ERROR_INVALID_PARAMETER
            )
        try:
            h = k.open_process(PROCESS_ACCESS, pid)
        except Win32CallError as exc:
            raise InvalidTarget(exc.op, exc.message, exc.code) from exc

        handle = WinHandle(pid, h)
        try:
            handle.exited = self._exited(handle)
            yield handle
        finally:
            try:
                k.close_handle(h)
            except Win32CallError as exc:
                warnings.warn(str(exc), GracefulWarning, stacklevel=3)

    def _exited(self, handle: WinHandle) -> bool:
        try:
            return self.kernel.get_exit_code_process(handle.handle) != STILL_ACTIVE
        except Win32CallError as exc:
            raise WaitFailed(exc.op, exc.message, exc.code) from exc

    # ---- delivery -----------------------------------------------------------

    def interrupt(
        self, handle: WinHandle, native: int, ctx: Context, *, poll_interval: float
    ) -> None:
        if handle.exited:
            return
        with self.console.held(ctx, poll_interval), _ConsoleSwap(self.kernel, self.settle) as swap:
            swap.detach_own()
            swap.attach_target(handle.pid)
            swap.ignore_interrupt()
            swap.broadcast(native)

    def terminate(self, handle: WinHandle) -> None:
        if handle.exited:
            return
        try:
            self.kernel.terminate_process(handle.handle, FORCED_EXIT_CODE)
        except Win32CallError as exc:
            # TerminateProcess on a process that already exited reports access denied.
            if exc.code == ERROR_ACCESS_DENIED and self._exited(handle):
                return
            raise TerminateFailed(exc.op, exc.message, exc.code) from exc

    # ---- waiting ------------------------------------------------------------

    def wait_exited(self, handle: WinHandle, timeout: float) -> bool:
        if handle.exited:
            return True
        try:
            handle.exited = self.kernel.wait_for_single_object(
                handle.handle, max(0, int(timeout * 1000))
            )
        except Win32CallError as exc:
            raise WaitFailed(exc.op, exc.message, exc.code) from exc
        return handle.exited


platform_impl: PlatformOps = _Win()
