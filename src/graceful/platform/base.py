"""
graceful.platform.base
======================

The contract each OS module implements: resolve a PID to a handle, interrupt
it cooperatively, terminate it, and wait on it in bounded slices.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Protocol

from graceful.context import Context
from graceful.signals import Translation


class PlatformOps(Protocol):
    name: str  # "posix" | "nt"

    def translate_signal(self, signum: int) -> Translation: ...

    def open_process(self, pid: int) -> AbstractContextManager[Any]:
        """
        Resolve `pid` to a handle usable for interrupting, terminating and
        waiting. Raises InvalidTarget with the native text; the handle is
        released when the context manager exits.
        """
        ...

    def interrupt(
        self, handle: Any, native: int, ctx: Context, *, poll_interval: float
    ) -> None:
        """Deliver the cooperative interrupt `native` to the resolved process, once."""
        ...

    def terminate(self, handle: Any) -> None:
        """End the process with the fixed forced status. An already exited target is success."""
        ...

    def wait_exited(self, handle: Any, timeout: float) -> bool:
        """Block up to `timeout` seconds; True once the process has exited."""
        ...
