"""
graceful exceptions: a base GracefulError that keeps the native error text
verbatim and renders as a rich panel when printed through a Console.
"""

from __future__ import annotations

import errno as _errno
import os
from dataclasses import dataclass

from rich.console import Console, ConsoleOptions, RenderResult

from graceful.reporting import render_error

__all__ = [
    "GracefulError",
    "InvalidTarget",
    "InvalidSignal",
    "DeliveryFailed",
    "TerminateFailed",
    "WaitFailed",
]


@dataclass(slots=True, eq=False)
class GracefulError(Exception):
    """
    Base graceful exception.

    `op` names the native call that failed and `message` is the text the
    platform reported for it, unmodified. Downstream code matches on
    `str(err)`, so the rendering below must stay `"<op>: <message>"`.
    """

    op: str
    message: str
    code: int | None = None

    def __str__(self) -> str:
        return f"{self.op}: {self.message}"

    @classmethod
    def from_os_error(cls, op: str, exc: OSError) -> GracefulError:
        code = exc.errno
        text = exc.strerror or (os.strerror(code) if code is not None else str(exc))
        return cls(op, text, code)

    @classmethod
    def from_errno(cls, op: str, code: int) -> GracefulError:
        return cls(op, os.strerror(code), code)

    # Pretty rendering when printed via Rich Console
    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        _ = console
        _ = options
        yield render_error(self)


class InvalidTarget(GracefulError):
    """The PID does not resolve to a live process the caller may signal."""


class InvalidSignal(GracefulError, ValueError):
    """The signal number has no native counterpart on this platform."""

    @classmethod
    def for_signum(cls, signum: int) -> InvalidSignal:
        return cls(f"signal {signum}", os.strerror(_errno.EINVAL), _errno.EINVAL)


class DeliveryFailed(GracefulError):
    """Attaching, broadcasting or signalling failed for a reason other than a missing target."""


class TerminateFailed(GracefulError):
    """The forced termination call itself failed."""


class WaitFailed(GracefulError):
    """Observing the target's exit failed."""
