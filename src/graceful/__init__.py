"""
graceful
========

Ask a process to exit cooperatively, wait for it within a cancellable budget,
or terminate it outright, with one contract across POSIX and Windows.
"""

from __future__ import annotations

from graceful.context import (
    Canceled,
    Context,
    DeadlineExceeded,
    background,
    with_cancel,
    with_deadline,
    with_timeout,
)
from graceful.core import exit_or_terminate, force_terminate, pid_of, request_exit
from graceful.errors import (
    DeliveryFailed,
    GracefulError,
    InvalidSignal,
    InvalidTarget,
    TerminateFailed,
    WaitFailed,
)
from graceful.outcome import ExitKind, ExitOutcome
from graceful.reporting import GracefulWarning, install_warnings_bridge
from graceful.signals import Translation, translate

__all__ = [
    "request_exit",
    "force_terminate",
    "exit_or_terminate",
    "pid_of",
    "Context",
    "Canceled",
    "DeadlineExceeded",
    "background",
    "with_cancel",
    "with_deadline",
    "with_timeout",
    "GracefulError",
    "InvalidTarget",
    "InvalidSignal",
    "DeliveryFailed",
    "TerminateFailed",
    "WaitFailed",
    "GracefulWarning",
    "install_warnings_bridge",
    "ExitKind",
    "ExitOutcome",
    "Translation",
    "translate",
]
