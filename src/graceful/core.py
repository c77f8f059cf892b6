"""
graceful.core
=============

The two public operations.

- request_exit: ask a process to shut down with its platform's interrupt and
  wait, within the caller's context, for it to do so.
- force_terminate: end a process unconditionally, without waiting.

Neither touches the target's descendants. A typical supervisor does both:

    try:
        request_exit(with_timeout(background(), 5.0), proc, signal.SIGINT)
    except (Canceled, DeadlineExceeded, DeliveryFailed):
        force_terminate(proc, signal.SIGKILL)

exit_or_terminate() packages exactly that.
"""

from __future__ import annotations

import subprocess
from typing import Any, TypeAlias

from graceful.constants import DEFAULT_GRACE_PERIOD, DEFAULT_POLL_INTERVAL
from graceful.context import Canceled, Context, DeadlineExceeded, with_cancel, with_timeout
from graceful.errors import DeliveryFailed, WaitFailed
from graceful.outcome import ExitKind
from graceful.platform import platform
from graceful.wait import wait_for_exit

Target: TypeAlias = int | subprocess.Popen[Any]


def pid_of(target: Target | Any) -> int:
    """PID of an int or of any process object exposing `.pid`."""
    if isinstance(target, int):
        return target
    pid = getattr(target, "pid", None)
    if pid is None:
        raise TypeError(f"expected a PID or a process object with .pid, got {type(target).__name__}")
    return int(pid)


def request_exit(
    ctx: Context,
    target: Target,
    signum: int,
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """
    Deliver the cooperative interrupt for `signum` to `target`, then block
    until it exits (returns None) or `ctx` is done (raises Canceled or
    DeadlineExceeded without touching the target further).

    A non-positive `poll_interval` raises ValueError before anything is sent.
    When `ctx` is already done nothing is resolved or sent. Delivery happens at
    most once. Native failures raise InvalidTarget / DeliveryFailed /
    WaitFailed with the platform's text preserved.
    """
    if poll_interval <= 0:
        raise ValueError("poll_interval must be > 0")
    pid = pid_of(target)
    ctx.raise_if_done()

    native = platform.translate_signal(signum).native

    with platform.open_process(pid) as handle:
        ctx.raise_if_done()
        platform.interrupt(handle, native, ctx, poll_interval=poll_interval)
        wait_for_exit(ctx, handle, poll_interval=poll_interval, ops=platform)


def force_terminate(target: Target, signum: int) -> None:
    """
    End `target` immediately with the fixed forced status. `signum` is accepted
    for symmetry with request_exit and does not change the exit status.
    A target that exits on its own first counts as success.
    """
    _ = signum
    with platform.open_process(pid_of(target)) as handle:
        platform.terminate(handle)


def exit_or_terminate(
    ctx: Context,
    target: Target,
    signum: int,
    *,
    grace_s: float | None = DEFAULT_GRACE_PERIOD,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> ExitKind:
    """
    Ask nicely, then kill: request_exit bounded by `grace_s` (and `ctx`), then
    force_terminate if the target did not go within that budget or could not
    be interrupted. Returns which of the two ended it.

    A `ctx` that is already done escalates straight to force_terminate.
    Missing targets and untranslatable signals are raised, not escalated.
    """
    grace = with_cancel(ctx) if grace_s is None else with_timeout(ctx, grace_s)
    with grace:
        try:
            request_exit(grace, target, signum, poll_interval=poll_interval)
            return ExitKind.INTERRUPTED
        except (Canceled, DeadlineExceeded, DeliveryFailed, WaitFailed):
            pass

    force_terminate(target, signum)
    return ExitKind.FORCED
