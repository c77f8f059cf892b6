from __future__ import annotations

from typing import Any

from graceful.constants import DEFAULT_POLL_INTERVAL
from graceful.context import Context
from graceful.platform import PlatformOps, platform


def wait_for_exit(
    ctx: Context,
    handle: Any,
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    ops: PlatformOps = platform,
) -> None:
    """
    Block until the process behind `handle` exits or `ctx` is done.

    Raises the context's Canceled/DeadlineExceeded as soon as it is observed
    (at most `poll_interval` late). The target is left running in that case.
    Each blocking step is bounded, so there is no watcher left behind.
    """
    if poll_interval <= 0:
        raise ValueError("poll_interval must be > 0")

    while True:
        ctx.raise_if_done()

        step = poll_interval
        rem = ctx.remaining()
        if rem is not None:
            step = min(step, rem)

        if ops.wait_exited(handle, step):
            return
