"""
graceful.context
================

Cancellation/deadline tokens bounding how long a caller is willing to wait.

A Context is done once it has been cancelled (by its owner or by its parent)
or once its deadline has passed. Deadlines are monotonic-clock timestamps and
are evaluated lazily, so an expired context needs no timer thread.
A parent holds its children weakly; a child nobody references any more is
dropped without being cancelled.

    with with_timeout(background(), 2.0) as ctx:
        request_exit(ctx, pid, signal.SIGINT)

`Canceled` and `DeadlineExceeded` are raised as-is by everything that honours
a context; callers tell them apart with `except` / `isinstance`.
"""

from __future__ import annotations

import threading
import time
import weakref
from concurrent.futures import CancelledError

__all__ = [
    "Canceled",
    "DeadlineExceeded",
    "Context",
    "background",
    "with_cancel",
    "with_timeout",
    "with_deadline",
]


class Canceled(CancelledError):
    """The context was cancelled."""

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or ("context canceled",)))


class DeadlineExceeded(TimeoutError):
    """The context's deadline passed."""

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or ("context deadline exceeded",)))


class Context:
    """
    Cancellation token with an optional deadline.

    Args:
        parent: contexts whose cancellation propagates to this one.
        deadline: absolute `time.monotonic()` value, or None. The effective
                  deadline is the earlier of this and the parent's.
    """

    def __init__(self, parent: Context | None = None, deadline: float | None = None) -> None:
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

        self._lock = threading.Lock()
        self._done = threading.Event()
        self._reason: type[Canceled] | type[DeadlineExceeded] | None = None
        self._children: weakref.WeakSet[Context] = weakref.WeakSet()
        self._parent = parent

        if parent is not None:
            parent._adopt(self)

    # ---- state ------------------------------------------------------------

    def err(self) -> Canceled | DeadlineExceeded | None:
        """Return a fresh exception describing why the context is done, or None."""
        reason = self._check()
        return None if reason is None else reason()

    def done(self) -> bool:
        return self._check() is not None

    def remaining(self) -> float | None:
        """Seconds until the deadline (never negative), or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def raise_if_done(self) -> None:
        exc = self.err()
        if exc is not None:
            raise exc

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until the context is done or `timeout` elapses, whichever is first.
        Returns True if the context is done.
        """
        if self.done():
            return True
        rem = self.remaining()
        if rem is not None:
            timeout = rem if timeout is None else min(timeout, rem)
        self._done.wait(timeout)
        return self.done()

    # ---- cancellation -----------------------------------------------------

    def cancel(self) -> None:
        self._finish(Canceled)

    def __enter__(self) -> Context:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()

    # ---- internals --------------------------------------------------------

    def _check(self) -> type[Canceled] | type[DeadlineExceeded] | None:
        if self._reason is not None:
            return self._reason
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self._finish(DeadlineExceeded)
        return self._reason

    def _finish(self, reason: type[Canceled] | type[DeadlineExceeded]) -> None:
        with self._lock:
            if self._reason is not None:
                return
            self._reason = reason
            children, self._children = list(self._children), weakref.WeakSet()
        self._done.set()

        for child in children:
            child._finish(reason)

        if self._parent is not None:
            self._parent._forget(self)

    def _adopt(self, child: Context) -> None:
        with self._lock:
            reason = self._reason
            if reason is None:
                self._children.add(child)
        if reason is not None:
            child._finish(reason)

    def _forget(self, child: Context) -> None:
        with self._lock:
            self._children.discard(child)

    def __repr__(self) -> str:
        reason = self._check()
        state = "active" if reason is None else reason.__name__
        return f"Context(state={state}, deadline={self.deadline!r})"


def background() -> Context:
    """A context that is never cancelled and has no deadline."""
    return Context()


def with_cancel(parent: Context) -> Context:
    return Context(parent)


def with_deadline(parent: Context, deadline: float) -> Context:
    """Child of `parent` that expires at the monotonic timestamp `deadline`."""
    return Context(parent, deadline)


def with_timeout(parent: Context, seconds: float) -> Context:
    """Child of `parent` that expires `seconds` from now. Zero or less is already expired."""
    return Context(parent, time.monotonic() + seconds)
