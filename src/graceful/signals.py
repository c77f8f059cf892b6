"""
graceful.signals
================

Translate the abstract signal numbers callers pass around into the native
primitive each platform delivers.

Two tables exist:

- POSIX: the number *is* the native signal, range checked against what the
  running interpreter considers valid.
- Console platforms: there is exactly one cooperative event that can be aimed
  at another process group, so every number maps to CTRL_C_EVENT.

`expected_exit_code` is what a target that does not handle the interrupt
conventionally reports afterwards. It is informational; nothing here checks it.
"""

from __future__ import annotations

import signal
from typing import NamedTuple

from graceful.constants import SIGNAL_STATUS_OFFSET, STATUS_CONTROL_C_EXIT
from graceful.errors import InvalidSignal

__all__ = [
    "CTRL_C_EVENT",
    "Translation",
    "translate",
    "translate_posix",
    "translate_console",
]

CTRL_C_EVENT = 0


class Translation(NamedTuple):
    native: int
    expected_exit_code: int


def _posix_signals() -> frozenset[int]:
    return frozenset(int(s) for s in signal.valid_signals())


def translate_posix(signum: int) -> Translation:
    signum = int(signum)
    if signum <= 0 or signum not in _posix_signals():
        raise InvalidSignal.for_signum(signum)
    return Translation(signum, SIGNAL_STATUS_OFFSET + signum)


def translate_console(signum: int) -> Translation:
    _ = signum
    return Translation(CTRL_C_EVENT, STATUS_CONTROL_C_EXIT)


def translate(signum: int) -> Translation:
    """Translate `signum` for the platform this interpreter runs on."""
    from graceful.platform import platform

    return platform.translate_signal(signum)
