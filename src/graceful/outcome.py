from __future__ import annotations

import os
from enum import StrEnum

import msgspec
import msgspec.json

from graceful.constants import SIGNAL_STATUS_OFFSET, STATUS_CONTROL_C_EXIT

# POSIX numbers; the signal module lacks SIGKILL on Windows.
_SIGINT = 2
_SIGKILL = 9


class ExitKind(StrEnum):
    NATURAL = "natural"
    INTERRUPTED = "interrupted"
    FORCED = "forced"

    def is_signaled(self: ExitKind) -> bool:
        return self in {ExitKind.INTERRUPTED, ExitKind.FORCED}


class ExitOutcome(msgspec.Struct, frozen=True):
    """
    How a target ended, as seen through the caller's own process handle.

    `returncode` follows `subprocess.Popen.returncode`: negative values are
    POSIX signals. `signum` is set for signaled exits only.
    """

    returncode: int
    kind: ExitKind = ExitKind.NATURAL
    signum: int | None = None

    @classmethod
    def from_returncode(cls, returncode: int, *, os_name: str | None = None) -> ExitOutcome:
        """
        Classify a return code. On Windows a forced exit (status 1) cannot be
        told apart from a natural exit with the same code and reads as NATURAL.
        """
        if (os_name or os.name) == "nt":
            if (returncode & 0xFFFFFFFF) == STATUS_CONTROL_C_EXIT:
                return cls(returncode, ExitKind.INTERRUPTED, _SIGINT)
            return cls(returncode)

        if returncode < 0:
            signum = -returncode
            kind = ExitKind.FORCED if signum == _SIGKILL else ExitKind.INTERRUPTED
            return cls(returncode, kind, signum)
        return cls(returncode)

    @property
    def status(self) -> int:
        """Shell-style status: 128 + signal number for signaled exits, else the return code."""
        if self.signum is not None and self.returncode < 0:
            return SIGNAL_STATUS_OFFSET + self.signum
        return self.returncode

    def to_json(self) -> bytes:
        return msgspec.json.encode(self)

    @classmethod
    def from_json(cls, data: bytes | str) -> ExitOutcome:
        return msgspec.json.decode(data, type=cls)
