from __future__ import annotations

import pytest

from graceful.constants import STATUS_CONTROL_C_EXIT
from graceful.outcome import ExitKind, ExitOutcome


@pytest.mark.parametrize(
    "rc,kind,signum,status",
    [
        (0, ExitKind.NATURAL, None, 0),
        (3, ExitKind.NATURAL, None, 3),
        (-2, ExitKind.INTERRUPTED, 2, 130),
        (-15, ExitKind.INTERRUPTED, 15, 143),
        (-9, ExitKind.FORCED, 9, 137),
    ],
)
def test_posix_classification(rc: int, kind: ExitKind, signum: int | None, status: int) -> None:
    out = ExitOutcome.from_returncode(rc, os_name="posix")
    assert out.kind is kind
    assert out.signum == signum
    assert out.status == status
    assert out.kind.is_signaled() is (signum is not None)


def test_windows_control_c_exit() -> None:
    out = ExitOutcome.from_returncode(STATUS_CONTROL_C_EXIT, os_name="nt")
    assert out.kind is ExitKind.INTERRUPTED
    assert out.status == STATUS_CONTROL_C_EXIT


def test_windows_forced_reads_as_natural() -> None:
    assert ExitOutcome.from_returncode(1, os_name="nt").kind is ExitKind.NATURAL


def test_json_round_trip() -> None:
    out = ExitOutcome.from_returncode(-9, os_name="posix")
    data = out.to_json()
    assert b'"kind":"forced"' in data
    assert ExitOutcome.from_json(data) == out
