from __future__ import annotations

import errno
import os
import warnings

from rich.console import Console

from graceful.errors import DeliveryFailed, GracefulError, InvalidTarget
from graceful.reporting import Emitter, GracefulWarning, install_warnings_bridge


def _console() -> Console:
    return Console(record=True, width=100, color_system=None)


def test_str_is_native_text_verbatim() -> None:
    err = InvalidTarget("OpenProcess", "The parameter is incorrect.", 87)
    assert str(err) == "OpenProcess: The parameter is incorrect."
    assert isinstance(err, GracefulError)


def test_from_os_error_keeps_strerror() -> None:
    exc = ProcessLookupError(errno.ESRCH, os.strerror(errno.ESRCH))
    err = InvalidTarget.from_os_error("pidfd_open", exc)
    assert type(err) is InvalidTarget
    assert err.code == errno.ESRCH
    assert str(err) == f"pidfd_open: {os.strerror(errno.ESRCH)}"


def test_from_errno() -> None:
    err = DeliveryFailed.from_errno("kill", errno.EPERM)
    assert str(err) == f"kill: {os.strerror(errno.EPERM)}"


def test_rich_rendering_includes_notes() -> None:
    err = DeliveryFailed("GenerateConsoleCtrlEvent", "Access is denied.", 5)
    err.add_note("while restoring console: AttachConsole: Access is denied.")
    console = _console()
    console.print(err)
    out = console.export_text()
    assert "DeliveryFailed [5]" in out
    assert "GenerateConsoleCtrlEvent: Access is denied." in out
    assert "while restoring console" in out


def test_emitter_prints_error() -> None:
    console = _console()
    Emitter(console).emit(InvalidTarget("kill", "No such process", errno.ESRCH))
    assert "kill: No such process" in console.export_text()


def test_warnings_bridge_routes_graceful_warnings() -> None:
    console = _console()
    uninstall = install_warnings_bridge(emitter=Emitter(console))
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("always")
            warnings.warn("console not restored", GracefulWarning)
    finally:
        uninstall()
    assert "warning: console not restored" in console.export_text()
