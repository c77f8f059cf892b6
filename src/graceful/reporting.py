"""
graceful reporting: rich rendering for GracefulError, the GracefulWarning
category, and an opt-in bridge that routes those warnings through a Console.

Do NOT install the bridge at import time. Let scripts/CLIs opt in.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TextIO

from rich.console import Console, Group, RenderableType
from rich.rule import Rule
from rich.text import Text

if TYPE_CHECKING:
    from graceful.errors import GracefulError

__all__ = [
    "GracefulWarning",
    "Theme",
    "Emitter",
    "render_error",
    "install_warnings_bridge",
]


class GracefulWarning(Warning):
    """Non-fatal problems, such as a console that could not be restored."""


@dataclass(frozen=True, slots=True)
class Theme:
    error_header: str = "bold red"
    warn_header: str = "bold yellow"
    op: str = "italic"
    code: str = "dim"
    note_bullet: str = "dim"


def render_error(err: GracefulError, *, theme: Theme | None = None) -> RenderableType:
    """
    Header with the error kind, a rule, the native call with its verbatim
    message, and any notes attached while cleaning up.
    """
    theme = theme or Theme()

    head = Text()
    head.append(type(err).__name__, style=theme.error_header)
    if err.code is not None:
        head.append(f" [{err.code}]", style=theme.code)

    body = Text()
    body.append(err.op, style=theme.op)
    body.append(f": {err.message}")

    trailer = Text()
    for n in getattr(err, "__notes__", ()):
        trailer.append("\n• ", style=theme.note_bullet)
        trailer.append(n)

    return Group(
        head,
        Rule(style=theme.error_header),
        body,
        *([trailer] if trailer.plain else []),
    )


class Emitter:
    """Lightweight printer for errors and warnings."""

    def __init__(self, console: Console | None = None, theme: Theme | None = None):
        self.console = console or Console(stderr=True)
        self.theme = theme or Theme()

    def emit(self, err: GracefulError) -> None:
        self.console.print(render_error(err, theme=self.theme))

    def warn(self, message: str) -> None:
        head = Text("warning", style=self.theme.warn_header)
        head.append(f": {message}")
        self.console.print(head)


def install_warnings_bridge(
    *,
    emitter: Emitter | None = None,
    only_graceful: bool = True,
) -> Callable[[], None]:
    """
    Route Python's warnings display for GracefulWarning through Rich.

    - Returns an `uninstall()` function to restore the previous handler.
    - If `only_graceful=True` (default), other warnings are passed through unchanged.
    """
    em = emitter or Emitter()

    prev_showwarning = warnings.showwarning

    def _showwarning(
        message: Warning | str,
        category: type[Warning],
        filename: str,
        lineno: int,
        file: TextIO | None = None,
        line: str | None = None,
    ) -> None:
        if issubclass(category, GracefulWarning):
            em.warn(str(message))
            return
        if only_graceful:
            return prev_showwarning(message, category, filename, lineno, file=file, line=line)
        em.console.print(f"{category.__name__}: {message} ({filename}:{lineno})")

    warnings.showwarning = _showwarning

    def uninstall() -> None:
        warnings.showwarning = prev_showwarning

    return uninstall
