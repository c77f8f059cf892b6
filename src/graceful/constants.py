"""
graceful.constants
==================

Single place for tunables and native constants. Every public operation takes
keyword overrides for the timing values; these are only the defaults.
"""

from __future__ import annotations

# ---- timing defaults (seconds) ------------------------------------------------

# Longest single blocking wait before the caller's context is checked again.
DEFAULT_POLL_INTERVAL = 0.1

# How long the caller keeps ignoring CTRL_C_EVENT after broadcasting it. The
# event is dispatched to every process of the group asynchronously.
DEFAULT_CONSOLE_SETTLE = 0.05

# Budget given to the cooperative step of exit_or_terminate().
DEFAULT_GRACE_PERIOD = 5.0

# ---- exit codes ------------------------------------------------------------------

# Status TerminateProcess() hands to a forcibly killed process.
FORCED_EXIT_CODE = 1

# NTSTATUS a console process reports when it dies from CTRL_C_EVENT.
STATUS_CONTROL_C_EXIT = 0xC000013A

# Offset shells add to a signal number to form an exit status.
SIGNAL_STATUS_OFFSET = 128

# ---- native ranges ---------------------------------------------------------------

MAX_POSIX_PID = 2**31 - 1  # pid_t
MAX_WIN32_PID = 2**32 - 1  # DWORD
