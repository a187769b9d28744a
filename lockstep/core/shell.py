"""Thin subprocess wrapper used for every external tool invocation.

Commands are awaited to completion; no timeout is applied.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from lockstep.core.errors import CommandFailedError, ToolUnavailableError

logger = logging.getLogger(__name__)


def run_command(
    argv: list[str],
    cwd: Path | None = None,
    *,
    capture: bool = False,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run *argv* in *cwd* and return the completed process.

    Parameters
    ----------
    argv:
        Program and arguments.
    cwd:
        Working directory.  Defaults to the current directory.
    capture:
        Capture stdout/stderr as text instead of streaming to the terminal.
    check:
        Raise ``CommandFailedError`` on a non-zero exit status.

    Raises
    ------
    ToolUnavailableError
        If the program cannot be found.
    CommandFailedError
        If ``check`` is set and the program exits non-zero.
    """
    logger.debug("Running %s in %s", argv, cwd or ".")
    try:
        proc = subprocess.run(
            argv,
            cwd=cwd,
            capture_output=capture,
            text=True,
        )
    except FileNotFoundError as exc:
        raise ToolUnavailableError(argv[0]) from exc

    if check and proc.returncode != 0:
        raise CommandFailedError(argv, proc.returncode, proc.stderr or "")
    return proc
