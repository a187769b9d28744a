"""Fatal error taxonomy shared by every lockstep component.

Components never terminate the process themselves.  They raise one of the
errors below and the CLI converts it into a diagnostic and an exit status.
"""

from __future__ import annotations

FATAL_EXIT_CODE = 9


class LockstepError(RuntimeError):
    """Base class for every fatal lockstep condition.

    Parameters
    ----------
    message:
        Human-readable diagnostic.
    hint:
        Optional remediation text shown to the operator below the message.
    """

    exit_code: int = FATAL_EXIT_CODE

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class EnvironmentFault(LockstepError):
    """The environment is unusable (missing tool, process never settles)."""


class ToolUnavailableError(EnvironmentFault):
    """An external tool we tried to invoke is not installed."""

    def __init__(self, tool: str) -> None:
        super().__init__(
            f"Required tool '{tool}' is not available on PATH.",
            hint=f"Install '{tool}' and try again.",
        )
        self.tool = tool


class PreconditionViolation(LockstepError):
    """A precondition failed before any mutation was attempted."""


class ValidationFailure(LockstepError):
    """The check suite failed after a mutation was applied."""


class ConsistencyViolation(LockstepError):
    """Declared checks, the aggregate body and CI references disagree."""


class CommandFailedError(LockstepError):
    """An external command exited with a non-zero status.

    ``exit_code`` is the command's own status so callers can propagate it.
    """

    def __init__(self, argv: list[str], returncode: int, stderr: str = "") -> None:
        super().__init__(
            f"Command {' '.join(argv)!r} failed with exit status {returncode}."
            + (f"\n{stderr.strip()}" if stderr.strip() else "")
        )
        self.argv = list(argv)
        self.returncode = returncode
        # killed by a signal: negative status
        self.exit_code = returncode if returncode > 0 else FATAL_EXIT_CODE
