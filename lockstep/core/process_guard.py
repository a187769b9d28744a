"""Process settlement guard: wait for background package-manager workers.

The package manager can leave detached workers behind that keep rewriting
the lockfile after the foreground command returns.  Any version-control
status taken before they exit is unreliable, so every mutating step is
followed by ``await_settlement``.

Process listing goes through the ``ProcessInspector`` protocol so tests
can inject synthetic processes.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import psutil
from pydantic import BaseModel, ConfigDict

from lockstep.core.errors import EnvironmentFault

logger = logging.getLogger(__name__)


class ProcessSettlementError(EnvironmentFault):
    """Raised when matching processes are still alive after the retry budget."""


class ProcessInfo(BaseModel):
    """A live process observed by an inspector."""

    model_config = ConfigDict(frozen=True)

    pid: int
    name: str


# ---------------------------------------------------------------------------
# Inspectors
# ---------------------------------------------------------------------------


@runtime_checkable
class ProcessInspector(Protocol):
    """Anything that can list live processes matching a name pattern."""

    def list_processes(self, pattern: str) -> list[ProcessInfo]:
        ...


class PsutilProcessInspector:
    """Lists processes whose executable name equals *pattern* (via psutil).

    The current process is never reported.
    """

    def list_processes(self, pattern: str) -> list[ProcessInfo]:
        own_pid = os.getpid()
        found: list[ProcessInfo] = []
        for proc in psutil.process_iter(["pid", "name"]):
            name = proc.info.get("name") or ""
            if proc.info["pid"] != own_pid and name == pattern:
                found.append(ProcessInfo(pid=proc.info["pid"], name=name))
        return found


# ---------------------------------------------------------------------------
# Guard
# ---------------------------------------------------------------------------


class SettlementGuard:
    """Bounded polling wait until no matching process remains.

    Parameters
    ----------
    inspector:
        Process listing backend.
    pattern:
        Process name to wait for (e.g. ``"cargo"``).
    max_attempts:
        Number of non-empty observations tolerated before failing.
    poll_interval:
        Fixed sleep in seconds between observations.
    sleep:
        Sleep function, injectable for tests.
    """

    def __init__(
        self,
        inspector: ProcessInspector,
        pattern: str,
        *,
        max_attempts: int = 10,
        poll_interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._inspector = inspector
        self.pattern = pattern
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval
        self._sleep = sleep

    def await_settlement(self) -> None:
        """Return once no matching process is observed.

        Raises ``ProcessSettlementError`` after ``max_attempts`` non-empty
        observations.
        """
        remaining = self.max_attempts
        while True:
            found = self._inspector.list_processes(self.pattern)
            if not found:
                return
            remaining -= 1
            logger.info(
                "Waiting for %d '%s' process(es) to exit (%d attempt(s) left)",
                len(found),
                self.pattern,
                remaining,
            )
            if remaining <= 0:
                pids = ", ".join(str(p.pid) for p in found)
                raise ProcessSettlementError(
                    f"'{self.pattern}' processes still running after "
                    f"{self.max_attempts} attempts (pids: {pids}).",
                    hint="Wait for or stop the background processes, then re-run.",
                )
            self._sleep(self.poll_interval)


def await_settlement(
    max_attempts: int,
    poll_interval: float,
    *,
    pattern: str = "cargo",
    inspector: ProcessInspector | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Convenience wrapper building a one-off ``SettlementGuard``."""
    SettlementGuard(
        inspector or PsutilProcessInspector(),
        pattern,
        max_attempts=max_attempts,
        poll_interval=poll_interval,
        sleep=sleep,
    ).await_settlement()
