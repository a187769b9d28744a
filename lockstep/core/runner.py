"""Validation suite runner.

Runs named checks sequentially in the given order.  The first failing
check aborts the whole invocation (including an aggregate run) and its
exit status is propagated.  An unrecognized name is a distinct fatal
error from a tool that could not be run.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from lockstep.core.errors import FATAL_EXIT_CODE, CommandFailedError, LockstepError
from lockstep.core.registry import CheckRegistry
from lockstep.models.checks import CheckOutcome, CheckResult

logger = logging.getLogger(__name__)


class CheckFailedError(LockstepError):
    """Raised when a check fails; ``exit_code`` is the check's own status."""

    def __init__(self, name: str, exit_code: int) -> None:
        super().__init__(f"Check '{name}' failed with exit status {exit_code}.")
        self.name = name
        self.exit_code = exit_code if exit_code > 0 else FATAL_EXIT_CODE


class SuiteRunner:
    """Invokes checks from a ``CheckRegistry`` by name.

    Parameters
    ----------
    registry:
        The registry to resolve names against.
    announce:
        Optional callback invoked with each check name just before it runs
        (used by the CLI to print a banner).
    clock:
        Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        registry: CheckRegistry,
        *,
        announce: Callable[[str], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.registry = registry
        self._announce = announce
        self._clock = clock
        # Results of the most recent run(), including the failing check.
        self.last_results: list[CheckResult] = []

    def run(self, names: Sequence[str] = ()) -> list[CheckResult]:
        """Run *names* in order; an empty sequence runs the aggregate.

        Returns the results of every check that ran.  Raises
        ``UnknownCheckError`` for an unregistered name and
        ``CheckFailedError`` for the first failing check.
        """
        requested = list(names) or [self.registry.aggregate_name]
        self.last_results = []
        for name in requested:
            self._invoke(name)
        return list(self.last_results)

    def run_aggregate(self) -> list[CheckResult]:
        """Run the aggregate check (the commit gate of the upgrade pipeline)."""
        return self.run([self.registry.aggregate_name])

    def _invoke(self, name: str) -> None:
        entry = self.registry.get(name)

        if entry.spec.is_aggregate:
            members = self.registry.aggregate_members()
            logger.info("Running aggregate '%s' (%d checks)", name, len(members))
            for member in members:
                self._invoke(member)
            return

        if self._announce is not None:
            self._announce(name)
        logger.info("Running check '%s'", name)
        started = self._clock()
        try:
            entry.invoke()
        except CommandFailedError as exc:
            self._record(name, CheckOutcome.FAILED, started, exc.returncode)
            logger.error("Check '%s' failed with exit status %d", name, exc.returncode)
            raise CheckFailedError(name, exc.returncode) from exc
        except LockstepError as exc:
            self._record(name, CheckOutcome.ABORTED, started, exc.exit_code)
            logger.error("Check '%s' aborted: %s", name, exc.message)
            raise
        result = self._record(name, CheckOutcome.PASSED, started)
        logger.info("Check '%s' passed in %.2fs", name, result.duration_seconds)

    def _record(
        self, name: str, outcome: CheckOutcome, started: float, exit_code: int = 0
    ) -> CheckResult:
        result = CheckResult(
            name=name,
            outcome=outcome,
            exit_code=exit_code,
            duration_seconds=self._clock() - started,
        )
        self.last_results.append(result)
        return result
