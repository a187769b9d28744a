"""Self-consistency check for the check suite.

Three independently edited sources name the checks:

1. the registry (declared checks, excluding the aggregate),
2. the aggregate body,
3. the CI workflow jobs that invoke the runner.

They must hold exactly the same names.  This check is itself registered
as ``self``, so it is declared, run by the aggregate and expected in CI
like any other check and cannot exempt itself.
"""

from __future__ import annotations

import difflib
import logging
from pathlib import Path

from lockstep.core.ci_config import find_references
from lockstep.core.errors import ConsistencyViolation
from lockstep.core.registry import CheckRegistry
from lockstep.models.checks import CheckMembership, ConsistencyReport

logger = logging.getLogger(__name__)

SELF_CHECK_NAME = "self"

_JOB_TEMPLATE = """\
  test-{name}:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - run: {invocation} {name}
"""


def ci_job_template(name: str, runner_invocation: str) -> str:
    """Workflow stanza an operator can paste in to run check *name*."""
    return _JOB_TEMPLATE.format(name=name, invocation=runner_invocation)


class ConsistencyChecker:
    """Compares declared, aggregate and CI check names.

    Parameters
    ----------
    registry:
        The check registry.
    ci_config_path:
        Path of the CI workflow to read.
    runner_invocation:
        Command line that invokes the suite runner in CI jobs.
    """

    def __init__(
        self,
        registry: CheckRegistry,
        ci_config_path: Path,
        runner_invocation: str,
    ) -> None:
        self._registry = registry
        self._ci_config_path = Path(ci_config_path)
        self._runner_invocation = runner_invocation

    def evaluate(self) -> ConsistencyReport:
        """Compute the three name sets and their differences."""
        declared = self._registry.declared_names()
        aggregate = self._registry.aggregate_members()
        refs = [
            r
            for r in find_references(self._ci_config_path, self._runner_invocation)
            if r.check_name != self._registry.aggregate_name
        ]

        jobs_by_name: dict[str, list[str]] = {}
        for ref in refs:
            jobs_by_name.setdefault(ref.check_name, []).append(ref.job_id)

        diff = ""
        if sorted(declared) != sorted(aggregate):
            diff = "\n".join(
                difflib.unified_diff(
                    sorted(declared),
                    sorted(aggregate),
                    fromfile="declared",
                    tofile="aggregate",
                    lineterm="",
                )
            )

        every_name = list(dict.fromkeys([*declared, *aggregate, *jobs_by_name]))
        memberships = [
            CheckMembership(
                name=name,
                declared=name in declared,
                in_aggregate=name in aggregate,
                ci_jobs=jobs_by_name.get(name, []),
            )
            for name in every_name
        ]

        return ConsistencyReport(
            declared=declared,
            aggregate=aggregate,
            ci_referenced=sorted(jobs_by_name),
            memberships=memberships,
            aggregate_diff=diff,
            missing_from_ci=[n for n in declared if n not in jobs_by_name],
            undeclared_in_ci=sorted(n for n in jobs_by_name if n not in declared),
        )

    def assert_consistent(self) -> ConsistencyReport:
        """Raise ``ConsistencyViolation`` describing every mismatch found."""
        report = self.evaluate()
        if report.is_consistent:
            logger.info("Check suite is self-consistent (%d checks)", len(report.declared))
            return report

        sections: list[str] = []
        if report.aggregate_diff:
            sections.append(
                f"Declared checks and the '{self._registry.aggregate_name}' body differ:\n"
                + report.aggregate_diff
            )
        for name in report.missing_from_ci:
            sections.append(
                f"Check '{name}' is not run by any job in {self._ci_config_path}. Add:\n"
                + ci_job_template(name, self._runner_invocation)
            )
        if report.undeclared_in_ci:
            sections.append(
                f"{self._ci_config_path} runs undeclared checks: "
                + ", ".join(report.undeclared_in_ci)
            )

        raise ConsistencyViolation(
            "Check suite is inconsistent.\n\n"
            + "\n\n".join(s.rstrip() for s in sections)
        )
