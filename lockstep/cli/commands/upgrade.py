"""``lockstep upgrade``: update, then upgrade, dependencies behind the check suite.

Takes no options.  Exits 9 with a diagnostic on any fatal condition and 0
once the pipeline completes.
"""

from __future__ import annotations

import typer

from lockstep.checks.catalog import build_registry
from lockstep.cli.output import (
    banner,
    configure_logging,
    console,
    print_fatal,
    render_pipeline_report,
)
from lockstep.config import load_settings
from lockstep.core.errors import FATAL_EXIT_CODE, LockstepError
from lockstep.core.orchestrator import UpgradeOrchestrator
from lockstep.core.runner import SuiteRunner
from lockstep.core.vcs import GitRepository


def upgrade_cmd() -> None:
    """Run the minor-update then major-upgrade pipeline."""
    try:
        settings = load_settings()
    except LockstepError as exc:
        print_fatal(exc)
        raise typer.Exit(code=FATAL_EXIT_CODE)
    configure_logging(settings.log_level)

    repo = GitRepository(settings.project_root)
    runner = SuiteRunner(build_registry(settings, repo=repo), announce=banner)
    orchestrator = UpgradeOrchestrator.from_settings(settings, runner)

    try:
        report = orchestrator.run()
    except LockstepError as exc:
        print_fatal(exc)
        raise typer.Exit(code=FATAL_EXIT_CODE)

    console.print()
    console.print(render_pipeline_report(report))
