"""``lockstep checks``: list registered checks and where they are referenced."""

from __future__ import annotations

import typer

from lockstep.checks.catalog import build_registry
from lockstep.cli.output import configure_logging, console, print_fatal, render_memberships
from lockstep.config import load_settings
from lockstep.core.consistency import ConsistencyChecker
from lockstep.core.errors import FATAL_EXIT_CODE, LockstepError


def checks_cmd() -> None:
    """Show each check's declaration, aggregate membership and CI jobs."""
    try:
        settings = load_settings()
    except LockstepError as exc:
        print_fatal(exc)
        raise typer.Exit(code=FATAL_EXIT_CODE)
    configure_logging(settings.log_level)

    registry = build_registry(settings)
    checker = ConsistencyChecker(registry, settings.ci_config, settings.runner_invocation)
    try:
        report = checker.evaluate()
    except LockstepError as exc:
        print_fatal(exc)
        raise typer.Exit(code=exc.exit_code)

    console.print(render_memberships(report))
    if not report.is_consistent:
        console.print(
            f"[yellow]Inconsistent; run [bold]{settings.runner_invocation} self[/bold] "
            "for details.[/yellow]"
        )
