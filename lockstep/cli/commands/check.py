"""``lockstep check [NAME...]``: run checks by name.

With no names the aggregate runs.  A failing check's exit status is
propagated; an unknown name or an aborted check exits 9.
"""

from __future__ import annotations

import typer

from lockstep.checks.catalog import build_registry
from lockstep.cli.output import (
    banner,
    configure_logging,
    console,
    print_fatal,
    render_results,
)
from lockstep.config import load_settings
from lockstep.core.errors import FATAL_EXIT_CODE, LockstepError
from lockstep.core.runner import SuiteRunner


def check_cmd(
    names: list[str] = typer.Argument(
        None,
        help="Checks to run, in order. Runs the aggregate when omitted.",
        show_default=False,
    ),
) -> None:
    """Run the named checks in order, stopping at the first failure."""
    try:
        settings = load_settings()
    except LockstepError as exc:
        print_fatal(exc)
        raise typer.Exit(code=FATAL_EXIT_CODE)
    configure_logging(settings.log_level)

    runner = SuiteRunner(build_registry(settings), announce=banner)
    try:
        results = runner.run(names or [])
    except LockstepError as exc:
        if runner.last_results:
            console.print(render_results(runner.last_results))
        print_fatal(exc)
        raise typer.Exit(code=exc.exit_code)

    console.print()
    if len(results) > 1:
        console.print(render_results(results))
    console.print("All testcases passed.")
