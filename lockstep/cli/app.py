"""Main Typer application: registers all CLI commands.

Entry point: ``lockstep`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import typer

from lockstep.cli.commands.check import check_cmd
from lockstep.cli.commands.checks_cmd import checks_cmd
from lockstep.cli.commands.upgrade import upgrade_cmd

app = typer.Typer(
    name="lockstep",
    help="lockstep: check-gated dependency upgrades with a self-consistent check suite.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="check", help="Run checks by name (the aggregate when none given).")(check_cmd)
app.command(name="checks", help="List registered checks and their CI references.")(checks_cmd)
app.command(name="upgrade", help="Update, then upgrade, dependencies behind the checks.")(upgrade_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
