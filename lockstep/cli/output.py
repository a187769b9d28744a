"""Terminal output helpers shared by the CLI commands.

Banners, fatal-error diagnostics, logging setup and Rich renderers for
suite results, consistency memberships and pipeline reports.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.filesize import decimal
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from lockstep.core.errors import LockstepError
from lockstep.models.checks import CheckOutcome, CheckResult, ConsistencyReport
from lockstep.models.pipeline import PipelineReport

console = Console()
err_console = Console(stderr=True)

_OUTCOME_STYLES: dict[CheckOutcome, str] = {
    CheckOutcome.PASSED: "[green]PASSED[/green]",
    CheckOutcome.FAILED: "[bold red]FAILED[/bold red]",
    CheckOutcome.ABORTED: "[bold magenta]ABORTED[/bold magenta]",
}


def configure_logging(level: str) -> None:
    """Send log records to stderr through Rich at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def banner(text: str) -> None:
    console.rule(f"[bold yellow]{escape(text)}[/bold yellow]")


def print_fatal(error: LockstepError) -> None:
    """Print a fatal diagnostic (and its hint) on the error stream."""
    err_console.print()
    err_console.print(f"[bold red]Fatal error:[/bold red] {escape(error.message)}")
    if error.hint:
        err_console.print()
        err_console.print(escape(error.hint))


def _yes_no(flag: bool) -> str:
    return "[green]yes[/green]" if flag else "[red]no[/red]"


def render_results(results: list[CheckResult]) -> Table:
    table = Table(title="Check results")
    table.add_column("Check", style="cyan")
    table.add_column("Outcome", justify="center")
    table.add_column("Exit", justify="right")
    table.add_column("Time", justify="right")
    for r in results:
        table.add_row(
            r.name, _OUTCOME_STYLES[r.outcome], str(r.exit_code), f"{r.duration_seconds:.1f}s"
        )
    return table


def render_memberships(report: ConsistencyReport) -> Table:
    table = Table(title="Registered checks")
    table.add_column("Check", style="cyan")
    table.add_column("Declared", justify="center")
    table.add_column("Aggregate", justify="center")
    table.add_column("CI jobs")
    for m in report.memberships:
        jobs = ", ".join(m.ci_jobs) if m.declared_in_ci else "[red]none[/red]"
        table.add_row(m.name, _yes_no(m.declared), _yes_no(m.in_aggregate), jobs)
    return table


def render_pipeline_report(report: PipelineReport) -> Panel:
    lines: list[str] = [f"[bold]Run:[/bold] {report.run_id}", ""]

    if report.commits:
        lines.append("[bold]Commits created:[/bold]")
        lines.extend(f"  - {escape(msg)}" for msg in report.commits)
    else:
        lines.append("[dim]No dependency changes to commit.[/dim]")
    lines.append("")

    lines.append("[bold]Snapshots:[/bold]")
    for name, size in report.snapshots.sizes.items():
        lines.append(f"  {name:<14} {decimal(size)}")
    if report.snapshots.diff_commands:
        lines.append("")
        lines.append("[bold]To inspect the dependency changes:[/bold]")
        lines.extend(f"  {escape(cmd)}" for cmd in report.snapshots.diff_commands)
    lines.append("")

    lines.append(
        f"[bold]Unpushed commits:[/bold] {report.unpushed_before} -> {report.unpushed_after} "
        f"([green]+{report.new_commit_count}[/green])"
    )
    return Panel("\n".join(lines), title="[bold]Dependency upgrade[/bold]", border_style="green")
