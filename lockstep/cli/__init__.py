"""lockstep CLI: Typer-based command-line interface.

Provides the ``lockstep`` command with subcommands for running checks,
listing the check registry and running the dependency upgrade pipeline.

All output uses Rich for formatted terminal display.
"""
