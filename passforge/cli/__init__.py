"""passforge CLI — Typer-based command-line interface.

Provides the ``passforge`` command with subcommands for building and
verifying pass archives and checking signing engine health.

All output uses Rich for formatted terminal display.
"""
