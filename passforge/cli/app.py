"""Main Typer application — imports and registers all CLI commands.

Entry point: ``passforge`` (configured via pyproject.toml console_scripts).

Commands: build, verify, engine-status, fetch-trust-chain.
"""

from __future__ import annotations

import typer

from passforge.cli.commands.build import build_cmd
from passforge.cli.commands.engine_status import engine_status_cmd
from passforge.cli.commands.fetch_trust_chain import fetch_trust_chain_cmd
from passforge.cli.commands.verify import verify_cmd
from passforge.config import config
from passforge.logging_setup import configure_logging

app = typer.Typer(
    name="passforge",
    help="passforge: build and sign Apple Wallet pass archives.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="build", help="Build and sign a pass from an asset directory.")(build_cmd)
app.command(name="verify", help="Verify digests and signature of a pass archive.")(verify_cmd)
app.command(name="engine-status", help="Show signing engine and trust chain status.")(engine_status_cmd)
app.command(name="fetch-trust-chain", help="Download and install the trust-chain certificate.")(fetch_trust_chain_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to PASSFORGE_LOG_LEVEL).",
    ),
) -> None:
    """Configure logging before any command runs."""
    configure_logging(log_level or config.log_level)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
