"""``passforge engine-status`` — report signing backend availability.

Shows which signing engines can run in this environment and whether the
trust-chain certificate can be loaded.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from passforge.bridge.crypto_bridge import describe_backends
from passforge.bridge.trust_chain import bundled_chain_path, load_trust_chain
from passforge.config import ForgeConfig
from passforge.core.errors import SigningEngineError

console = Console()


def engine_status_cmd() -> None:
    """Show signing engine and trust chain status."""
    config = ForgeConfig()

    table = Table(title="Signing Engines")
    table.add_column("Component", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Detail")

    for name, (available, detail) in describe_backends(config).items():
        selected = " (selected)" if name == config.signing_backend else ""
        status = "[green]Available[/green]" if available else "[red]Unavailable[/red]"
        table.add_row(f"{name}{selected}", status, detail)

    chain_path = config.trust_chain_path or bundled_chain_path()
    try:
        chain = load_trust_chain(config.trust_chain_path)
        table.add_row(
            "trust chain",
            "[green]Loaded[/green]",
            f"{chain_path} ({'; '.join(chain.subjects)})",
        )
        chain_ok = True
    except SigningEngineError as exc:
        table.add_row("trust chain", "[red]Missing[/red]", str(exc))
        chain_ok = False

    console.print(table)
    if not chain_ok:
        raise typer.Exit(code=1)
