"""Rich terminal renderer for build results and verification reports.

Color scheme
------------
- green     : FINALIZED / check passed
- red       : FAILED / check failed
- cyan      : intermediate states
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from passforge.core.errors import PassBuildError
from passforge.core.verifier import VerificationReport
from passforge.models.build import BuildResult, BuildState, BuildTransition

_STATE_STYLES: dict[BuildState, str] = {
    BuildState.FINALIZED: "bold green",
    BuildState.FAILED: "bold red",
    BuildState.INIT: "dim",
}


def _check(ok: bool) -> str:
    return "[green]OK[/green]" if ok else "[bold red]FAIL[/bold red]"


class BuildRenderer:
    """Renders builds and verification reports as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Builds
    # ------------------------------------------------------------------

    def transitions_table(self, transitions: list[BuildTransition]) -> Table:
        table = Table(title="Build transitions", show_lines=False)
        table.add_column("From", style="dim")
        table.add_column("To")
        table.add_column("Output SHA-256", overflow="fold")
        for t in transitions:
            style = _STATE_STYLES.get(t.to_state, "cyan")
            table.add_row(
                t.from_state.value,
                f"[{style}]{t.to_state.value}[/{style}]",
                t.output_hash[:16] if t.output_hash else (t.error_stage or ""),
            )
        return table

    def print_result(self, result: BuildResult, output: str | None = None) -> None:
        lines = [
            "[bold green]Pass built and signed.[/bold green]",
            "",
            f"[bold]Build ID:[/bold] {result.build_id}",
            f"[bold]Engine:[/bold]   {result.engine}",
            f"[bold]Assets:[/bold]   {len(result.manifest)} ({result.manifest.algorithm})",
            f"[bold]Size:[/bold]     {result.size_bytes} bytes",
        ]
        if output:
            lines.append(f"[bold]Output:[/bold]   {output}")
        self.console.print(Panel("\n".join(lines), title="[bold]passforge build[/bold]", border_style="green"))
        self.console.print(self.transitions_table(result.transitions))

    def print_failure(self, error: PassBuildError, transitions: list[BuildTransition] | None = None) -> None:
        origin = "input" if error.is_input_error else "environment"
        self.console.print(
            Panel(
                "\n".join([
                    f"[bold red]{type(error).__name__}[/bold red] at stage "
                    f"[bold]{error.stage.value}[/bold] ({origin} problem)",
                    "",
                    str(error),
                ]),
                title="[bold]Build failed[/bold]",
                border_style="red",
            )
        )
        if transitions:
            self.console.print(self.transitions_table(transitions))

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def print_report(self, report: VerificationReport) -> None:
        table = Table(title="Pass verification")
        table.add_column("Check", style="cyan")
        table.add_column("Result", justify="center")
        table.add_column("Detail")
        table.add_row(
            "Manifest covers all entries",
            _check(not report.missing_from_manifest and not report.missing_from_archive),
            ", ".join(report.missing_from_manifest + report.missing_from_archive),
        )
        table.add_row("Digests match", _check(not report.digest_mismatches), ", ".join(report.digest_mismatches))
        table.add_row("Trust chain embedded", _check(report.chain_embedded), "")
        table.add_row("Signature verifies", _check(report.signature_valid), "")
        self.console.print(table)
        verdict = "[bold green]VALID[/bold green]" if report.ok else "[bold red]INVALID[/bold red]"
        self.console.print(f"Pass is {verdict} ({len(report.manifest)} assets)")
