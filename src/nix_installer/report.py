"""Terminal reports for dry runs and self-test results.

Read-only: this module only formats, it never mutates the host.
"""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from nix_installer.action import Action
from nix_installer.self_test import SelfTestError, Shell


class Reporter:
    """Render plans and self-test outcomes with rich."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def report_plan(self, action: Action, *, revert: bool = False) -> None:
        """Print what execute (or revert) would do, without doing it."""
        descriptions = action.revert_description() if revert else action.execute_description()
        verb = "revert" if revert else "execute"

        lines = []
        for description in descriptions:
            lines.append(f"[bold]* {escape(description.description)}[/]")
            for explanation in description.explanation:
                lines.append(f"    [dim]{escape(explanation)}[/]")

        contract = action.CONTRACT
        lines.append("")
        lines.append(f"[dim]State:[/] {action.action_state().value}")
        lines.append(f"[dim]Read only:[/] {'yes' if contract.read_only else 'no'}")
        lines.append(f"[dim]Rollback:[/] {'yes' if contract.rollback_support else 'no'}")
        if contract.prerequisites:
            lines.append(f"[dim]Prerequisites:[/] {', '.join(contract.prerequisites)}")

        self.console.print(
            Panel(
                "\n".join(lines),
                title=f"[bold cyan]Plan ({verb})[/]",
                border_style="cyan",
            )
        )

    def report_self_test(self, shells: list[Shell], failures: list[SelfTestError]) -> None:
        """Print one row per probed shell, then every failure in full."""
        if not shells:
            self.console.print("   [yellow]No supported shells found on PATH.[/]")
            return

        failed = {failure.shell: failure for failure in failures}

        table = Table(title="Shell self-test", show_header=True, header_style="bold")
        table.add_column("Shell")
        table.add_column("Result")
        table.add_column("Diagnostic", style="dim")
        for shell in shells:
            failure = failed.get(shell)
            if failure is None:
                table.add_row(str(shell), "[green]PASS[/]", "")
            else:
                table.add_row(str(shell), "[red]FAIL[/]", escape(failure.diagnostic()))
        self.console.print(table)

        for failure in failures:
            self.console.print(f"\n[red][bold]FAIL:[/] {escape(str(failure))}[/]")

        if not failures:
            self.console.print("   [green][bold]PASS:[/] All shells passed.[/]")
