# bucketmirror Console Output
# Rich-based console output for sweeps and service status

from datetime import datetime
from typing import Optional

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from bucketmirror.service import ServiceStatus
from bucketmirror.sync.sweeper import DecisionAction, SweepResult, SyncDecision


class Console:
    """
    Console output manager using Rich.

    Provides formatted output for sweeps and status.
    """

    def __init__(self, *, verbose: bool = False, colored: bool = True):
        """
        Initialize console.

        Args:
            verbose: Enable verbose output.
            colored: Enable colored output.
        """
        self.verbose = verbose
        self._console = RichConsole(no_color=not colored, highlight=False)

    def print(self, *args, **kwargs) -> None:
        """Print to console."""
        self._console.print(*args, **kwargs)

    def print_error(self, message: str) -> None:
        """Print error message."""
        self._console.print(f"[red]Error:[/red] {escape(message)}")

    def print_warning(self, message: str) -> None:
        """Print warning message."""
        self._console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def print_success(self, message: str) -> None:
        """Print success message."""
        self._console.print(f"[green]{escape(message)}[/green]")

    def _get_action_icon(self, action: DecisionAction) -> str:
        icons = {
            DecisionAction.UPLOAD: "[yellow]↑[/yellow]",
            DecisionAction.DELETE: "[red]×[/red]",
            DecisionAction.SKIP: "[green]✓[/green]",
        }
        return icons.get(action, "?")

    def print_decisions(self, decisions: list[SyncDecision], *, dry_run: bool = False) -> None:
        """
        Print a table of sweep decisions.

        Skips are only listed in verbose mode.

        Args:
            decisions: Decisions to show.
            dry_run: Whether the decisions were not applied (changes title).
        """
        shown = [d for d in decisions if d.needs_apply or self.verbose]
        if not shown:
            self._console.print("[green]✓[/green] Bucket is in sync")
            return

        title = "Planned Changes (dry-run)" if dry_run else "Changes"
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("", justify="center")
        table.add_column("Key", style="cyan")
        table.add_column("Action")
        table.add_column("Reason", style="dim")

        for decision in shown:
            table.add_row(
                self._get_action_icon(decision.action),
                escape(decision.key),
                decision.action.value,
                escape(decision.reason),
            )

        self._console.print()
        self._console.print(table)
        self._console.print()

    def print_sweep_result(self, result: SweepResult) -> None:
        """Print sweep summary panel."""
        if result.dry_run:
            uploads = sum(1 for d in result.decisions if d.action == DecisionAction.UPLOAD)
            deletes = sum(1 for d in result.decisions if d.action == DecisionAction.DELETE)
            body = f"Would upload: {uploads}\nWould delete: {deletes}\nUnchanged: {result.skipped}"
            status_text = "Dry run completed"
        else:
            body = f"Uploaded: {result.uploaded}\nDeleted: {result.deleted}\nUnchanged: {result.skipped}"
            status_text = "Sweep completed"

        body += f"\nDuration: {result.duration:.1f}s"

        if result.success:
            self._console.print(Panel(f"[green]{status_text}[/green]\n{body}", title="Summary", border_style="green"))
            return

        errors = "\n".join(f"  • {escape(err)}" for err in result.errors)
        self._console.print(
            Panel(
                f"[red]{status_text} with {len(result.errors)} errors[/red]\n{body}\n\n[red]Errors:[/red]\n{errors}",
                title="Summary",
                border_style="red",
            )
        )

    def print_service_status(self, status: ServiceStatus, status_file: Optional[str] = None) -> None:
        """Print persisted service status."""
        state_styles = {
            "running": "green",
            "paused": "yellow",
            "stopped": "dim",
            "not_installed": "dim",
        }
        style = state_styles.get(status.state, "white")

        table = Table(show_header=False, box=None)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("State", f"[{style}]{status.state}[/{style}]")
        if status.watch_root:
            table.add_row("Watch root", status.watch_root)
        if status.bucket:
            table.add_row("Bucket", status.bucket)
        if status.pid:
            table.add_row("PID", str(status.pid))
        table.add_row("Sweep running", "yes" if status.sweep_running else "no")
        table.add_row("Sweeps", str(status.sweep_passes))
        if status.updated_at:
            table.add_row("Updated", status.updated_at[:19])
        if status.watcher_error:
            table.add_row("Watcher", f"[red]{escape(status.watcher_error)}[/red]")

        last = status.last_sweep
        if last:
            finished = last.get("finished_at")
            when = datetime.fromtimestamp(finished).strftime("%Y-%m-%d %H:%M:%S") if finished else "?"
            errors = last.get("errors") or []
            summary = (
                f"{when}: {last.get('uploaded', 0)} uploaded, {last.get('deleted', 0)} deleted, "
                f"{last.get('skipped', 0)} unchanged"
            )
            if errors:
                summary += f", [red]{len(errors)} errors[/red]"
            table.add_row("Last sweep", summary)
        else:
            table.add_row("Last sweep", "[dim]never[/dim]")

        title = "bucketmirror status"
        if status_file:
            title += f" ({status_file})"
        self._console.print(Panel(table, title=title, border_style="blue"))

    def print_config_summary(self, config_path: str, watch_root: str, backend: str, bucket: str) -> None:
        """Print configuration summary."""
        self._console.print(
            Panel(
                f"Config: {config_path}\nWatch root: {watch_root}\nStore: {backend} / {bucket}",
                title="bucketmirror Configuration",
                border_style="blue",
            )
        )


def create_console(*, verbose: bool = False, colored: bool = True) -> Console:
    """
    Create a console instance.

    Args:
        verbose: Enable verbose output.
        colored: Enable colored output.

    Returns:
        Console instance.
    """
    return Console(verbose=verbose, colored=colored)
