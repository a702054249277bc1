"""Output formatting for the CLI.

Everything goes to stderr so the terminal stays usable while an editor
owns stdout.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputFormatter:
    """Formats status messages for the terminal."""

    def __init__(self, quiet: bool = False, console: Optional[Console] = None):
        """Initialize output formatter.

        Args:
            quiet: Suppress informational messages (warnings and errors
                   are always shown)
            console: Rich console to write to (defaults to stderr)
        """
        self.quiet = quiet
        self.console = console or Console(stderr=True, highlight=False)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if not self.quiet:
            self.console.print(f"[cyan]{escape(message)}[/cyan]")

    def success(self, message: str) -> None:
        """Print a success message."""
        if not self.quiet:
            self.console.print(f"[green]✓[/green] {escape(message)}")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a summary table.

        Args:
            title: Title of the summary
            items: List of (label, value) tuples
        """
        if self.quiet:
            return

        table = Table(title=title, show_header=False, box=None)
        table.add_column("Label", style="bold")
        table.add_column("Value")
        for label, value in items:
            table.add_row(label, value)
        self.console.print(table)
