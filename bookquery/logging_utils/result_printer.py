"""
Console rendering of result blocks with rich.
"""

import json
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from ..tools.base import QueryError, QueryResult, ResultStatus

_STATUS_STYLES = {
    ResultStatus.OK: "green",
    ResultStatus.NO_MATCH: "yellow",
    ResultStatus.UNCHANGED: "cyan",
}


class ResultPrinter:
    """Prints one block per operation, in the order operations complete."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.blocks_printed = 0

    def print_connected(self, target: str) -> None:
        """Announce the connection target."""
        self.console.print(f"🔌 Connected to MongoDB: [bold]{target}[/bold]")

    def print_disconnected(self) -> None:
        self.console.print("🔌 Disconnected from MongoDB")

    def print_section(self, title: str) -> None:
        """Print a section divider."""
        self.console.print()
        self.console.print(Rule(f"[bold blue]{title}"))

    def print_result(
        self, title: str, result: QueryResult, summary: Optional[str] = None
    ) -> None:
        """
        Print a result block.

        Counts-only results (updates, deletes, index commands) print
        ``summary``; everything else prints its documents as JSON.
        """
        self.console.print()
        heading = Text(title, style="bold")
        heading.append(f"  [{result.status.value}]", style=_STATUS_STYLES[result.status])
        heading.append(f"  {result.execution_time * 1000:.1f} ms", style="dim")
        self.console.print(heading)

        if summary is not None:
            self.console.print(summary)
        elif result.data:
            self.console.print_json(json.dumps(result.data, default=str))
        else:
            self.console.print("[dim](no documents)[/dim]")

        self.blocks_printed += 1

    def print_error(self, error: QueryError) -> None:
        """Print the block for a fatal error."""
        operation = f" during {error.operation}" if error.operation else ""
        self.console.print()
        self.console.print(
            Panel(
                str(error),
                title=f"❌ {error.category.value} error{operation}",
                border_style="red",
            )
        )
