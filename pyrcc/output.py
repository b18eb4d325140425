"""Output formatting for the pyrcc CLI."""

import json
from typing import Any, Optional

import click
from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Formats command output as text or JSON."""

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize the output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress informational messages
        """
        self.json_output = json_output
        self.quiet = quiet

    def print(self, message: str) -> None:
        """Print a plain message to stdout."""
        click.echo(message)

    def info(self, message: str) -> None:
        """Print an informational message (suppressed in quiet/JSON mode)."""
        if self.quiet or self.json_output:
            return
        click.echo(message)

    def success(self, message: str) -> None:
        """Print a success message (suppressed in quiet/JSON mode)."""
        if self.quiet or self.json_output:
            return
        click.secho(message, fg="green")

    def warning(self, message: str) -> None:
        """Print a warning to stderr."""
        click.secho(f"Warning: {message}", fg="yellow", err=True)

    def error(self, message: str, code: Optional[int] = None) -> None:
        """Print an error to stderr.

        Args:
            message: Error message
            code: Exit code the error maps to, shown as "Error (code)"
        """
        prefix = f"Error ({code})" if code is not None else "Error"
        click.secho(f"{prefix}: {message}", fg="red", err=True)

    def output_json(self, data: Any) -> None:
        """Print data as indented JSON."""
        click.echo(json.dumps(data, indent=2, default=str))

    def print_table(
        self, columns: list[str], rows: list[list[str]], title: Optional[str] = None
    ) -> None:
        """Render rows as a table.

        Args:
            columns: Column headers; headers starting with "Size" or "Count"
                are right-aligned
            rows: Table rows as strings
            title: Optional table title
        """
        table = Table(title=title, show_edge=False, header_style="bold")
        for column in columns:
            justify = "right" if column.startswith(("Size", "Count")) else "left"
            table.add_column(column, justify=justify)
        for row in rows:
            table.add_row(*row)
        Console(file=click.get_text_stream("stdout"), highlight=False).print(table)

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a titled list of key/value pairs."""
        if self.json_output:
            self.output_json({key: value for key, value in items})
            return
        click.secho(title, bold=True)
        width = max((len(key) for key, _ in items), default=0)
        for key, value in items:
            click.echo(f"  {key + ':':<{width + 1}} {value}")
