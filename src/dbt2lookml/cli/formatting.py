"""Rich formatting utilities for CLI output.

Panels for errors, warnings and successes, and the tables printed after
``generate`` and ``validate``.
"""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from dbt2lookml.generators.lookml import GenerationResult


def format_error(message: str, context: str | None = None) -> Panel:
    """Create formatted error panel.

    Args:
        message: Error message
        context: Optional context hint for resolution

    Returns:
        Panel with error formatting
    """
    content = f"[bold red]{message}[/bold red]"
    if context:
        content += f"\n\n[dim]{context}[/dim]"

    return Panel(
        content,
        title="[bold red]Error[/bold red]",
        border_style="red",
        width=78,
        expand=False,
    )


def format_warning(message: str, context: str | None = None) -> Panel:
    """Create formatted warning panel.

    Args:
        message: Warning message
        context: Optional additional information

    Returns:
        Panel with warning formatting
    """
    content = f"[bold yellow]{message}[/bold yellow]"
    if context:
        content += f"\n\n[dim]{context}[/dim]"

    return Panel(
        content,
        title="[bold yellow]Warning[/bold yellow]",
        border_style="yellow",
        width=78,
        expand=False,
    )


def format_success(message: str, details: str | None = None) -> Panel:
    """Create formatted success panel."""
    content = f"[bold green]✓ {message}[/bold green]"
    if details:
        content += f"\n\n[dim]{details}[/dim]"

    return Panel(
        content,
        title="[bold green]Success[/bold green]",
        border_style="green",
        width=78,
        expand=False,
    )


def create_summary_table(result: GenerationResult) -> Table:
    """Table of run totals.

    Args:
        result: Driver result.

    Returns:
        Two-column table of metric and value.
    """
    table = Table(title="Generation Summary", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Models processed", str(result.models_processed))
    table.add_row("Files generated", str(result.files_generated))
    table.add_row(
        "Errors",
        f"[red]{len(result.errors)}[/red]" if result.errors else "0",
    )
    return table


def create_validation_table(rows: list[tuple[str, int, int, int]]) -> Table:
    """Table of parsed models for ``validate``.

    Args:
        rows: ``(model, columns, arrays, semantic measures)`` per model.
    """
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Model", style="cyan")
    table.add_column("Columns", justify="right")
    table.add_column("Arrays", justify="right")
    table.add_column("Semantic measures", justify="right")
    for name, columns, arrays, measures in rows:
        table.add_row(name, str(columns), str(arrays), str(measures))
    return table
