"""CLI utilities for dbt2lookml.

Rich-based panels and tables shared by the CLI commands.
"""

from dbt2lookml.cli.formatting import (
    create_summary_table,
    create_validation_table,
    format_error,
    format_success,
    format_warning,
)

__all__ = [
    "create_summary_table",
    "create_validation_table",
    "format_error",
    "format_success",
    "format_warning",
]
