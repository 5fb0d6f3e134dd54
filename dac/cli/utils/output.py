"""Shared output handlers for CLI commands."""

import csv
import io
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from dac.api.resources import ResourceConfig
from dac.core.constants import FormattingConstants
from dac.core.errors import ClassifiedError, Recovery
from dac.models.page import ResourcePage

console = Console()
err_console = Console(stderr=True)


def _write(content: str, output_path: Path | None) -> None:
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
        console.print(f"[bold green]✓ Saved to:[/bold green] {output_path}")
    else:
        print(content)


def write_bytes(content: bytes, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(content)
    console.print(f"[bold green]✓ Saved to:[/bold green] {output_path} ({len(content)} bytes)")


def handle_json_output(
    data: Any,
    output_path: Path | None,
    transformer: Callable[[Any], Any] | None = None,
) -> None:
    """Handle JSON format output.

    Args:
        data: Data to output (can be any type)
        output_path: Optional file path to save output
        transformer: Optional function to transform data before serialization
    """
    output_data = transformer(data) if transformer else data
    _write(json.dumps(output_data, indent=FormattingConstants.JSON_INDENT, default=str), output_path)


def flatten_value(value: Any) -> str:
    """Render one value as a CSV cell."""
    if value is None:
        return ""
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


def handle_csv_output(
    data: list[Any],
    output_path: Path | None,
    fieldnames: list[str] | None = None,
    row_transformer: Callable[[Any], dict[str, Any]] | None = None,
) -> None:
    """Handle CSV format output.

    Args:
        data: Records to output
        output_path: Optional file path to save output
        fieldnames: Optional list of field names for CSV header
        row_transformer: Optional function to transform each row before writing
    """
    string_buffer = io.StringIO()
    rows = [row_transformer(item) if row_transformer else item for item in data]
    rows = [row for row in rows if isinstance(row, dict)]

    if rows:
        if not fieldnames:
            # Get all unique keys from all rows
            all_keys: set[str] = set()
            for row in rows:
                all_keys.update(row.keys())
            fieldnames = sorted(all_keys)

        writer = csv.DictWriter(string_buffer, fieldnames=fieldnames, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({key: flatten_value(row.get(key)) for key in fieldnames})

    _write(string_buffer.getvalue(), output_path)


def _cell(value: Any) -> str:
    text = flatten_value(value)
    limit = FormattingConstants.CELL_MAX_LENGTH
    return text if len(text) <= limit else f"{text[: limit - 1]}…"


def handle_table_output(page: ResourcePage, resource: ResourceConfig) -> None:
    """Render one list page as a rich table with its pagination footer."""
    resolver = resource.resolver()
    table = Table(title=resource.label, show_lines=False, expand=True)
    for column in resource.columns:
        table.add_column(column, overflow="fold", no_wrap=column == "id")

    for item in page.items:
        table.add_row(*(_cell(resolver.resolve(item, column)) for column in resource.columns))

    console.print(table)
    pagination = page.pagination
    console.print(
        f"\n[bold]Page {pagination.page} of {pagination.total_pages}[/bold] | "
        f"{len(page.items)} shown | {pagination.total} total"
    )
    print_warnings(page)


def print_warnings(page: ResourcePage) -> None:
    if page.warnings:
        err_console.print(f"[yellow]⚠ Response normalized with warnings: {', '.join(page.warnings)}[/yellow]")


def print_error(error: ClassifiedError) -> None:
    """Print a classified failure the way its recovery policy asks for."""
    match error.recovery:
        case Recovery.LOCAL:
            err_console.print(f"[bold red]✗ Rejected:[/bold red] {error.message}")
            for field, message in sorted(error.fields.items()):
                err_console.print(f"  [red]{field}[/red]: {message}")
        case Recovery.SESSION:
            err_console.print("[bold red]✗ Not signed in or session expired.[/bold red]")
            err_console.print("[dim]Run 'dac login' and export DAC_API_TOKEN.[/dim]")
        case Recovery.NOTICE:
            err_console.print(f"[yellow]⚠ {error.message}[/yellow]")
        case _:
            label = error.kind.replace("_", " ").capitalize()
            suffix = f" (HTTP {error.status_code})" if error.status_code else ""
            err_console.print(f"[bold red]✗ {label}{suffix}:[/bold red] {error.message}")
            if error.retryable:
                err_console.print("[dim]Nothing was retried; run the command again to retry.[/dim]")
