"""Resource catalogue command."""

from rich.console import Console
from rich.table import Table

from dac.api.resources import describe_resources
from dac.cli.utils.options import OUTPUT_FORMAT_OPTION, OutputFormat
from dac.cli.utils.output import handle_json_output

console = Console()


def list_resources(output_format: OUTPUT_FORMAT_OPTION = OutputFormat.TABLE) -> None:
    """Show the resources the console knows, with their filters and actions."""
    rows = describe_resources()
    if output_format == OutputFormat.JSON:
        handle_json_output(rows, None)
        return

    table = Table(title="Admin resources", show_lines=False)
    for column in ("name", "path", "filters", "actions", "invalidates"):
        table.add_column(column, style="cyan" if column == "name" else None)
    for row in rows:
        table.add_row(row["name"], row["path"], row["filters"] or "-", row["actions"], row["invalidates"])
    console.print(table)
