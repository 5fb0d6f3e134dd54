"""List and dump resource commands."""

import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from tqdm import tqdm

from dac.api.resources import ResourceConfig
from dac.cli.utils.auth import open_console, run
from dac.cli.utils.options import (
    DATE_FROM_OPTION,
    DATE_RANGE_OPTION,
    DATE_TO_OPTION,
    FILTER_OPTION,
    LIMIT_OPTION,
    OUTPUT_FORMAT_OPTION,
    OUTPUT_PATH_OPTION,
    PAGE_OPTION,
    RESOURCE_ARGUMENT,
    SEARCH_OPTION,
    STATUS_OPTION,
    OutputFormat,
    parse_filters,
    resolve_resource,
)
from dac.cli.utils.output import (
    handle_csv_output,
    handle_json_output,
    handle_table_output,
    print_error,
    print_warnings,
)
from dac.core.constants import APIConstants, DatePreset
from dac.models.cache import CacheEntry

console = Console()
logger = logging.getLogger(__name__)


def build_ui_state(
    resource: ResourceConfig,
    search: str | None = None,
    status: str | None = None,
    date_range: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    filters: list[str] | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """Assemble the UI filter state a list screen would hold from command options."""
    ui_state: dict[str, Any] = dict(parse_filters(filters))
    if search is not None:
        ui_state["search"] = search
    if status is not None:
        ui_state["status"] = status

    if date_range or date_from or date_to:
        date_spec = resource.date_filter
        if date_spec is None:
            raise typer.BadParameter(f"{resource.name} has no date filter", param_hint="--date-range")
        preset = date_range or DatePreset.CUSTOM
        ui_state[date_spec.name] = preset
        if preset == DatePreset.CUSTOM:
            ui_state[date_spec.custom_from_key] = date_from
            ui_state[date_spec.custom_to_key] = date_to

    if page is not None:
        ui_state["page"] = page
    if limit is not None:
        ui_state["limit"] = limit
    return ui_state


def list_records(
    resource: RESOURCE_ARGUMENT,
    search: SEARCH_OPTION = None,
    status: STATUS_OPTION = None,
    date_range: DATE_RANGE_OPTION = None,
    date_from: DATE_FROM_OPTION = None,
    date_to: DATE_TO_OPTION = None,
    filters: FILTER_OPTION = None,
    page: PAGE_OPTION = 1,
    limit: LIMIT_OPTION = None,
    output_format: OUTPUT_FORMAT_OPTION = OutputFormat.TABLE,
    output: OUTPUT_PATH_OPTION = None,
) -> None:
    """List one page of a resource with the same filters the admin screens offer."""
    config = resolve_resource(resource)
    ui_state = build_ui_state(config, search, status, date_range, date_from, date_to, filters, page, limit)

    async def _list() -> CacheEntry:
        async with open_console() as admin:
            return await admin.list(config.name, ui_state)

    entry = run(_list())
    if entry.is_error or entry.data is None:
        if entry.last_error is not None:
            print_error(entry.last_error)
        raise typer.Exit(1)

    page_data = entry.data
    match output_format:
        case OutputFormat.JSON:
            handle_json_output(page_data.model_dump(mode="json", by_alias=True), output)
        case OutputFormat.CSV:
            handle_csv_output(page_data.items, output)
        case _:
            handle_table_output(page_data, config)


def dump_records(
    resource: RESOURCE_ARGUMENT,
    output: Annotated[Path, typer.Option("--output", "-o", help="File to write (.json or .csv)")],
    search: SEARCH_OPTION = None,
    status: STATUS_OPTION = None,
    date_range: DATE_RANGE_OPTION = None,
    date_from: DATE_FROM_OPTION = None,
    date_to: DATE_TO_OPTION = None,
    filters: FILTER_OPTION = None,
    limit: LIMIT_OPTION = APIConstants.DUMP_PAGE_SIZE,
    output_format: Annotated[
        OutputFormat | None,
        typer.Option("--format", "-f", help="json or csv (defaults to the output file suffix)", case_sensitive=False),
    ] = None,
) -> None:
    """Walk every page of a filtered list and save all records to a file."""
    config = resolve_resource(resource)
    ui_state = build_ui_state(config, search, status, date_range, date_from, date_to, filters, 1, limit)
    fmt = output_format or (OutputFormat.CSV if output.suffix.lower() == ".csv" else OutputFormat.JSON)
    if fmt == OutputFormat.TABLE:
        raise typer.BadParameter("dump writes json or csv", param_hint="--format")

    async def _dump() -> list[Any]:
        records: list[Any] = []
        async with open_console() as admin:
            with tqdm(desc=f"Fetching {config.name}", unit=" records") as pbar:
                async for page in admin.iter_pages(config.name, ui_state):
                    if pbar.total is None:
                        pbar.total = page.pagination.total
                        pbar.refresh()
                    records.extend(page.items)
                    pbar.update(len(page.items))
                    print_warnings(page)
        return records

    records = run(_dump())
    logger.info(f"Dumped {len(records)} {config.name}")

    if fmt == OutputFormat.CSV:
        handle_csv_output(records, output)
    else:
        handle_json_output(records, output)
    console.print(f"[green]✓ {len(records)} {config.name} exported[/green]")
