"""Weekly user-location report commands."""

from datetime import date
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console

from dac.api.resources import get_resource_config
from dac.cli.utils.auth import open_console, run
from dac.cli.utils.options import OUTPUT_FORMAT_OPTION, OUTPUT_PATH_OPTION, OutputFormat
from dac.cli.utils.output import handle_csv_output, handle_json_output, handle_table_output, print_error, write_bytes
from dac.core.constants import DatePreset
from dac.core.filters import parse_date, resolve_date_preset
from dac.models.cache import CacheEntry
from dac.models.page import ResourcePage
from dac.services.console import WEEKLY_REPORTS

console = Console()

WEEK_OPTION = Annotated[
    DatePreset,
    typer.Option("--week", help="week (current) or last_week", case_sensitive=False),
]
START_OPTION = Annotated[str | None, typer.Option("--start", help="Explicit start date")]
END_OPTION = Annotated[str | None, typer.Option("--end", help="Explicit end date")]


def weekly_report_range(week: DatePreset, start: str | None, end: str | None) -> tuple[date, date]:
    """Resolve the report window: explicit bounds win, otherwise a Monday-based week preset."""
    if start or end:
        first, last = parse_date(start), parse_date(end)
        if first is None or last is None:
            raise typer.BadParameter("Both --start and --end must be valid dates", param_hint="--start/--end")
        return (first, last) if first <= last else (last, first)

    bounds = resolve_date_preset(week)
    if bounds is None:
        raise typer.BadParameter(f"Unsupported week preset: {week}", param_hint="--week")
    return bounds


def report_totals(page: ResourcePage) -> dict[str, int]:
    """Active/inactive/total counts, from the server summary or summed over locations."""
    resolver = get_resource_config(WEEKLY_REPORTS).resolver()
    active = sum(int(resolver.resolve(row, "activeUsers") or 0) for row in page.items)
    inactive = sum(int(resolver.resolve(row, "inactiveUsers") or 0) for row in page.items)
    summary = page.summary
    return {
        "totalActive": int(summary.get("totalActive", active)),
        "totalInactive": int(summary.get("totalInactive", inactive)),
        "totalUsers": int(summary.get("totalUsers", active + inactive)),
    }


def show_weekly_report(
    week: WEEK_OPTION = DatePreset.WEEK,
    start: START_OPTION = None,
    end: END_OPTION = None,
    output_format: OUTPUT_FORMAT_OPTION = OutputFormat.TABLE,
    output: OUTPUT_PATH_OPTION = None,
) -> None:
    """Show active and inactive users per location for one week."""
    first, last = weekly_report_range(week, start, end)
    config = get_resource_config(WEEKLY_REPORTS)

    async def _report() -> CacheEntry:
        async with open_console() as admin:
            return await admin.weekly_report(first, last)

    entry = run(_report())
    if entry.is_error or entry.data is None:
        if entry.last_error is not None:
            print_error(entry.last_error)
        raise typer.Exit(1)

    page = entry.data
    totals = report_totals(page)
    match output_format:
        case OutputFormat.JSON:
            report: dict[str, Any] = {
                "startDate": first.isoformat(),
                "endDate": last.isoformat(),
                "locations": page.items,
                "summary": totals,
            }
            handle_json_output(report, output)
        case OutputFormat.CSV:
            handle_csv_output(page.items, output)
        case _:
            console.print(f"[dim]{first.isoformat()} to {last.isoformat()}[/dim]")
            handle_table_output(page, config)
            console.print(
                f"Active users: {totals['totalActive']} | "
                f"Inactive users: {totals['totalInactive']} | "
                f"Total users: {totals['totalUsers']}"
            )


def download_weekly_report(
    output: Annotated[Path, typer.Option("--output", "-o", help="Where to save the export")],
    week: WEEK_OPTION = DatePreset.LAST_WEEK,
    start: START_OPTION = None,
    end: END_OPTION = None,
) -> None:
    """Download the weekly user-location report as a spreadsheet."""
    first, last = weekly_report_range(week, start, end)

    async def _download() -> bytes:
        async with open_console() as admin:
            return await admin.client.download_weekly_report(first.isoformat(), last.isoformat())

    write_bytes(run(_download()), output)
