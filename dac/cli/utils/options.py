"""Shared CLI options and enums for commands."""

import json
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any

import typer

from dac.api.resources import ResourceConfig, get_resource_config, resource_names
from dac.core.constants import APIConstants
from dac.exceptions import UnknownResourceError


class OutputFormat(StrEnum):
    """Supported output formats across commands."""

    TABLE = "table"
    JSON = "json"
    CSV = "csv"


# Common typer options
OUTPUT_PATH_OPTION = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        help="Output file path (prints to stdout when omitted)",
    ),
]

OUTPUT_FORMAT_OPTION = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format (table, json, csv)",
        case_sensitive=False,
    ),
]

FIELD_OPTION = Annotated[
    list[str] | None,
    typer.Option(
        "--field",
        "-F",
        help="Body field as key=value; values are parsed as JSON when possible (repeatable)",
    ),
]

FILE_OPTION = Annotated[
    list[str] | None,
    typer.Option(
        "--file",
        help="File part as key=path for multipart uploads (repeatable)",
    ),
]

FILTER_OPTION = Annotated[
    list[str] | None,
    typer.Option(
        "--filter",
        help="Extra UI filter as name=value, e.g. --filter stock=low (repeatable)",
    ),
]

RESOURCE_ARGUMENT = Annotated[
    str,
    typer.Argument(help="Resource name, e.g. orders, kyc or delivery-persons (see 'dac resources')"),
]

SEARCH_OPTION = Annotated[str | None, typer.Option("--search", "-s", help="Free-text search")]

STATUS_OPTION = Annotated[str | None, typer.Option("--status", help="Status filter ('all' means no filter)")]

DATE_RANGE_OPTION = Annotated[
    str | None,
    typer.Option(
        "--date-range",
        help="Date preset: today, week, last_week, month, quarter, year, all or custom",
    ),
]

DATE_FROM_OPTION = Annotated[
    str | None,
    typer.Option("--from", help="Lower date bound for a custom range (e.g. 2024-03-01 or '2 weeks ago')"),
]

DATE_TO_OPTION = Annotated[str | None, typer.Option("--to", help="Upper date bound for a custom range")]

PAGE_OPTION = Annotated[int, typer.Option("--page", "-p", min=1, help="Page number")]

LIMIT_OPTION = Annotated[
    int | None,
    typer.Option("--limit", "-l", min=1, max=APIConstants.MAX_PAGE_SIZE, help="Page size (defaults to DAC_PAGE_SIZE)"),
]

VERBOSE_OPTION = Annotated[
    bool,
    typer.Option(
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
]


def split_pair(pair: str, option: str) -> tuple[str, str]:
    """Split a ``key=value`` option value.

    Raises:
        typer.BadParameter: If there is no ``=`` or the key is empty
    """
    key, sep, value = pair.partition("=")
    if not sep or not key.strip():
        raise typer.BadParameter(f"Expected key=value, got {pair!r}", param_hint=option)
    return key.strip(), value


def parse_fields(pairs: list[str] | None) -> dict[str, Any]:
    """Build a request body from ``--field`` values."""
    body: dict[str, Any] = {}
    for pair in pairs or []:
        key, raw = split_pair(pair, "--field")
        try:
            body[key] = json.loads(raw)
        except ValueError:
            body[key] = raw
    return body


def parse_filters(pairs: list[str] | None) -> dict[str, str]:
    return dict(split_pair(pair, "--filter") for pair in pairs or [])


def parse_files(pairs: list[str] | None) -> dict[str, Path]:
    """Map ``--file`` values to existing paths."""
    files: dict[str, Path] = {}
    for pair in pairs or []:
        key, raw = split_pair(pair, "--file")
        path = Path(raw).expanduser()
        if not path.is_file():
            raise typer.BadParameter(f"No such file: {raw}", param_hint="--file")
        files[key] = path
    return files


def resolve_resource(name: str) -> ResourceConfig:
    """Look up a resource for a command argument.

    Raises:
        typer.BadParameter: If the name is not a known resource
    """
    try:
        return get_resource_config(name)
    except UnknownResourceError:
        raise typer.BadParameter(
            f"Unknown resource {name!r}. Known resources: {', '.join(resource_names())}", param_hint="RESOURCE"
        ) from None
