"""CLI utilities module."""

from dac.cli.utils.auth import open_console, run, session_from_config
from dac.cli.utils.options import (
    FIELD_OPTION,
    FILE_OPTION,
    FILTER_OPTION,
    OUTPUT_FORMAT_OPTION,
    OUTPUT_PATH_OPTION,
    VERBOSE_OPTION,
    OutputFormat,
    parse_fields,
    parse_files,
    parse_filters,
)
from dac.cli.utils.output import (
    handle_csv_output,
    handle_json_output,
    handle_table_output,
    print_error,
    print_warnings,
    write_bytes,
)

__all__ = [
    "FIELD_OPTION",
    "FILE_OPTION",
    "FILTER_OPTION",
    "OUTPUT_FORMAT_OPTION",
    "OUTPUT_PATH_OPTION",
    "VERBOSE_OPTION",
    "OutputFormat",
    "handle_csv_output",
    "handle_json_output",
    "handle_table_output",
    "open_console",
    "parse_fields",
    "parse_files",
    "parse_filters",
    "print_error",
    "print_warnings",
    "run",
    "session_from_config",
    "write_bytes",
]
