"""Main CLI entry point for the Delivery Admin Console."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from dac.cli.commands.download import download_invoice
from dac.cli.commands.list import dump_records, list_records
from dac.cli.commands.records import create_record, delete_record, show_record, transition_record, update_record
from dac.cli.commands.report import download_weekly_report, show_weekly_report
from dac.cli.commands.resources import list_resources
from dac.cli.commands.session import change_password, login, logout, whoami
from dac.cli.utils.options import VERBOSE_OPTION

app = typer.Typer(
    name="dac",
    help="Delivery Admin Console - manage the B2B delivery platform from the terminal",
    add_completion=True,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def callback(verbose: VERBOSE_OPTION = False) -> None:
    """
    Delivery Admin Console CLI
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
    )


app.command("resources", help="List the admin resources and their filters and actions")(list_resources)
app.command("list", help="List one page of a resource")(list_records)
app.command("dump", help="Export every page of a resource to a file")(dump_records)
app.command("show", help="Show one record")(show_record)
app.command("create", help="Create a record")(create_record)
app.command("update", help="Update a record")(update_record)
app.command("delete", help="Delete a record")(delete_record)
app.command("transition", help="Run a resource action (verify, reject, toggle, ...)")(transition_record)
app.command("invoice", help="Download an order invoice")(download_invoice)
app.command("weekly-report", help="Show active and inactive users per location for a week")(show_weekly_report)
app.command("weekly-report-export", help="Download the weekly user-location spreadsheet")(download_weekly_report)
app.command("login", help="Sign in and print a token")(login)
app.command("logout", help="Sign out")(logout)
app.command("whoami", help="Show the signed-in administrator")(whoami)
app.command("change-password", help="Change the signed-in administrator's password")(change_password)


if __name__ == "__main__":
    app()
