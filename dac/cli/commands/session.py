"""Sign-in related commands."""

from typing import Annotated, Any

import typer
from rich.console import Console

from dac.cli.utils.auth import open_console, run
from dac.cli.utils.output import handle_json_output, print_error
from dac.models.mutation import MutationOutcome

console = Console()


def login(
    email: Annotated[str, typer.Option("--email", "-e", prompt=True, help="Admin email")],
    password: Annotated[str, typer.Option("--password", prompt=True, hide_input=True, help="Admin password")],
) -> None:
    """Sign in and print the token to export as DAC_API_TOKEN."""

    async def _login() -> dict[str, Any]:
        async with open_console() as admin:
            return await admin.client.login(email, password)

    body = run(_login())
    admin = body.get("admin") or body.get("user") or {}
    name = (admin.get("name") or admin.get("email") or email) if isinstance(admin, dict) else email
    console.print(f"[green]✓ Signed in as {name}[/green]", highlight=False)
    console.print("[dim]Export the token for later commands:[/dim]")
    print(f"export DAC_API_TOKEN={body['token']}")


def logout() -> None:
    """Sign out on the server."""

    async def _logout() -> None:
        async with open_console() as admin:
            await admin.client.logout()

    run(_logout())
    console.print("[green]✓ Signed out[/green] [dim](unset DAC_API_TOKEN)[/dim]")


def whoami() -> None:
    """Show the signed-in administrator."""

    async def _whoami() -> dict[str, Any]:
        async with open_console() as admin:
            return await admin.client.current_admin()

    handle_json_output(run(_whoami()), None)


def change_password(
    current_password: Annotated[
        str, typer.Option("--current-password", prompt="Current password", hide_input=True, help="Current password")
    ],
    new_password: Annotated[
        str,
        typer.Option(
            "--new-password",
            prompt="New password",
            hide_input=True,
            confirmation_prompt=True,
            help="New password (prompted twice)",
        ),
    ],
) -> None:
    """Change the signed-in administrator's password."""

    async def _change() -> MutationOutcome:
        async with open_console() as admin:
            return await admin.change_password(current_password, new_password)

    outcome = run(_change())
    if not outcome.ok:
        if outcome.error is not None:
            print_error(outcome.error)
        raise typer.Exit(1)
    console.print("[green]✓ Password changed[/green]")
