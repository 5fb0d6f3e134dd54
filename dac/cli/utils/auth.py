"""Utility functions for building an authenticated console in CLI commands."""

import asyncio
import logging
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import typer
from rich.console import Console

from dac.api.client import AdminAPIClient
from dac.config import Config, load_config
from dac.core.errors import classify
from dac.exceptions import ConfigurationError, DACError
from dac.services.console import AdminConsole
from dac.session import SessionState

from .output import print_error

console = Console(stderr=True)
logger = logging.getLogger(__name__)

T = TypeVar("T")


def session_from_config(config: Config) -> SessionState:
    """Create a session pre-populated from DAC_API_TOKEN / DAC_TOKEN_EXPIRES_AT.

    The CLI keeps no token store of its own; a token obtained with ``dac login``
    is handed back to the shell, and every later command reads it from the
    environment.
    """
    state = SessionState()
    if config.api_token:
        state.login(config.api_token.get_secret_value(), expires_at=config.token_expires_at)

    def notify(reason: str) -> None:
        if reason in ("unauthorized", "expired"):
            console.print(f"[yellow]⚠ Session ended ({reason}). Sign in again with 'dac login'.[/yellow]")

    state.on_cleared(notify)
    return state


@asynccontextmanager
async def open_console(config: Config | None = None) -> AsyncIterator[AdminConsole]:
    """Open an API client and wrap it in an AdminConsole for one command."""
    config = config or load_config()
    client = AdminAPIClient(session_state=session_from_config(config), config=config)
    async with client:
        admin_console = AdminConsole(client, config)
        try:
            yield admin_console
        finally:
            await admin_console.store.aclose()


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a command coroutine, printing classified failures and exiting non-zero."""
    try:
        return asyncio.run(coro)
    except ConfigurationError as e:
        console.print(f"[bold red]✗ {e.message}[/bold red]")
        raise typer.Exit(2) from None
    except DACError as e:
        logger.debug(f"Command failed: {e!r}")
        print_error(classify(e))
        raise typer.Exit(1) from None
