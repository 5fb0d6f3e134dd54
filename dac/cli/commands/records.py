"""Single-record commands: show, create, update, delete and resource actions."""

import logging
from collections.abc import Awaitable, Callable
from contextlib import ExitStack
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console

from dac.api.resources import ResourceConfig
from dac.cli.utils.auth import open_console, run
from dac.cli.utils.options import (
    FIELD_OPTION,
    FILE_OPTION,
    OUTPUT_PATH_OPTION,
    RESOURCE_ARGUMENT,
    parse_fields,
    parse_files,
    resolve_resource,
)
from dac.cli.utils.output import handle_json_output, print_error
from dac.exceptions import UnknownTransitionError
from dac.models.mutation import MutationOutcome
from dac.services.console import AdminConsole

console = Console()
logger = logging.getLogger(__name__)

# Stands for "no entity id" in `dac transition`, for collection-level actions
COLLECTION_TARGET = "-"

ID_ARGUMENT = Annotated[str, typer.Argument(help="Entity id (compact 32-character ids are accepted)")]


def _run_mutation(
    files: dict[str, Path],
    mutate: Callable[[AdminConsole, dict[str, Any] | None], Awaitable[MutationOutcome]],
) -> MutationOutcome:
    """Open the given files as multipart parts for the duration of one mutation."""

    async def _mutate() -> MutationOutcome:
        with ExitStack() as stack:
            parts = {key: (path.name, stack.enter_context(path.open("rb"))) for key, path in files.items()}
            async with open_console() as admin:
                return await mutate(admin, parts or None)

    return run(_mutate())


def _report(outcome: MutationOutcome, done: str) -> None:
    if not outcome.ok:
        if outcome.error is not None:
            print_error(outcome.error)
        raise typer.Exit(1)

    console.print(f"[green]✓ {done}[/green]")
    if outcome.invalidated:
        console.print(f"[dim]Invalidated cached lists: {', '.join(outcome.invalidated)}[/dim]")
    if outcome.data is not None:
        handle_json_output(outcome.data, None)


def _check_multipart(config: ResourceConfig, files: dict[str, Path], multipart: bool) -> None:
    if files and not multipart:
        raise typer.BadParameter(f"{config.name} does not accept file uploads here", param_hint="--file")


def show_record(
    resource: RESOURCE_ARGUMENT,
    entity_id: ID_ARGUMENT,
    output: OUTPUT_PATH_OPTION = None,
) -> None:
    """Show one record as JSON."""
    config = resolve_resource(resource)

    async def _show() -> Any:
        async with open_console() as admin:
            return await admin.detail(config.name, entity_id)

    handle_json_output(run(_show()), output)


def create_record(
    resource: RESOURCE_ARGUMENT,
    fields: FIELD_OPTION = None,
    files: FILE_OPTION = None,
) -> None:
    """Create a record from --field values (and --file parts for multipart resources)."""
    config = resolve_resource(resource)
    body = parse_fields(fields)
    parts = parse_files(files)
    _check_multipart(config, parts, config.multipart)

    outcome = _run_mutation(parts, lambda admin, upload: admin.create(config.name, body, files=upload))
    _report(outcome, f"Created {config.entity}")


def update_record(
    resource: RESOURCE_ARGUMENT,
    entity_id: ID_ARGUMENT,
    fields: FIELD_OPTION = None,
    files: FILE_OPTION = None,
) -> None:
    """Update a record with --field values."""
    config = resolve_resource(resource)
    body = parse_fields(fields)
    parts = parse_files(files)
    _check_multipart(config, parts, config.multipart)
    if not body and not parts:
        raise typer.BadParameter("Nothing to update; pass at least one --field", param_hint="--field")

    outcome = _run_mutation(parts, lambda admin, upload: admin.update(config.name, entity_id, body, files=upload))
    _report(outcome, f"Updated {config.entity} {entity_id}")


def delete_record(
    resource: RESOURCE_ARGUMENT,
    entity_id: ID_ARGUMENT,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Delete a record."""
    config = resolve_resource(resource)
    if not yes:
        typer.confirm(f"Delete {config.entity} {entity_id}?", abort=True)

    outcome = _run_mutation({}, lambda admin, _: admin.delete(config.name, entity_id))
    _report(outcome, f"Deleted {config.entity} {entity_id}")


def transition_record(
    resource: RESOURCE_ARGUMENT,
    entity_id: Annotated[str, typer.Argument(help=f"Entity id, or '{COLLECTION_TARGET}' for collection actions")],
    action: Annotated[str, typer.Argument(help="Action endpoint, e.g. verify, reject, toggle, cancel")],
    fields: FIELD_OPTION = None,
    files: FILE_OPTION = None,
) -> None:
    """Run a resource action such as KYC verify/reject or offer toggle."""
    config = resolve_resource(resource)
    try:
        route = config.transition_route(action)
    except UnknownTransitionError:
        available = ", ".join(config.transitions) or "none"
        raise typer.BadParameter(
            f"{config.name} has no action {action!r} (available: {available})", param_hint="ACTION"
        ) from None

    body = parse_fields(fields) or None
    parts = parse_files(files)
    _check_multipart(config, parts, route.multipart)
    target = None if entity_id == COLLECTION_TARGET else entity_id

    outcome = _run_mutation(
        parts, lambda admin, upload: admin.transition(config.name, target, action, payload=body, files=upload)
    )
    _report(outcome, f"{action} on {config.entity} {target or ''}".rstrip())
