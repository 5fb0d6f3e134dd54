"""Binary export commands."""

from pathlib import Path
from typing import Annotated

import typer

from dac.cli.utils.auth import open_console, run
from dac.cli.utils.output import write_bytes


def download_invoice(
    order_id: Annotated[str, typer.Argument(help="Order id")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Where to save the PDF")],
) -> None:
    """Download an order invoice."""

    async def _download() -> bytes:
        async with open_console() as admin:
            return await admin.client.download_invoice(order_id)

    write_bytes(run(_download()), output)
