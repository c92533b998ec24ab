"""Get command for gdkm."""

import sys

import typer
from rich.console import Console
from rich.markup import escape

from gdkm.core import GdkmError
from gdkm.storage import KeyField, get_field, list_ids, load_keyring

err_console = Console(stderr=True)


def get(
    ctx: typer.Context,
    key_id: str | None = typer.Argument(None, metavar="[ID]", help="Key pair id"),
    field: str | None = typer.Argument(
        None,
        metavar="[PublicKey|PrivateKey|RepositoryURL]",
        help="Field to print",
    ),
):
    """Get a single field of the key ring. If id is not specified, return all ids.

    Examples:
        gdkm get
        gdkm get blog PublicKey
    """
    keyring_path = ctx.obj["keyring"]

    if key_id is not None and field is None:
        err_console.print("[red]Error: Missing field argument[/red]")
        sys.exit(1)

    try:
        keyring = load_keyring(keyring_path)

        if key_id is None:
            for known_id in list_ids(keyring):
                typer.echo(known_id)
            return

        value = get_field(keyring, key_id, field)

    except GdkmError as e:
        err_console.print(
            f"[red]Error: failed to get '{escape(str(field))}' of '{escape(str(key_id))}': {escape(str(e))}[/red]"
        )
        sys.exit(e.exit_code)

    # Keys are stored with their final newline
    if field == KeyField.REPOSITORY_URL.value:
        typer.echo(value)
    else:
        typer.echo(value, nl=False)
