"""Clone command for gdkm."""

import sys
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape

from gdkm.config import get_ssh_options, is_verbose, should_deliver_key
from gdkm.core import GdkmError, clone_repository
from gdkm.storage import get_keypair, load_keyring

err_console = Console(stderr=True)


def clone(
    ctx: typer.Context,
    key_id: str = typer.Argument(..., metavar="ID", help="Key pair id"),
    dest: str | None = typer.Option(
        None, "--dest", help="Directory to clone into (default: the id)"
    ),
    deliver_key: bool = typer.Option(
        False,
        "--deliver-key",
        help="Keep a copy of the private key in the clone's .git directory",
    ),
):
    """Clone the repository associated with the given key pair

    Examples:
        gdkm clone blog
        gdkm clone blog --dest ~/src/blog --deliver-key
    """
    keyring_path = ctx.obj["keyring"]
    dest_path = Path(dest) if dest else Path(key_id)
    deliver_key = deliver_key or should_deliver_key()

    try:
        keyring = load_keyring(keyring_path)
        keypair = get_keypair(keyring, key_id)

        clone_repository(
            keypair.repository_url,
            keypair.private_key,
            dest_path,
            deliver=deliver_key,
            ssh_options=get_ssh_options(),
            capture_output=not is_verbose(),
        )

    except GdkmError as e:
        err_console.print(
            f"[red]Error: failed to clone repository associated with id '{escape(key_id)}': {escape(str(e))}[/red]"
        )
        sys.exit(e.exit_code)

    rprint(f"[green]Successfully cloned {escape(key_id)} into {escape(str(dest_path))}![/green]")
