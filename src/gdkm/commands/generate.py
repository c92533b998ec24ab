"""Generate command for gdkm."""

import sys

import typer
from rich.console import Console
from rich.markup import escape

from gdkm.core import DuplicateIdError, GdkmError, generate_keys
from gdkm.storage import KeyPair, insert_keypair, load_keyring, save_keyring

err_console = Console(stderr=True)


def generate(
    ctx: typer.Context,
    key_id: str = typer.Argument(..., metavar="ID", help="Unique name of the key pair"),
    repository_url: str = typer.Argument(
        ..., metavar="REPOSITORY_URL", help="SSH URL of the repository"
    ),
):
    """Print the public key of a new SSH key pair in the key ring

    The public key is meant to be registered as a deploy key on the
    repository.

    Examples:
        gdkm generate blog git@github.com:me/blog.git
    """
    keyring_path = ctx.obj["keyring"]

    try:
        keyring = load_keyring(keyring_path)

        # Do not overwrite an existing key pair, it may still be in use
        if key_id in keyring:
            raise DuplicateIdError(key_id)

        public_key, private_key = generate_keys()
        insert_keypair(
            keyring,
            KeyPair(
                id=key_id,
                public_key=public_key,
                private_key=private_key,
                repository_url=repository_url,
            ),
        )
        created = keyring.is_new
        save_keyring(keyring, keyring_path)

    except GdkmError as e:
        err_console.print(
            f"[red]Error: failed to generate key pair '{escape(key_id)}': {escape(str(e))}[/red]"
        )
        sys.exit(e.exit_code)

    if created:
        err_console.print(f"[green]Created key ring {escape(str(keyring_path))}[/green]")

    typer.echo(public_key, nl=False)
