"""List command for gdkm."""

import sys

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape

from gdkm.core import GdkmError
from gdkm.storage import load_keyring
from gdkm.utils import display_keyring_table

err_console = Console(stderr=True)


def list_keypairs(ctx: typer.Context):
    """List key pairs with their repositories"""
    try:
        keyring = load_keyring(ctx.obj["keyring"])
    except GdkmError as e:
        err_console.print(f"[red]Error: failed to load key ring: {escape(str(e))}[/red]")
        sys.exit(e.exit_code)

    if not keyring:
        rprint("[yellow]No key pairs in the key ring[/yellow]")
        return

    display_keyring_table(keyring)
