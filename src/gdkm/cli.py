"""CLI commands for gdkm.

This module assembles the command-line interface: generate, get, list,
clone and config.
"""

from pathlib import Path

import typer

from gdkm.commands.clone import clone
from gdkm.commands.config_cmd import config
from gdkm.commands.generate import generate
from gdkm.commands.get import get
from gdkm.commands.list import list_keypairs
from gdkm.config import get_keyring_path

app = typer.Typer(
    help="A small program to manage SSH keys to be used as GitHub deploy keys",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    keyring: Path | None = typer.Option(
        None,
        "--keyring",
        envvar="GDKM_KEYRING",
        help="JSON file where the SSH keys are stored",
    ),
):
    """Manage per-repository SSH deploy keys"""
    ctx.obj = {"keyring": keyring if keyring is not None else get_keyring_path()}


app.command(no_args_is_help=True)(generate)
app.command()(get)
app.command("list")(list_keypairs)
app.command(no_args_is_help=True)(clone)
app.command()(config)
