"""Config command for gdkm."""

import sys

import typer
from rich import print as rprint
from rich.markup import escape

from gdkm import config as gdkm_config


def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    init: bool = typer.Option(
        False, "--init", help="Initialize config file with defaults"
    ),
    path: bool = typer.Option(False, "--path", help="Print the config file location"),
):
    """Manage gdkm configuration.

    Examples:
        gdkm config --show     # Show current configuration
        gdkm config --init     # Create config file with defaults
        gdkm config --path     # Print where the config file lives
    """
    if not any([show, init, path]):
        rprint("[red]Error: Must specify one of --show, --init, or --path[/red]")
        sys.exit(1)

    if show:
        config_data = gdkm_config.load_config()
        rprint("[bold cyan]Current Configuration[/bold cyan]")
        rprint(f"[dim]Config file: {escape(str(gdkm_config.CONFIG_FILE))}[/dim]")
        rprint(f"[dim]{'─' * 50}[/dim]\n")

        for section, values in config_data.items():
            rprint(f"[bold yellow]\\[{section}][/bold yellow]")
            if isinstance(values, dict):
                for key, value in values.items():
                    rprint(f"  [cyan]{key}[/cyan] = {escape(repr(value))}")
            else:
                rprint(f"  {escape(repr(values))}")
            rprint()

    elif init:
        try:
            config_path = gdkm_config.init_config()
        except OSError as e:
            rprint(f"[red]Error: could not write config file: {escape(str(e))}[/red]")
            sys.exit(1)
        rprint(f"[green]Configuration file at {escape(str(config_path))}[/green]")

    elif path:
        typer.echo(str(gdkm_config.CONFIG_FILE))
