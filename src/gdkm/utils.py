from rich.console import Console
from rich.table import Table

from .storage import Keyring

console = Console()


def display_keyring_table(keyring: Keyring, title: str = "Deploy keys"):
    """Display key pairs in a formatted table"""
    table = Table(title=title)
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Repository URL", style="blue")
    table.add_column("Public key", style="green")

    for key_id in sorted(keyring):
        keypair = keyring[key_id]
        algorithm, _, body = keypair.public_key.strip().partition(" ")
        table.add_row(key_id, keypair.repository_url, f"{algorithm} ...{body[-12:]}")

    console.print(table)
