"""gdkm - manage SSH key pairs used as single-purpose Git deploy keys.

Keys live in a JSON key ring; cloning stages the selected private key
only for the duration of the git clone.
"""

from __future__ import annotations


def main() -> None:
    """Entry point for the gdkm CLI."""
    # Lazy import for faster startup
    from gdkm.cli import app

    app()


__all__ = ["main"]
