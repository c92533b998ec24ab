"""Command implementations for the gdkm CLI."""
