"""Command-line interface for QtBuilder using Typer."""

from qtbuilder.cli.app import app, main


__all__ = ["app", "main"]
