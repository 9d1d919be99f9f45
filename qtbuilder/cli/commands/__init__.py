"""CLI command modules."""

import typer

from qtbuilder.cli.commands.build import register_commands as register_build_commands
from qtbuilder.cli.commands.config import register_commands as register_config_commands
from qtbuilder.cli.commands.matrix import register_commands as register_matrix_commands
from qtbuilder.cli.commands.options import (
    register_commands as register_options_commands,
)


def register_all_commands(app: typer.Typer) -> None:
    """Register all CLI commands with the main app.

    Args:
        app: The main Typer app
    """
    register_build_commands(app)
    register_matrix_commands(app)
    register_options_commands(app)
    register_config_commands(app)
