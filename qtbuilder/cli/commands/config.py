"""Configuration management CLI commands."""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from qtbuilder.cli.app import AppContext
from qtbuilder.cli.decorators import handle_errors
from qtbuilder.cli.helpers import (
    get_console,
    print_success_message,
    print_warning_message,
)
from qtbuilder.config.models import UserConfigData
from qtbuilder.orchestrator import create_build_orchestrator


logger = logging.getLogger(__name__)

config_app = typer.Typer(
    name="config",
    help="Configuration management commands",
    no_args_is_help=True,
)


@config_app.command(name="show")
@handle_errors
def show_config(
    ctx: typer.Context,
    show_sources: Annotated[
        bool, typer.Option("--sources", help="Show configuration sources")
    ] = False,
    json_output: Annotated[
        bool, typer.Option("--json", help="Print the configuration as JSON")
    ] = False,
) -> None:
    """Show every configuration setting."""
    app_ctx: AppContext = ctx.obj
    user_config = app_ctx.user_config
    data = user_config.data.model_dump(mode="json")

    if json_output:
        print(json.dumps(data, indent=2))
        return

    table = Table(title="QtBuilder Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value")
    if show_sources:
        table.add_column("Source", style="dim", no_wrap=True)

    for key in UserConfigData.model_fields:
        value = data[key]
        if isinstance(value, list):
            text = "\n".join(str(item) for item in value) or "(empty list)"
        elif value is None:
            text = "null"
        else:
            text = str(value)
        row = [key, text]
        if show_sources:
            row.append(user_config.get_source(key))
        table.add_row(*row)

    console = get_console()
    console.print(table)
    if user_config.config_path:
        console.print(f"Config file: {user_config.config_path}", style="muted")


@config_app.command(name="set-source")
@handle_errors
def set_source(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Root of the library source tree")],
    version: Annotated[
        str | None,
        typer.Option("--version", help="Library version (default: keep current)"),
    ] = None,
) -> None:
    """Select the library source tree."""
    app_ctx: AppContext = ctx.obj
    user_config = app_ctx.user_config
    orchestrator = create_build_orchestrator(user_config)
    source = path.expanduser().resolve()
    orchestrator.select_source(source, version or user_config.data.library_version)
    marker = user_config.data.configure_marker
    if not orchestrator.validator.source_ready(source, marker):
        print_warning_message(f"{source} does not contain {marker}")
    orchestrator.app_log.close()
    print_success_message(f"Source path set to {source}")


@config_app.command(name="set-target")
@handle_errors
def set_target(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Directory receiving the built libraries")],
) -> None:
    """Select the build target directory."""
    app_ctx: AppContext = ctx.obj
    orchestrator = create_build_orchestrator(app_ctx.user_config)
    target = path.expanduser().resolve()
    orchestrator.select_target(target)
    if not orchestrator.validator.target_exists(target):
        print_warning_message(f"{target} does not exist yet")
    orchestrator.app_log.close()
    print_success_message(f"Target path set to {target}")


def register_commands(app: typer.Typer) -> None:
    """Register config commands with the main app."""
    app.add_typer(config_app, name="config")
