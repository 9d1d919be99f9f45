"""Matrix command: preview the cells a build would run."""

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.table import Table

from qtbuilder.cli.app import AppContext
from qtbuilder.cli.decorators import handle_errors
from qtbuilder.cli.helpers import get_console, print_warning_message
from qtbuilder.core.errors import EmptyAxisError
from qtbuilder.matrix.option_matrix import OptionMatrix
from qtbuilder.models.options import Axis, NumericOption
from qtbuilder.orchestrator.commands import BuildCommandFactory, BuildContext


def load_matrix(app_ctx: AppContext) -> OptionMatrix:
    """Option matrix as persisted in the user configuration."""
    data = app_ctx.user_config.data
    return OptionMatrix.from_settings(
        data.build_options,
        {
            NumericOption.RAM_DISK: data.ram_disk_size,
            NumericOption.CORES: data.cores,
        },
    )


@handle_errors
def matrix(
    ctx: typer.Context,
    show_commands: Annotated[
        bool,
        typer.Option("--commands", help="Show the command rendered for each cell"),
    ] = False,
    json_output: Annotated[
        bool, typer.Option("--json", help="Print the matrix as JSON")
    ] = False,
) -> None:
    """Show the enabled build cells in execution order."""
    app_ctx: AppContext = ctx.obj
    data = app_ctx.user_config.data
    option_matrix = load_matrix(app_ctx)
    cells = list(option_matrix.enabled_combinations())

    factory = BuildCommandFactory(data.build_command)
    context = BuildContext(
        source=data.source_path,
        target=data.target_path,
        version=data.library_version,
        jobs=option_matrix.numeric(NumericOption.CORES),
        scratch=Path("<scratch>"),
    )
    if show_commands:
        factory.validate()

    if json_output:
        payload: dict[str, Any] = {
            "axes": {
                axis.value: [o.value for o in option_matrix.enabled(axis)] for axis in Axis
            },
            "numeric": {
                option.value: option_matrix.numeric(option) for option in NumericOption
            },
            "cells": [cell.name for cell in cells],
        }
        if show_commands:
            payload["commands"] = {
                cell.name: factory.render(cell, context) for cell in cells
            }
        print(json.dumps(payload, indent=2))
        return

    console = get_console()
    table = Table(
        title=f"Build Matrix ({len(cells)} cells)",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Cell", style="cyan", no_wrap=True)
    if show_commands:
        table.add_column("Command")
    for index, cell in enumerate(cells, start=1):
        row = [str(index), cell.name]
        if show_commands:
            row.append(" ".join(factory.render(cell, context)))
        table.add_row(*row)
    console.print(table)

    console.print(
        f"RAM disk: {option_matrix.numeric(NumericOption.RAM_DISK)} GiB, "
        f"cores: {option_matrix.numeric(NumericOption.CORES)}",
        style="info",
    )
    try:
        option_matrix.validate()
    except EmptyAxisError as e:
        print_warning_message(e.message)


def register_commands(app: typer.Typer) -> None:
    """Register the matrix command with the main app."""
    app.command(name="matrix")(matrix)
