"""Build option commands: list, enable, disable and set."""

import logging
from typing import Annotated

import typer
from rich.table import Table

from qtbuilder.cli.app import AppContext
from qtbuilder.cli.decorators import handle_errors
from qtbuilder.cli.helpers import get_console, print_success_message
from qtbuilder.models.options import Axis, NumericOption, parse_option
from qtbuilder.orchestrator import create_build_orchestrator


logger = logging.getLogger(__name__)

options_app = typer.Typer(
    name="options",
    help="Inspect and toggle build matrix options",
    no_args_is_help=True,
)


def _parse_numeric(name: str) -> NumericOption:
    key = name.strip().lower().replace("-", "_")
    for option in NumericOption:
        if option.value == key:
            return option
    valid = ", ".join(option.value for option in NumericOption)
    raise ValueError(f"Unknown numeric option: {name} (expected one of {valid})")


@options_app.command(name="list")
@handle_errors
def list_options(ctx: typer.Context) -> None:
    """List every option with its state."""
    from qtbuilder.cli.commands.matrix import load_matrix

    app_ctx: AppContext = ctx.obj
    option_matrix = load_matrix(app_ctx)
    console = get_console()

    table = Table(title="Build Options", show_header=True, header_style="bold cyan")
    table.add_column("Axis", style="cyan")
    table.add_column("Option")
    table.add_column("Enabled", justify="center")
    for axis in Axis:
        for option in axis.option_type:
            enabled = option_matrix.is_enabled(option)
            table.add_row(
                axis.value,
                option.value,
                "[green]yes[/green]" if enabled else "[dim]no[/dim]",
            )
    console.print(table)

    numeric = Table(title="Numeric Options", show_header=True, header_style="bold cyan")
    numeric.add_column("Option", style="cyan")
    numeric.add_column("Value", justify="right")
    numeric.add_column("Range", style="dim")
    for option in NumericOption:
        bounds = option_matrix.range_of(option)
        numeric.add_row(
            option.value,
            str(option_matrix.numeric(option)),
            f"{bounds.minimum}..{bounds.maximum}",
        )
    console.print(numeric)


def _toggle(ctx: typer.Context, names: list[str], enabled: bool) -> None:
    app_ctx: AppContext = ctx.obj
    options = [parse_option(name) for name in names]
    orchestrator = create_build_orchestrator(app_ctx.user_config)
    for option in options:
        orchestrator.set_option(option, enabled)
    orchestrator.app_log.close()
    verb = "Enabled" if enabled else "Disabled"
    print_success_message(f"{verb}: {', '.join(option.value for option in options)}")


@options_app.command(name="enable")
@handle_errors
def enable_options(
    ctx: typer.Context,
    names: Annotated[list[str], typer.Argument(help="Options such as msvc2015 or x86")],
) -> None:
    """Enable one or more build options."""
    _toggle(ctx, names, True)


@options_app.command(name="disable")
@handle_errors
def disable_options(
    ctx: typer.Context,
    names: Annotated[list[str], typer.Argument(help="Options such as msvc2015 or x86")],
) -> None:
    """Disable one or more build options."""
    _toggle(ctx, names, False)


@options_app.command(name="set")
@handle_errors
def set_numeric_option(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="ram_disk or cores")],
    value: Annotated[int, typer.Argument(help="New value")],
) -> None:
    """Set a numeric option; values outside its range are rejected."""
    app_ctx: AppContext = ctx.obj
    option = _parse_numeric(name)
    orchestrator = create_build_orchestrator(app_ctx.user_config)
    orchestrator.set_numeric(option, value)
    orchestrator.app_log.close()
    print_success_message(f"Set {option.value} = {value}")


def register_commands(app: typer.Typer) -> None:
    """Register option commands with the main app."""
    app.add_typer(options_app, name="options")
