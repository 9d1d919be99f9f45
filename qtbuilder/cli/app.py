"""Main CLI application for QtBuilder."""

import logging
import sys
from importlib.metadata import distribution
from typing import Annotated

import typer

from qtbuilder.cli.decorators.error_handling import print_stack_trace_if_verbose
from qtbuilder.config.user_config import UserConfig
from qtbuilder.core.errors import ConfigError
from qtbuilder.core.logging import setup_logging


__all__ = ["app", "main", "__version__", "setup_logging"]


__version__ = distribution("qtbuilder").version

logger = logging.getLogger(__name__)


class AppContext:
    """Application context for storing shared state."""

    def __init__(
        self,
        verbose: int = 0,
        log_file: str | None = None,
        config_file: str | None = None,
    ):
        self.verbose = verbose
        self.log_file = log_file
        self.config_file = config_file

        from qtbuilder.config.user_config import create_user_config

        self.user_config: UserConfig = create_user_config(cli_config_path=config_file)


app = typer.Typer(
    name="qtbuilder",
    help=f"""QtBuilder v{__version__}

Builds a native library across a matrix of toolchain versions,
architectures, linkage types and configurations, one cell at a time,
using a RAM disk as scratch space.

Common workflows:
  • Show the matrix:   qtbuilder matrix
  • Toggle options:    qtbuilder options enable msvc2015
  • Pick sources:      qtbuilder config set-source C:/Qt/4.8.7 --version 4.8.7
  • Run the build:     qtbuilder build""",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity (-v=INFO, -vv=DEBUG)",
        ),
    ] = 0,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging (equivalent to -vv)"),
    ] = False,
    log_file: Annotated[
        str | None, typer.Option("--log-file", help="Log to file")
    ] = None,
    config_file: Annotated[
        str | None,
        typer.Option("-c", "--config", help="Path to configuration file"),
    ] = None,
    version: Annotated[
        bool, typer.Option("--version", help="Show version and exit")
    ] = False,
) -> None:
    """QtBuilder build matrix runner."""
    if version:
        print(f"QtBuilder v{__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        print(ctx.get_help())
        raise typer.Exit()

    try:
        app_context = AppContext(
            verbose=verbose, log_file=log_file, config_file=config_file
        )
    except ConfigError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        raise typer.Exit(1) from e
    ctx.obj = app_context

    setup_logging(
        level=_resolve_log_level(app_context, debug=debug), log_file=log_file
    )


def _resolve_log_level(app_context: AppContext, debug: bool) -> int:
    """Flags win over the configured level; a log file alone keeps WARNING."""
    if debug or app_context.verbose >= 2:
        return logging.DEBUG
    if app_context.verbose == 1:
        return logging.INFO
    if app_context.log_file is not None:
        return logging.WARNING
    return app_context.user_config.get_log_level_int()


def main() -> int:
    """Entry point of the ``qtbuilder`` console script; returns the exit code."""
    from qtbuilder.cli.commands import register_all_commands

    register_all_commands(app)
    try:
        app()
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0
    except Exception as e:
        logger.exception("Unexpected error: %s", e)
        print_stack_trace_if_verbose()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
