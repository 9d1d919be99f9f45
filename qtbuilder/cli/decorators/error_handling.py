"""Error handling decorators for CLI commands."""

import logging
import sys
import traceback
from collections.abc import Callable
from functools import wraps
from typing import Any

import typer

from qtbuilder.cli.helpers.output import print_error_message
from qtbuilder.core.errors import (
    ConfigError,
    MatrixLockedError,
    OutOfRangeError,
    QtBuilderError,
    ValidationError,
)
from qtbuilder.core.structlog_logger import get_struct_logger


__all__ = ["handle_errors", "print_stack_trace_if_verbose"]

logger = get_struct_logger(__name__)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to handle common exceptions in CLI commands.

    Known errors are reported to the user and logged as structured events
    before exiting with status 1. ``typer.Exit`` passes through untouched.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except ConfigError as e:
            _fail("configuration_error", e.message, e)
        except ValidationError as e:
            _fail("validation_error", e.message, e)
        except OutOfRangeError as e:
            _fail("out_of_range", e.message, e)
        except MatrixLockedError as e:
            _fail("matrix_locked", e.message, e)
        except QtBuilderError as e:
            _fail("qtbuilder_error", e.message, e)
        except ValueError as e:
            _fail("invalid_value", str(e), e)
        except FileNotFoundError as e:
            _fail("file_not_found", str(e), e)
        except Exception as e:
            exc_info = logging.getLogger(__name__).isEnabledFor(logging.DEBUG)
            logger.error("unexpected_error", error=str(e), exc_info=exc_info)
            print_error_message(f"Unexpected error: {e}")
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e

    return wrapper


def _fail(event: str, message: str, error: Exception) -> None:
    logger.error(event, error=message)
    print_error_message(message)
    print_stack_trace_if_verbose()
    raise typer.Exit(1) from error


def print_stack_trace_if_verbose() -> None:
    """Print stack trace if verbose/debug mode is enabled."""
    if any(arg in sys.argv for arg in ["-v", "-vv", "--verbose", "--debug"]):
        print("\nStack trace:", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
