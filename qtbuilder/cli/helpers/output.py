"""Helper functions for CLI output formatting with Rich integration."""

from rich.console import Console
from rich.theme import Theme

from qtbuilder.logs.app_log import AppLogEntry, Severity


QTBUILDER_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "yellow",
        "info": "cyan",
        "primary": "white",
        "muted": "dim",
    }
)

SEVERITY_STYLES = {
    Severity.INFO: "info",
    Severity.WARNING: "warning",
    Severity.CRITICAL: "error",
    Severity.ELEVATED: "bold magenta",
    Severity.PROCESS: "muted",
    Severity.INFORMAL: "muted",
    Severity.APP_LIFECYCLE: "bold blue",
}


def get_console(stderr: bool = False) -> Console:
    """Console with the QtBuilder theme applied."""
    return Console(theme=QTBUILDER_THEME, stderr=stderr)


def print_success_message(message: str) -> None:
    """Print a success message with a checkmark."""
    get_console().print(f"✓ {message}", style="success")


def print_error_message(message: str) -> None:
    """Print an error message with an X symbol."""
    get_console(stderr=True).print(f"✗ {message}", style="error")


def print_warning_message(message: str) -> None:
    get_console().print(f"! {message}", style="warning")


def print_info_message(message: str) -> None:
    get_console().print(f"i {message}", style="info")


def print_list_item(item: str, indent: int = 1) -> None:
    """Print a list item with bullet and indentation."""
    get_console().print(f"{'  ' * indent}• {item}", style="primary")


def print_app_log_entry(entry: AppLogEntry, console: Console | None = None) -> None:
    """Print one application log entry, styled by severity."""
    console = console or get_console()
    console.print(
        entry.format(),
        style=SEVERITY_STYLES.get(entry.severity, "primary"),
        markup=False,
        highlight=False,
    )
