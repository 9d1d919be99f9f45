"""Helpers for CLI commands."""

from qtbuilder.cli.helpers.output import (
    get_console,
    print_app_log_entry,
    print_error_message,
    print_info_message,
    print_list_item,
    print_success_message,
    print_warning_message,
)


__all__ = [
    "get_console",
    "print_app_log_entry",
    "print_error_message",
    "print_info_message",
    "print_list_item",
    "print_success_message",
    "print_warning_message",
]
