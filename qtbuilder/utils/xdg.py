"""XDG Base Directory specification helpers."""

import os
from pathlib import Path


def get_xdg_config_dir() -> Path:
    """Get XDG config directory for QtBuilder.

    Returns:
        Path to config directory: $XDG_CONFIG_HOME/qtbuilder or ~/.config/qtbuilder
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "qtbuilder"
    return Path.home() / ".config" / "qtbuilder"


def get_xdg_state_dir() -> Path:
    """Get XDG state directory for QtBuilder.

    Returns:
        Path to state directory: $XDG_STATE_HOME/qtbuilder or ~/.local/state/qtbuilder
    """
    xdg_state = os.environ.get("XDG_STATE_HOME")
    if xdg_state:
        return Path(xdg_state) / "qtbuilder"
    return Path.home() / ".local" / "state" / "qtbuilder"


def get_default_app_log_path() -> Path:
    return get_xdg_state_dir() / "qtbuilder.log"
