"""Core infrastructure: errors and logging."""

from qtbuilder.core.errors import QtBuilderError
from qtbuilder.core.logging import setup_logging


__all__ = ["QtBuilderError", "setup_logging"]
