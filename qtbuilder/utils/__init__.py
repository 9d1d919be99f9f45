"""Utility modules for QtBuilder.

1. Process Streaming: running one external command with line middleware
2. Text: cleaning raw process output
3. XDG: default config and state locations
"""

from qtbuilder.utils.stream_process import (
    STDERR,
    STDOUT,
    OutputMiddleware,
    ProcessRunner,
    TailMiddleware,
    create_chained_middleware,
)
from qtbuilder.utils.text import clean_output


__all__ = [
    "STDERR",
    "STDOUT",
    "OutputMiddleware",
    "ProcessRunner",
    "TailMiddleware",
    "clean_output",
    "create_chained_middleware",
]
