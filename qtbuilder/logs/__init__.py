"""Application log and build transcripts."""

from qtbuilder.logs.app_log import AppLog, AppLogEntry, AppLogMiddleware, Severity
from qtbuilder.logs.build_log import BuildLog, BuildLogMiddleware, create_build_log


__all__ = [
    "AppLog",
    "AppLogEntry",
    "AppLogMiddleware",
    "BuildLog",
    "BuildLogMiddleware",
    "Severity",
    "create_build_log",
]
