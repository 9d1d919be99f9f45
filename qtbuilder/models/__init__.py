"""Data models shared across QtBuilder."""

from qtbuilder.models.base import QtBuilderBaseModel
from qtbuilder.models.build import (
    BuildCell,
    BuildState,
    BuildStatus,
    JobOutcome,
    JobStatus,
    RunResult,
)
from qtbuilder.models.options import (
    Architecture,
    Axis,
    BuildOption,
    Configuration,
    LinkageType,
    NumericOption,
    NumericRange,
    ToolchainVersion,
    parse_option,
)


__all__ = [
    "Architecture",
    "Axis",
    "BuildCell",
    "BuildOption",
    "BuildState",
    "BuildStatus",
    "Configuration",
    "JobOutcome",
    "JobStatus",
    "LinkageType",
    "NumericOption",
    "NumericRange",
    "QtBuilderBaseModel",
    "RunResult",
    "ToolchainVersion",
    "parse_option",
]
