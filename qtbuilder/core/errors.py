"""Exception hierarchy for QtBuilder.

Every error raised by the build engine derives from ``QtBuilderError``.
Pre-start validation failures derive from ``ValidationError`` and are
recoverable by correcting input; ``BuildError`` subclasses describe
failures inside a running build and are reduced to a ``BuildState`` by
the orchestrator rather than propagated.
"""

from collections.abc import Iterable
from pathlib import Path
from typing import Any


# Exit codes used for run failures that are not an external process exit
# status (values follow sysexits.h / shell conventions).
INTERNAL_FAILURE_CODE = 70
ALLOCATION_FAILURE_CODE = 73
LAUNCH_FAILURE_CODE = 127


class QtBuilderError(Exception):
    """Base exception for all QtBuilder errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ConfigError(QtBuilderError):
    """Invalid or unreadable user configuration."""


class ValidationError(QtBuilderError):
    """A precondition for starting a build is not met."""


class EmptyAxisError(ValidationError):
    """One or more option axes have no enabled entry."""

    def __init__(self, axes: Iterable[str]):
        self.axes = tuple(axes)
        super().__init__(
            f"No option enabled for: {', '.join(self.axes)}",
            {"axes": list(self.axes)},
        )


class MissingSourceMarkerError(ValidationError):
    """The source tree does not contain its build-entry marker file."""

    def __init__(self, source: Path, marker: str):
        self.source = source
        self.marker = marker
        super().__init__(
            f"Sources path mismatch: {source} (missing {marker})",
            {"source": str(source), "marker": marker},
        )


class MissingTargetPathError(ValidationError):
    """The build target path does not exist."""

    def __init__(self, target: Path):
        self.target = target
        super().__init__(f"Build target path mismatch: {target}", {"target": str(target)})


class CommandTemplateError(ValidationError):
    """The configured build command template cannot be rendered."""


class OutOfRangeError(QtBuilderError):
    """A numeric option value lies outside its configured range."""

    def __init__(self, option: str, value: int, minimum: int, maximum: int):
        self.option = option
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"{option}={value} is outside the range {minimum}..{maximum}",
            {"option": option, "value": value, "min": minimum, "max": maximum},
        )


class MatrixLockedError(QtBuilderError):
    """The option matrix cannot be modified while a build is running."""


class BuildError(QtBuilderError):
    """Failure inside a running build."""

    exit_code: int = INTERNAL_FAILURE_CODE


class ProcessFailure(BuildError):
    """An external build step exited with a non-zero status."""

    def __init__(self, cell: str, exit_code: int):
        self.cell = cell
        self.exit_code = exit_code
        super().__init__(
            f"Build step {cell} exited with code {exit_code}",
            {"cell": cell, "exit_code": exit_code},
        )


class ProcessLaunchError(BuildError):
    """An external build step could not be started."""

    exit_code = LAUNCH_FAILURE_CODE


class AllocationError(BuildError):
    """The scratch volume could not be created."""

    exit_code = ALLOCATION_FAILURE_CODE


__all__ = [
    "ALLOCATION_FAILURE_CODE",
    "INTERNAL_FAILURE_CODE",
    "LAUNCH_FAILURE_CODE",
    "AllocationError",
    "BuildError",
    "CommandTemplateError",
    "ConfigError",
    "EmptyAxisError",
    "MatrixLockedError",
    "MissingSourceMarkerError",
    "MissingTargetPathError",
    "OutOfRangeError",
    "ProcessFailure",
    "ProcessLaunchError",
    "QtBuilderError",
    "ValidationError",
]
