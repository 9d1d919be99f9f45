"""Build run models: state, matrix cells and job outcomes."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from qtbuilder.models.options import (
    Architecture,
    Configuration,
    LinkageType,
    ToolchainVersion,
)


class BuildStatus(str, Enum):
    NOT_STARTED = "NotStarted"
    STARTED = "Started"
    CANCEL = "Cancel"
    SUCCESS = "Success"
    FAILURE = "Failure"


@dataclass(frozen=True)
class BuildState:
    """State of a build run.

    ``code`` is only set for ``Failure`` and carries the exit code that
    ended the run.
    """

    status: BuildStatus = BuildStatus.NOT_STARTED
    code: int | None = None

    @classmethod
    def not_started(cls) -> "BuildState":
        return cls(BuildStatus.NOT_STARTED)

    @classmethod
    def started(cls) -> "BuildState":
        return cls(BuildStatus.STARTED)

    @classmethod
    def cancel(cls) -> "BuildState":
        return cls(BuildStatus.CANCEL)

    @classmethod
    def success(cls) -> "BuildState":
        return cls(BuildStatus.SUCCESS)

    @classmethod
    def failure(cls, code: int) -> "BuildState":
        return cls(BuildStatus.FAILURE, code)

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            BuildStatus.CANCEL,
            BuildStatus.SUCCESS,
            BuildStatus.FAILURE,
        )

    @property
    def running(self) -> bool:
        return self.status is BuildStatus.STARTED

    @property
    def cancelled(self) -> bool:
        return self.status is BuildStatus.CANCEL

    @property
    def failed(self) -> bool:
        return self.status is BuildStatus.FAILURE

    @property
    def succeeded(self) -> bool:
        return self.status is BuildStatus.SUCCESS

    def __str__(self) -> str:
        if self.status is BuildStatus.FAILURE:
            return f"{self.status.value}({self.code})"
        return self.status.value


@dataclass(frozen=True)
class BuildCell:
    """One concrete combination of the four option axes."""

    configuration: Configuration
    architecture: Architecture
    linkage: LinkageType
    toolchain: ToolchainVersion

    @property
    def name(self) -> str:
        """Stable identifier used to tag logs and name output directories."""
        return "-".join(
            (
                self.configuration.value,
                self.architecture.value,
                self.linkage.value,
                self.toolchain.value,
            )
        )

    def __str__(self) -> str:
        return self.name


class JobStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TERMINATED = "terminated"


@dataclass
class JobOutcome:
    """Result of running one matrix cell."""

    cell: BuildCell
    status: JobStatus
    exit_code: int
    started_at: datetime
    finished_at: datetime = field(default_factory=datetime.now)
    excerpt: list[str] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


@dataclass
class RunResult:
    """Terminal summary of a build run, handed to the completion handler."""

    state: BuildState
    outcomes: list[JobOutcome] = field(default_factory=list)
    app_log_path: Path | None = None
    build_log_path: Path | None = None

    @property
    def summary(self) -> str:
        if self.state.cancelled:
            return "Process forcefully cancelled!"
        if self.state.failed:
            return "Process ended with errors!"
        return "Process successfully completed."

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": str(self.state),
            "summary": self.summary,
            "cells": [
                {
                    "cell": outcome.cell.name,
                    "status": outcome.status.value,
                    "exit_code": outcome.exit_code,
                    "duration": round(outcome.duration, 3),
                }
                for outcome in self.outcomes
            ],
            "app_log": str(self.app_log_path) if self.app_log_path else None,
            "build_log": str(self.build_log_path) if self.build_log_path else None,
        }
