"""Protocols consumed by the build orchestrator."""

import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from qtbuilder.scratch.volume_manager import ScratchVolume, VolumeUsage
from qtbuilder.utils.stream_process import OutputMiddleware


@runtime_checkable
class ProcessRunnerProtocol(Protocol):
    """Runs one external build step at a time."""

    def run(
        self,
        command: Sequence[str],
        cwd: Path | None = None,
        middleware: OutputMiddleware[Any] | None = None,
        cancel_event: threading.Event | None = None,
        env: dict[str, str] | None = None,
    ) -> int:
        """Run ``command`` to completion and return its exit code.

        Raises:
            ProcessLaunchError: If the process cannot be started
        """
        ...

    def terminate(self) -> None:
        """Request termination of the running process; safe when idle."""
        ...


@runtime_checkable
class ScratchVolumeManagerProtocol(Protocol):
    """Creates and releases the scratch volume of a run."""

    def acquire(self, size_gib: int) -> ScratchVolume:
        """Create a volume.

        Raises:
            AllocationError: If the volume cannot be created
        """
        ...

    def release(self, volume: ScratchVolume | None) -> None:
        """Release a volume; idempotent and never raises."""
        ...

    def usage(self, volume: ScratchVolume) -> VolumeUsage | None:
        """Disk usage of a live volume, ``None`` when unavailable."""
        ...


@runtime_checkable
class PathValidatorProtocol(Protocol):
    """Existence checks performed before a build starts."""

    def source_ready(self, source: Path, marker: str) -> bool: ...

    def target_exists(self, target: Path) -> bool: ...
