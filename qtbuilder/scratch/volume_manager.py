"""Scratch volume management for build runs.

A scratch volume is a fast, temporary working directory (a RAM disk in
production) that exists for exactly one build run. ``acquire`` either
returns a usable volume or raises ``AllocationError`` after undoing any
partial work; ``release`` is idempotent and never raises, so the build
loop can call it unconditionally from a ``finally`` block.
"""

import logging
import shutil
import subprocess
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple, Protocol

from qtbuilder.core.errors import AllocationError


logger = logging.getLogger(__name__)


@dataclass
class ScratchVolume:
    """Handle of an acquired scratch volume."""

    mount_point: Path
    size_gib: int
    backend: str
    released: bool = field(default=False, compare=False)


class VolumeUsage(NamedTuple):
    total: int
    used: int
    free: int


class ScratchBackend(Protocol):
    """Creates and destroys the storage behind a scratch volume."""

    name: str

    def create(self, size_gib: int) -> Path:
        """Create the volume and return its mount point; undo partial work on error."""
        ...

    def destroy(self, mount_point: Path) -> None: ...


def _run(cmd: list[str]) -> None:
    """Run a volume management command, raising on failure."""
    logger.debug("Running %s", cmd)
    result = subprocess.run(cmd, capture_output=True, text=True, check=False)
    if result.returncode != 0:
        stderr = (result.stderr or result.stdout or "").strip()
        raise OSError(f"{' '.join(cmd)} failed ({result.returncode}): {stderr}")


class DirectoryBackend:
    """Plain temporary directory on the regular filesystem.

    No size limit is enforced; used where mounting is not permitted.
    """

    name = "directory"

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir = base_dir

    def create(self, size_gib: int) -> Path:
        if self.base_dir is not None:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix="qtbuilder-", dir=self.base_dir))

    def destroy(self, mount_point: Path) -> None:
        shutil.rmtree(mount_point)


class TmpfsBackend:
    """Linux tmpfs mounted on a fresh temporary directory (needs privileges)."""

    name = "tmpfs"

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir = base_dir

    def create(self, size_gib: int) -> Path:
        mount_point = Path(tempfile.mkdtemp(prefix="qtbuilder-", dir=self.base_dir))
        try:
            _run(
                [
                    "mount",
                    "-t",
                    "tmpfs",
                    "-o",
                    f"size={size_gib}g,mode=0700",
                    "tmpfs",
                    str(mount_point),
                ]
            )
        except OSError:
            mount_point.rmdir()
            raise
        return mount_point

    def destroy(self, mount_point: Path) -> None:
        _run(["umount", str(mount_point)])
        mount_point.rmdir()


class ImDiskBackend:
    """Windows RAM disk created with ImDisk on a fixed drive letter."""

    name = "imdisk"

    def __init__(self, drive: str = "R:") -> None:
        self.drive = drive.rstrip("\\/")

    def create(self, size_gib: int) -> Path:
        _run(
            [
                "imdisk",
                "-a",
                "-s",
                f"{size_gib}G",
                "-m",
                self.drive,
                "-p",
                "/fs:ntfs /q /y",
            ]
        )
        return Path(self.drive + "\\")

    def destroy(self, mount_point: Path) -> None:
        _run(["imdisk", "-D", "-m", self.drive])


class ScratchVolumeManager:
    """Acquire and release scratch volumes through a backend."""

    def __init__(self, backend: ScratchBackend) -> None:
        self.backend = backend
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def acquire(self, size_gib: int) -> ScratchVolume:
        """Create a scratch volume of ``size_gib`` GiB.

        Raises:
            AllocationError: If the backing store cannot be created
        """
        self.logger.info("Creating %s scratch volume (%d GiB)", self.backend.name, size_gib)
        try:
            mount_point = self.backend.create(size_gib)
        except OSError as e:
            msg = f"Failed to create {self.backend.name} scratch volume: {e}"
            self.logger.error(msg)
            raise AllocationError(
                msg, {"backend": self.backend.name, "size_gib": size_gib}
            ) from e

        self.logger.info("Scratch volume ready at %s", mount_point)
        return ScratchVolume(
            mount_point=mount_point, size_gib=size_gib, backend=self.backend.name
        )

    def release(self, volume: ScratchVolume | None) -> None:
        """Destroy a volume; no-op for ``None`` or an already released volume."""
        if volume is None or volume.released:
            return
        volume.released = True
        try:
            self.backend.destroy(volume.mount_point)
            self.logger.info("Scratch volume %s released", volume.mount_point)
        except OSError as e:
            self.logger.error(
                "Failed to release scratch volume %s: %s", volume.mount_point, e
            )

    def usage(self, volume: ScratchVolume) -> VolumeUsage | None:
        try:
            total, used, free = shutil.disk_usage(volume.mount_point)
        except OSError as e:
            self.logger.debug("Cannot read usage of %s: %s", volume.mount_point, e)
            return None
        return VolumeUsage(total, used, free)


def create_scratch_backend(name: str, mount_point: str | None = None) -> ScratchBackend:
    """Create a backend from its configured name."""
    if name == "imdisk":
        return ImDiskBackend(mount_point or "R:")
    base_dir = Path(mount_point).expanduser() if mount_point else None
    if name == "tmpfs":
        if sys.platform == "win32":
            raise ValueError("tmpfs scratch volumes are not available on Windows")
        return TmpfsBackend(base_dir)
    if name == "directory":
        return DirectoryBackend(base_dir)
    raise ValueError(f"Unknown scratch backend: {name}")


def create_scratch_volume_manager(
    backend: str = "directory", mount_point: str | None = None
) -> ScratchVolumeManager:
    """Factory function to create a ScratchVolumeManager."""
    return ScratchVolumeManager(create_scratch_backend(backend, mount_point))
