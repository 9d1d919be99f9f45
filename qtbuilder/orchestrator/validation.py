"""Filesystem checks performed before a build starts."""

from pathlib import Path


class PathValidator:
    """Checks the source tree and build target on the local filesystem."""

    def source_ready(self, source: Path, marker: str) -> bool:
        """True if ``source`` contains the build-entry ``marker`` file."""
        return (source / marker).is_file()

    def target_exists(self, target: Path) -> bool:
        return target.is_dir()
