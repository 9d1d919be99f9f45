"""Scratch volumes used as build working directories."""

from qtbuilder.scratch.volume_manager import (
    ScratchVolume,
    ScratchVolumeManager,
    create_scratch_volume_manager,
)


__all__ = ["ScratchVolume", "ScratchVolumeManager", "create_scratch_volume_manager"]
