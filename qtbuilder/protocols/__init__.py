"""Protocol definitions for the collaborators of the build orchestrator.

These protocols use Python's typing.Protocol system with the
@runtime_checkable decorator so test doubles and alternative
implementations can be checked with isinstance().
"""

from qtbuilder.protocols.build_protocols import (
    PathValidatorProtocol,
    ProcessRunnerProtocol,
    ScratchVolumeManagerProtocol,
)


__all__ = [
    "PathValidatorProtocol",
    "ProcessRunnerProtocol",
    "ScratchVolumeManagerProtocol",
]
