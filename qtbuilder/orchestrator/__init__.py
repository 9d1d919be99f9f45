"""Build orchestration: validation, command rendering and the run loop."""

from qtbuilder.orchestrator.commands import BuildCommandFactory, BuildContext
from qtbuilder.orchestrator.events import (
    CancellingEvent,
    CellDoneEvent,
    CellOutputEvent,
    CellStartedEvent,
    CompletedEvent,
    EventDispatcher,
    LogAppendedEvent,
)
from qtbuilder.orchestrator.orchestrator import (
    BuildOrchestrator,
    BuildTask,
    create_build_orchestrator,
)
from qtbuilder.orchestrator.validation import PathValidator


__all__ = [
    "BuildCommandFactory",
    "BuildContext",
    "BuildOrchestrator",
    "BuildTask",
    "CancellingEvent",
    "CellDoneEvent",
    "CellOutputEvent",
    "CellStartedEvent",
    "CompletedEvent",
    "EventDispatcher",
    "LogAppendedEvent",
    "PathValidator",
    "create_build_orchestrator",
]
