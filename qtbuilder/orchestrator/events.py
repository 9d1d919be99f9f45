"""Typed events emitted by the build orchestrator."""

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeAlias, TypeVar

from qtbuilder.logs.app_log import AppLogEntry
from qtbuilder.models.build import BuildCell, JobOutcome, RunResult


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CancellingEvent:
    """Cancellation of the running build was requested."""


@dataclass(frozen=True)
class CompletedEvent:
    """A run reached its terminal state. Emitted exactly once per run."""

    result: RunResult


@dataclass(frozen=True)
class LogAppendedEvent:
    entry: AppLogEntry


@dataclass(frozen=True)
class CellStartedEvent:
    cell: BuildCell
    index: int
    total: int
    command: tuple[str, ...]


@dataclass(frozen=True)
class CellOutputEvent:
    cell: BuildCell
    line: str
    stream: str


@dataclass(frozen=True)
class CellDoneEvent:
    outcome: JobOutcome


BuildEvent: TypeAlias = (
    CancellingEvent
    | CompletedEvent
    | LogAppendedEvent
    | CellStartedEvent
    | CellOutputEvent
    | CellDoneEvent
)

E = TypeVar("E")


class EventDispatcher:
    """Dispatch events to handlers registered per event type.

    Handlers run synchronously on the emitting thread, which is the build
    worker for everything but ``CancellingEvent``. A failing handler is
    logged and does not affect the build.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable[[Any], None]]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        with self._lock:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        with self._lock:
            if handler in self._handlers[event_type]:
                self._handlers[event_type].remove(handler)

    def emit(self, event: BuildEvent) -> None:
        with self._lock:
            handlers = list(self._handlers[type(event)])
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                exc_info = logger.isEnabledFor(logging.DEBUG)
                logger.error(
                    "Handler for %s failed: %s",
                    type(event).__name__,
                    e,
                    exc_info=exc_info,
                )
