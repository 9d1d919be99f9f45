"""Application log: ordered, timestamped orchestration events."""

import logging
import re
import threading
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TextIO

from pydantic import ConfigDict, Field

from qtbuilder.core.structlog_logger import get_struct_logger
from qtbuilder.models.base import QtBuilderBaseModel
from qtbuilder.utils.stream_process import STDERR, OutputMiddleware
from qtbuilder.utils.text import clean_output


logger = get_struct_logger(__name__)


class Severity(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    CRITICAL = "Critical"
    ELEVATED = "Elevated"
    PROCESS = "Process"
    INFORMAL = "Informal"
    APP_LIFECYCLE = "AppLifecycle"

    @property
    def log_level(self) -> int:
        """Level used when the entry is forwarded to the diagnostic log."""
        return _LOG_LEVELS[self]


_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.CRITICAL: logging.ERROR,
    Severity.ELEVATED: logging.WARNING,
    Severity.PROCESS: logging.INFO,
    Severity.INFORMAL: logging.DEBUG,
    Severity.APP_LIFECYCLE: logging.INFO,
}


class AppLogEntry(QtBuilderBaseModel):
    """One application log entry."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=datetime.now)
    severity: Severity
    message: str
    detail: str = ""

    def format(self) -> str:
        stamp = self.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        text = f"{self.message} {self.detail}" if self.detail else self.message
        return f"{stamp} [{self.severity.value:<12}] {text}"


AppLogListener = Callable[[AppLogEntry], None]

SEPARATOR = "-" * 72


class AppLog:
    """Append-only application log persisted to a text file.

    Entries are kept in memory in order, written to ``path`` and forwarded
    to structlog. Listeners are called for every entry after it has been
    written; a failing listener is logged and otherwise ignored.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._entries: list[AppLogEntry] = []
        self._listeners: list[AppLogListener] = []
        self._lock = threading.Lock()
        self._file: TextIO | None = None
        self._open()

    def _open(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = self.path.open("a", encoding="utf-8")
        except OSError as e:
            logger.error("app_log_open_failed", path=str(self.path), error=str(e))
            self._file = None

    @property
    def log_file(self) -> Path:
        return self.path

    @property
    def entries(self) -> list[AppLogEntry]:
        with self._lock:
            return list(self._entries)

    def add_listener(self, listener: AppLogListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def add(
        self, message: str, detail: str = "", severity: Severity = Severity.INFO
    ) -> AppLogEntry:
        """Append an entry."""
        entry = AppLogEntry(
            severity=severity,
            message=clean_output(message),
            detail=clean_output(detail, collapse=True),
        )
        with self._lock:
            self._entries.append(entry)
            self._write(entry.format())
            listeners = list(self._listeners)

        logger.log(
            severity.log_level,
            "app_log",
            severity=severity.value,
            message=entry.message,
            detail=entry.detail or None,
        )
        for listener in listeners:
            try:
                listener(entry)
            except Exception as e:
                logger.warning("app_log_listener_failed", error=str(e))
        return entry

    def add_separator(self) -> None:
        with self._lock:
            self._write(SEPARATOR)

    def _write(self, line: str) -> None:
        if self._file is None:
            return
        try:
            self._file.write(line + "\n")
            self._file.flush()
        except OSError as e:
            logger.warning("app_log_write_failed", error=str(e))

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None


def informal_matcher(patterns: list[str]) -> Callable[[str], bool]:
    """Build the heuristic deciding which stdout lines are informal notices."""
    compiled = [re.compile(pattern, re.IGNORECASE) for pattern in patterns]

    def matches(line: str) -> bool:
        text = line.strip()
        return any(pattern.search(text) for pattern in compiled)

    return matches


class AppLogMiddleware(OutputMiddleware[str]):
    """Copy process output into the application log.

    stderr lines become ``Process`` entries; stdout lines matching one of
    the informal patterns become ``Informal`` entries. Everything else is
    left to the build transcript.
    """

    def __init__(
        self, app_log: AppLog, informal: Callable[[str], bool], cell: str = ""
    ) -> None:
        self.app_log = app_log
        self.informal = informal
        self.cell = cell

    def process(self, line: str, stream_type: str) -> str:
        if not line.strip():
            return line
        if stream_type == STDERR:
            self.app_log.add(self._label("Process message"), line, Severity.PROCESS)
        elif self.informal(line):
            self.app_log.add(self._label("Process informal"), line, Severity.INFORMAL)
        return line

    def _label(self, text: str) -> str:
        return f"{text} [{self.cell}]:" if self.cell else f"{text}:"
