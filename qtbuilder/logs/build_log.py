"""Build transcript capture for matrix runs."""

import logging
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any, TextIO

from qtbuilder.utils.stream_process import STDOUT, OutputMiddleware


logger = logging.getLogger(__name__)

SUCCESS_MARKER = "# Build finished: SUCCESS"
FAILURE_MARKER = "# Build finished: FAILURE"


class BuildLog:
    """One transcript per run holding raw process output of every cell.

    Lines are written as ``[timestamp] [cell] [STDOUT|STDERR] output``.
    Cells are delimited by ``begin_cell`` / ``end_cell`` markers and the
    transcript is concluded by ``end_success`` or ``end_failure``.

    Thread-safe for concurrent writes from the stdout and stderr readers.
    """

    def __init__(self, log_file_path: Path, include_timestamps: bool = True) -> None:
        self.log_file_path = log_file_path
        self.include_timestamps = include_timestamps
        self._file_handle: TextIO | None = None
        self._lock = Lock()
        self._initialize_log_file()

    def _initialize_log_file(self) -> None:
        """Initialize the log file and write header."""
        try:
            self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_handle = self.log_file_path.open("w", encoding="utf-8")

            timestamp = datetime.now().isoformat()
            self._file_handle.write(f"# Build Log - {timestamp}\n")
            self._file_handle.write(f"# Log file: {self.log_file_path}\n")
            self._file_handle.write("# Format: [timestamp] [cell] [stream] output\n")
            self._file_handle.write("# ==========================================\n\n")
            self._file_handle.flush()

            logger.debug("Initialized build log file: %s", self.log_file_path)

        except OSError as e:
            exc_info = logger.isEnabledFor(logging.DEBUG)
            logger.error(
                "Failed to initialize build log file %s: %s",
                self.log_file_path,
                e,
                exc_info=exc_info,
            )
            self._file_handle = None

    @property
    def log_file(self) -> Path:
        return self.log_file_path

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._file_handle is None

    def append(self, line: str, cell: str, stream_type: str = STDOUT) -> None:
        parts = []
        if self.include_timestamps:
            parts.append(f"[{datetime.now().strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]}]")
        parts.append(f"[{cell}]")
        parts.append("[STDOUT]" if stream_type == STDOUT else "[STDERR]")
        parts.append(line)
        self._write(" ".join(parts) + "\n")

    def begin_cell(self, cell: str, command: list[str]) -> None:
        self._write(f"\n# >>> {cell}: {' '.join(command)}\n")

    def end_cell(self, cell: str, status: str, exit_code: int | None) -> None:
        self._write(f"# <<< {cell}: {status} (exit code {exit_code})\n")

    def middleware(self, cell: str) -> "BuildLogMiddleware":
        return BuildLogMiddleware(self, cell)

    def end_success(self) -> None:
        self._finish(SUCCESS_MARKER)

    def end_failure(self) -> None:
        self._finish(FAILURE_MARKER)

    def _write(self, text: str) -> None:
        try:
            with self._lock:
                if self._file_handle is None:
                    return
                self._file_handle.write(text)
                self._file_handle.flush()
        except OSError as e:
            # Don't let logging errors break the build
            logger.warning("Failed to write to build log file: %s", e)

    def _finish(self, marker: str) -> None:
        """Write the closing marker and close the file; later calls are no-ops."""
        try:
            with self._lock:
                if self._file_handle is None:
                    return
                self._file_handle.write(f"\n{marker} - {datetime.now().isoformat()}\n")
                self._file_handle.close()
                self._file_handle = None
                logger.debug("Closed build log file: %s", self.log_file_path)
        except OSError as e:
            logger.warning("Error closing build log file: %s", e)

    def __enter__(self) -> "BuildLog":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if exc_type is None:
            self.end_success()
        else:
            self.end_failure()


class BuildLogMiddleware(OutputMiddleware[str]):
    """Writes every line of one cell's output to the run transcript."""

    def __init__(self, build_log: BuildLog, cell: str) -> None:
        self.build_log = build_log
        self.cell = cell

    def process(self, line: str, stream_type: str) -> str:
        self.build_log.append(line, self.cell, stream_type)
        return line


def create_build_log(
    log_dir: Path, started_at: datetime | None = None
) -> BuildLog:
    """Create the transcript of a run as ``<log_dir>/build-<timestamp>.log``."""
    stamp = (started_at or datetime.now()).strftime("%Y%m%d-%H%M%S-%f")
    return BuildLog(log_dir / f"build-{stamp}.log")
