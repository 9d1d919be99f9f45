"""Process execution and streaming output handling.

This module runs one external build step at a time and streams its output
line-by-line through middleware components. Cancellation is cooperative:
the runner polls a ``threading.Event`` at two points,

* every ``poll_interval`` seconds while waiting for the process to exit,
* after each line read from stdout or stderr,

and requests termination of the whole process tree once the event is set.
Termination is best effort; ``run`` only returns after the process has
actually exited.

Example:
    ```python
    from qtbuilder.utils.stream_process import ProcessRunner, TailMiddleware

    tail = TailMiddleware(lines=20)
    exit_code = ProcessRunner().run(["nmake"], cwd=Path("R:/"), middleware=tail)
    ```
"""

import logging
import os
import signal
import subprocess
import sys
import threading
from collections import deque
from collections.abc import Sequence
from pathlib import Path
from typing import IO, Any, Generic, TypeVar

from qtbuilder.core.errors import ProcessLaunchError


logger = logging.getLogger(__name__)

T = TypeVar("T")  # Type of processed output

STDOUT = "stdout"
STDERR = "stderr"


class OutputMiddleware(Generic[T]):
    """Base class for processing command output streams.

    OutputMiddleware provides a way to intercept and process output lines
    from subprocesses. Implementations can format, filter, or transform
    the output as needed.
    """

    def process(self, line: str, stream_type: str) -> T:
        """Process a line of output from a subprocess stream.

        Args:
            line: A line of text from the process output
            stream_type: Either "stdout" or "stderr"

        Returns:
            Processed output of type T
        """
        raise NotImplementedError()


class ChainedMiddleware(OutputMiddleware[str]):
    """Fan a line out to several middleware components in order.

    Each component receives the original line; a failing component is
    logged and skipped so one broken sink cannot stop the build.
    """

    def __init__(self, middlewares: Sequence[OutputMiddleware[Any]]) -> None:
        self.middlewares = list(middlewares)

    def process(self, line: str, stream_type: str) -> str:
        for middleware in self.middlewares:
            try:
                middleware.process(line, stream_type)
            except Exception as e:
                logger.warning(
                    "Output middleware %s failed: %s",
                    middleware.__class__.__name__,
                    e,
                )
        return line


class TailMiddleware(OutputMiddleware[str]):
    """Keep the last ``lines`` lines of combined output."""

    def __init__(self, lines: int = 20) -> None:
        self._lines: deque[str] = deque(maxlen=lines)
        self._lock = threading.Lock()

    def process(self, line: str, stream_type: str) -> str:
        with self._lock:
            self._lines.append(line)
        return line

    @property
    def lines(self) -> list[str]:
        with self._lock:
            return list(self._lines)


def create_chained_middleware(
    middlewares: Sequence[OutputMiddleware[Any]],
) -> ChainedMiddleware:
    return ChainedMiddleware(middlewares)


class ProcessRunner:
    """Run one external process at a time and supervise it.

    ``run`` is synchronous and meant to be called from the build worker
    thread; ``terminate`` may be called from any thread.
    """

    def __init__(self, poll_interval: float = 0.1) -> None:
        self.poll_interval = poll_interval
        self._process: subprocess.Popen[str] | None = None
        self._lock = threading.Lock()
        self._terminating = False

    @property
    def running(self) -> bool:
        with self._lock:
            return self._process is not None and self._process.poll() is None

    def run(
        self,
        command: Sequence[str],
        cwd: Path | None = None,
        middleware: OutputMiddleware[Any] | None = None,
        cancel_event: threading.Event | None = None,
        env: dict[str, str] | None = None,
    ) -> int:
        """Run a command and stream its output through middleware.

        Args:
            command: Command and arguments
            cwd: Working directory of the process
            middleware: Receives every stripped stdout/stderr line
            cancel_event: Polled to request termination of the process
            env: Optional environment for the child

        Returns:
            The exit code of the process

        Raises:
            ProcessLaunchError: If the process cannot be started
        """
        cmd = [str(arg) for arg in command]
        logger.debug("Running %s in %s", cmd, cwd)

        try:
            process = subprocess.Popen(
                cmd,
                cwd=cwd,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                **_process_group_kwargs(),
            )
        except OSError as e:
            raise ProcessLaunchError(
                f"Cannot start {cmd[0]}: {e}", {"command": cmd}
            ) from e

        with self._lock:
            self._process = process
            self._terminating = False

        def stream_output(stream: IO[str], stream_type: str) -> None:
            for line in iter(stream.readline, ""):
                if middleware is not None:
                    try:
                        middleware.process(line.rstrip(), stream_type)
                    except Exception as e:
                        # Keep draining the pipe or the child blocks on write
                        logger.warning("Output middleware failed: %s", e)
                if cancel_event is not None and cancel_event.is_set():
                    self.terminate()
            stream.close()

        readers = [
            threading.Thread(
                target=stream_output, args=(process.stdout, STDOUT), daemon=True
            ),
            threading.Thread(
                target=stream_output, args=(process.stderr, STDERR), daemon=True
            ),
        ]
        for reader in readers:
            reader.start()

        try:
            while True:
                try:
                    return_code = process.wait(timeout=self.poll_interval)
                    break
                except subprocess.TimeoutExpired:
                    if cancel_event is not None and cancel_event.is_set():
                        self.terminate()
        finally:
            for reader in readers:
                reader.join()
            with self._lock:
                self._process = None

        logger.debug("Process %s exited with %d", cmd[0], return_code)
        return return_code

    def terminate(self) -> None:
        """Request termination of the running process tree (best effort)."""
        with self._lock:
            process = self._process
            if process is None or self._terminating or process.poll() is not None:
                return
            self._terminating = True

        logger.info("Terminating process %d", process.pid)
        try:
            if sys.platform == "win32":
                subprocess.run(
                    ["taskkill", "/T", "/F", "/PID", str(process.pid)],
                    capture_output=True,
                    check=False,
                )
            else:
                os.killpg(process.pid, signal.SIGTERM)
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.warning("Process tree termination failed, killing child: %s", e)
            process.terminate()


def _process_group_kwargs() -> dict[str, Any]:
    """Start children in their own group so the whole tree can be signalled."""
    if sys.platform == "win32":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}
