"""Tests for ProcessRunner and the output middleware.

These tests spawn real child processes of the running interpreter.
"""

import sys
import threading
import time
from pathlib import Path

import pytest

from qtbuilder.core.errors import ProcessLaunchError
from qtbuilder.utils.stream_process import (
    STDERR,
    STDOUT,
    ChainedMiddleware,
    OutputMiddleware,
    ProcessRunner,
    TailMiddleware,
    create_chained_middleware,
)


class RecordingMiddleware(OutputMiddleware[str]):
    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def process(self, line: str, stream_type: str) -> str:
        with self._lock:
            self.lines.append((line, stream_type))
        return line


class FailingMiddleware(OutputMiddleware[str]):
    def process(self, line: str, stream_type: str) -> str:
        raise RuntimeError("sink failure")


def python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


@pytest.mark.integration
class TestProcessRunner:
    def test_streams_stdout_and_stderr(self, tmp_path: Path):
        recorder = RecordingMiddleware()
        code = (
            "import sys\n"
            "print('configuring qt')\n"
            "print('fatal error', file=sys.stderr)\n"
            "print('done  ')\n"
        )

        exit_code = ProcessRunner(poll_interval=0.01).run(
            python(code), cwd=tmp_path, middleware=recorder
        )

        assert exit_code == 0
        stdout = [line for line, stream in recorder.lines if stream == STDOUT]
        stderr = [line for line, stream in recorder.lines if stream == STDERR]
        assert stdout == ["configuring qt", "done"]
        assert stderr == ["fatal error"]

    def test_returns_exit_code(self):
        assert ProcessRunner().run(python("raise SystemExit(3)")) == 3

    def test_runs_in_working_directory(self, tmp_path: Path):
        recorder = RecordingMiddleware()

        ProcessRunner().run(
            python("import os; print(os.getcwd())"), cwd=tmp_path, middleware=recorder
        )

        assert Path(recorder.lines[0][0]).resolve() == tmp_path.resolve()

    def test_launch_failure(self, tmp_path: Path):
        with pytest.raises(ProcessLaunchError):
            ProcessRunner().run([str(tmp_path / "does-not-exist")])

    def test_cancel_event_terminates_process(self):
        runner = ProcessRunner(poll_interval=0.01)
        cancel = threading.Event()
        recorder = RecordingMiddleware()
        code = "import time\nprint('started', flush=True)\ntime.sleep(30)\n"

        def cancel_when_started() -> None:
            deadline = time.monotonic() + 10
            while not recorder.lines and time.monotonic() < deadline:
                time.sleep(0.01)
            cancel.set()

        canceller = threading.Thread(target=cancel_when_started)
        canceller.start()
        started = time.monotonic()
        exit_code = runner.run(python(code), middleware=recorder, cancel_event=cancel)
        canceller.join()

        assert exit_code != 0
        assert time.monotonic() - started < 20
        assert not runner.running

    def test_terminate_when_idle_is_safe(self):
        runner = ProcessRunner()

        runner.terminate()

        assert not runner.running

    def test_failing_middleware_does_not_stall_output(self):
        recorder = RecordingMiddleware()
        middleware = ChainedMiddleware([FailingMiddleware(), recorder])
        code = "for i in range(200): print(i)"

        exit_code = ProcessRunner().run(python(code), middleware=middleware)

        assert exit_code == 0
        assert len(recorder.lines) == 200


class TestMiddleware:
    def test_chained_middleware_fans_out(self):
        first, second = RecordingMiddleware(), RecordingMiddleware()
        chained = create_chained_middleware([first, second])

        assert chained.process("line", STDERR) == "line"
        assert first.lines == second.lines == [("line", STDERR)]

    def test_tail_keeps_last_lines(self):
        tail = TailMiddleware(lines=3)
        for i in range(5):
            tail.process(f"line {i}", STDOUT)

        assert tail.lines == ["line 2", "line 3", "line 4"]
