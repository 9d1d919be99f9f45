"""Build matrix orchestration.

``BuildOrchestrator`` owns the state machine of a build run::

    NotStarted --start()--> Started --cancel()--> Cancel
                               |
                               +--loop ends--> Success | Failure(code)

``start`` validates the preconditions, snapshots and freezes the option
matrix and launches exactly one worker thread. The worker acquires a
scratch volume, runs the enabled cells one after another and always
releases the volume before reducing the run to a terminal ``BuildState``.
No exception leaves the worker: every failure becomes ``Failure(code)``.

Cancellation is cooperative. The flag is checked before each cell and by
the ``ProcessRunner`` at its poll points while a cell runs.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from qtbuilder.config.user_config import UserConfig
from qtbuilder.core.errors import (
    INTERNAL_FAILURE_CODE,
    BuildError,
    ConfigError,
    MatrixLockedError,
    MissingSourceMarkerError,
    MissingTargetPathError,
    ProcessFailure,
    ProcessLaunchError,
    ValidationError,
)
from qtbuilder.logs.app_log import AppLog, AppLogMiddleware, Severity, informal_matcher
from qtbuilder.logs.build_log import BuildLog, create_build_log
from qtbuilder.matrix.option_matrix import MatrixSnapshot, OptionMatrix
from qtbuilder.models.build import (
    BuildCell,
    BuildState,
    JobOutcome,
    JobStatus,
    RunResult,
)
from qtbuilder.models.options import BuildOption, NumericOption
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
from qtbuilder.orchestrator.validation import PathValidator
from qtbuilder.protocols.build_protocols import (
    PathValidatorProtocol,
    ProcessRunnerProtocol,
    ScratchVolumeManagerProtocol,
)
from qtbuilder.scratch.volume_manager import (
    ScratchVolume,
    create_scratch_volume_manager,
)
from qtbuilder.utils.stream_process import (
    OutputMiddleware,
    ProcessRunner,
    TailMiddleware,
    create_chained_middleware,
)


logger = logging.getLogger(__name__)

EXCERPT_LINES = 20


@dataclass(frozen=True)
class RunPlan:
    """Everything a run needs, fixed at ``start`` time."""

    snapshot: MatrixSnapshot
    source: Path
    target: Path
    version: str
    build_log: BuildLog
    commands: BuildCommandFactory


class BuildTask:
    """Handle of one running build."""

    def __init__(self, orchestrator: "BuildOrchestrator", thread: threading.Thread):
        self._orchestrator = orchestrator
        self._thread = thread
        self._result: RunResult | None = None

    @property
    def result(self) -> RunResult | None:
        """Terminal result, available once the run completed."""
        return self._result

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def cancel(self) -> None:
        self._orchestrator.cancel()

    def join(self, timeout: float | None = None) -> RunResult | None:
        """Wait for the worker to finish; returns the result if it did."""
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout)
        return self._result


class _CellOutputMiddleware(OutputMiddleware[str]):
    def __init__(self, events: EventDispatcher, cell: BuildCell) -> None:
        self.events = events
        self.cell = cell

    def process(self, line: str, stream_type: str) -> str:
        self.events.emit(CellOutputEvent(self.cell, line, stream_type))
        return line


class BuildOrchestrator:
    """Drive a build matrix run and expose start/cancel/status."""

    def __init__(
        self,
        config: UserConfig,
        matrix: OptionMatrix | None = None,
        runner: ProcessRunnerProtocol | None = None,
        scratch: ScratchVolumeManagerProtocol | None = None,
        validator: PathValidatorProtocol | None = None,
        app_log: AppLog | None = None,
    ) -> None:
        data = config.data
        self.config = config
        self.matrix = matrix or OptionMatrix.from_settings(
            data.build_options,
            {
                NumericOption.RAM_DISK: data.ram_disk_size,
                NumericOption.CORES: data.cores,
            },
        )
        self.runner = runner or ProcessRunner(poll_interval=data.poll_interval)
        self.scratch = scratch or create_scratch_volume_manager(
            data.scratch_backend, data.scratch_mount_point
        )
        self.validator = validator or PathValidator()
        self.app_log = app_log or AppLog(data.app_log_path)
        self.events = EventDispatcher()
        self.app_log.add_listener(lambda entry: self.events.emit(LogAppendedEvent(entry)))

        self._informal = informal_matcher(data.informal_patterns)
        self._lock = threading.RLock()
        self._state = BuildState.not_started()
        self._cancel_event = threading.Event()
        self._task: BuildTask | None = None

    # ---- status ----

    @property
    def state(self) -> BuildState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        """True while a worker thread exists, including while it winds down."""
        with self._lock:
            return self._task is not None and self._task.is_alive()

    @property
    def last_result(self) -> RunResult | None:
        with self._lock:
            return self._task.result if self._task else None

    def subscribe(self, event_type: type, handler: object) -> None:
        self.events.subscribe(event_type, handler)  # type: ignore[arg-type]

    def announce(self) -> None:
        """Log the application start and warn about a missing target path."""
        self.app_log.add_separator()
        self.app_log.add("QtBuilder started", severity=Severity.APP_LIFECYCLE)
        target = self.config.data.target_path
        if not self.validator.target_exists(target):
            self.app_log.add("Target path missing:", str(target), Severity.CRITICAL)

    # ---- control surface ----

    def set_option(self, option: BuildOption, enabled: bool) -> None:
        """Toggle one build option and persist the enabled set.

        Raises:
            MatrixLockedError: While a build runs
        """
        self.matrix.set_enabled(option, enabled)
        self.config.set("build_options", self.matrix.enabled_names())
        self._save_settings()

    def set_numeric(self, option: NumericOption, value: int) -> None:
        """Assign a numeric option and persist it.

        Raises:
            OutOfRangeError: If ``value`` is outside the option's range
            MatrixLockedError: While a build runs
        """
        self.matrix.set_numeric(option, value)
        self.config.set(_NUMERIC_SETTINGS[option], value)
        self._save_settings()

    def select_source(self, path: Path, version: str) -> None:
        self._ensure_idle()
        self.config.set("source_path", path)
        self.config.set("library_version", version)
        self.app_log.add("Source path selected:", str(path), Severity.ELEVATED)
        self._save_settings()

    def select_target(self, path: Path) -> None:
        self._ensure_idle()
        self.config.set("target_path", path)
        self.app_log.add("Target path selected:", str(path), Severity.ELEVATED)
        self._save_settings()

    def start(self, requested: bool = True) -> BuildTask | None:
        """Start a build run.

        While a run is active this is a cancellation request instead and
        returns ``None``. Validation failures are logged as warnings, leave
        the state untouched and also return ``None``.

        Once the previous run is terminal a new run may be started, also
        from a ``CompletedEvent`` handler running on the finishing worker.
        """
        with self._lock:
            running = self._state.running
            previous = self._task
        if running:
            self.cancel()
            return None
        if not requested:
            return None
        if previous is not None:
            # No-op on the finishing worker itself
            previous.join()

        commands = BuildCommandFactory(self.config.data.build_command)
        try:
            self._validate(commands)
        except ValidationError as e:
            self.app_log.add("Build not started:", e.message, Severity.WARNING)
            return None

        with self._lock:
            if self._state.running:
                return None
            data = self.config.data
            self._cancel_event.clear()
            plan = RunPlan(
                snapshot=self.matrix.freeze(),
                source=data.source_path,
                target=data.target_path,
                version=data.library_version,
                build_log=create_build_log(data.resolved_build_log_dir()),
                commands=commands,
            )
            self._state = BuildState.started()
            thread = threading.Thread(
                target=self._loop, args=(plan,), name="qtbuilder-build"
            )
            task = self._task = BuildTask(self, thread)
            thread.start()
        return task

    def cancel(self) -> None:
        """Request cancellation of the running build; a no-op otherwise."""
        with self._lock:
            if not self._state.running:
                return
            self._state = BuildState.cancel()
            self._cancel_event.set()

        self.app_log.add("Cancelling build ...", severity=Severity.WARNING)
        self.events.emit(CancellingEvent())
        self.runner.terminate()

    def join(self, timeout: float | None = None) -> RunResult | None:
        with self._lock:
            task = self._task
        return task.join(timeout) if task else None

    def shutdown(self, timeout: float | None = None) -> BuildState:
        """Cancel and wait for any active run, then persist settings."""
        if self.is_running:
            self.app_log.add("Shutting down ...", severity=Severity.WARNING)
            self.cancel()
            self.join(timeout)

        self.config.set("build_options", self.matrix.enabled_names())
        self._save_settings()
        state = self.state
        self.app_log.add("QtBuilder stopped", str(state), Severity.APP_LIFECYCLE)
        self.app_log.close()
        return state

    # ---- internals ----

    def _ensure_idle(self) -> None:
        if self.state.running:
            raise MatrixLockedError("Paths cannot change while a build runs")

    def _validate(self, commands: BuildCommandFactory) -> None:
        data = self.config.data
        if not self.validator.source_ready(data.source_path, data.configure_marker):
            raise MissingSourceMarkerError(data.source_path, data.configure_marker)
        if not self.validator.target_exists(data.target_path):
            raise MissingTargetPathError(data.target_path)
        self.matrix.validate()
        commands.validate()

    def _save_settings(self) -> None:
        try:
            self.config.save()
        except ConfigError as e:
            self.app_log.add("Settings not saved:", e.message, Severity.WARNING)

    def _loop(self, plan: RunPlan) -> None:
        self.app_log.add(
            "Build started:",
            f"{len(plan.snapshot.cells)} cell(s), log {plan.build_log.log_file}",
            Severity.INFO,
        )
        outcomes: list[JobOutcome] = []
        failure_code: int | None = None
        volume: ScratchVolume | None = None
        try:
            volume = self.scratch.acquire(plan.snapshot.value(NumericOption.RAM_DISK))
            context = BuildContext(
                source=plan.source,
                target=plan.target,
                version=plan.version,
                jobs=plan.snapshot.value(NumericOption.CORES),
                scratch=volume.mount_point,
            )
            total = len(plan.snapshot.cells)
            for index, cell in enumerate(plan.snapshot.cells, start=1):
                if self._cancel_event.is_set():
                    break
                outcome = self._run_cell(cell, index, total, context, plan)
                outcomes.append(outcome)
                if outcome.status is JobStatus.FAILED:
                    raise ProcessFailure(cell.name, outcome.exit_code)
                if outcome.status is JobStatus.TERMINATED:
                    break
                self._log_usage(volume)
        except ProcessFailure as e:
            failure_code = e.exit_code
            self.app_log.add(
                f"Build step {e.cell} failed:", f"exit code {e.exit_code}", Severity.WARNING
            )
        except BuildError as e:
            failure_code = e.exit_code
            self.app_log.add("Build error:", e.message, Severity.CRITICAL)
        except Exception as e:
            failure_code = INTERNAL_FAILURE_CODE
            logger.exception("Unexpected error in build loop")
            self.app_log.add("Unexpected build error:", str(e), Severity.CRITICAL)
        finally:
            self.scratch.release(volume)
            self._complete(plan, outcomes, failure_code)

    def _run_cell(
        self,
        cell: BuildCell,
        index: int,
        total: int,
        context: BuildContext,
        plan: RunPlan,
    ) -> JobOutcome:
        build_log = plan.build_log
        command = plan.commands.render(cell, context)
        build_log.begin_cell(cell.name, command)
        self.app_log.add(f"Building {cell.name}", f"({index}/{total})", Severity.INFO)
        self.events.emit(CellStartedEvent(cell, index, total, tuple(command)))

        tail = TailMiddleware(EXCERPT_LINES)
        middleware = create_chained_middleware(
            [
                build_log.middleware(cell.name),
                AppLogMiddleware(self.app_log, self._informal, cell.name),
                tail,
                _CellOutputMiddleware(self.events, cell),
            ]
        )

        started_at = datetime.now()
        exit_code: int
        try:
            exit_code = self.runner.run(
                command,
                cwd=context.scratch,
                middleware=middleware,
                cancel_event=self._cancel_event,
            )
        except ProcessLaunchError as e:
            self.app_log.add("Cannot start build step:", e.message, Severity.CRITICAL)
            exit_code = e.exit_code

        if exit_code == 0:
            status = JobStatus.SUCCEEDED
        elif self._cancel_event.is_set():
            status = JobStatus.TERMINATED
        else:
            status = JobStatus.FAILED

        outcome = JobOutcome(
            cell=cell,
            status=status,
            exit_code=exit_code,
            started_at=started_at,
            excerpt=tail.lines,
        )
        build_log.end_cell(cell.name, status.value, exit_code)
        if status is not JobStatus.FAILED:
            self.app_log.add(
                f"Build step {cell.name} {status.value}",
                f"in {outcome.duration:.1f}s",
                Severity.INFO,
            )
        self.events.emit(CellDoneEvent(outcome))
        return outcome

    def _log_usage(self, volume: ScratchVolume) -> None:
        usage = self.scratch.usage(volume)
        if usage is not None:
            self.app_log.add(
                "Scratch volume usage:",
                f"{usage.used // 2**20} MiB used, {usage.free // 2**20} MiB free",
                Severity.INFO,
            )

    def _complete(
        self, plan: RunPlan, outcomes: list[JobOutcome], failure_code: int | None
    ) -> None:
        with self._lock:
            if self._state.cancelled:
                state = BuildState.cancel()
            elif failure_code is not None:
                state = BuildState.failure(failure_code)
            else:
                state = BuildState.success()
            self._state = state

        if state.succeeded:
            plan.build_log.end_success()
            self.app_log.add("QtBuilder ended with:", "NO ERRORS", Severity.INFO)
        elif state.cancelled:
            plan.build_log.end_failure()
            self.app_log.add("QtBuilder was cancelled.", severity=Severity.WARNING)
        else:
            plan.build_log.end_failure()
            self.app_log.add(
                "QtBuilder ended with:",
                f"ERROR {state.code:04d} ({state.status.value})".upper(),
                Severity.ELEVATED,
            )

        result = RunResult(
            state=state,
            outcomes=outcomes,
            app_log_path=self.app_log.log_file,
            build_log_path=plan.build_log.log_file,
        )
        self.matrix.unfreeze()
        with self._lock:
            if self._task is not None:
                self._task._result = result
        self.events.emit(CompletedEvent(result))


_NUMERIC_SETTINGS = {
    NumericOption.RAM_DISK: "ram_disk_size",
    NumericOption.CORES: "cores",
}


def create_build_orchestrator(config: UserConfig) -> BuildOrchestrator:
    """Factory function wiring the default collaborators from ``config``."""
    return BuildOrchestrator(config)


__all__ = [
    "BuildOrchestrator",
    "BuildTask",
    "create_build_orchestrator",
]
