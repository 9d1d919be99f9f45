"""Core test fixtures for the qtbuilder project."""

import logging
import os
import threading
from collections.abc import Callable, Generator, Sequence
from pathlib import Path
from typing import Any

import pytest
import yaml
from typer.testing import CliRunner

from qtbuilder.config.user_config import UserConfig
from qtbuilder.core.errors import AllocationError
from qtbuilder.logs.app_log import AppLog
from qtbuilder.orchestrator import BuildOrchestrator
from qtbuilder.scratch.volume_manager import ScratchVolume
from qtbuilder.utils.stream_process import STDOUT, OutputMiddleware


# ---- Test doubles ----


class FakeRunner:
    """ProcessRunner double driven by a script of steps.

    Each ``run`` call consumes one step: an int is returned as exit code,
    an exception instance is raised, and ``"block"`` waits until the
    cancel event is set and then returns -15 like a terminated process.
    """

    def __init__(
        self,
        steps: Sequence[Any] | None = None,
        output: Sequence[tuple[str, str]] | None = None,
    ) -> None:
        self.steps = list(steps or [])
        self.output = list(output if output is not None else [("building", STDOUT)])
        self.commands: list[list[str]] = []
        self.cwds: list[Path | None] = []
        self.terminate_calls = 0
        self.started = threading.Event()

    def run(
        self,
        command: Sequence[str],
        cwd: Path | None = None,
        middleware: OutputMiddleware[Any] | None = None,
        cancel_event: threading.Event | None = None,
        env: dict[str, str] | None = None,
    ) -> int:
        self.commands.append(list(command))
        self.cwds.append(cwd)
        step = self.steps.pop(0) if self.steps else 0
        if isinstance(step, BaseException):
            raise step
        for line, stream in self.output:
            if middleware is not None:
                middleware.process(line, stream)
        self.started.set()
        if step == "block":
            assert cancel_event is not None
            cancel_event.wait(10)
            return -15
        return int(step)

    def terminate(self) -> None:
        self.terminate_calls += 1


class FakeScratch:
    """ScratchVolumeManager double recording acquire/release calls."""

    def __init__(
        self,
        mount_point: Path,
        fail: bool = False,
        gate: threading.Event | None = None,
    ) -> None:
        self.mount_point = mount_point
        self.fail = fail
        self.gate = gate
        self.entered = threading.Event()
        self.acquired: list[int] = []
        self.release_calls: list[ScratchVolume | None] = []

    def acquire(self, size_gib: int) -> ScratchVolume:
        self.acquired.append(size_gib)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(10)
        if self.fail:
            raise AllocationError("RAM disk could not be created")
        return ScratchVolume(
            mount_point=self.mount_point, size_gib=size_gib, backend="fake"
        )

    def release(self, volume: ScratchVolume | None) -> None:
        self.release_calls.append(volume)

    def usage(self, volume: ScratchVolume) -> None:
        return None

    @property
    def released(self) -> list[ScratchVolume]:
        return [volume for volume in self.release_calls if volume is not None]


# ---- Base Fixtures ----


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    """Undo root logger changes made by CLI invocations."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture(scope="session")
def cli_app() -> Any:
    """The Typer app with every command registered once."""
    from qtbuilder.cli.app import app
    from qtbuilder.cli.commands import register_all_commands

    register_all_commands(app)
    return app


# ---- Test Isolation Fixtures ----


@pytest.fixture
def isolated_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Point XDG directories and the working directory into ``tmp_path``.

    Clears every QTBUILDER_ environment variable so the host environment
    cannot leak into the configuration under test.
    """
    for key in list(os.environ):
        if key.startswith("QTBUILDER_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))
    monkeypatch.chdir(tmp_path)
    yield tmp_path


@pytest.fixture
def source_tree(isolated_env: Path) -> Path:
    """Library source directory containing both configure markers."""
    source = isolated_env / "qt-src"
    source.mkdir()
    (source / "configure").write_text("#!/bin/sh\n")
    (source / "configure.exe").write_text("")
    return source


@pytest.fixture
def target_dir(isolated_env: Path) -> Path:
    target = isolated_env / "qt-builds"
    target.mkdir()
    return target


@pytest.fixture
def config_file(isolated_env: Path, source_tree: Path, target_dir: Path) -> Path:
    """Config file enabling a single cell: release-x64-shared-msvc2013."""
    path = isolated_env / "config" / "qtbuilder.yaml"
    path.parent.mkdir()
    data = {
        "source_path": str(source_tree),
        "target_path": str(target_dir),
        "library_version": "4.8.7",
        "configure_marker": "configure",
        "build_options": ["release", "x64", "shared", "msvc2013"],
        "ram_disk_size": 4,
        "cores": 1,
        "build_command": ["build.sh", "--arch={arch}", "--prefix={prefix}"],
        "scratch_backend": "directory",
        "scratch_mount_point": str(isolated_env / "scratch"),
        "poll_interval": 0.01,
        "app_log_path": str(isolated_env / "logs" / "qtbuilder.log"),
        "build_log_dir": str(isolated_env / "logs" / "builds"),
    }
    with path.open("w") as f:
        yaml.safe_dump(data, f)
    return path


@pytest.fixture
def isolated_config(config_file: Path) -> UserConfig:
    """Create an isolated UserConfig instance backed by a temporary file."""
    return UserConfig(cli_config_path=config_file)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fake_scratch(isolated_env: Path) -> FakeScratch:
    mount_point = isolated_env / "ramdisk"
    mount_point.mkdir()
    return FakeScratch(mount_point)


@pytest.fixture
def make_orchestrator(
    isolated_config: UserConfig,
    fake_runner: FakeRunner,
    fake_scratch: FakeScratch,
) -> Generator[Callable[..., BuildOrchestrator], None, None]:
    """Factory building orchestrators wired to the fakes.

    Every orchestrator created is shut down at teardown so no worker thread
    outlives its test.
    """
    created: list[BuildOrchestrator] = []

    def factory(**overrides: Any) -> BuildOrchestrator:
        kwargs: dict[str, Any] = {
            "runner": fake_runner,
            "scratch": fake_scratch,
            "app_log": AppLog(isolated_config.data.app_log_path),
        }
        kwargs.update(overrides)
        orchestrator = BuildOrchestrator(isolated_config, **kwargs)
        created.append(orchestrator)
        return orchestrator

    yield factory

    for orchestrator in created:
        if orchestrator.is_running:
            orchestrator.cancel()
            orchestrator.join(10)
