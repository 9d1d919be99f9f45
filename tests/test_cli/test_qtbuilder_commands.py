"""CLI tests driven through typer's CliRunner."""

import json
import sys
from pathlib import Path
from typing import Any

import pytest
import yaml

from qtbuilder.cli.commands.build import exit_code_for
from qtbuilder.models.build import BuildState, RunResult


def _update_config(config_file: Path, **values: Any) -> None:
    with config_file.open() as f:
        data = yaml.safe_load(f)
    data.update(values)
    with config_file.open("w") as f:
        yaml.safe_dump(data, f)


def _json(output: str) -> Any:
    return json.loads(output[output.index("{") : output.rindex("}") + 1])


@pytest.fixture
def invoke(cli_runner, cli_app, config_file):
    def run(*args: str):
        return cli_runner.invoke(cli_app, ["-c", str(config_file), *args])

    return run


class TestGlobalOptions:
    def test_version(self, cli_runner, cli_app):
        result = cli_runner.invoke(cli_app, ["--version"])

        assert result.exit_code == 0
        assert "QtBuilder v" in result.output

    def test_invalid_config_file(self, cli_runner, cli_app, isolated_env):
        bad = isolated_env / "bad.yaml"
        bad.write_text("cores: many\n")

        result = cli_runner.invoke(cli_app, ["-c", str(bad), "matrix"])

        assert result.exit_code == 1


class TestMatrixCommand:
    def test_json(self, invoke):
        result = invoke("matrix", "--json")

        assert result.exit_code == 0
        data = _json(result.output)
        assert data["cells"] == ["release-x64-shared-msvc2013"]
        assert data["axes"]["toolchain"] == ["msvc2013"]
        assert data["numeric"] == {"ram_disk": 4, "cores": 1}

    def test_table_with_commands(self, invoke):
        result = invoke("matrix", "--commands")

        assert result.exit_code == 0
        assert "release-x64-shared-msvc2013" in result.output
        assert "--arch=x64" in result.output


class TestOptionsCommands:
    def test_enable_persists(self, invoke, config_file):
        result = invoke("options", "enable", "msvc2015", "x86")

        assert result.exit_code == 0
        assert "Enabled: msvc2015, x86" in result.output
        saved = yaml.safe_load(config_file.read_text())
        assert "msvc2015" in saved["build_options"]
        assert len(_json(invoke("matrix", "--json").output)["cells"]) == 4

    def test_disable_default_option_sticks(self, invoke):
        invoke("options", "enable", "msvc2015")
        result = invoke("options", "disable", "msvc2013")

        assert result.exit_code == 0
        cells = _json(invoke("matrix", "--json").output)["cells"]
        assert cells == ["release-x64-shared-msvc2015"]

    def test_unknown_option(self, invoke):
        result = invoke("options", "enable", "arm64")

        assert result.exit_code == 1
        assert "Unknown build option" in result.output

    def test_set_numeric(self, invoke, config_file):
        result = invoke("options", "set", "ram-disk", "6")

        assert result.exit_code == 0
        assert yaml.safe_load(config_file.read_text())["ram_disk_size"] == 6

    def test_set_numeric_out_of_range(self, invoke, config_file):
        result = invoke("options", "set", "ram_disk", "11")

        assert result.exit_code == 1
        assert "outside the range 3..10" in result.output
        assert yaml.safe_load(config_file.read_text())["ram_disk_size"] == 4

    def test_list(self, invoke):
        result = invoke("options", "list")

        assert result.exit_code == 0
        assert "msvc2010" in result.output
        assert "ram_disk" in result.output


class TestConfigCommands:
    def test_show_json(self, invoke):
        result = invoke("config", "show", "--json")

        assert result.exit_code == 0
        assert _json(result.output)["library_version"] == "4.8.7"

    def test_show_table_with_sources(self, invoke):
        result = invoke("config", "show", "--sources")

        assert result.exit_code == 0
        assert "library_version" in result.output
        assert "file:qtbuilder.yaml" in result.output

    def test_set_source(self, invoke, config_file, isolated_env):
        new_source = isolated_env / "qt-5.6"
        new_source.mkdir()

        result = invoke("config", "set-source", str(new_source), "--version", "5.6.0")

        assert result.exit_code == 0
        saved = yaml.safe_load(config_file.read_text())
        assert saved["library_version"] == "5.6.0"
        assert Path(saved["source_path"]) == new_source.resolve()
        app_log = (isolated_env / "logs" / "qtbuilder.log").read_text()
        assert "Source path selected:" in app_log

    def test_set_target(self, invoke, config_file, isolated_env):
        result = invoke("config", "set-target", str(isolated_env / "out"))

        assert result.exit_code == 0
        saved = yaml.safe_load(config_file.read_text())
        assert Path(saved["target_path"]) == (isolated_env / "out").resolve()


class TestBuildCommand:
    def test_success(self, invoke, config_file):
        _update_config(
            config_file, build_command=[sys.executable, "-c", "print('built {cell}')"]
        )

        result = invoke("build", "--json")

        assert result.exit_code == 0
        data = _json(result.output)
        assert data["state"] == "Success"
        assert data["cells"][0]["cell"] == "release-x64-shared-msvc2013"
        transcript = Path(data["build_log"]).read_text()
        assert "built release-x64-shared-msvc2013" in transcript

    def test_failure_exit_code(self, invoke, config_file):
        _update_config(
            config_file,
            build_command=[sys.executable, "-c", "import sys; sys.exit(4)"],
        )

        result = invoke("build", "--quiet")

        assert result.exit_code == 4
        assert "Process ended with errors!" in result.output

    def test_validation_failure(self, invoke, source_tree):
        (source_tree / "configure").unlink()

        result = invoke("build")

        assert result.exit_code == 1
        assert "Sources path mismatch" in result.output


class TestExitCodes:
    @pytest.mark.parametrize(
        ("state", "expected"),
        [
            (BuildState.success(), 0),
            (BuildState.cancel(), 130),
            (BuildState.failure(2), 2),
            (BuildState.failure(255), 255),
            (BuildState.failure(300), 1),
            (BuildState.failure(-15), 1),
        ],
    )
    def test_exit_code_for(self, state, expected):
        assert exit_code_for(RunResult(state)) == expected

    def test_missing_result(self):
        assert exit_code_for(None) == 1
