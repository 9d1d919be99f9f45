"""Tests for the build option matrix."""

import pytest

from qtbuilder.core.errors import EmptyAxisError, MatrixLockedError, OutOfRangeError
from qtbuilder.matrix.option_matrix import OptionMatrix
from qtbuilder.models.options import (
    DEFAULT_ENABLED,
    Architecture,
    Axis,
    Configuration,
    LinkageType,
    NumericOption,
    NumericRange,
    ToolchainVersion,
    available_cores,
)


class TestOptionMatrixDefaults:
    def test_default_enabled_options(self):
        matrix = OptionMatrix()

        assert matrix.enabled(Axis.TOOLCHAIN) == [ToolchainVersion.MSVC2013]
        assert matrix.enabled(Axis.ARCHITECTURE) == [Architecture.X86, Architecture.X64]
        assert matrix.enabled(Axis.LINKAGE) == [LinkageType.SHARED, LinkageType.STATIC]
        assert matrix.enabled(Axis.CONFIGURATION) == [
            Configuration.DEBUG,
            Configuration.RELEASE,
        ]

    def test_default_numeric_values(self):
        matrix = OptionMatrix()

        assert matrix.numeric(NumericOption.RAM_DISK) == 4
        assert matrix.numeric(NumericOption.CORES) == max(available_cores() - 1, 1)
        assert matrix.range_of(NumericOption.RAM_DISK) == NumericRange(3, 10)


class TestEnabledCombinations:
    def test_order_is_configuration_outermost(self):
        matrix = OptionMatrix(
            enabled={
                ToolchainVersion.MSVC2013,
                ToolchainVersion.MSVC2015,
                Architecture.X64,
                LinkageType.SHARED,
                LinkageType.STATIC,
                Configuration.DEBUG,
                Configuration.RELEASE,
            }
        )

        names = [cell.name for cell in matrix.enabled_combinations()]

        assert names == [
            "debug-x64-shared-msvc2013",
            "debug-x64-shared-msvc2015",
            "debug-x64-static-msvc2013",
            "debug-x64-static-msvc2015",
            "release-x64-shared-msvc2013",
            "release-x64-shared-msvc2015",
            "release-x64-static-msvc2013",
            "release-x64-static-msvc2015",
        ]

    def test_combinations_are_deterministic(self):
        matrix = OptionMatrix()

        assert list(matrix.enabled_combinations()) == list(matrix.enabled_combinations())
        assert len(list(matrix.enabled_combinations())) == 8

    def test_empty_axis_yields_nothing(self):
        matrix = OptionMatrix()
        matrix.set_enabled(Architecture.X86, False)
        matrix.set_enabled(Architecture.X64, False)

        assert list(matrix.enabled_combinations()) == []


class TestValidate:
    def test_valid_defaults(self):
        OptionMatrix().validate()

    def test_names_every_empty_axis(self):
        matrix = OptionMatrix(enabled={Architecture.X64, LinkageType.STATIC})

        with pytest.raises(EmptyAxisError) as exc_info:
            matrix.validate()

        assert exc_info.value.axes == ("configuration", "toolchain")


class TestNumericOptions:
    @pytest.mark.parametrize("value", [3, 7, 10])
    def test_accepts_values_in_range(self, value):
        matrix = OptionMatrix()
        matrix.set_numeric(NumericOption.RAM_DISK, value)

        assert matrix.numeric(NumericOption.RAM_DISK) == value

    @pytest.mark.parametrize("value", [2, 11, -1, True])
    def test_rejects_values_out_of_range(self, value):
        matrix = OptionMatrix()

        with pytest.raises(OutOfRangeError):
            matrix.set_numeric(NumericOption.RAM_DISK, value)

        assert matrix.numeric(NumericOption.RAM_DISK) == 4

    def test_rejects_cores_above_cpu_count(self):
        matrix = OptionMatrix()
        before = matrix.numeric(NumericOption.CORES)

        with pytest.raises(OutOfRangeError):
            matrix.set_numeric(NumericOption.CORES, available_cores() + 1)

        assert matrix.numeric(NumericOption.CORES) == before


class TestFreeze:
    def test_frozen_matrix_rejects_changes(self):
        matrix = OptionMatrix()
        snapshot = matrix.freeze()

        with pytest.raises(MatrixLockedError):
            matrix.set_enabled(ToolchainVersion.MSVC2015, True)
        with pytest.raises(MatrixLockedError):
            matrix.set_numeric(NumericOption.RAM_DISK, 5)

        matrix.unfreeze()
        matrix.set_enabled(ToolchainVersion.MSVC2015, True)

        assert len(snapshot.cells) == 8
        assert len(matrix.snapshot().cells) == 16

    def test_snapshot_is_immutable_view(self):
        matrix = OptionMatrix()
        snapshot = matrix.snapshot()

        matrix.set_numeric(NumericOption.RAM_DISK, 9)

        assert snapshot.value(NumericOption.RAM_DISK) == 4
        assert isinstance(snapshot.cells, tuple)


class TestFromSettings:
    def test_empty_settings_use_defaults(self):
        matrix = OptionMatrix.from_settings([])

        assert set(matrix.enabled_names()) == {option.value for option in DEFAULT_ENABLED}

    def test_persisted_names_replace_defaults(self):
        matrix = OptionMatrix.from_settings(["release", "x64", "static", "MSVC2015"])

        assert matrix.enabled_names() == ["release", "x64", "static", "msvc2015"]

    def test_unknown_names_are_ignored(self):
        matrix = OptionMatrix.from_settings(["release", "arm64", "x86", "shared", "msvc2010"])

        assert matrix.enabled_names() == ["release", "x86", "shared", "msvc2010"]

    def test_numeric_values_applied_or_ignored(self):
        matrix = OptionMatrix.from_settings(
            [],
            {NumericOption.RAM_DISK: 42, NumericOption.CORES: 1},
        )

        assert matrix.numeric(NumericOption.RAM_DISK) == 4
        assert matrix.numeric(NumericOption.CORES) == 1

    def test_enabled_names_round_trip(self):
        matrix = OptionMatrix()
        matrix.set_enabled(ToolchainVersion.MSVC2012, True)

        reloaded = OptionMatrix.from_settings(matrix.enabled_names())

        assert reloaded.enabled_names() == matrix.enabled_names()
