"""Build option identifiers, axes and numeric ranges."""

import os
from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias


class ToolchainVersion(str, Enum):
    """Visual Studio toolchains a library can be built with."""

    MSVC2010 = "msvc2010"
    MSVC2012 = "msvc2012"
    MSVC2013 = "msvc2013"
    MSVC2015 = "msvc2015"

    @property
    def vs_version(self) -> str:
        """Internal Visual Studio version number (e.g. "12.0" for MSVC2013)."""
        return _VS_VERSIONS[self]


_VS_VERSIONS = {
    ToolchainVersion.MSVC2010: "10.0",
    ToolchainVersion.MSVC2012: "11.0",
    ToolchainVersion.MSVC2013: "12.0",
    ToolchainVersion.MSVC2015: "14.0",
}


class Architecture(str, Enum):
    X86 = "x86"
    X64 = "x64"


class LinkageType(str, Enum):
    SHARED = "shared"
    STATIC = "static"


class Configuration(str, Enum):
    DEBUG = "debug"
    RELEASE = "release"


BuildOption: TypeAlias = ToolchainVersion | Architecture | LinkageType | Configuration


class Axis(str, Enum):
    """Independent dimensions of the build matrix.

    Declaration order is the iteration order of the matrix, outermost first.
    """

    CONFIGURATION = "configuration"
    ARCHITECTURE = "architecture"
    LINKAGE = "linkage"
    TOOLCHAIN = "toolchain"

    @property
    def option_type(self) -> type[BuildOption]:
        return _AXIS_TYPES[self]

    @classmethod
    def of(cls, option: BuildOption) -> "Axis":
        """Return the axis an option belongs to."""
        for axis, option_type in _AXIS_TYPES.items():
            if isinstance(option, option_type):
                return axis
        raise TypeError(f"Not a build option: {option!r}")


_AXIS_TYPES: dict[Axis, type[BuildOption]] = {
    Axis.CONFIGURATION: Configuration,
    Axis.ARCHITECTURE: Architecture,
    Axis.LINKAGE: LinkageType,
    Axis.TOOLCHAIN: ToolchainVersion,
}

ALL_OPTIONS: tuple[BuildOption, ...] = tuple(
    option for axis in Axis for option in axis.option_type
)

# Options enabled when the settings store has no opinion
DEFAULT_ENABLED: frozenset[BuildOption] = frozenset(
    {
        ToolchainVersion.MSVC2013,
        LinkageType.SHARED,
        LinkageType.STATIC,
        Architecture.X86,
        Architecture.X64,
        Configuration.DEBUG,
        Configuration.RELEASE,
    }
)


def parse_option(name: str) -> BuildOption:
    """Resolve an option from its value ("msvc2013") or member name ("MSVC2013")."""
    key = name.strip().lower()
    for option in ALL_OPTIONS:
        if option.value == key or option.name.lower() == key:
            return option
    raise ValueError(f"Unknown build option: {name}")


class NumericOption(str, Enum):
    RAM_DISK = "ram_disk"
    CORES = "cores"


@dataclass(frozen=True)
class NumericRange:
    """Closed inclusive range a numeric option must lie in."""

    minimum: int
    maximum: int

    def __contains__(self, value: object) -> bool:
        return isinstance(value, int) and self.minimum <= value <= self.maximum


def available_cores() -> int:
    return os.cpu_count() or 1


def default_numeric_ranges() -> dict[NumericOption, NumericRange]:
    return {
        NumericOption.RAM_DISK: NumericRange(3, 10),
        NumericOption.CORES: NumericRange(1, available_cores()),
    }


def default_numeric_values() -> dict[NumericOption, int]:
    return {
        NumericOption.RAM_DISK: 4,
        NumericOption.CORES: max(available_cores() - 1, 1),
    }
