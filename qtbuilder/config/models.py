"""User configuration models."""

import sys
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from qtbuilder.utils.xdg import get_default_app_log_path


ScratchBackendName = Literal["tmpfs", "imdisk", "directory"]

_WINDOWS = sys.platform == "win32"


def _default_source_path() -> Path:
    if _WINDOWS:
        return Path("C:/Qt/4.8.7")
    return Path.home() / "src" / "qt-4.8.7"


def _default_build_command() -> list[str]:
    if _WINDOWS:
        return [
            "cmd",
            "/c",
            "{source}\\qtbuild.bat",
            "{toolchain_version}",
            "{arch}",
            "{linkage}",
            "{configuration}",
            "{jobs}",
            "{prefix}",
        ]
    return [
        "{source}/qtbuild.sh",
        "--toolchain={toolchain}",
        "--arch={arch}",
        "--linkage={linkage}",
        "--config={configuration}",
        "--jobs={jobs}",
        "--prefix={prefix}",
    ]


DEFAULT_INFORMAL_PATTERNS = [
    r"^(info|note|notice)\b",
    r"^(configuring|creating|generating|building|running|copying|installing)\b",
    r"^--\s",
]


class UserConfigData(BaseSettings):
    """User configuration data model with automatic environment variable support.

    Precedence order (highest to lowest):
    1. Environment variables (QTBUILDER_*)
    2. Constructor arguments (file data)
    3. .env file
    4. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="QTBUILDER_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Return sources in priority order: env > init > dotenv > file_secret."""
        return (
            env_settings,
            init_settings,
            dotenv_settings,
            file_secret_settings,
        )

    # Library sources and build output
    source_path: Path = Field(
        default_factory=_default_source_path,
        description="Root of the library source tree",
    )
    target_path: Path = Field(
        default_factory=lambda: _default_source_path() / "builds",
        description="Directory receiving the built libraries",
    )
    library_version: str = Field(
        default="4.8.7", description="Version string of the library sources"
    )
    configure_marker: str = Field(
        default="configure.exe" if _WINDOWS else "configure",
        description="File that must exist in the source tree before a build starts",
    )

    # Build matrix
    build_options: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Names of enabled build options (e.g. 'msvc2013', 'x64')",
    )
    ram_disk_size: int | None = Field(
        default=None, description="Scratch volume size in GiB (3..10)"
    )
    cores: int | None = Field(
        default=None, description="Parallel jobs passed to the build step"
    )

    # External build step
    build_command: list[str] = Field(
        default_factory=_default_build_command,
        description="Command template run once per matrix cell",
    )
    informal_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_INFORMAL_PATTERNS),
        description="Regexes marking stdout lines copied to the app log as notices",
    )
    poll_interval: float = Field(
        default=0.1, gt=0, description="Seconds between cancellation checks"
    )

    # Scratch volume
    scratch_backend: ScratchBackendName = Field(
        default="imdisk" if _WINDOWS else "tmpfs",
        description="How the scratch volume is created",
    )
    scratch_mount_point: str | None = Field(
        default=None,
        description="Drive letter (imdisk) or directory (tmpfs/directory)",
    )

    # Logs
    log_level: str = "WARNING"
    app_log_path: Path = Field(default_factory=get_default_app_log_path)
    build_log_dir: Path | None = Field(
        default=None, description="Build transcripts directory (default: <target>/logs)"
    )

    # Opaque state kept for graphical front ends
    window_geometry: str | None = None

    @field_validator("build_options", mode="before")
    @classmethod
    def decode_build_options(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        if isinstance(v, list | tuple | set):
            return [str(item).strip() for item in v if str(item).strip()]
        return []

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a recognized value."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper_v = v.strip().upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return upper_v

    @field_validator("build_command")
    @classmethod
    def validate_build_command(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("Build command must not be empty")
        return v

    def resolved_build_log_dir(self) -> Path:
        return self.build_log_dir or self.target_path / "logs"
