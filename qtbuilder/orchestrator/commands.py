"""Render the external build command of a matrix cell."""

import logging
import string
from dataclasses import dataclass
from pathlib import Path

from qtbuilder.core.errors import CommandTemplateError
from qtbuilder.models.build import BuildCell


logger = logging.getLogger(__name__)

PLACEHOLDERS = frozenset(
    {
        "toolchain",
        "toolchain_version",
        "arch",
        "linkage",
        "configuration",
        "jobs",
        "source",
        "target",
        "prefix",
        "version",
        "scratch",
        "cell",
    }
)


@dataclass(frozen=True)
class BuildContext:
    """Run-wide values available to the command template."""

    source: Path
    target: Path
    version: str
    jobs: int
    scratch: Path


class BuildCommandFactory:
    """Expand a command template once per cell.

    Each template argument is a ``str.format`` string; see ``PLACEHOLDERS``
    for the available names. ``prefix`` is ``<target>/<version>/<cell>``.
    """

    def __init__(self, template: list[str]) -> None:
        self.template = list(template)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def validate(self) -> None:
        """Check the template only uses known placeholders.

        Raises:
            CommandTemplateError: On unknown placeholders or malformed arguments
        """
        formatter = string.Formatter()
        for arg in self.template:
            try:
                fields = [name for _, name, _, _ in formatter.parse(arg) if name is not None]
            except ValueError as e:
                raise CommandTemplateError(f"Malformed command argument {arg!r}: {e}") from e
            unknown = {name for name in fields if name not in PLACEHOLDERS}
            if unknown:
                raise CommandTemplateError(
                    f"Unknown placeholder(s) {', '.join(sorted(unknown))} in {arg!r}",
                    {"argument": arg},
                )

    def variables(self, cell: BuildCell, context: BuildContext) -> dict[str, str]:
        return {
            "toolchain": cell.toolchain.value,
            "toolchain_version": cell.toolchain.vs_version,
            "arch": cell.architecture.value,
            "linkage": cell.linkage.value,
            "configuration": cell.configuration.value,
            "jobs": str(context.jobs),
            "source": str(context.source),
            "target": str(context.target),
            "prefix": str(context.target / context.version / cell.name),
            "version": context.version,
            "scratch": str(context.scratch),
            "cell": cell.name,
        }

    def render(self, cell: BuildCell, context: BuildContext) -> list[str]:
        variables = self.variables(cell, context)
        command = [arg.format(**variables) for arg in self.template]
        self.logger.debug("Command for %s: %s", cell.name, command)
        return command
