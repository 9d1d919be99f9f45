"""Build option matrix: four boolean axes plus bounded numeric options."""

import itertools
import logging
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

from qtbuilder.core.errors import EmptyAxisError, MatrixLockedError, OutOfRangeError
from qtbuilder.models.build import BuildCell
from qtbuilder.models.options import (
    ALL_OPTIONS,
    DEFAULT_ENABLED,
    Axis,
    BuildOption,
    NumericOption,
    NumericRange,
    default_numeric_ranges,
    default_numeric_values,
    parse_option,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatrixSnapshot:
    """Immutable view of the matrix taken when a run starts."""

    cells: tuple[BuildCell, ...]
    numeric: Mapping[NumericOption, int]

    def value(self, option: NumericOption) -> int:
        return self.numeric[option]


class OptionMatrix:
    """Enabled flags per axis and bounded numeric options.

    All mutation is serialized by one lock. While a build runs the matrix
    is frozen and setters raise ``MatrixLockedError``; the build itself
    only reads the ``MatrixSnapshot`` taken at start.
    """

    def __init__(
        self,
        enabled: Iterable[BuildOption] = DEFAULT_ENABLED,
        numeric: Mapping[NumericOption, int] | None = None,
        ranges: Mapping[NumericOption, NumericRange] | None = None,
    ) -> None:
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._lock = threading.RLock()
        self._frozen = False

        enabled_set = set(enabled)
        self._axes: dict[Axis, dict[BuildOption, bool]] = {
            axis: {option: option in enabled_set for option in axis.option_type}
            for axis in Axis
        }

        self._ranges = dict(ranges or default_numeric_ranges())
        self._numeric = default_numeric_values()
        for option, value in (numeric or {}).items():
            self.set_numeric(option, value)

    @classmethod
    def from_settings(
        cls,
        enabled_names: Iterable[str],
        numeric: Mapping[NumericOption, int | None] | None = None,
    ) -> "OptionMatrix":
        """Build a matrix from persisted settings.

        A non-empty list of persisted names replaces the defaults; without
        one the defaults apply. Unknown names and out-of-range numbers are
        logged and ignored so a stale settings file never blocks start-up.
        """
        enabled: set[BuildOption] = set()
        for name in enabled_names:
            try:
                enabled.add(parse_option(name))
            except ValueError:
                logger.warning("Ignoring unknown persisted build option: %s", name)

        matrix = cls(enabled=enabled or DEFAULT_ENABLED)
        for option, value in (numeric or {}).items():
            if value is None:
                continue
            try:
                matrix.set_numeric(option, value)
            except OutOfRangeError as e:
                logger.warning("Ignoring persisted value: %s", e.message)
        return matrix

    # ---- boolean axes ----

    def set_enabled(self, option: BuildOption, enabled: bool) -> None:
        """Enable or disable one option.

        Raises:
            MatrixLockedError: While a build holds the matrix frozen
        """
        with self._lock:
            self._ensure_mutable()
            self._axes[Axis.of(option)][option] = enabled
        self.logger.debug("Option %s set to %s", option.value, enabled)

    def is_enabled(self, option: BuildOption) -> bool:
        with self._lock:
            return self._axes[Axis.of(option)][option]

    def enabled(self, axis: Axis) -> list[BuildOption]:
        """Enabled options of one axis, in declaration order."""
        with self._lock:
            return [option for option, on in self._axes[axis].items() if on]

    def enabled_names(self) -> list[str]:
        """Names of every enabled option, in persisted form."""
        with self._lock:
            return [
                option.value
                for option in ALL_OPTIONS
                if self._axes[Axis.of(option)][option]
            ]

    def validate(self) -> None:
        """Check every axis has at least one enabled option.

        Raises:
            EmptyAxisError: Naming all empty axes
        """
        empty = [axis.value for axis in Axis if not self.enabled(axis)]
        if empty:
            raise EmptyAxisError(empty)

    def enabled_combinations(self) -> Iterator[BuildCell]:
        """Lazily yield every enabled cell.

        Order is fixed: configuration (outer), architecture, linkage,
        toolchain (inner), each axis in declaration order.
        """
        with self._lock:
            axes = [self.enabled(axis) for axis in Axis]
        for configuration, architecture, linkage, toolchain in itertools.product(*axes):
            yield BuildCell(
                configuration=configuration,  # type: ignore[arg-type]
                architecture=architecture,  # type: ignore[arg-type]
                linkage=linkage,  # type: ignore[arg-type]
                toolchain=toolchain,  # type: ignore[arg-type]
            )

    # ---- numeric options ----

    def range_of(self, option: NumericOption) -> NumericRange:
        return self._ranges[option]

    def numeric(self, option: NumericOption) -> int:
        with self._lock:
            return self._numeric[option]

    def set_numeric(self, option: NumericOption, value: int) -> None:
        """Assign a numeric option.

        Raises:
            OutOfRangeError: If ``value`` is outside the option's range; the
                stored value is left unchanged
            MatrixLockedError: While a build holds the matrix frozen
        """
        bounds = self._ranges[option]
        if isinstance(value, bool) or value not in bounds:
            raise OutOfRangeError(option.value, value, bounds.minimum, bounds.maximum)
        with self._lock:
            self._ensure_mutable()
            self._numeric[option] = value
        self.logger.debug("Numeric option %s set to %d", option.value, value)

    # ---- run lifecycle ----

    @property
    def frozen(self) -> bool:
        with self._lock:
            return self._frozen

    def freeze(self) -> MatrixSnapshot:
        """Freeze the matrix and return the snapshot a run works from."""
        with self._lock:
            self._frozen = True
            return self.snapshot()

    def unfreeze(self) -> None:
        with self._lock:
            self._frozen = False

    def snapshot(self) -> MatrixSnapshot:
        with self._lock:
            return MatrixSnapshot(
                cells=tuple(self.enabled_combinations()),
                numeric=dict(self._numeric),
            )

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise MatrixLockedError("Build options cannot change while a build runs")
