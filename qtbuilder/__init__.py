"""QtBuilder - build matrix runner for native libraries."""

from importlib.metadata import distribution

from qtbuilder.models.build import BuildState, RunResult


__version__ = distribution(__package__ or "qtbuilder").version

__all__ = [
    "BuildState",
    "RunResult",
    "__version__",
]
