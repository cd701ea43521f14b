"""Burrow configuration.

BurrowConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path

from burrow._errors import ConfigError
from burrow._types import Logger, SwapGranularity
from burrow.banner import console

_GRANULARITIES: frozenset[str] = frozenset({"file", "export"})


@dataclass(frozen=True, slots=True)
class BurrowConfig:
    """Configuration for a Burrow application.

    Attributes:
        directory: Project directory that contains the ``app/`` subtree.
            Always resolved to an absolute path on construction.
        verbose: Print the route table and progress while loading.
        hot_reload: Watch loaded modules and swap handlers on change.
        logger: Sink for diagnostic lines (defaults to stderr).
        app_dir: Name of the app root directory inside *directory*.
        swap_granularity: ``"file"`` replaces every export of a changed file;
            ``"export"`` replaces only exports whose source changed.
        debounce: Watcher debounce window in milliseconds.

    """

    directory: Path = field(default_factory=Path.cwd)
    verbose: bool = False
    hot_reload: bool = False
    logger: Logger = console
    app_dir: str = "app"
    swap_granularity: SwapGranularity = "file"
    debounce: int = 50

    def __post_init__(self) -> None:
        if not isinstance(self.directory, Path):
            object.__setattr__(self, "directory", Path(self.directory))
        # watchfiles reports absolute paths; keep everything comparable.
        if not self.directory.is_absolute():
            object.__setattr__(self, "directory", self.directory.resolve())

        if self.swap_granularity not in _GRANULARITIES:
            msg = (
                f"swap_granularity must be one of {sorted(_GRANULARITIES)}, "
                f"got {self.swap_granularity!r}"
            )
            raise ConfigError(msg)
        if not self.app_dir or "/" in self.app_dir or "\\" in self.app_dir:
            msg = f"app_dir must be a single directory name, got {self.app_dir!r}"
            raise ConfigError(msg)
        if self.debounce < 0:
            msg = f"debounce must be >= 0, got {self.debounce}"
            raise ConfigError(msg)
        if not callable(self.logger):
            msg = f"logger must be callable, got {type(self.logger).__name__}"
            raise ConfigError(msg)

    @property
    def app_path(self) -> Path:
        """Absolute path to the app root directory."""
        return self.directory / self.app_dir
