"""Load BurrowConfig from burrow.yaml / burrow.toml if present.

Merges file config with keyword overrides. Overrides take precedence.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import yaml

from burrow._errors import ConfigError
from burrow.config import BurrowConfig

_FILE_KEYS: frozenset[str] = frozenset({
    "verbose",
    "hot_reload",
    "app_dir",
    "swap_granularity",
    "debounce",
})


def load_config(directory: Path, **overrides: object) -> BurrowConfig:
    """Load BurrowConfig for *directory*, optionally merging a config file.

    Looks for burrow.yaml, burrow.yml, or burrow.toml in *directory*.
    Keys may sit at the top level or under a ``burrow`` section.

    Raises:
        ConfigError: If the config file is malformed or has invalid values.

    """
    file_config = _read_burrow_config(directory)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    try:
        return BurrowConfig(directory=directory, **merged)  # type: ignore[arg-type]
    except TypeError as exc:
        msg = f"Invalid burrow configuration: {exc}"
        raise ConfigError(msg) from exc


def _read_burrow_config(directory: Path) -> dict[str, object]:
    """Read burrow config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("burrow.yaml", "burrow.yml"):
        path = directory / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = directory / "burrow.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        msg = f"Cannot parse {path}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_burrow_section(data, path)


def _parse_toml(path: Path) -> dict[str, object]:
    try:
        data = tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        msg = f"Cannot parse {path}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_burrow_section(data, path)


def _flatten_burrow_section(data: object, path: Path) -> dict[str, object]:
    """Extract burrow.* keys into top-level config, ignoring unknown keys."""
    if not isinstance(data, dict):
        msg = f"{path} must contain a mapping, got {type(data).__name__}"
        raise ConfigError(msg)

    result: dict[str, object] = {}
    section = data.get("burrow")
    if isinstance(section, dict):
        result.update({k: v for k, v in section.items() if k in _FILE_KEYS})
    for k, v in data.items():
        if k != "burrow" and k in _FILE_KEYS:
            result[k] = v
    return result
