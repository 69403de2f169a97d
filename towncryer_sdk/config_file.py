"""``towncryer.yaml`` discovery and parsing.

A config file holds the same keys :meth:`TowncryerConfig.from_mapping` accepts,
either at the top level or under a ``towncryer:`` block (useful when the file
is shared with other tools). Keys in the block win over top-level keys.
Credentials can point at the environment with ``env:NAME``.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import TowncryerSDKError
from .utils import resolve_env_reference

DEFAULT_CONFIG_FILENAMES = (
    "towncryer.yaml",
    "towncryer.yml",
    ".towncryer.yaml",
    ".towncryer.yml",
)
SECTION = "towncryer"


class ConfigFileNotFoundError(FileNotFoundError):
    """Raised when a config path is supplied but not found."""


class ConfigFileError(TowncryerSDKError):
    """Raised when a config file is not a YAML mapping."""


@dataclass(slots=True)
class ConfigFile:
    """Settings read from ``path`` with the ``towncryer:`` block merged in."""

    path: Path
    settings: dict[str, Any]

    def as_mapping(self) -> dict[str, Any]:
        return dict(self.settings)


def find_config_file(path: str | Path | None = None) -> Path | None:
    if path:
        explicit = Path(path)
        if not explicit.is_file():
            raise ConfigFileNotFoundError(f"Config file not found at {explicit}")
        return explicit
    return next((Path(name) for name in DEFAULT_CONFIG_FILENAMES if Path(name).is_file()), None)


def load_config_file(path: str | Path | None = None) -> ConfigFile | None:
    """Load ``path``, or the first default candidate in the working directory."""
    source = find_config_file(path)
    if source is None:
        return None

    with source.open(encoding="utf-8") as handle:
        document = yaml.safe_load(handle)
    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise ConfigFileError(f"{source} must contain a mapping, not {type(document).__name__}")

    section = document.get(SECTION)
    settings = {key: value for key, value in document.items() if key != SECTION}
    if isinstance(section, dict):
        settings.update(section)
    return ConfigFile(source, _expand_env(settings))


def _expand_env(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    return resolve_env_reference(value)
