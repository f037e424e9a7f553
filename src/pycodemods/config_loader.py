# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Layered configuration loading from defaults, ``pyproject.toml`` and ``.pycodemods.toml``."""

from __future__ import annotations

import os
import re
import tomllib
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Final

from pydantic import ValidationError

from .config import Config, ConfigError

PROJECT_CONFIG_NAME: Final[str] = ".pycodemods.toml"
PYPROJECT_NAME: Final[str] = "pyproject.toml"
PYPROJECT_TOOL_KEY: Final[str] = "tool"
PYPROJECT_SECTION_KEY: Final[str] = "pycodemods"
_ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$(\w+)|\$\{([^}]+)\}")
_PATH_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    ("staging", "work_dir"),
    ("distribution", "source"),
    ("distribution", "cache_dir"),
    ("distribution", "support_dir"),
)


class DefaultConfigSource:
    """Built-in defaults, the lowest layer of every configuration."""

    name = "defaults"

    def load(self) -> Mapping[str, Any]:
        return Config().to_dict()


class TomlConfigSource:
    """Load configuration data from a TOML document, expanding environment variables.

    ``$VAR`` and ``${VAR}`` references in strings are replaced from ``env``;
    unknown variables are left verbatim so command placeholders such as
    ``${nodeModules}`` survive.
    """

    def __init__(self, path: Path, *, name: str | None = None, env: Mapping[str, str] | None = None) -> None:
        self._path = path
        self.name = name or str(path)
        self._env = env if env is not None else os.environ

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Mapping[str, Any]:
        """Return the document, or an empty mapping when the file is absent.

        Raises:
            ConfigError: If the file is not valid TOML.
        """

        if not self._path.exists():
            return {}
        try:
            with self._path.open("rb") as handle:
                data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {self._path}: {exc}") from exc
        return _expand_env(self._select(data), self._env)

    def _select(self, data: Mapping[str, Any]) -> Mapping[str, Any]:
        return data


class PyProjectConfigSource(TomlConfigSource):
    """Read configuration from ``[tool.pycodemods]`` within ``pyproject.toml``."""

    def _select(self, data: Mapping[str, Any]) -> Mapping[str, Any]:
        tool_section = data.get(PYPROJECT_TOOL_KEY)
        if not isinstance(tool_section, Mapping):
            return {}
        section = tool_section.get(PYPROJECT_SECTION_KEY)
        if not isinstance(section, Mapping):
            return {}
        return section


class ConfigLoader:
    """Merge configuration fragments from several sources, later sources winning."""

    def __init__(self, *, project_root: Path, sources: Sequence[DefaultConfigSource | TomlConfigSource]) -> None:
        if not sources:
            raise ValueError("at least one configuration source is required")
        self._project_root = project_root.resolve()
        self._sources = list(sources)

    @classmethod
    def for_root(cls, project_root: Path, *, config_file: Path | None = None) -> ConfigLoader:
        """Build a loader for ``project_root``.

        Precedence, lowest first: defaults, ``[tool.pycodemods]`` in
        ``pyproject.toml``, then ``.pycodemods.toml`` (or ``config_file``).

        Args:
            project_root: Directory used to discover configuration files.
            config_file: Explicit replacement for ``.pycodemods.toml``.

        Returns:
            ConfigLoader: Loader with the default source ordering.

        Raises:
            ConfigError: If an explicit ``config_file`` does not exist.
        """

        root = project_root.resolve()
        if config_file is not None and not config_file.is_file():
            raise ConfigError(f"Configuration file not found: {config_file}")
        project_file = config_file if config_file is not None else root / PROJECT_CONFIG_NAME
        return cls(
            project_root=root,
            sources=[
                DefaultConfigSource(),
                PyProjectConfigSource(root / PYPROJECT_NAME),
                TomlConfigSource(project_file),
            ],
        )

    def load(self) -> Config:
        """Return the merged and validated configuration.

        Raises:
            ConfigError: If a source is malformed or the merged data is invalid.
        """

        merged: dict[str, Any] = {}
        for source in self._sources:
            if fragment := source.load():
                merged = _deep_merge(merged, fragment)
        try:
            config = Config.model_validate(merged)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc
        return self._resolve_paths(config)

    def _resolve_paths(self, config: Config) -> Config:
        for section_name, field_name in _PATH_FIELDS:
            section = getattr(config, section_name)
            value = getattr(section, field_name)
            if isinstance(value, Path) and not value.is_absolute():
                setattr(section, field_name, self._project_root / value)
        return config


def load_config(project_root: Path, *, config_file: Path | None = None) -> Config:
    """Return the validated configuration of the tree at ``project_root``."""

    return ConfigLoader.for_root(project_root, config_file=config_file).load()


def _deep_merge(lower: Mapping[str, Any], upper: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay ``upper`` on ``lower``; nested tables merge, everything else is replaced."""

    merged = dict(lower)
    for name, incoming in upper.items():
        current = merged.get(name)
        both_tables = isinstance(current, Mapping) and isinstance(incoming, Mapping)
        merged[name] = _deep_merge(current, incoming) if both_tables else incoming
    return merged


def _expand_env(value: Any, env: Mapping[str, str]) -> Any:
    """Substitute known environment variables in every string of a TOML fragment."""

    if isinstance(value, str):
        return _ENV_VAR_PATTERN.sub(lambda found: env.get(found.group(1) or found.group(2), found.group(0)), value)
    if isinstance(value, Mapping):
        return {name: _expand_env(item, env) for name, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item, env) for item in value]
    return value


__all__ = [
    "ConfigLoader",
    "DefaultConfigSource",
    "PROJECT_CONFIG_NAME",
    "PyProjectConfigSource",
    "TomlConfigSource",
    "load_config",
]
