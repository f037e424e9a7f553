# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models for pycodemods runs."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigurationError
from .process import DEFAULT_TIMEOUT
from .tools import ToolPass, ToolRegistry, default_registry
from .tracking import ChangeDetection


class ConfigError(ConfigurationError):
    """Raised when configuration input is invalid."""


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class RunnerConfig(_Section):
    """Process execution settings."""

    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    env: dict[str, str] = Field(default_factory=dict)


class StagingConfig(_Section):
    """Where passes stage the tree and how changes are detected."""

    work_dir: Path | None = None
    change_detection: ChangeDetection = ChangeDetection.MTIME
    keep: bool = False


class DistributionConfig(_Section):
    """Location of the bundled Node tool distribution.

    Attributes:
        source: Directory or tar archive containing ``node_modules``.
        cache_dir: Directory where extracted copies are reused across runs.
        support_dir: Directory with driver scripts such as ``eslint-driver.js``;
            the drivers shipped with the package are used when unset.
    """

    source: Path | None = None
    cache_dir: Path | None = None
    support_dir: Path | None = None


class DiscoveryConfig(_Section):
    """How the tree is loaded from disk."""

    excludes: list[str] = Field(default_factory=list)
    charset: str | None = None


class OutputConfig(_Section):
    """Console presentation preferences."""

    emoji: bool = True
    color: bool = True
    show_annotations: bool = True


class Config(_Section):
    """Top-level configuration for a run."""

    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    staging: StagingConfig = Field(default_factory=StagingConfig)
    distribution: DistributionConfig = Field(default_factory=DistributionConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    passes: list[dict[str, Any]] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible dump of the configuration."""

        return self.model_dump(mode="json")

    def tool_passes(self, registry: ToolRegistry | None = None) -> list[ToolPass]:
        """Validate every pass entry against its tool.

        Args:
            registry: Registry to resolve tool names; the built-in one by default.

        Returns:
            list[ToolPass]: Passes in configured order.

        Raises:
            ConfigurationError: If a pass names an unknown tool or has invalid options.
        """

        active = registry or default_registry()
        return [active.configure(entry) for entry in self.passes]


__all__ = [
    "Config",
    "ConfigError",
    "DiscoveryConfig",
    "DistributionConfig",
    "OutputConfig",
    "RunnerConfig",
    "StagingConfig",
]
