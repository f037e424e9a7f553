# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Definitions shared by every transformation tool."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Final

from pydantic import BaseModel, ConfigDict, ValidationError

from ..commands import REPO_DIR_VALUE, Command, Placeholder
from ..errors import ConfigurationError
from ..resources import NODE_MODULES_DIR

NODE_INTERPRETER: Final[str] = "node"


class ToolContext(BaseModel):
    """Runtime context made available when resolving a pass's commands."""

    model_config = ConfigDict(frozen=True)

    stage_dir: Path
    work_dir: Path
    parser: str = "babel"
    tool_root: Path | None = None
    support_dir: Path | None = None

    @property
    def node_modules(self) -> Path | None:
        """Return the distribution's ``node_modules`` directory when one is staged."""

        if self.tool_root is None:
            return None
        return self.tool_root / NODE_MODULES_DIR

    def placeholder_values(self, **extra: str | None) -> dict[Placeholder, str]:
        """Return values for the placeholders this context can resolve.

        Args:
            **extra: Additional values keyed by :class:`Placeholder` value, such
                as ``transform`` or ``npmPackage``. ``None`` entries are ignored.

        Returns:
            dict[Placeholder, str]: Placeholder values; ``nodeModules`` is
            absent when no distribution is staged.
        """

        values: dict[Placeholder, str] = {
            Placeholder.REPO_DIR: REPO_DIR_VALUE,
            Placeholder.PARSER: self.parser,
        }
        if self.node_modules is not None:
            values[Placeholder.NODE_MODULES] = str(self.node_modules)
        for key, value in extra.items():
            if value is not None:
                values[Placeholder(key)] = value
        return values


class ToolOptions(BaseModel):
    """Base class for the options a pass entry supplies to its tool."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class Tool(ABC):
    """A transformation tool able to turn options into commands.

    Subclasses declare a unique :attr:`name`, the options model used to
    validate configuration entries, and implement :meth:`build_commands`.
    """

    name: ClassVar[str]
    description: ClassVar[str] = ""
    options_model: ClassVar[type[ToolOptions]] = ToolOptions

    def parse_options(self, raw: Mapping[str, object]) -> ToolOptions:
        """Validate ``raw`` into this tool's options model.

        Args:
            raw: Options from a pass entry, without the ``tool`` key.

        Returns:
            ToolOptions: Validated options.

        Raises:
            ConfigurationError: If validation fails.
        """

        try:
            return self.options_model.model_validate(dict(raw))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid options for tool '{self.name}': {exc}") from exc

    def needs_distribution(self, options: ToolOptions) -> bool:
        """Return whether the tool distribution must be staged before the pass runs."""

        del options
        return True

    @abstractmethod
    def build_commands(self, options: ToolOptions, context: ToolContext) -> list[Command]:
        """Return the commands to execute, in order, for one pass.

        An empty list means the pass stages and forwards the tree without
        executing anything.
        """

    def _options(self, options: ToolOptions) -> ToolOptions:
        if not isinstance(options, self.options_model):
            raise ConfigurationError(
                f"Tool '{self.name}' expects {self.options_model.__name__}, got {type(options).__name__}",
            )
        return options


@dataclass(frozen=True, slots=True)
class ToolPass:
    """A tool paired with the validated options of one configured pass."""

    tool: Tool
    options: ToolOptions

    @property
    def name(self) -> str:
        """Return the tool name."""

        return self.tool.name

    @property
    def needs_distribution(self) -> bool:
        """Return whether this pass requires the staged distribution."""

        return self.tool.needs_distribution(self.options)

    def commands(self, context: ToolContext) -> list[Command]:
        """Return the pass's commands resolved against ``context``."""

        return self.tool.build_commands(self.options, context)


__all__ = ["NODE_INTERPRETER", "Tool", "ToolContext", "ToolOptions", "ToolPass"]
