# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tool registry providing discovery by name."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Final

from ..errors import ConfigurationError
from .base import Tool, ToolPass

TOOL_KEY: Final[str] = "tool"


class ToolRegistry(Mapping[str, Tool]):
    """Central registry of tool builders.

    ``ToolRegistry`` behaves like a read-only mapping whose keys are tool names
    and whose values are :class:`Tool` instances, in registration order.
    """

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register ``tool`` enforcing uniqueness by name.

        Raises:
            ValueError: If a tool with the same name is already registered.
        """

        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = tool

    def try_get(self, name: str) -> Tool | None:
        """Return the tool named ``name`` when registered, otherwise ``None``."""

        return self._tools.get(name)

    def tools(self) -> Iterable[Tool]:
        """Return all registered tools in registration order."""

        return tuple(self._tools.values())

    def configure(self, entry: Mapping[str, object]) -> ToolPass:
        """Build a :class:`ToolPass` from a pass entry such as ``{"tool": "putout", "rules": [...]}``.

        Args:
            entry: Pass entry naming the tool under ``tool``.

        Returns:
            ToolPass: Tool paired with its validated options.

        Raises:
            ConfigurationError: If the tool is unknown or its options are invalid.
        """

        name = entry.get(TOOL_KEY)
        if not isinstance(name, str) or not name:
            raise ConfigurationError("Pass entry is missing the 'tool' key")
        tool = self.try_get(name)
        if tool is None:
            known = ", ".join(sorted(self._tools)) or "<none>"
            raise ConfigurationError(f"Unknown tool '{name}'. Available tools: {known}")
        options = tool.parse_options({key: value for key, value in entry.items() if key != TOOL_KEY})
        return ToolPass(tool=tool, options=options)

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __getitem__(self, name: str) -> Tool:
        return self._tools[name]


__all__ = ["TOOL_KEY", "ToolRegistry"]
