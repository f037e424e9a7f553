# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Built-in transformation tools and their registry."""

from __future__ import annotations

import functools

from .base import Tool, ToolContext, ToolOptions, ToolPass
from .codemod import CodemodOptions, CodemodTool, SimpleCodemodOptions, SimpleCodemodTool
from .command import CommandOptions, CommandTool
from .eslint import EslintOptions, EslintTool
from .putout import PutoutOptions, PutoutTool
from .registry import ToolRegistry


def register_builtin_tools(registry: ToolRegistry) -> ToolRegistry:
    """Register every built-in tool on ``registry`` and return it."""

    for tool in (EslintTool(), CodemodTool(), SimpleCodemodTool(), PutoutTool(), CommandTool()):
        registry.register(tool)
    return registry


@functools.cache
def default_registry() -> ToolRegistry:
    """Return the process-wide registry of built-in tools."""

    return register_builtin_tools(ToolRegistry())


__all__ = [
    "CodemodOptions",
    "CodemodTool",
    "CommandOptions",
    "CommandTool",
    "EslintOptions",
    "EslintTool",
    "PutoutOptions",
    "PutoutTool",
    "SimpleCodemodOptions",
    "SimpleCodemodTool",
    "Tool",
    "ToolContext",
    "ToolOptions",
    "ToolPass",
    "ToolRegistry",
    "default_registry",
    "register_builtin_tools",
]
