# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Codemod passes driven by jscodeshift-style command templates."""

from __future__ import annotations

import shlex
from typing import Final, cast

from pydantic import Field

from ..commands import Command, CommandTemplate, Placeholder
from .base import NODE_INTERPRETER, Tool, ToolContext, ToolOptions

DEFAULT_CODEMOD_TEMPLATE: Final[str] = (
    "${nodeModules}/.bin/jscodeshift -t ${nodeModules}/${npmPackage}/transforms/${transform} ${repoDir} ${codemodArgs}"
)
DEFAULT_SIMPLE_EXECUTABLE: Final[str] = "${nodeModules}/.bin/jscodeshift -t"


class CodemodOptions(ToolOptions):
    """Options for a codemod shipped as an npm package.

    Attributes:
        npm_package: Package providing the transforms, e.g. ``@next/codemod``.
        transform: Transform name below the package's ``transforms`` directory.
        codemod_args: Extra arguments spliced in at ``${codemodArgs}``.
        command_template: Replacement for the default jscodeshift template.
        interpreter: Program the resolved template is handed to.
    """

    npm_package: str = Field(alias="npmPackage")
    transform: str
    codemod_args: tuple[str, ...] = Field(default=(), alias="codemodArgs")
    command_template: str | None = Field(default=None, alias="codemodCommandTemplate")
    interpreter: str = NODE_INTERPRETER


class CodemodTool(Tool):
    """Apply a transform from an npm codemod package to every staged file."""

    name = "codemod"
    description = "Apply a codemod transform shipped in an npm package."
    options_model = CodemodOptions

    def build_commands(self, options: ToolOptions, context: ToolContext) -> list[Command]:
        opts = cast(CodemodOptions, self._options(options))
        template = CommandTemplate.parse(opts.command_template or DEFAULT_CODEMOD_TEMPLATE)
        values = context.placeholder_values(npmPackage=opts.npm_package, transform=opts.transform)
        args = template.resolve(values, extra_args=opts.codemod_args)
        return [Command(args=(opts.interpreter, *args))]


class SimpleCodemodOptions(ToolOptions):
    """Options for a codemod executable invoked directly from ``node_modules``.

    Attributes:
        executable: Script path relative to ``node_modules``; jscodeshift when unset.
        transform: Transform path relative to ``node_modules``.
        file_filter: Glob appended to the repository directory, when supported.
        codemod_args: Extra arguments passed after the repository directory.
        interpreter: Program the resolved command is handed to.
    """

    executable: str | None = None
    transform: str
    file_filter: str | None = Field(default=None, alias="fileFilter")
    codemod_args: tuple[str, ...] = Field(default=(), alias="codemodArgs")
    interpreter: str = NODE_INTERPRETER


class SimpleCodemodTool(Tool):
    """Run an arbitrary codemod executable against the staging directory."""

    name = "simple-codemod"
    description = "Run a codemod executable from the tool distribution."
    options_model = SimpleCodemodOptions

    def build_commands(self, options: ToolOptions, context: ToolContext) -> list[Command]:
        opts = cast(SimpleCodemodOptions, self._options(options))
        executable = (
            DEFAULT_SIMPLE_EXECUTABLE
            if opts.executable is None
            else shlex.quote(f"{Placeholder.NODE_MODULES.token}/{opts.executable}")
        )
        template = CommandTemplate.parse(
            f"{executable} ${{nodeModules}}/${{transform}} ${{repoDir}}${{fileFilter}} ${{codemodArgs}}",
        )
        values = context.placeholder_values(
            transform=opts.transform,
            fileFilter=f"/{opts.file_filter}" if opts.file_filter else "",
        )
        args = template.resolve(values, extra_args=opts.codemod_args)
        return [Command(args=(opts.interpreter, *args))]


__all__ = [
    "DEFAULT_CODEMOD_TEMPLATE",
    "CodemodOptions",
    "CodemodTool",
    "SimpleCodemodOptions",
    "SimpleCodemodTool",
]
