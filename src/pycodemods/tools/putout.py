# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Putout pass: optionally narrow the enabled rules, then apply fixes."""

from __future__ import annotations

from typing import Final, cast

from pydantic import field_validator

from ..commands import Command, CommandTemplate, Placeholder
from .base import Tool, ToolContext, ToolOptions

DEFAULT_PUTOUT_EXECUTABLE: Final[str] = "${nodeModules}/.bin/putout"


class PutoutOptions(ToolOptions):
    """Options accepted by the ``putout`` tool.

    Attributes:
        rules: Rules to enable exclusively; every rule stays active when unset.
        executable: Putout entry point template.
    """

    rules: tuple[str, ...] | None = None
    executable: str = DEFAULT_PUTOUT_EXECUTABLE

    @field_validator("rules")
    @classmethod
    def _dedupe(cls, value: tuple[str, ...] | None) -> tuple[str, ...] | None:
        if value is None:
            return None
        return tuple(dict.fromkeys(value))


class PutoutTool(Tool):
    """Run Putout against the staging directory."""

    name = "putout"
    description = "Run Putout, optionally restricted to a set of rules, and apply its fixes."
    options_model = PutoutOptions

    def build_commands(self, options: ToolOptions, context: ToolContext) -> list[Command]:
        """Return the rule-selection commands followed by the fixing run.

        ``--disable-all`` exits non-zero after rewriting the configuration, so
        that command is allowed to fail.
        """

        opts = cast(PutoutOptions, self._options(options))
        executable = CommandTemplate.parse(f"{opts.executable} {Placeholder.REPO_DIR.token}")
        head = tuple(executable.resolve(context.placeholder_values()))

        def command(*args: str, allow_failure: bool = False) -> Command:
            return Command(args=(*head, *args), allow_failure=allow_failure)

        commands: list[Command] = []
        if opts.rules is not None:
            commands.append(command("--disable-all", allow_failure=True))
            commands.extend(command("--enable", rule) for rule in opts.rules)
        commands.append(command("--fix"))
        return commands


__all__ = ["DEFAULT_PUTOUT_EXECUTABLE", "PutoutOptions", "PutoutTool"]
