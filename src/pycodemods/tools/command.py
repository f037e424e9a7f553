# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Generic pass running any command template against the stage."""

from __future__ import annotations

from typing import cast

from pydantic import Field, field_validator

from ..commands import Command, CommandTemplate, Placeholder
from ..errors import ConfigurationError
from .base import Tool, ToolContext, ToolOptions


class CommandOptions(ToolOptions):
    """Options accepted by the ``command`` tool.

    Attributes:
        command: Template tokenised with shell quoting rules; placeholders allowed.
        args: Arguments spliced in at ``${codemodArgs}``.
        env: Extra environment variables for the process.
        allow_failure: Accept a non-zero exit status.
        emits_report: Standard output is an ESLint-compatible diagnostics report.
    """

    command: str
    args: tuple[str, ...] = ()
    env: dict[str, str] = Field(default_factory=dict)
    allow_failure: bool = False
    emits_report: bool = False

    @field_validator("command")
    @classmethod
    def _parse(cls, value: str) -> str:
        try:
            CommandTemplate.parse(value)
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc
        return value

    @property
    def template(self) -> CommandTemplate:
        """Return the parsed command template."""

        return CommandTemplate.parse(self.command)


class CommandTool(Tool):
    """Run a user-supplied command in the staging directory."""

    name = "command"
    description = "Run an arbitrary command template in the staging directory."
    options_model = CommandOptions

    def needs_distribution(self, options: ToolOptions) -> bool:
        opts = cast(CommandOptions, self._options(options))
        return Placeholder.NODE_MODULES in opts.template.placeholders()

    def build_commands(self, options: ToolOptions, context: ToolContext) -> list[Command]:
        opts = cast(CommandOptions, self._options(options))
        args = opts.template.resolve(context.placeholder_values(), extra_args=opts.args)
        return [
            Command(
                args=tuple(args),
                env=dict(opts.env),
                allow_failure=opts.allow_failure,
                emits_report=opts.emits_report,
            ),
        ]


__all__ = ["CommandOptions", "CommandTool"]
