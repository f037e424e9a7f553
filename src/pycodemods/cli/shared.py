# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared utilities for CLI commands (console logging and errors)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import typer
from rich.console import Console
from rich.logging import RichHandler

from .. import logging as console_logging
from ..models import PassResult


class CLIError(RuntimeError):
    """Error raised when a CLI command fails and should exit with a status code."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code


@dataclass(slots=True)
class CLILogger:
    """Adapter around the console helpers honouring emoji and colour settings."""

    console: Console
    use_emoji: bool
    use_color: bool

    def fail(self, message: str) -> None:
        console_logging.fail(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def ok(self, message: str) -> None:
        console_logging.ok(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def info(self, message: str) -> None:
        console_logging.info(message, use_emoji=self.use_emoji, use_color=self.use_color)

    def section(self, title: str) -> None:
        console_logging.section(title, use_color=self.use_color)

    def pass_result(self, result: PassResult) -> None:
        console_logging.pass_summary(
            result.index,
            result.tool,
            len(result.changed),
            len(result.annotated),
            use_emoji=self.use_emoji,
            use_color=self.use_color,
        )

    def echo(self, message: str) -> None:
        """Write ``message`` to stdout unformatted, for machine-readable output."""

        typer.echo(message)


def build_cli_logger(*, emoji: bool, color: bool = True) -> CLILogger:
    """Return a :class:`CLILogger` bound to a console matching the preferences.

    Args:
        emoji: Whether log output may include emoji glyphs.
        color: Whether terminal colour output is allowed.

    Returns:
        CLILogger: Logger instance for one command invocation.
    """

    console = console_logging.get_console_manager().get(color=color, emoji=emoji)
    return CLILogger(console=console, use_emoji=emoji, use_color=color)


def configure_debug_logging(console: Console) -> None:
    """Route ``logging`` debug records from the package through Rich."""

    handler = RichHandler(console=console, show_path=False, show_time=False)
    package_logger = logging.getLogger("pycodemods")
    package_logger.setLevel(logging.DEBUG)
    if not any(isinstance(existing, RichHandler) for existing in package_logger.handlers):
        package_logger.addHandler(handler)


__all__ = ["CLIError", "CLILogger", "build_cli_logger", "configure_debug_logging"]
