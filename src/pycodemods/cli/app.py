# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""CLI application entry point wiring commands."""

from __future__ import annotations

import typer

from .run import run_command
from .tools import tools_command

app = typer.Typer(
    name="pycodemods",
    help="Run chains of external code transformation tools over a source tree.",
    no_args_is_help=True,
    add_completion=False,
)
app.command("run")(run_command)
app.command("tools")(tools_command)


def main() -> None:
    """Console script entry point."""

    app()


__all__ = ["app", "main"]
