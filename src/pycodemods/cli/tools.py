# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""The ``tools`` command: list the available tool builders and their options."""

from __future__ import annotations

from typing import Annotated

import typer
from rich import box
from rich.table import Table
from rich.text import Text

from ..tools import ToolRegistry, default_registry
from .shared import build_cli_logger

NAMES_ONLY_OPTION = Annotated[
    bool,
    typer.Option("--names", help="Print tool names only, one per line."),
]


def build_tools_table(registry: ToolRegistry) -> Table:
    """Return a table describing every registered tool and the options it accepts."""

    table = Table(title="Tools", box=box.SIMPLE, expand=True)
    table.add_column("Name", style="bold")
    table.add_column("Description", overflow="fold")
    table.add_column("Options", overflow="fold")
    for tool in registry.tools():
        fields = tool.options_model.model_fields
        options = ", ".join(
            f"{name}{'' if info.is_required() else '?'}" for name, info in fields.items()
        )
        table.add_row(tool.name, Text(tool.description or "-"), Text(options or "-"))
    return table


def tools_command(names: NAMES_ONLY_OPTION = False) -> None:
    """List the transformation tools a pass can name."""

    registry = default_registry()
    if names:
        for name in registry:
            typer.echo(name)
        return
    logger = build_cli_logger(emoji=True)
    logger.console.print(build_tools_table(registry))


__all__ = ["build_tools_table", "tools_command"]
