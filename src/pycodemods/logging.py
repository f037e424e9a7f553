# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Console output for chain runs, honouring colour and emoji preferences."""

from __future__ import annotations

import sys
from enum import Enum
from functools import cache
from typing import Literal

from rich.console import Console
from rich.rule import Rule
from rich.text import Text


class Tone(Enum):
    """Kinds of user-facing message with their glyph and colour."""

    INFO = ("ℹ️ ", "cyan")
    OK = ("✅ ", "green")
    FAIL = ("❌ ", "red")

    def __init__(self, glyph: str, style: str) -> None:
        self.glyph = glyph
        self.style = style


def detect_tty() -> bool:
    """Return whether stdout is attached to a terminal."""

    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


class ConsoleManager:
    """Hand out one Rich :class:`Console` per colour/emoji/TTY combination.

    Consoles never bind ``sys.stdout`` at construction, so output follows
    whatever stream is current when a message is printed.
    """

    def __init__(self) -> None:
        self._consoles: dict[tuple[bool, bool, bool], Console] = {}

    def get(self, *, color: bool, emoji: bool) -> Console:
        """Return the console matching ``color`` and ``emoji``.

        Args:
            color: Allow ANSI styling when the output is a terminal.
            emoji: Let Rich render ``:emoji:`` codes.

        Returns:
            Console: Cached console for the combination.
        """

        tty = detect_tty()
        key = (color, emoji, tty)
        console = self._consoles.get(key)
        if console is None:
            styled = color and tty
            color_system: Literal["auto"] | None = "auto" if styled else None
            console = Console(
                color_system=color_system,
                force_terminal=tty,
                no_color=not styled,
                emoji=emoji,
                soft_wrap=True,
            )
            self._consoles[key] = console
        return console


@cache
def get_console_manager() -> ConsoleManager:
    """Return the process-wide :class:`ConsoleManager`."""

    return ConsoleManager()


def say(tone: Tone, msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    """Print ``msg`` prefixed and coloured according to ``tone``.

    Args:
        tone: Message kind.
        msg: Text to print; Rich markup is not interpreted.
        use_emoji: Prefix the tone's glyph.
        use_color: Apply the tone's colour; follows TTY detection when ``None``.
    """

    color = detect_tty() if use_color is None else use_color
    text = Text(f"{tone.glyph if use_emoji else ''}{msg}")
    if color:
        text.stylize(tone.style)
    get_console_manager().get(color=color, emoji=use_emoji).print(text)


def info(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    say(Tone.INFO, msg, use_emoji=use_emoji, use_color=use_color)


def ok(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    say(Tone.OK, msg, use_emoji=use_emoji, use_color=use_color)


def fail(msg: str, *, use_emoji: bool, use_color: bool | None = None) -> None:
    say(Tone.FAIL, msg, use_emoji=use_emoji, use_color=use_color)


def section(title: str, *, use_color: bool) -> None:
    """Print a heading that separates blocks of run output."""

    console = get_console_manager().get(color=use_color, emoji=False)
    console.print()
    if use_color:
        console.print(Rule(Text(title)))
    else:
        console.print(f"--- {title} ---", markup=False, highlight=False)


def pass_summary(index: int, tool: str, changed: int, annotated: int, *, use_emoji: bool, use_color: bool) -> None:
    """Print one line describing what a pass of the chain did."""

    detail = f"{changed} changed" if changed else "no changes"
    if annotated:
        detail += f", {annotated} annotated"
    say(Tone.INFO, f"pass {index} ({tool}): {detail}", use_emoji=use_emoji, use_color=use_color)


__all__ = [
    "ConsoleManager",
    "Tone",
    "detect_tty",
    "fail",
    "get_console_manager",
    "info",
    "ok",
    "pass_summary",
    "say",
    "section",
]
