# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Severity related types and helpers."""

from __future__ import annotations

from enum import Enum
from typing import Final

_ESLINT_WARNING_LEVEL: Final[int] = 1


class Severity(str, Enum):
    """Severity levels reported by transformation tools."""

    ERROR = "error"
    WARNING = "warning"

    @property
    def label(self) -> str:
        """Return the upper-case label used in marker descriptions.

        Returns:
            str: ``ERROR`` or ``WARNING``.
        """

        return self.name

    @property
    def display(self) -> str:
        """Return the capitalised label used in tabular output.

        Returns:
            str: ``Error`` or ``Warning``.
        """

        return self.value.capitalize()


def severity_from_level(level: int | None) -> Severity:
    """Map an ESLint numeric severity onto :class:`Severity`.

    ESLint reports ``2`` for errors and ``1`` for warnings; anything other
    than ``1`` is treated as an error, matching how rows are classified.

    Args:
        level: Numeric severity reported by the tool, or ``None``.

    Returns:
        Severity: Normalised severity value.
    """

    if level == _ESLINT_WARNING_LEVEL:
        return Severity.WARNING
    return Severity.ERROR


__all__ = ["Severity", "severity_from_level"]
