# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tabular record of every diagnostic reconciled during a run."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator

from ..models import Diagnostic, DiagnosticRow


class DiagnosticMessages:
    """Errors and warnings as reported by tools, one row per diagnostic."""

    def __init__(self) -> None:
        self._rows: list[DiagnosticRow] = []

    def record(self, source_path: str, diagnostics: Iterable[Diagnostic]) -> list[DiagnosticRow]:
        """Append one row per diagnostic reported for ``source_path``.

        Args:
            source_path: Relative path of the file the diagnostics belong to.
            diagnostics: Diagnostics in report order.

        Returns:
            list[DiagnosticRow]: Rows added by this call.
        """

        added = [
            DiagnosticRow(
                source_path=source_path,
                rule_id=diagnostic.rule_id,
                severity=diagnostic.severity,
                fatal=diagnostic.fatal,
                message=diagnostic.message,
                line=diagnostic.line,
                column=diagnostic.column,
            )
            for diagnostic in diagnostics
        ]
        self._rows.extend(added)
        return added

    @property
    def rows(self) -> tuple[DiagnosticRow, ...]:
        """Return every recorded row in insertion order."""

        return tuple(self._rows)

    def __iter__(self) -> Iterator[DiagnosticRow]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def to_json(self) -> str:
        """Serialise the rows as a JSON array."""

        return json.dumps([row.model_dump(mode="json") for row in self._rows], indent=2)


__all__ = ["DiagnosticMessages"]
