# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Map line/column diagnostics back onto a file's text as a lossless segment partition."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Final

from ..models import Diagnostic, Marker, RuleMetadata, Segment

_NEWLINE: Final[str] = "\n"
_BMP_MAX: Final[int] = 0xFFFF
_MARKER_OPEN: Final[str] = "~~("
_MARKER_CLOSE: Final[str] = ")~~>"


@dataclass(frozen=True, slots=True)
class SourceCursor:
    """Scanning position inside a text: 1-based line/column and 0-based offset."""

    line: int = 1
    column: int = 1
    offset: int = 0

    def scan_to(self, text: str, line: int, column: int) -> SourceCursor:
        """Advance over ``text`` until ``(line, column)`` is reached.

        Every character between the current and target positions is scanned;
        a newline moves to the next line and resets the column to 1 while still
        consuming one offset unit. Targets at or before the cursor return the
        cursor unchanged, and targets past the end of ``text`` stop at the end.
        A column beyond the end of its line stops at the start of the next line.
        Columns count UTF-16 code units, as JavaScript tools report them, so a
        character outside the Basic Multilingual Plane advances the column by
        two and the offset by one.

        Args:
            text: Text the cursor walks over.
            line: Target line (1-based).
            column: Target column (1-based).

        Returns:
            SourceCursor: Cursor at the target, never behind ``self``.
        """

        if (line, column) <= (self.line, self.column):
            return self
        current_line, current_column, offset = self.line, self.column, self.offset
        end = len(text)
        while offset < end and (current_line < line or (current_line == line and current_column < column)):
            char = text[offset]
            if char == _NEWLINE:
                current_line += 1
                current_column = 1
            else:
                current_column += 2 if ord(char) > _BMP_MAX else 1
            offset += 1
        return SourceCursor(line=current_line, column=current_column, offset=offset)


def describe(diagnostic: Diagnostic, rules: Mapping[str, RuleMetadata] | None = None) -> str:
    """Return the human-readable marker description for ``diagnostic``.

    Args:
        diagnostic: Diagnostic to describe.
        rules: Rule documentation keyed by rule id, when the report carried it.

    Returns:
        str: Message, optional rule description, rule id and severity.
    """

    rule_id = diagnostic.rule_id or "none"
    metadata = rules.get(diagnostic.rule_id) if rules and diagnostic.rule_id else None
    if metadata is not None and metadata.description:
        detail = f"{metadata.description}\n\nRule: {rule_id}"
    else:
        detail = f"Rule: {rule_id}"
    detail += f", Severity: {diagnostic.severity.label}"
    return f"{diagnostic.message}\n\n{detail}"


class DiagnosticReconciler:
    """Partition a file's text into segments annotated with diagnostic markers.

    The partition is lossless: joining the text of the returned segments in
    order reproduces the input exactly, whatever the diagnostics overlap.
    """

    def __init__(self, rules: Mapping[str, RuleMetadata] | None = None) -> None:
        self._rules = dict(rules or {})

    def reconcile(self, text: str, diagnostics: Iterable[Diagnostic]) -> tuple[Segment, ...]:
        """Return the annotated segments of ``text``.

        Diagnostics are stably sorted by start position. Each one attaches to
        the open segment; text preceding a later start is closed off as its own
        segment. When the previous diagnostic declared an end lying strictly
        between the cursor and the next start, the text up to that end is
        closed first so the diagnostic's marker covers exactly its range.

        Args:
            text: Text of the file as it exists after the tool ran.
            diagnostics: Diagnostics reported for the file.

        Returns:
            tuple[Segment, ...]: Segments in text order; the last one holds the
            remaining text and is always present, possibly empty.
        """

        ordered = sorted(diagnostics, key=lambda item: item.start)
        segments: list[Segment] = []
        cursor = SourceCursor()
        pending: list[Marker] = []
        previous: Diagnostic | None = None

        for diagnostic in ordered:
            target = cursor.scan_to(text, diagnostic.line, diagnostic.column)
            if target.offset > cursor.offset:
                if previous is not None and previous.end is not None:
                    end = cursor.scan_to(text, *previous.end)
                    if cursor.offset < end.offset < target.offset:
                        segments.append(Segment(text=text[cursor.offset : end.offset], markers=tuple(pending)))
                        pending = []
                        cursor = end
                segments.append(Segment(text=text[cursor.offset : target.offset], markers=tuple(pending)))
                pending = []
            pending.append(Marker(diagnostic=diagnostic, description=describe(diagnostic, self._rules)))
            cursor = target
            previous = diagnostic if diagnostic.end is not None else None

        if previous is not None and previous.end is not None:
            end = cursor.scan_to(text, *previous.end)
            if cursor.offset < end.offset < len(text):
                segments.append(Segment(text=text[cursor.offset : end.offset], markers=tuple(pending)))
                pending = []
                cursor = end

        segments.append(Segment(text=text[cursor.offset :], markers=tuple(pending)))
        return tuple(segments)


def reconcile(
    text: str,
    diagnostics: Iterable[Diagnostic],
    *,
    rules: Mapping[str, RuleMetadata] | None = None,
) -> tuple[Segment, ...]:
    """Reconcile ``diagnostics`` onto ``text``; see :meth:`DiagnosticReconciler.reconcile`."""

    return DiagnosticReconciler(rules).reconcile(text, diagnostics)


def join_segments(segments: Iterable[Segment]) -> str:
    """Return the text reconstructed from ``segments``."""

    return "".join(segment.text for segment in segments)


def render_annotated(segments: Iterable[Segment]) -> str:
    """Render segments with each marker inlined as ``~~(description)~~>`` before its text.

    Args:
        segments: Segments produced by reconciliation.

    Returns:
        str: Annotated view of the file for review output.
    """

    parts: list[str] = []
    for segment in segments:
        for marker in segment.markers:
            parts.append(f"{_MARKER_OPEN}{marker.description}{_MARKER_CLOSE}")
        parts.append(segment.text)
    return "".join(parts)


__all__ = [
    "DiagnosticReconciler",
    "SourceCursor",
    "describe",
    "join_segments",
    "reconcile",
    "render_annotated",
]
