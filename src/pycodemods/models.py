# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Core data models shared across the pycodemods package."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .severity import Severity

type JsonScalar = str | int | float | bool | None
type JsonValue = JsonScalar | list[JsonValue] | dict[str, JsonValue]


class Diagnostic(BaseModel):
    """Single line/column-located issue reported by a transformation tool."""

    model_config = ConfigDict(frozen=True)

    rule_id: str | None = None
    severity: Severity
    fatal: bool = False
    message: str
    line: int = Field(ge=1)
    column: int = Field(ge=1)
    end_line: int | None = Field(default=None, ge=1)
    end_column: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _check_end(self) -> Diagnostic:
        """Reject end positions that only declare half of the coordinate.

        Returns:
            Diagnostic: The validated instance.

        Raises:
            ValueError: If exactly one of ``end_line``/``end_column`` is set.
        """

        if (self.end_line is None) != (self.end_column is None):
            raise ValueError("end_line and end_column must be provided together")
        return self

    @property
    def start(self) -> tuple[int, int]:
        """Return the 1-based ``(line, column)`` start position.

        Returns:
            tuple[int, int]: Start position of the diagnostic.
        """

        return self.line, self.column

    @property
    def end(self) -> tuple[int, int] | None:
        """Return the 1-based ``(line, column)`` end position when declared.

        Returns:
            tuple[int, int] | None: End position or ``None``.
        """

        if self.end_line is None or self.end_column is None:
            return None
        return self.end_line, self.end_column


class RuleMetadata(BaseModel):
    """Human-readable documentation published by a tool for one rule."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    description: str | None = None
    url: str | None = None


class FileReport(BaseModel):
    """Diagnostics reported for a single file."""

    model_config = ConfigDict(frozen=True)

    path: str
    diagnostics: tuple[Diagnostic, ...] = ()
    error_count: int = 0
    warning_count: int = 0

    @property
    def has_findings(self) -> bool:
        """Return whether the tool counted any error or warning for the file."""

        return self.error_count > 0 or self.warning_count > 0


class DiagnosticReport(BaseModel):
    """Structured diagnostics document emitted by a tool run."""

    model_config = ConfigDict(frozen=True)

    files: dict[str, FileReport] = Field(default_factory=dict)
    rules: dict[str, RuleMetadata] = Field(default_factory=dict)

    def for_path(self, path: Path) -> FileReport | None:
        """Return the report entry for ``path`` if the tool reported on it.

        Args:
            path: Absolute or report-relative path of the file.

        Returns:
            FileReport | None: Matching entry, or ``None`` when absent.
        """

        return self.files.get(str(path))


class Marker(BaseModel):
    """Annotation attached to a segment, pairing a diagnostic with its description."""

    model_config = ConfigDict(frozen=True)

    diagnostic: Diagnostic
    description: str


class Segment(BaseModel):
    """Contiguous slice of a file's text with the markers that start inside it."""

    model_config = ConfigDict(frozen=True)

    text: str
    markers: tuple[Marker, ...] = ()

    @property
    def diagnostics(self) -> tuple[Diagnostic, ...]:
        """Return the diagnostics carried by this segment in attachment order."""

        return tuple(marker.diagnostic for marker in self.markers)


class StagedFile(BaseModel):
    """Baseline snapshot of a file written into a staging area."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: bytes
    mtime_ns: int


class DiagnosticRow(BaseModel):
    """Tabular record of one diagnostic attributed to a source file."""

    model_config = ConfigDict(frozen=True)

    source_path: str
    rule_id: str | None
    severity: Severity
    fatal: bool
    message: str
    line: int
    column: int


class PassResult(BaseModel):
    """Outcome of one pass of the chain."""

    index: int
    tool: str
    stage_dir: Path
    changed: tuple[str, ...] = ()
    annotated: dict[str, tuple[Segment, ...]] = Field(default_factory=dict)
    rows: tuple[DiagnosticRow, ...] = ()


class FileResult(BaseModel):
    """Final state of a file after the chain completed."""

    path: str
    text: str | None
    changed: bool = False
    deleted: bool = False
    generated: bool = False
    segments: tuple[Segment, ...] = ()

    @property
    def annotated(self) -> bool:
        """Return whether any diagnostics were reconciled onto this file."""

        return any(segment.markers for segment in self.segments)


class ChainResult(BaseModel):
    """Aggregate result of a chain of passes."""

    passes: tuple[PassResult, ...] = ()
    files: tuple[FileResult, ...] = ()
    rows: tuple[DiagnosticRow, ...] = ()

    def changed_files(self) -> tuple[FileResult, ...]:
        """Return results for files that were modified, deleted, or generated."""

        return tuple(item for item in self.files if item.changed or item.deleted or item.generated)


__all__ = [
    "ChainResult",
    "Diagnostic",
    "DiagnosticReport",
    "DiagnosticRow",
    "FileReport",
    "FileResult",
    "JsonValue",
    "Marker",
    "PassResult",
    "RuleMetadata",
    "Segment",
    "StagedFile",
]
