# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parsers for structured diagnostics reports emitted by transformation tools."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from pathlib import Path, PurePosixPath
from typing import Final, cast

from pydantic import ValidationError

from ..errors import DiagnosticParseError
from ..models import Diagnostic, DiagnosticReport, FileReport, JsonValue, RuleMetadata
from ..severity import Severity, severity_from_level

_RESULTS_KEY: Final[str] = "results"
_METADATA_KEY: Final[str] = "metadata"
_RULES_META_KEY: Final[str] = "rulesMeta"


def load_report(stdout: str, *, root: Path | None = None) -> DiagnosticReport:
    """Decode the JSON document printed by a tool and parse it.

    Args:
        stdout: Raw standard output of the tool.
        root: Staging directory; absolute file paths below it are stored relative to it.

    Returns:
        DiagnosticReport: Parsed report.

    Raises:
        DiagnosticParseError: If the output is not valid JSON or does not follow the schema.
    """

    try:
        payload = cast(JsonValue, json.loads(stdout))
    except json.JSONDecodeError as exc:
        raise DiagnosticParseError(f"Invalid diagnostics report: {exc}") from exc
    return parse_eslint_report(payload, root=root)


def parse_eslint_report(payload: JsonValue, *, root: Path | None = None) -> DiagnosticReport:
    """Parse an ESLint ``json-with-metadata`` payload into a :class:`DiagnosticReport`.

    A bare list of results (the plain ``json`` formatter) is accepted as well.
    Only files with at least one counted error or warning are kept.

    Args:
        payload: Decoded JSON document.
        root: Staging directory used to relativise absolute file paths.

    Returns:
        DiagnosticReport: Per-file diagnostics and rule metadata.

    Raises:
        DiagnosticParseError: If the payload does not follow the schema.
    """

    if isinstance(payload, Mapping):
        results = payload.get(_RESULTS_KEY)
        metadata = payload.get(_METADATA_KEY)
    else:
        results = payload
        metadata = None
    if not _is_sequence(results):
        raise DiagnosticParseError("Diagnostics report has no 'results' array")

    files: dict[str, FileReport] = {}
    for entry in cast(Sequence[JsonValue], results):
        if not isinstance(entry, Mapping):
            raise DiagnosticParseError(f"Diagnostics result must be an object, got {type(entry).__name__}")
        report = _parse_file(entry, root)
        if report.has_findings:
            files[report.path] = report
    return DiagnosticReport(files=files, rules=_parse_rules(metadata))


def _parse_file(entry: Mapping[str, JsonValue], root: Path | None) -> FileReport:
    raw_path = entry.get("filePath")
    if not isinstance(raw_path, str) or not raw_path:
        raise DiagnosticParseError("Diagnostics result is missing 'filePath'")
    messages = entry.get("messages", [])
    if not _is_sequence(messages):
        raise DiagnosticParseError(f"'messages' for {raw_path} must be an array")
    diagnostics = tuple(_parse_message(message, raw_path) for message in cast(Sequence[JsonValue], messages))
    error_count = entry.get("errorCount")
    warning_count = entry.get("warningCount")
    return FileReport(
        path=_relativize(raw_path, root),
        diagnostics=diagnostics,
        error_count=(
            error_count if isinstance(error_count, int) else sum(1 for d in diagnostics if d.severity is Severity.ERROR)
        ),
        warning_count=(
            warning_count
            if isinstance(warning_count, int)
            else sum(1 for d in diagnostics if d.severity is Severity.WARNING)
        ),
    )


def _parse_message(message: JsonValue, path: str) -> Diagnostic:
    if not isinstance(message, Mapping):
        raise DiagnosticParseError(f"Diagnostic for {path} must be an object")
    severity = message.get("severity")
    rule_id = message.get("ruleId")
    try:
        return Diagnostic(
            rule_id=rule_id if isinstance(rule_id, str) else None,
            severity=severity_from_level(severity if isinstance(severity, int) else None),
            fatal=bool(message.get("fatal", False)),
            message=str(message.get("message", "")),
            line=message.get("line"),
            column=message.get("column"),
            end_line=message.get("endLine"),
            end_column=message.get("endColumn"),
        )
    except ValidationError as exc:
        raise DiagnosticParseError(f"Malformed diagnostic for {path}: {exc}") from exc


def _parse_rules(metadata: JsonValue | None) -> dict[str, RuleMetadata]:
    if not isinstance(metadata, Mapping):
        return {}
    rules_meta = metadata.get(_RULES_META_KEY)
    if not isinstance(rules_meta, Mapping):
        return {}
    rules: dict[str, RuleMetadata] = {}
    for rule_id, meta in rules_meta.items():
        docs = meta.get("docs") if isinstance(meta, Mapping) else None
        description = docs.get("description") if isinstance(docs, Mapping) else None
        url = docs.get("url") if isinstance(docs, Mapping) else None
        rules[str(rule_id)] = RuleMetadata(
            rule_id=str(rule_id),
            description=description if isinstance(description, str) else None,
            url=url if isinstance(url, str) else None,
        )
    return rules


def _relativize(raw_path: str, root: Path | None) -> str:
    path = Path(raw_path)
    if root is not None and path.is_absolute():
        for candidate, base in ((path, root), (path.resolve(), root.resolve())):
            if candidate.is_relative_to(base):
                return candidate.relative_to(base).as_posix()
        return raw_path
    return PurePosixPath(path.as_posix()).as_posix()


def _is_sequence(value: JsonValue | None) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


__all__ = ["load_report", "parse_eslint_report"]
