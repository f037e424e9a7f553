# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for reconciling diagnostics onto source text."""

from __future__ import annotations

import pytest

from pycodemods.diagnostics import (
    DiagnosticReconciler,
    SourceCursor,
    describe,
    join_segments,
    reconcile,
    render_annotated,
)
from pycodemods.models import Diagnostic, RuleMetadata
from pycodemods.severity import Severity

CONSOLE_LINE = "console.log('foo')\n"


def _diag(
    line: int,
    column: int,
    *,
    end: tuple[int, int] | None = None,
    rule: str | None = "no-undef",
    severity: Severity = Severity.ERROR,
    message: str = "'console' is not defined.",
) -> Diagnostic:
    return Diagnostic(
        rule_id=rule,
        severity=severity,
        message=message,
        line=line,
        column=column,
        end_line=end[0] if end else None,
        end_column=end[1] if end else None,
    )


def test_single_diagnostic_with_end_splits_covered_range() -> None:
    diagnostic = _diag(1, 1, end=(1, 8))

    segments = reconcile(CONSOLE_LINE, [diagnostic])

    assert [segment.text for segment in segments] == ["console", ".log('foo')\n"]
    assert segments[0].diagnostics == (diagnostic,)
    assert segments[1].markers == ()
    assert join_segments(segments) == CONSOLE_LINE


def test_diagnostic_without_end_marks_remaining_text() -> None:
    diagnostic = _diag(1, 1)

    segments = reconcile(CONSOLE_LINE, [diagnostic])

    assert len(segments) == 1
    assert segments[0].text == CONSOLE_LINE
    assert segments[0].diagnostics == (diagnostic,)


def test_adjacent_diagnostics_keep_boundary_character_once() -> None:
    first = _diag(1, 1, end=(1, 8))
    second = _diag(1, 9, rule="no-console", message="Unexpected console statement.")

    segments = reconcile(CONSOLE_LINE, [first, second])

    assert [segment.text for segment in segments] == ["console", ".", "log('foo')\n"]
    assert [segment.diagnostics for segment in segments] == [(first,), (), (second,)]
    assert join_segments(segments) == CONSOLE_LINE


def test_overlapping_ranges_do_not_bridge() -> None:
    wide = _diag(1, 1, end=(1, 12))
    inner = _diag(1, 5, rule="eqeqeq")

    segments = reconcile(CONSOLE_LINE, [wide, inner])

    assert [segment.text for segment in segments] == ["cons", "ole.log('foo')\n"]
    assert segments[0].diagnostics == (wide,)
    assert segments[1].diagnostics == (inner,)


def test_identical_start_positions_share_a_segment_in_report_order() -> None:
    first = _diag(1, 1, rule="a")
    second = _diag(1, 1, rule="b")

    segments = reconcile(CONSOLE_LINE, [first, second])

    assert len(segments) == 1
    assert [diagnostic.rule_id for diagnostic in segments[0].diagnostics] == ["a", "b"]


def test_diagnostics_are_sorted_by_position() -> None:
    text = "a = 1\nb = 2\n"
    late = _diag(2, 1, rule="late")
    early = _diag(1, 5, rule="early")

    segments = reconcile(text, [late, early])

    assert [segment.text for segment in segments] == ["a = ", "1\n", "b = 2\n"]
    assert [tuple(d.rule_id for d in segment.diagnostics) for segment in segments] == [(), ("early",), ("late",)]


def test_position_past_end_of_text_clamps() -> None:
    diagnostic = _diag(5, 3)

    segments = reconcile(CONSOLE_LINE, [diagnostic])

    assert [segment.text for segment in segments] == [CONSOLE_LINE, ""]
    assert segments[-1].diagnostics == (diagnostic,)


def test_end_at_end_of_text_emits_no_trailing_bridge() -> None:
    text = "let x"
    diagnostic = _diag(1, 5, end=(1, 6))

    segments = reconcile(text, [diagnostic])

    assert [segment.text for segment in segments] == ["let ", "x"]
    assert segments[-1].diagnostics == (diagnostic,)


def test_empty_text_yields_single_segment() -> None:
    segments = reconcile("", [_diag(1, 1)])

    assert len(segments) == 1
    assert segments[0].text == ""


@pytest.mark.parametrize(
    "diagnostics",
    [
        [],
        [(1, 1, None)],
        [(1, 1, (1, 8)), (1, 9, None)],
        [(1, 3, (2, 2)), (2, 1, (2, 4)), (3, 1, None)],
        [(2, 4, (9, 9)), (1, 1, (1, 2)), (2, 4, None)],
        [(3, 99, None), (1, 50, (1, 60))],
    ],
)
def test_reconstruction_is_lossless(diagnostics: list[tuple[int, int, tuple[int, int] | None]]) -> None:
    text = "const a = 1;\nif (a == 2) {}\nconsole.log(a)\n"
    items = [_diag(line, column, end=end) for line, column, end in diagnostics]

    segments = reconcile(text, items)

    assert join_segments(segments) == text
    attached = [diagnostic for segment in segments for diagnostic in segment.diagnostics]
    assert sorted(attached, key=lambda d: d.start) == sorted(items, key=lambda d: d.start)


def test_cursor_never_moves_backwards() -> None:
    text = "ab\ncd\n"
    cursor = SourceCursor().scan_to(text, 2, 2)

    assert (cursor.line, cursor.column, cursor.offset) == (2, 2, 4)
    assert cursor.scan_to(text, 1, 1) is cursor
    assert cursor.scan_to(text, 2, 1) is cursor


def test_column_past_line_end_stops_at_next_line() -> None:
    cursor = SourceCursor().scan_to("ab\ncd\n", 1, 10)

    assert (cursor.line, cursor.column, cursor.offset) == (2, 1, 3)


def test_astral_characters_count_as_two_columns() -> None:
    text = "const s = '😀'; x\n"
    diagnostic = _diag(1, 17, end=(1, 18), rule="no-unused-expressions", message="Expected an assignment.")

    segments = reconcile(text, [diagnostic])

    assert [segment.text for segment in segments] == ["const s = '😀'; ", "x", "\n"]
    assert segments[1].diagnostics == (diagnostic,)
    assert SourceCursor().scan_to(text, 1, 14).offset == 12


def test_describe_includes_rule_documentation() -> None:
    rules = {"no-undef": RuleMetadata(rule_id="no-undef", description="Disallow undeclared variables")}

    text = describe(_diag(1, 1), rules)

    assert text == "'console' is not defined.\n\nDisallow undeclared variables\n\nRule: no-undef, Severity: ERROR"


def test_describe_without_metadata_or_rule() -> None:
    warning = _diag(1, 1, rule=None, severity=Severity.WARNING, message="Parsing issue")

    assert describe(warning) == "Parsing issue\n\nRule: none, Severity: WARNING"


def test_render_annotated_inlines_marker_descriptions() -> None:
    reconciler = DiagnosticReconciler()
    segments = reconciler.reconcile(CONSOLE_LINE, [_diag(1, 1, end=(1, 8))])

    rendered = render_annotated(segments)

    assert rendered == (
        "~~('console' is not defined.\n\nRule: no-undef, Severity: ERROR)~~>console.log('foo')\n"
    )
