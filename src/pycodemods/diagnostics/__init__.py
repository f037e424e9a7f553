# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Diagnostics report parsing and reconciliation onto source text."""

from __future__ import annotations

from .messages import DiagnosticMessages
from .reconcile import (
    DiagnosticReconciler,
    SourceCursor,
    describe,
    join_segments,
    reconcile,
    render_annotated,
)
from .report import load_report, parse_eslint_report

__all__ = [
    "DiagnosticMessages",
    "DiagnosticReconciler",
    "SourceCursor",
    "describe",
    "join_segments",
    "load_report",
    "parse_eslint_report",
    "reconcile",
    "render_annotated",
]
