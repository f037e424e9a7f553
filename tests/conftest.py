# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import os
import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from pycodemods.sources import SourceFile
from pycodemods.staging import StagingArea

ScriptFactory = Callable[[str, str], Path]


@pytest.fixture
def write_script(tmp_path: Path) -> ScriptFactory:
    """Return a factory writing Python helper scripts that stand in for external tools."""

    scripts = tmp_path / "scripts"
    scripts.mkdir()

    def _write(name: str, body: str) -> Path:
        path = scripts / name
        path.write_text(textwrap.dedent(body), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def python() -> str:
    """Return the interpreter used to run helper scripts."""

    return sys.executable


@pytest.fixture
def sample_sources() -> list[SourceFile]:
    return [
        SourceFile(path="src/app.js", text="console.log('foo')\n"),
        SourceFile(path="src/util.js", text="export const two = 1 + 1;\n"),
        SourceFile(path="README.md", text="# sample\n"),
    ]


MtimeBump = Callable[..., None]


@pytest.fixture
def bump_mtime() -> MtimeBump:
    """Return a helper pushing a staged file's modification time forward."""

    def _bump(stage: StagingArea, path: str, *, seconds: int = 10) -> None:
        target = stage.resolve(path)
        info = target.stat()
        os.utime(target, ns=(info.st_atime_ns, info.st_mtime_ns + seconds * 1_000_000_000))

    return _bump
