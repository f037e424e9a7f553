# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for staging areas and change detection."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from pycodemods import staging as staging_module
from pycodemods.errors import StagingIOError
from pycodemods.sources import SourceFile
from pycodemods.staging import StagingArea
from pycodemods.tracking import ChangeDetection, ModificationTracker


def test_create_refuses_existing_directory(tmp_path: Path) -> None:
    (tmp_path / "repo-0").mkdir()

    with pytest.raises(StagingIOError):
        StagingArea.create(tmp_path / "repo-0")


def test_write_creates_parents_and_records_baseline(tmp_path: Path) -> None:
    stage = StagingArea.create(tmp_path / "stage")

    staged = stage.write("a/b/c.txt", b"hello")

    assert (stage.directory / "a" / "b" / "c.txt").read_bytes() == b"hello"
    assert staged.mtime_ns == (stage.directory / "a" / "b" / "c.txt").stat().st_mtime_ns
    assert stage.baselines["a/b/c.txt"].content == b"hello"


def test_write_source_uses_declared_charset(tmp_path: Path) -> None:
    stage = StagingArea.create(tmp_path / "stage")

    stage.write_source(SourceFile(path="latin.txt", text="café", charset="latin-1"))

    assert stage.read_bytes("latin.txt") == "café".encode("latin-1")
    assert stage.read("latin.txt", "latin-1") == "café"


def test_read_with_wrong_charset_raises(tmp_path: Path) -> None:
    stage = StagingArea.create(tmp_path / "stage")
    stage.write("bin.dat", b"\xff\xfe\x00")

    with pytest.raises(StagingIOError):
        stage.read("bin.dat")


def test_copy_from_mirrors_previous_stage(tmp_path: Path) -> None:
    first = StagingArea.create(tmp_path / "repo-0")
    first.write("src/app.js", b"one")
    (first.directory / "generated").mkdir()
    (first.directory / "generated" / "new.js").write_bytes(b"two")
    (first.directory / "empty").mkdir()

    second = StagingArea.create(tmp_path / "repo-1")
    copied = second.copy_from(first)

    assert sorted(item.path for item in copied) == ["generated/new.js", "src/app.js"]
    assert second.read("generated/new.js") == "two"
    assert (second.directory / "empty").is_dir()
    assert set(second.baselines) == {"generated/new.js", "src/app.js"}
    assert second.files() == ["generated/new.js", "src/app.js"]


def test_copy_from_recreates_symbolic_links(tmp_path: Path) -> None:
    first = StagingArea.create(tmp_path / "repo-0")
    first.write("src/lib/util.js", b"export {};\n")
    (first.directory / "src" / "index.js").symlink_to("lib/util.js")
    (first.directory / "vendor").symlink_to("src/lib", target_is_directory=True)

    second = StagingArea.create(tmp_path / "repo-1")
    copied = second.copy_from(first)

    assert sorted(item.path for item in copied) == ["src/index.js", "src/lib/util.js"]
    assert (second.directory / "src" / "index.js").is_symlink()
    assert (second.directory / "src" / "index.js").readlink() == Path("lib/util.js")
    assert (second.directory / "vendor").is_symlink()
    assert (second.directory / "vendor" / "util.js").resolve() == (second.directory / "src" / "lib" / "util.js").resolve()
    assert second.files() == ["src/index.js", "src/lib/util.js"]


def test_copy_from_skips_files_that_vanish(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    first = StagingArea.create(tmp_path / "repo-0")
    first.write("keep.js", b"keep")
    first.write("gone.js", b"gone")

    real_copyfile = staging_module.shutil.copyfile

    def flaky_copyfile(src: Path, dst: Path) -> Path:
        if Path(src).name == "gone.js":
            raise FileNotFoundError(src)
        return real_copyfile(src, dst)

    monkeypatch.setattr(staging_module.shutil, "copyfile", flaky_copyfile)
    second = StagingArea.create(tmp_path / "repo-1")

    copied = second.copy_from(first)

    assert [item.path for item in copied] == ["keep.js"]
    assert not second.exists("gone.js")


def test_tracker_reports_modified_and_deleted_files(tmp_path: Path, bump_mtime: Callable[..., None]) -> None:
    stage = StagingArea.create(tmp_path / "stage")
    for name in ("same.js", "edited.js", "deleted.js"):
        stage.write(name, b"x")
    stage.resolve("edited.js").write_bytes(b"y")
    bump_mtime(stage, "edited.js")
    stage.resolve("deleted.js").unlink()

    changed = ModificationTracker().changed(stage)

    assert changed == {"edited.js", "deleted.js"}


def test_tracker_mtime_mode_flags_touched_files(tmp_path: Path, bump_mtime: Callable[..., None]) -> None:
    stage = StagingArea.create(tmp_path / "stage")
    stage.write("touched.js", b"same")
    bump_mtime(stage, "touched.js")

    assert ModificationTracker(ChangeDetection.MTIME).changed(stage) == {"touched.js"}
    assert ModificationTracker(ChangeDetection.CONTENT).changed(stage) == set()


def test_tracker_content_mode_detects_rewrites(tmp_path: Path) -> None:
    stage = StagingArea.create(tmp_path / "stage")
    stage.write("a.js", b"old")
    stage.resolve("a.js").write_bytes(b"new")

    assert ModificationTracker(ChangeDetection.CONTENT).changed(stage) == {"a.js"}


def test_tracker_ignores_files_without_baseline(tmp_path: Path) -> None:
    stage = StagingArea.create(tmp_path / "stage")
    (stage.directory / "generated.js").write_bytes(b"new")

    assert ModificationTracker().changed(stage) == set()
