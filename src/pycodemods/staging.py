# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Staging areas mirroring an in-memory file tree onto disk for one pass."""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from types import MappingProxyType

from .errors import StagingIOError
from .models import StagedFile
from .sources import DEFAULT_CHARSET, SourceFile

LOGGER = logging.getLogger(__name__)


class StagingArea:
    """Directory owned by exactly one pass, with baseline timestamps per staged file.

    Instances are created through :meth:`create`, which refuses to reuse an
    existing directory so two passes can never write into the same stage.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._baselines: dict[str, StagedFile] = {}

    @classmethod
    def create(cls, directory: Path) -> StagingArea:
        """Create a fresh staging directory.

        Args:
            directory: Location of the new stage; its parent is created on demand.

        Returns:
            StagingArea: Empty staging area rooted at ``directory``.

        Raises:
            StagingIOError: If ``directory`` already exists or cannot be created.
        """

        try:
            directory.parent.mkdir(parents=True, exist_ok=True)
            directory.mkdir()
        except FileExistsError as exc:
            raise StagingIOError(f"Staging directory already exists: {directory}", path=directory) from exc
        except OSError as exc:
            raise StagingIOError(f"Unable to create staging directory {directory}: {exc}", path=directory) from exc
        return cls(directory.resolve())

    @property
    def directory(self) -> Path:
        """Return the absolute path of the stage."""

        return self._directory

    @property
    def baselines(self) -> Mapping[str, StagedFile]:
        """Return a read-only view of staged files keyed by relative path."""

        return MappingProxyType(self._baselines)

    def resolve(self, path: str) -> Path:
        """Return the on-disk location of the relative ``path`` inside the stage."""

        return self._directory.joinpath(*PurePosixPath(path).parts)

    def write(self, path: str, data: bytes) -> StagedFile:
        """Write ``data`` to ``path`` and record its baseline.

        Args:
            path: Relative POSIX path of the file.
            data: Bytes to write.

        Returns:
            StagedFile: Baseline captured immediately after writing.

        Raises:
            StagingIOError: If the file cannot be written.
        """

        target = self.resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            mtime_ns = target.stat().st_mtime_ns
        except OSError as exc:
            raise StagingIOError(f"Unable to stage {path}: {exc}", path=target) from exc
        staged = StagedFile(path=path, content=data, mtime_ns=mtime_ns)
        self._baselines[path] = staged
        return staged

    def write_source(self, source: SourceFile) -> StagedFile:
        """Write an in-memory source file using its declared charset."""

        return self.write(source.path, source.to_bytes())

    def copy_from(self, other: StagingArea) -> list[StagedFile]:
        """Copy every directory and file of ``other`` into this stage.

        Files that disappear while copying are skipped, since a tool may
        legitimately delete them. Each copied file's new timestamp becomes its
        baseline. Symbolic links are recreated with their original target
        rather than followed, so a relative link resolves inside the new stage;
        a linked file is baselined through its target, while the contents of a
        linked directory are not tracked.

        Args:
            other: Stage produced by the previous pass.

        Returns:
            list[StagedFile]: Baselines recorded for the copied files.

        Raises:
            StagingIOError: On any filesystem failure other than a vanished file.
        """

        copied: list[StagedFile] = []
        source_root = other.directory
        for current, dirnames, filenames in os.walk(source_root):
            dirnames.sort()
            relative_dir = Path(current).relative_to(source_root)
            target_dir = self._directory / relative_dir
            try:
                target_dir.mkdir(parents=True, exist_ok=True)
                for dirname in dirnames:
                    if os.path.islink(os.path.join(current, dirname)):
                        _copy_link(Path(current) / dirname, target_dir / dirname)
            except FileNotFoundError:
                LOGGER.debug("skipping links under %s: removed before they could be copied", relative_dir)
            except OSError as exc:
                raise StagingIOError(f"Unable to populate {target_dir}: {exc}", path=target_dir) from exc
            for filename in sorted(filenames):
                relative = (relative_dir / filename).as_posix()
                source = Path(current) / filename
                target = target_dir / filename
                try:
                    if source.is_symlink():
                        _copy_link(source, target)
                    else:
                        shutil.copyfile(source, target)
                    data = target.read_bytes()
                    mtime_ns = target.stat().st_mtime_ns
                except FileNotFoundError:
                    LOGGER.debug("skipping %s: removed before it could be copied", relative)
                    continue
                except OSError as exc:
                    raise StagingIOError(f"Unable to copy {relative}: {exc}", path=target) from exc
                staged = StagedFile(path=relative, content=data, mtime_ns=mtime_ns)
                self._baselines[relative] = staged
                copied.append(staged)
        return copied

    def exists(self, path: str) -> bool:
        """Return whether ``path`` is currently present in the stage."""

        return self.resolve(path).is_file()

    def read_bytes(self, path: str) -> bytes:
        """Return the current bytes of ``path``.

        Raises:
            StagingIOError: If the file cannot be read.
        """

        target = self.resolve(path)
        try:
            return target.read_bytes()
        except OSError as exc:
            raise StagingIOError(f"Unable to read {path}: {exc}", path=target) from exc

    def read(self, path: str, charset: str | None = None) -> str:
        """Return the current text of ``path`` decoded with ``charset`` or UTF-8.

        Raises:
            StagingIOError: If the file cannot be read or decoded.
        """

        data = self.read_bytes(path)
        try:
            return data.decode(charset or DEFAULT_CHARSET)
        except UnicodeDecodeError as exc:
            raise StagingIOError(f"Unable to decode {path} as {charset or DEFAULT_CHARSET}: {exc}") from exc

    def files(self) -> list[str]:
        """Return the relative paths of every file currently in the stage, sorted.

        Linked directories are not descended into.
        """

        found: list[str] = []
        for current, _dirnames, filenames in os.walk(self._directory):
            relative_dir = Path(current).relative_to(self._directory)
            found.extend((relative_dir / name).as_posix() for name in filenames if os.path.isfile(os.path.join(current, name)))
        return sorted(found)

    def __repr__(self) -> str:
        return f"StagingArea({str(self._directory)!r}, staged={len(self._baselines)})"


def _copy_link(source: Path, target: Path) -> None:
    os.symlink(os.readlink(source), target, target_is_directory=source.is_dir())


__all__ = ["StagingArea"]
