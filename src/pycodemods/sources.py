# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""In-memory source files and discovery of a tree on disk."""

from __future__ import annotations

import os
from collections import Counter
from collections.abc import Iterable, Sequence
from pathlib import Path, PurePosixPath
from typing import Final

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_CHARSET: Final[str] = "utf-8"
ALWAYS_EXCLUDE_DIRS: Final[frozenset[str]] = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        ".venv",
        "venv",
        "__pycache__",
        ".mypy_cache",
        ".pytest_cache",
    },
)
_TSX_EXTENSION: Final[str] = "tsx"
_TS_EXTENSION: Final[str] = "ts"


class SourceFile(BaseModel):
    """A file of the host's tree, held in memory with its declared charset."""

    model_config = ConfigDict(frozen=True)

    path: str
    text: str
    charset: str | None = None

    @field_validator("path", mode="before")
    @classmethod
    def _normalize_path(cls, value: str | Path) -> str:
        """Store paths as relative POSIX strings.

        Args:
            value: Relative path supplied by the caller.

        Returns:
            str: Normalised POSIX path.

        Raises:
            ValueError: If the path is absolute or escapes the tree.
        """

        posix = PurePosixPath(Path(value).as_posix())
        if posix.is_absolute() or ".." in posix.parts:
            raise ValueError(f"source path must be relative to the tree root: {value}")
        return posix.as_posix()

    @property
    def encoding(self) -> str:
        """Return the charset used to encode this file on disk."""

        return self.charset or DEFAULT_CHARSET

    def to_bytes(self) -> bytes:
        """Return the text encoded with the file's charset."""

        return self.text.encode(self.encoding)

    @property
    def extension(self) -> str | None:
        """Return the extension without the dot, ignoring dotfiles like ``.eslintrc``."""

        name = PurePosixPath(self.path).name
        if name.find(".") <= 0:
            return None
        return name.rsplit(".", 1)[1]


def parser_hint(files: Iterable[SourceFile]) -> str:
    """Return the parser name codemod runners should use for ``files``.

    Args:
        files: Files staged for the chain.

    Returns:
        str: ``tsx`` when any TSX file is present, ``ts`` for TypeScript, otherwise ``babel``.
    """

    counts = Counter(extension for source in files if (extension := source.extension))
    if counts[_TSX_EXTENSION]:
        return _TSX_EXTENSION
    if counts[_TS_EXTENSION]:
        return _TS_EXTENSION
    return "babel"


def load_tree(
    root: Path,
    *,
    excludes: Sequence[str] = (),
    charset: str | None = None,
) -> list[SourceFile]:
    """Read every regular file below ``root`` into memory.

    Args:
        root: Directory whose contents form the tree.
        excludes: Additional directory names to skip.
        charset: Charset used to decode files; defaults to UTF-8.

    Returns:
        list[SourceFile]: Files sorted by relative path. Files that cannot be
        decoded with ``charset`` are skipped.
    """

    skip = ALWAYS_EXCLUDE_DIRS | set(excludes)
    encoding = charset or DEFAULT_CHARSET
    collected: list[SourceFile] = []
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in skip)
        base = Path(current)
        for filename in sorted(filenames):
            path = base / filename
            if not path.is_file() or path.is_symlink():
                continue
            try:
                text = path.read_bytes().decode(encoding)
            except UnicodeDecodeError:
                continue
            collected.append(
                SourceFile(path=path.relative_to(root).as_posix(), text=text, charset=charset),
            )
    return collected


__all__ = ["ALWAYS_EXCLUDE_DIRS", "DEFAULT_CHARSET", "SourceFile", "load_tree", "parser_hint"]
