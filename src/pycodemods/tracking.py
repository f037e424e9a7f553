# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Change detection for files staged before a tool ran."""

from __future__ import annotations

import hashlib
import logging
from enum import Enum

from .staging import StagingArea

LOGGER = logging.getLogger(__name__)


class ChangeDetection(str, Enum):
    """Strategies for deciding whether a staged file was modified."""

    MTIME = "mtime"
    CONTENT = "content"


class ModificationTracker:
    """Compare a stage's files against the baselines recorded when they were staged.

    The default ``mtime`` strategy is a timestamp heuristic: a tool that
    rewrites identical bytes still registers as a change, and one that restores
    the original timestamp is missed. ``content`` compares SHA-256 digests of
    the bytes instead.
    """

    def __init__(self, strategy: ChangeDetection = ChangeDetection.MTIME) -> None:
        self._strategy = strategy

    @property
    def strategy(self) -> ChangeDetection:
        """Return the active detection strategy."""

        return self._strategy

    def changed(self, stage: StagingArea) -> set[str]:
        """Return relative paths of baseline files that changed or were deleted.

        Args:
            stage: Staging area whose command has exited.

        Returns:
            set[str]: Changed paths; deleted files are always included.
        """

        changed: set[str] = set()
        for path, staged in stage.baselines.items():
            target = stage.resolve(path)
            try:
                if self._strategy is ChangeDetection.CONTENT:
                    modified = _digest(target.read_bytes()) != _digest(staged.content)
                else:
                    modified = target.stat().st_mtime_ns > staged.mtime_ns
            except FileNotFoundError:
                LOGGER.debug("%s was deleted by the tool", path)
                modified = True
            if modified:
                changed.add(path)
        return changed


def _digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


__all__ = ["ChangeDetection", "ModificationTracker"]
