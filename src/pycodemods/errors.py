# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception taxonomy shared by the staging pipeline."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class CodemodError(RuntimeError):
    """Base class for failures that abort the current pass and the rest of the chain."""


class ConfigurationError(CodemodError):
    """Raised when a command template or configuration value cannot be resolved."""


class StagingIOError(CodemodError):
    """Raised when writing, copying, or reading a staging area fails."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        """Initialise the error with the offending path.

        Args:
            message: Human-readable description of the failure.
            path: Filesystem location involved in the failure, when known.
        """

        super().__init__(message)
        self.path = path


class ProcessError(CodemodError):
    """Base class for failures of an external tool invocation."""

    def __init__(self, message: str, *, command: Sequence[str]) -> None:
        super().__init__(message)
        self.command = tuple(command)


class ProcessLaunchError(ProcessError):
    """Raised when the executable is missing or cannot be started."""


class ProcessTimeoutError(ProcessError):
    """Raised when a command exceeds its wait budget and has been terminated."""

    def __init__(self, command: Sequence[str], timeout: float, stderr: str = "") -> None:
        """Initialise the error with the exceeded timeout.

        Args:
            command: Argument list that was executed.
            timeout: Wait budget in seconds that the command exceeded.
            stderr: Standard error captured before the process group was killed.
        """

        super().__init__(
            f"Command '{command[0]}' timed out after {timeout:.1f}s. stderr: {stderr or '<none>'}",
            command=command,
        )
        self.timeout = timeout
        self.stderr = stderr


class ProcessExitError(ProcessError):
    """Raised when a command exits with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str) -> None:
        """Initialise the error with captured process metadata.

        Args:
            command: Argument list that was executed.
            returncode: Exit status reported by the process.
            stderr: Captured standard error, surfaced verbatim.
        """

        super().__init__(
            f"Command '{command[0]}' exited with status {returncode}. stderr: {stderr or '<none>'}",
            command=command,
        )
        self.returncode = returncode
        self.stderr = stderr


class DiagnosticParseError(CodemodError):
    """Raised when a tool's diagnostics report is malformed."""


class SymlinkReconstructionError(CodemodError):
    """Describe an entry point that could not be rebuilt; logged and skipped, never raised out of a run."""

    def __init__(self, message: str, *, link: Path, target: Path) -> None:
        super().__init__(message)
        self.link = link
        self.target = target


__all__ = [
    "CodemodError",
    "ConfigurationError",
    "DiagnosticParseError",
    "ProcessError",
    "ProcessExitError",
    "ProcessLaunchError",
    "ProcessTimeoutError",
    "StagingIOError",
    "SymlinkReconstructionError",
]
