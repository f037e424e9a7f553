# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Bounded, shell-free execution of external tools against a staging directory."""

from __future__ import annotations

import logging
import os
import shutil
import signal

# Bandit: subprocess usage is intentional; commands are explicit argument lists
# and ``shell=True`` is never used.
import subprocess  # nosec B404
import tempfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .errors import ProcessExitError, ProcessLaunchError, ProcessTimeoutError

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT: Final[float] = 300.0
_CAPTURE_PREFIX: Final[str] = "node"


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Exit status and capture files of a completed command."""

    command: tuple[str, ...]
    returncode: int
    stdout_path: Path
    stderr_path: Path

    def read_stdout(self) -> str:
        """Return the captured standard output."""

        return self.stdout_path.read_text(encoding="utf-8", errors="replace")

    def read_stderr(self) -> str:
        """Return the captured standard error."""

        return self.stderr_path.read_text(encoding="utf-8", errors="replace")

    def cleanup(self) -> None:
        """Delete the capture files."""

        _unlink_quietly(self.stdout_path)
        _unlink_quietly(self.stderr_path)


@dataclass(slots=True)
class ProcessRunner:
    """Launch commands synchronously with a bounded wait.

    Attributes:
        timeout: Seconds to wait before the process group is killed.
        capture_dir: Directory receiving stdout/stderr capture files; the
            system temporary directory when ``None``.
        base_env: Variables injected into every command on top of ``os.environ``.
    """

    timeout: float = DEFAULT_TIMEOUT
    capture_dir: Path | None = None
    base_env: Mapping[str, str] = field(default_factory=dict)

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        allow_failure: bool = False,
    ) -> ProcessResult:
        """Execute ``command`` with ``cwd`` as its working directory.

        Args:
            command: Resolved argument list; the first entry names the executable.
            cwd: Staging directory the tool operates on.
            env: Per-command environment overrides applied last.
            allow_failure: Return normally on a non-zero exit instead of raising.

        Returns:
            ProcessResult: Exit code and capture files. The caller owns the
            capture files and should call :meth:`ProcessResult.cleanup`.

        Raises:
            ProcessLaunchError: If the executable is missing or cannot be started.
            ProcessTimeoutError: If the command exceeds :attr:`timeout`.
            ProcessExitError: If the command exits non-zero and ``allow_failure`` is false.
        """

        merged_env = self._merge_env(env)
        normalized = _normalize_args(command, cwd=cwd, env=merged_env)
        stdout_path, stderr_path = self._capture_paths()
        LOGGER.debug("running command=%s cwd=%s", " ".join(normalized), cwd)
        try:
            with stdout_path.open("wb") as stdout, stderr_path.open("wb") as stderr:
                try:
                    # Bandit: argument list comes from typed command builders, no shell expansion.
                    process = subprocess.Popen(  # nosec B603
                        normalized,
                        cwd=str(cwd),
                        env=merged_env,
                        stdin=subprocess.DEVNULL,
                        stdout=stdout,
                        stderr=stderr,
                        start_new_session=True,
                    )
                except OSError as exc:
                    raise ProcessLaunchError(
                        f"Unable to launch '{normalized[0]}': {exc}",
                        command=normalized,
                    ) from exc
                try:
                    returncode = process.wait(timeout=self.timeout)
                except subprocess.TimeoutExpired as exc:
                    _terminate(process)
                    stderr.flush()
                    captured = stderr_path.read_text(encoding="utf-8", errors="replace")
                    raise ProcessTimeoutError(normalized, self.timeout, captured) from exc
        except BaseException:
            _unlink_quietly(stdout_path)
            _unlink_quietly(stderr_path)
            raise

        completed = ProcessResult(
            command=tuple(normalized),
            returncode=returncode,
            stdout_path=stdout_path,
            stderr_path=stderr_path,
        )
        if returncode != 0 and not allow_failure:
            stderr_text = completed.read_stderr()
            completed.cleanup()
            raise ProcessExitError(normalized, returncode, stderr_text)
        return completed

    def _merge_env(self, overrides: Mapping[str, str] | None) -> dict[str, str]:
        env = os.environ.copy()
        env.update(self.base_env)
        if overrides:
            env.update(overrides)
        return env

    def _capture_paths(self) -> tuple[Path, Path]:
        directory = str(self.capture_dir) if self.capture_dir is not None else None
        if self.capture_dir is not None:
            self.capture_dir.mkdir(parents=True, exist_ok=True)
        out_fd, out_name = tempfile.mkstemp(prefix=_CAPTURE_PREFIX, suffix=".out", dir=directory)
        err_fd, err_name = tempfile.mkstemp(prefix=_CAPTURE_PREFIX, suffix=".err", dir=directory)
        os.close(out_fd)
        os.close(err_fd)
        return Path(out_name), Path(err_name)


def _normalize_args(args: Sequence[str], *, cwd: Path, env: Mapping[str, str]) -> list[str]:
    """Resolve the executable of ``args`` against ``PATH`` or ``cwd``.

    Args:
        args: Raw command arguments supplied by the caller.
        cwd: Working directory used to resolve relative executable paths.
        env: Environment whose ``PATH`` is searched for bare names.

    Returns:
        list[str]: Argument list with an absolute executable path.

    Raises:
        ProcessLaunchError: If no arguments are provided or the executable cannot be found.
    """

    if not args:
        raise ProcessLaunchError("command requires at least one argument", command=("<empty>",))

    head, *rest = args
    head_path = Path(head)
    if head_path.is_absolute():
        return [str(head_path), *rest]
    if os.sep in head or (os.altsep and os.altsep in head):
        return [str((cwd / head_path).resolve()), *rest]

    resolved = shutil.which(head, path=env.get("PATH"))
    if resolved is None:
        raise ProcessLaunchError(f"Executable '{head}' was not found on PATH", command=args)
    return [resolved, *rest]


def _terminate(process: subprocess.Popen[bytes]) -> None:
    """Kill ``process`` and every child in its session, then reap it."""

    killpg = getattr(os, "killpg", None)
    try:
        if killpg is not None:
            killpg(process.pid, signal.SIGKILL)
        else:  # pragma: no cover - platforms without process groups
            process.kill()
    except ProcessLookupError:
        pass
    process.wait()


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


__all__ = ["DEFAULT_TIMEOUT", "ProcessResult", "ProcessRunner"]
