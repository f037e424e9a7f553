# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Chain coordination: stage the tree, run each pass's tool, and collect the results."""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Mapping, Sequence
from pathlib import Path
from types import TracebackType
from typing import Final

from .diagnostics import DiagnosticMessages, DiagnosticReconciler, load_report
from .errors import ConfigurationError, StagingIOError
from .models import ChainResult, DiagnosticReport, FileResult, PassResult, Segment
from .process import ProcessRunner
from .resources import ResourceStager
from .sources import SourceFile, parser_hint
from .staging import StagingArea
from .tools import ToolContext, ToolPass
from .tracking import ModificationTracker

LOGGER = logging.getLogger(__name__)

WORK_DIR_PREFIX: Final[str] = "pycodemods-"
STAGE_PREFIX: Final[str] = "repo-"
DISTRIBUTION_DIR: Final[str] = "distribution"
INJECTED_ENV: Final[Mapping[str, str]] = {"TERM": "dumb"}
NODE_PATH_VAR: Final[str] = "NODE_PATH"


class PipelineRun:
    """Mutable context for one logical run of a chain.

    The run owns its work directory: staging areas, capture files, and the
    per-run copy of the tool distribution all live below it. It is passed
    explicitly to the coordinator and never stored globally.
    """

    def __init__(
        self,
        work_dir: Path,
        *,
        distribution: ResourceStager | None = None,
        support_dir: Path | None = None,
        keep: bool = False,
    ) -> None:
        self._work_dir = work_dir
        self._distribution = distribution
        self._support_dir = support_dir
        self._keep = keep
        self._most_recent: StagingArea | None = None
        self._tool_root: Path | None = None
        self._pass_count = 0
        self._closed = False

    @classmethod
    def create(
        cls,
        base_dir: Path | None = None,
        *,
        distribution: ResourceStager | None = None,
        support_dir: Path | None = None,
        keep: bool = False,
    ) -> PipelineRun:
        """Create a run with a fresh, uniquely named work directory.

        Args:
            base_dir: Parent of the work directory; the system temporary
                directory when ``None``.
            distribution: Stager providing the tool distribution, if any.
            support_dir: Directory holding driver scripts such as the ESLint driver.
            keep: Leave the work directory in place when the run is closed.

        Returns:
            PipelineRun: Run ready for its first pass.
        """

        if base_dir is not None:
            base_dir.mkdir(parents=True, exist_ok=True)
        work_dir = Path(tempfile.mkdtemp(prefix=WORK_DIR_PREFIX, dir=base_dir))
        return cls(work_dir, distribution=distribution, support_dir=support_dir, keep=keep)

    @property
    def work_dir(self) -> Path:
        return self._work_dir

    @property
    def support_dir(self) -> Path | None:
        return self._support_dir

    @property
    def first_pass(self) -> bool:
        """Return whether the next pass is the first of the run."""

        return self._pass_count == 0

    @property
    def pass_count(self) -> int:
        return self._pass_count

    @property
    def most_recent(self) -> StagingArea | None:
        """Return the stage of the last completed pass."""

        return self._most_recent

    def next_stage_dir(self) -> Path:
        """Return the directory the next pass should stage into."""

        return self._work_dir / f"{STAGE_PREFIX}{self._pass_count}"

    def tool_root(self) -> Path:
        """Return the extracted tool distribution, staging it on first use.

        Raises:
            ConfigurationError: If no distribution was configured.
        """

        if self._tool_root is None:
            if self._distribution is None:
                raise ConfigurationError("This pass needs a tool distribution but 'distribution.source' is not set")
            self._tool_root = self._distribution.stage(self._work_dir / DISTRIBUTION_DIR)
            LOGGER.debug("tool distribution available at %s", self._tool_root)
        return self._tool_root

    def record(self, stage: StagingArea) -> None:
        """Mark ``stage`` as the most recent and advance the pass counter."""

        self._most_recent = stage
        self._pass_count += 1

    def close(self) -> None:
        """Remove the work directory unless the run was configured to keep it."""

        if self._closed:
            return
        self._closed = True
        if self._keep:
            LOGGER.debug("keeping work directory %s", self._work_dir)
            return
        shutil.rmtree(self._work_dir, ignore_errors=True)

    def __enter__(self) -> PipelineRun:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()


class ChainCoordinator:
    """Run a sequence of passes over one in-memory tree within a :class:`PipelineRun`."""

    def __init__(
        self,
        run: PipelineRun,
        *,
        runner: ProcessRunner | None = None,
        tracker: ModificationTracker | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._run = run
        self._runner = runner or ProcessRunner(capture_dir=run.work_dir)
        self._tracker = tracker or ModificationTracker()
        self._env = dict(env or {})
        self._messages = DiagnosticMessages()

    @property
    def run(self) -> PipelineRun:
        return self._run

    @property
    def messages(self) -> DiagnosticMessages:
        """Return every diagnostic row recorded so far."""

        return self._messages

    def run_pass(self, tool_pass: ToolPass, sources: Sequence[SourceFile]) -> PassResult:
        """Stage the tree, execute one tool, and collect changes and annotations.

        The first pass materialises ``sources``; later passes copy the most
        recent stage so they see every earlier modification and generated file.

        Args:
            tool_pass: Tool and options of this pass.
            sources: Original in-memory tree of the chain.

        Returns:
            PassResult: Changed paths, annotated files, and diagnostic rows.

        Raises:
            CodemodError: Any staging, process, configuration, or report failure.
        """

        index = self._run.pass_count
        stage = StagingArea.create(self._run.next_stage_dir())
        previous = self._run.most_recent
        if previous is None:
            for source in sources:
                stage.write_source(source)
        else:
            stage.copy_from(previous)
        LOGGER.debug("pass %d (%s) staged %d file(s) in %s", index, tool_pass.name, len(stage.baselines), stage)

        context = ToolContext(
            stage_dir=stage.directory,
            work_dir=self._run.work_dir,
            parser=parser_hint(sources),
            tool_root=self._run.tool_root() if tool_pass.needs_distribution else None,
            support_dir=self._run.support_dir,
        )
        reports = self._execute(tool_pass, context, stage)
        changed = self._tracker.changed(stage)
        self._run.record(stage)

        charsets = {source.path: source.charset for source in sources}
        annotated: dict[str, tuple[Segment, ...]] = {}
        rows_before = len(self._messages)
        for report in reports:
            reconciler = DiagnosticReconciler(report.rules)
            for path, file_report in report.files.items():
                if not stage.exists(path):
                    LOGGER.debug("ignoring diagnostics for %s: not present in %s", path, stage)
                    continue
                text = stage.read(path, charsets.get(path))
                annotated[path] = reconciler.reconcile(text, file_report.diagnostics)
                self._messages.record(path, file_report.diagnostics)

        return PassResult(
            index=index,
            tool=tool_pass.name,
            stage_dir=stage.directory,
            changed=tuple(sorted(changed)),
            annotated=annotated,
            rows=self._messages.rows[rows_before:],
        )

    def run_chain(self, passes: Sequence[ToolPass], sources: Sequence[SourceFile]) -> ChainResult:
        """Run every pass in order and read the final tree from the terminal stage.

        Args:
            passes: Passes to run, in order.
            sources: Original in-memory tree.

        Returns:
            ChainResult: Per-file outcome for original and generated files.
        """

        results: list[PassResult] = []
        changed: set[str] = set()
        annotations: dict[str, tuple[Segment, ...]] = {}
        for tool_pass in passes:
            result = self.run_pass(tool_pass, sources)
            for path in result.changed:
                if path not in result.annotated:
                    annotations.pop(path, None)
            annotations.update(result.annotated)
            changed.update(result.changed)
            results.append(result)

        terminal = self._run.most_recent
        files: list[FileResult] = []
        original = {source.path for source in sources}
        for source in sources:
            if terminal is None:
                files.append(FileResult(path=source.path, text=source.text))
                continue
            present = terminal.exists(source.path)
            files.append(
                FileResult(
                    path=source.path,
                    text=terminal.read(source.path, source.charset) if present else None,
                    changed=source.path in changed,
                    deleted=not present,
                    segments=annotations.get(source.path, ()) if present else (),
                ),
            )
        if terminal is not None:
            files.extend(self._generated(terminal, original, annotations))
        return ChainResult(passes=tuple(results), files=tuple(files), rows=self._messages.rows)

    def _execute(self, tool_pass: ToolPass, context: ToolContext, stage: StagingArea) -> list[DiagnosticReport]:
        commands = tool_pass.commands(context)
        if not commands:
            LOGGER.debug("pass %s produced no commands; forwarding the tree unchanged", tool_pass.name)
            return []
        base_env = dict(INJECTED_ENV)
        if context.node_modules is not None:
            base_env[NODE_PATH_VAR] = str(context.node_modules)
        base_env.update(self._env)

        reports: list[DiagnosticReport] = []
        for command in commands:
            result = self._runner.run(
                command.args,
                cwd=stage.directory,
                env={**base_env, **command.env},
                allow_failure=command.allow_failure,
            )
            try:
                if result.returncode != 0:
                    LOGGER.debug("tolerated exit status %d from %s", result.returncode, command.display())
                if command.emits_report:
                    reports.append(load_report(result.read_stdout(), root=stage.directory))
            finally:
                result.cleanup()
        return reports

    @staticmethod
    def _generated(
        terminal: StagingArea,
        original: set[str],
        annotations: Mapping[str, tuple[Segment, ...]],
    ) -> list[FileResult]:
        generated: list[FileResult] = []
        for path in terminal.files():
            if path in original:
                continue
            try:
                text = terminal.read(path)
            except StagingIOError as exc:
                LOGGER.warning("skipping generated file %s: %s", path, exc)
                continue
            generated.append(
                FileResult(
                    path=path,
                    text=text,
                    changed=True,
                    generated=True,
                    segments=annotations.get(path, ()),
                ),
            )
        return generated


__all__ = ["ChainCoordinator", "PipelineRun"]
