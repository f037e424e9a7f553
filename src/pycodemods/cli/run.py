# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""The ``run`` command: execute the configured chain over a tree."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich import box
from rich.table import Table
from rich.text import Text

from ..config import Config
from ..config_loader import load_config
from ..diagnostics import render_annotated
from ..errors import CodemodError
from ..models import ChainResult, FileResult
from ..pipeline import ChainCoordinator, PipelineRun
from ..process import ProcessRunner
from ..resources import ResourceStager
from ..sources import SourceFile, load_tree
from ..tracking import ModificationTracker
from .shared import CLIError, CLILogger, build_cli_logger, configure_debug_logging

ROOT_OPTION = Annotated[
    Path,
    typer.Option("--root", "-r", help="Directory holding the tree to transform."),
]
CONFIG_OPTION = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Configuration file used instead of .pycodemods.toml."),
]
WRITE_OPTION = Annotated[
    bool,
    typer.Option("--write", help="Write changed, generated and deleted files back to the root."),
]
JSON_OPTION = Annotated[
    bool,
    typer.Option("--json", help="Print the results as JSON."),
]
EMOJI_OPTION = Annotated[
    bool | None,
    typer.Option("--emoji/--no-emoji", help="Toggle emoji output."),
]
COLOR_OPTION = Annotated[
    bool | None,
    typer.Option("--color/--no-color", help="Toggle coloured output."),
]
KEEP_OPTION = Annotated[
    bool,
    typer.Option("--keep-work-dir", help="Leave staging directories on disk for inspection."),
]
DEBUG_OPTION = Annotated[
    bool,
    typer.Option("--debug", help="Log launched commands and staging details."),
]


@dataclass(slots=True)
class RunCLIOptions:
    """Capture CLI overrides supplied to the run command."""

    root: Path
    config_file: Path | None = None
    write: bool = False
    json_output: bool = False
    emoji: bool | None = None
    color: bool | None = None
    keep: bool = False
    debug: bool = False


def run_codemods(options: RunCLIOptions) -> int:
    """Run the configured chain for ``options.root`` and report the outcome.

    Args:
        options: Parsed command-line options.

    Returns:
        int: ``0`` on success, ``1`` when the chain aborted.
    """

    logger = build_cli_logger(emoji=options.emoji is not False, color=options.color is not False)
    try:
        if not options.root.is_dir():
            raise CLIError(f"Root directory not found: {options.root}")
        config = load_config(options.root, config_file=options.config_file)
        logger = build_cli_logger(
            emoji=config.output.emoji if options.emoji is None else options.emoji,
            color=config.output.color if options.color is None else options.color,
        )
        if options.debug:
            configure_debug_logging(logger.console)
        if options.keep:
            config.staging.keep = True
        sources = load_tree(options.root, excludes=config.discovery.excludes, charset=config.discovery.charset)
        result = execute_chain(config, sources)
    except CLIError as exc:
        logger.fail(str(exc))
        return exc.exit_code
    except CodemodError as exc:
        logger.fail(str(exc))
        return 1

    if options.json_output:
        logger.echo(json.dumps(result_payload(result), indent=2))
    else:
        render_result(result, logger, show_annotations=config.output.show_annotations)
    if options.write:
        written = write_back(options.root, result, sources)
        if written:
            logger.ok(f"Wrote {written} file(s) to {options.root}")
        else:
            logger.info(f"Nothing to write back to {options.root}")
    return 0


def execute_chain(config: Config, sources: Sequence[SourceFile]) -> ChainResult:
    """Run every configured pass over ``sources`` in a fresh :class:`PipelineRun`.

    Raises:
        CodemodError: When any pass fails.
    """

    passes = config.tool_passes()
    distribution = config.distribution
    stager = (
        ResourceStager(distribution.source, cache_dir=distribution.cache_dir)
        if distribution.source is not None
        else None
    )
    with PipelineRun.create(
        config.staging.work_dir,
        distribution=stager,
        support_dir=distribution.support_dir,
        keep=config.staging.keep,
    ) as run:
        coordinator = ChainCoordinator(
            run,
            runner=ProcessRunner(timeout=config.runner.timeout, capture_dir=run.work_dir),
            tracker=ModificationTracker(config.staging.change_detection),
            env=config.runner.env,
        )
        return coordinator.run_chain(passes, sources)


def result_payload(result: ChainResult) -> dict[str, object]:
    """Return a JSON-compatible summary of ``result``."""

    return {
        "passes": [
            {"index": item.index, "tool": item.tool, "changed": list(item.changed), "annotated": sorted(item.annotated)}
            for item in result.passes
        ],
        "files": [
            {
                "path": item.path,
                "status": _status(item),
                "annotations": sum(len(segment.markers) for segment in item.segments),
            }
            for item in result.files
            if item.changed or item.deleted or item.generated or item.annotated
        ],
        "diagnostics": [row.model_dump(mode="json") for row in result.rows],
    }


def render_result(result: ChainResult, logger: CLILogger, *, show_annotations: bool) -> None:
    """Print changed files, diagnostics and, optionally, annotated sources."""

    console = logger.console
    for item in result.passes:
        logger.pass_result(item)
    touched = [item for item in result.files if item.changed or item.deleted or item.generated or item.annotated]
    if not touched:
        logger.ok(f"{len(result.passes)} pass(es) completed; no files changed")
        return

    logger.section("Files")
    files_table = Table(box=box.SIMPLE, expand=True)
    files_table.add_column("Path", overflow="fold")
    files_table.add_column("Status", style="bold")
    files_table.add_column("Annotations", justify="right")
    for item in touched:
        annotations = sum(len(segment.markers) for segment in item.segments)
        files_table.add_row(Text(item.path), _status(item), str(annotations) if annotations else "-")
    console.print(files_table)

    if result.rows:
        logger.section("Diagnostics")
        table = Table(box=box.SIMPLE, expand=True)
        table.add_column("File", overflow="fold")
        table.add_column("Position", justify="right")
        table.add_column("Severity")
        table.add_column("Rule")
        table.add_column("Message", overflow="fold")
        for row in result.rows:
            table.add_row(
                Text(row.source_path),
                f"{row.line}:{row.column}",
                row.severity.display,
                Text(row.rule_id or "-"),
                Text(row.message),
            )
        console.print(table)

    if show_annotations:
        for item in touched:
            if item.annotated:
                logger.section(item.path)
                console.print(render_annotated(item.segments), markup=False, highlight=False)

    changed = sum(1 for item in touched if item.changed or item.deleted or item.generated)
    logger.ok(f"{len(result.passes)} pass(es) completed; {changed} file(s) changed, {len(result.rows)} diagnostic(s)")


def write_back(root: Path, result: ChainResult, sources: Sequence[SourceFile]) -> int:
    """Apply the chain's changes to ``root`` and return the number of files touched."""

    charsets: Mapping[str, str] = {source.path: source.encoding for source in sources}
    written = 0
    for item in result.changed_files():
        target = root.joinpath(*item.path.split("/"))
        if item.deleted or item.text is None:
            target.unlink(missing_ok=True)
        else:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(item.text.encode(charsets.get(item.path, "utf-8")))
        written += 1
    return written


def _status(item: FileResult) -> str:
    if item.deleted:
        return "deleted"
    if item.generated:
        return "generated"
    if item.changed:
        return "changed"
    return "annotated"


def run_command(
    root: ROOT_OPTION = Path("."),
    config: CONFIG_OPTION = None,
    write: WRITE_OPTION = False,
    json_output: JSON_OPTION = False,
    emoji: EMOJI_OPTION = None,
    color: COLOR_OPTION = None,
    keep: KEEP_OPTION = False,
    debug: DEBUG_OPTION = False,
) -> None:
    """Run the configured chain of transformation tools over a tree."""

    exit_code = run_codemods(
        RunCLIOptions(
            root=root.resolve(),
            config_file=config,
            write=write,
            json_output=json_output,
            emoji=emoji,
            color=color,
            keep=keep,
            debug=debug,
        ),
    )
    raise typer.Exit(code=exit_code)


__all__ = [
    "RunCLIOptions",
    "execute_chain",
    "result_payload",
    "render_result",
    "run_codemods",
    "run_command",
    "write_back",
]
