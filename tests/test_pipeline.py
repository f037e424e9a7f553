# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for chain coordination across staged passes."""

from __future__ import annotations

import json
import shlex
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from pycodemods.errors import ConfigurationError, ProcessExitError
from pycodemods.pipeline import ChainCoordinator, PipelineRun
from pycodemods.resources import ResourceStager
from pycodemods.sources import SourceFile
from pycodemods.tools import ToolPass, default_registry

ScriptFactory = Callable[[str, str], Path]

_BUMP = """
import os
from pathlib import Path


def bump(path):
    info = Path(path).stat()
    os.utime(path, ns=(info.st_atime_ns, info.st_mtime_ns + 10_000_000_000))
"""


def _pass(python: str, script: Path, *args: str, **options: object) -> ToolPass:
    command = " ".join(shlex.quote(part) for part in (python, str(script), *args))
    return default_registry().configure({"tool": "command", "command": command, **options})


@pytest.fixture
def upper(write_script: ScriptFactory, python: str) -> ToolPass:
    script = write_script(
        "upper.py",
        _BUMP
        + """
import sys
path = Path(sys.argv[1])
path.write_text(path.read_text(encoding="utf-8").upper(), encoding="utf-8")
bump(path)
""",
    )
    return _pass(python, script, "src/app.js")


@pytest.fixture
def append(write_script: ScriptFactory, python: str) -> ToolPass:
    script = write_script(
        "append.py",
        _BUMP
        + """
import sys
path = Path(sys.argv[1])
path.write_text(path.read_text(encoding="utf-8") + "// done\\n", encoding="utf-8")
bump(path)
""",
    )
    return _pass(python, script, "src/app.js")


@pytest.fixture
def report(write_script: ScriptFactory, python: str) -> ToolPass:
    script = write_script(
        "report.py",
        """
import json
import os

print(json.dumps({
    "results": [{
        "filePath": os.path.join(os.getcwd(), "src", "app.js"),
        "messages": [{
            "ruleId": "no-undef", "severity": 2, "message": "'console' is not defined.",
            "line": 1, "column": 1, "endLine": 1, "endColumn": 8,
        }],
        "errorCount": 1,
        "warningCount": 0,
    }],
    "metadata": {"rulesMeta": {"no-undef": {"docs": {"description": "Disallow undeclared variables"}}}},
}))
""",
    )
    return _pass(python, script, emits_report=True)


@pytest.fixture
def run(tmp_path: Path) -> Iterator[PipelineRun]:
    with PipelineRun.create(tmp_path / "work") as pipeline_run:
        yield pipeline_run


def _file(result_files, path: str):
    return next(item for item in result_files if item.path == path)


def test_passes_run_in_sequence_on_isolated_stages(
    run: PipelineRun,
    upper: ToolPass,
    append: ToolPass,
    sample_sources: list[SourceFile],
) -> None:
    result = ChainCoordinator(run).run_chain([upper, append], sample_sources)

    app = _file(result.files, "src/app.js")
    assert app.text == "CONSOLE.LOG('FOO')\n// done\n"
    assert app.changed is True
    assert _file(result.files, "src/util.js").changed is False
    assert [item.changed for item in result.passes] == [("src/app.js",), ("src/app.js",)]

    first_stage, second_stage = (item.stage_dir for item in result.passes)
    assert first_stage != second_stage
    assert (first_stage / "src" / "app.js").read_text(encoding="utf-8") == "CONSOLE.LOG('FOO')\n"
    assert run.pass_count == 2
    assert run.most_recent is not None and run.most_recent.directory == second_stage


def test_later_stage_is_unaffected_by_edits_to_earlier_stage(
    run: PipelineRun,
    upper: ToolPass,
    append: ToolPass,
    sample_sources: list[SourceFile],
) -> None:
    result = ChainCoordinator(run).run_chain([upper, append], sample_sources)
    first_stage, second_stage = (item.stage_dir for item in result.passes)

    (first_stage / "src" / "app.js").write_text("clobbered\n", encoding="utf-8")
    (first_stage / "src" / "late.js").write_text("export {};\n", encoding="utf-8")

    assert (second_stage / "src" / "app.js").read_text(encoding="utf-8") == "CONSOLE.LOG('FOO')\n// done\n"
    assert not (second_stage / "src" / "late.js").exists()


def test_first_pass_materialises_tree(run: PipelineRun, upper: ToolPass, sample_sources: list[SourceFile]) -> None:
    assert run.first_pass is True

    result = ChainCoordinator(run).run_pass(upper, sample_sources)

    assert run.first_pass is False
    assert sorted(path.relative_to(result.stage_dir).as_posix() for path in result.stage_dir.rglob("*.*")) == [
        "README.md",
        "src/app.js",
        "src/util.js",
    ]


def test_generated_and_deleted_files_are_reported(
    run: PipelineRun,
    write_script: ScriptFactory,
    python: str,
    sample_sources: list[SourceFile],
) -> None:
    script = write_script(
        "shuffle.py",
        """
from pathlib import Path
Path("src/new.js").write_text("export {};\\n", encoding="utf-8")
Path("README.md").unlink()
""",
    )

    result = ChainCoordinator(run).run_chain([_pass(python, script)], sample_sources)

    readme = _file(result.files, "README.md")
    assert readme.deleted is True and readme.text is None and readme.changed is True
    generated = _file(result.files, "src/new.js")
    assert generated.generated is True and generated.text == "export {};\n"
    assert {item.path for item in result.changed_files()} == {"README.md", "src/new.js"}


def test_report_is_reconciled_onto_files(
    run: PipelineRun,
    report: ToolPass,
    sample_sources: list[SourceFile],
) -> None:
    result = ChainCoordinator(run).run_chain([report], sample_sources)

    app = _file(result.files, "src/app.js")
    assert app.changed is False
    assert [segment.text for segment in app.segments] == ["console", ".log('foo')\n"]
    assert "Disallow undeclared variables" in app.segments[0].markers[0].description
    assert [(row.source_path, row.rule_id, row.line, row.column) for row in result.rows] == [
        ("src/app.js", "no-undef", 1, 1),
    ]
    assert list(result.passes[0].annotated) == ["src/app.js"]


def test_later_change_discards_stale_annotations(
    run: PipelineRun,
    report: ToolPass,
    upper: ToolPass,
    sample_sources: list[SourceFile],
) -> None:
    result = ChainCoordinator(run).run_chain([report, upper], sample_sources)

    app = _file(result.files, "src/app.js")
    assert app.text == "CONSOLE.LOG('FOO')\n"
    assert app.segments == ()
    assert len(result.rows) == 1


def test_pass_without_commands_forwards_the_tree(
    run: PipelineRun,
    upper: ToolPass,
    sample_sources: list[SourceFile],
) -> None:
    empty_eslint = default_registry().configure({"tool": "eslint"})

    result = ChainCoordinator(run).run_chain([empty_eslint, upper], sample_sources)

    assert result.passes[0].changed == ()
    assert _file(result.files, "src/app.js").text == "CONSOLE.LOG('FOO')\n"


def test_failing_command_aborts_chain(
    run: PipelineRun,
    write_script: ScriptFactory,
    python: str,
    upper: ToolPass,
    sample_sources: list[SourceFile],
) -> None:
    script = write_script("fail.py", "import sys\nsys.stderr.write('cannot parse src/app.js\\n')\nsys.exit(2)\n")

    with pytest.raises(ProcessExitError) as excinfo:
        ChainCoordinator(run).run_chain([_pass(python, script), upper], sample_sources)

    assert excinfo.value.stderr == "cannot parse src/app.js\n"
    assert run.pass_count == 0


def test_tolerated_failure_continues(
    run: PipelineRun,
    write_script: ScriptFactory,
    python: str,
    upper: ToolPass,
    sample_sources: list[SourceFile],
) -> None:
    script = write_script("soft.py", "raise SystemExit(1)\n")

    result = ChainCoordinator(run).run_chain([_pass(python, script, allow_failure=True), upper], sample_sources)

    assert len(result.passes) == 2


def test_distribution_is_staged_once_and_injected(
    tmp_path: Path,
    write_script: ScriptFactory,
    python: str,
    sample_sources: list[SourceFile],
) -> None:
    dist = tmp_path / "dist" / "node_modules"
    dist.mkdir(parents=True)
    script = write_script(
        "env.py",
        """
import json
import os
import sys
from pathlib import Path
Path("env.json").write_text(json.dumps({
    "term": os.environ.get("TERM"),
    "node_path": os.environ.get("NODE_PATH"),
    "arg": sys.argv[1],
    "extra": os.environ.get("EXTRA"),
}), encoding="utf-8")
""",
    )
    command = f"{shlex.quote(python)} {shlex.quote(str(script))} ${{nodeModules}}"
    tool_pass = default_registry().configure({"tool": "command", "command": command})

    with PipelineRun.create(tmp_path / "work", distribution=ResourceStager(tmp_path / "dist")) as run:
        coordinator = ChainCoordinator(run, env={"EXTRA": "yes"})
        result = coordinator.run_chain([tool_pass, tool_pass], sample_sources)
        tool_root = run.tool_root()

    assert tool_root == run.work_dir / "distribution"
    payload = json.loads(_file(result.files, "env.json").text or "")
    assert payload == {
        "term": "dumb",
        "node_path": str(tool_root / "node_modules"),
        "arg": str(tool_root / "node_modules"),
        "extra": "yes",
    }


def test_missing_distribution_is_a_configuration_error(run: PipelineRun, sample_sources: list[SourceFile]) -> None:
    tool_pass = default_registry().configure({"tool": "command", "command": "${nodeModules}/.bin/tool"})

    with pytest.raises(ConfigurationError, match="distribution"):
        ChainCoordinator(run).run_chain([tool_pass], sample_sources)


def test_close_removes_work_dir_unless_kept(tmp_path: Path) -> None:
    removed = PipelineRun.create(tmp_path / "a")
    kept = PipelineRun.create(tmp_path / "b", keep=True)

    removed.close()
    kept.close()

    assert not removed.work_dir.exists()
    assert kept.work_dir.exists()


def test_no_passes_returns_original_tree(run: PipelineRun, sample_sources: list[SourceFile]) -> None:
    result = ChainCoordinator(run).run_chain([], sample_sources)

    assert [item.text for item in result.files] == [source.text for source in sample_sources]
    assert result.changed_files() == ()
