# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for command templates and builders."""

from __future__ import annotations

import pytest

from pycodemods.commands import CommandBuilder, CommandTemplate, Placeholder, render_placeholders
from pycodemods.errors import ConfigurationError

VALUES = {
    Placeholder.NODE_MODULES: "/opt/tools/node_modules",
    Placeholder.REPO_DIR: ".",
    Placeholder.TRANSFORM: "built-in-next-font",
    Placeholder.NPM_PACKAGE: "@next/codemod",
    Placeholder.PARSER: "tsx",
}


def test_default_codemod_template_resolves_to_explicit_arguments() -> None:
    template = CommandTemplate.parse(
        "${nodeModules}/.bin/jscodeshift -t ${nodeModules}/${npmPackage}/transforms/${transform} ${repoDir} ${codemodArgs}",
    )

    args = template.resolve(VALUES, extra_args=["--parser=${parser}", "--force"])

    assert args == [
        "/opt/tools/node_modules/.bin/jscodeshift",
        "-t",
        "/opt/tools/node_modules/@next/codemod/transforms/built-in-next-font",
        ".",
        "--parser=tsx",
        "--force",
    ]


def test_codemod_args_keep_embedded_prefix_and_suffix() -> None:
    template = CommandTemplate.parse("run --before=${codemodArgs}=after")

    assert template.resolve(VALUES, extra_args=["a", "b"]) == ["run", "--before=", "a", "b", "=after"]


def test_empty_codemod_args_expand_to_nothing() -> None:
    template = CommandTemplate.parse("tool ${repoDir} ${codemodArgs}")

    assert template.resolve(VALUES) == ["tool", "."]


def test_quoted_values_with_spaces_stay_single_arguments() -> None:
    template = CommandTemplate.parse("tool '--message=hello world' ${repoDir}")

    assert template.resolve(VALUES) == ["tool", "--message=hello world", "."]


def test_values_with_spaces_are_not_split() -> None:
    template = CommandTemplate.parse("${nodeModules}/.bin/tool")

    assert template.resolve({Placeholder.NODE_MODULES: "/My Tools/node_modules"}) == [
        "/My Tools/node_modules/.bin/tool",
    ]


def test_unknown_placeholder_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="nodeModulez"):
        CommandTemplate.parse("${nodeModulez}/.bin/tool")


def test_missing_value_is_rejected() -> None:
    template = CommandTemplate.parse("${nodeModules}/.bin/tool -t ${transform}")

    with pytest.raises(ConfigurationError, match="transform"):
        template.resolve({Placeholder.NODE_MODULES: "/nm"})


@pytest.mark.parametrize("template", ["", "   ", "tool 'unbalanced"])
def test_invalid_templates_are_rejected(template: str) -> None:
    with pytest.raises(ConfigurationError):
        CommandTemplate.parse(template)


def test_placeholders_lists_referenced_tokens() -> None:
    template = CommandTemplate.parse("${nodeModules}/x ${repoDir}${fileFilter}")

    assert template.placeholders() == {Placeholder.NODE_MODULES, Placeholder.REPO_DIR, Placeholder.FILE_FILTER}


def test_render_placeholders_rejects_unknown_names() -> None:
    with pytest.raises(ConfigurationError):
        render_placeholders("--x=${bogus}", VALUES)


def test_builder_renders_options() -> None:
    command = (
        CommandBuilder("node", "driver.js")
        .repeated("patterns", ["src/**/*.js", "lib with space/*.js"])
        .option("fix", True)
        .option("parser", None)
        .add("--verbose")
        .build(emits_report=True)
    )

    assert command.args == (
        "node",
        "driver.js",
        "--patterns=src/**/*.js",
        "--patterns=lib with space/*.js",
        "--fix=true",
        "--verbose",
    )
    assert command.emits_report is True
    assert command.allow_failure is False
    assert "'--patterns=lib with space/*.js'" in command.display()
