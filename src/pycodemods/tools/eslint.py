# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""ESLint pass: lint (and optionally fix) the stage, reporting ``json-with-metadata`` diagnostics."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Final, cast

from pydantic import Field

from ..commands import Command, CommandBuilder
from .base import NODE_INTERPRETER, Tool, ToolContext, ToolOptions

DRIVER_SCRIPT: Final[str] = "eslint-driver.js"
BUNDLED_SUPPORT_DIR: Final[Path] = Path(__file__).resolve().parents[1] / "support"
_CONFIG_PREFIX: Final[str] = "eslint-config"
_DEFAULT_RULE_LEVEL: Final[int] = 2


class EslintOptions(ToolOptions):
    """Options accepted by the ``eslint`` tool.

    Attributes:
        patterns: Files, directories, or globs to lint.
        parser: Parser module ESLint should use.
        parser_options: ``key: value`` parser options.
        allow_inline_config: Whether inline ``eslint-`` comments are honoured.
        envs: ``key: value`` environment mappings.
        globals: Global variable declarations such as ``var1, var2: writable``.
        plugins: Plugins to load.
        extends: Shareable configs to extend.
        rules: Rule settings; a bare rule name is enabled as an error.
        fix: Apply automatic fixes.
        config_file: Complete configuration as JSON, overriding every other option.
    """

    patterns: tuple[str, ...] = ()
    parser: str | None = None
    parser_options: tuple[str, ...] = Field(default=(), alias="parserOptions")
    allow_inline_config: bool | None = Field(default=None, alias="allowInlineConfig")
    envs: tuple[str, ...] = ()
    globals: tuple[str, ...] = ()
    plugins: tuple[str, ...] = ()
    extends: tuple[str, ...] = Field(default=(), alias="extend")
    rules: tuple[str, ...] = ()
    fix: bool | None = None
    config_file: str | None = Field(default=None, alias="configFile")

    @property
    def is_empty(self) -> bool:
        """Return whether nothing was configured that would make ESLint report anything."""

        return not (self.plugins or self.extends or self.rules) and self.config_file is None


class EslintTool(Tool):
    """Run the bundled ESLint driver over the staging directory."""

    name = "eslint"
    description = "Lint source code with ESLint and annotate files with its diagnostics."
    options_model = EslintOptions

    def needs_distribution(self, options: ToolOptions) -> bool:
        return not cast(EslintOptions, self._options(options)).is_empty

    def build_commands(self, options: ToolOptions, context: ToolContext) -> list[Command]:
        """Return the driver invocation, or nothing when no rules are configured.

        The driver is taken from the configured support directory, falling back
        to the copy shipped inside this package.
        """

        opts = cast(EslintOptions, self._options(options))
        if opts.is_empty:
            return []
        support_dir = context.support_dir or BUNDLED_SUPPORT_DIR
        builder = CommandBuilder(NODE_INTERPRETER, str(support_dir / DRIVER_SCRIPT))
        builder.repeated("patterns", opts.patterns)
        if opts.config_file is not None:
            builder.option("config-file", str(_write_config(opts.config_file, context.work_dir)))
        else:
            builder.option("parser", opts.parser)
            builder.repeated("parser-options", opts.parser_options)
            builder.option("allow-inline-config", opts.allow_inline_config)
            builder.repeated("env", [f"{{{env}}}" for env in opts.envs])
            builder.repeated("globals", [f"{{{value}}}" for value in opts.globals])
            builder.repeated("plugins", opts.plugins)
            builder.repeated("extends", opts.extends)
            builder.repeated("rules", [_rule_argument(rule) for rule in opts.rules])
            builder.option("fix", opts.fix)
        return [builder.build(emits_report=True)]


def _rule_argument(rule: str) -> str:
    if ":" in rule:
        return f"{{{rule}}}"
    return f"{{{rule}: {_DEFAULT_RULE_LEVEL}}}"


def _write_config(contents: str, work_dir: Path) -> Path:
    work_dir.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        prefix=_CONFIG_PREFIX,
        suffix=".json",
        dir=work_dir,
        delete=False,
    ) as handle:
        handle.write(contents)
    return Path(handle.name)


__all__ = ["BUNDLED_SUPPORT_DIR", "DRIVER_SCRIPT", "EslintOptions", "EslintTool"]
