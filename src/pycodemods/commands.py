# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Typed construction of tool command lines from templates and explicit arguments."""

from __future__ import annotations

import re
import shlex
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from .errors import ConfigurationError


class Placeholder(str, Enum):
    """Tokens recognised inside command templates as ``${name}``."""

    NODE_MODULES = "nodeModules"
    REPO_DIR = "repoDir"
    TRANSFORM = "transform"
    NPM_PACKAGE = "npmPackage"
    PARSER = "parser"
    FILE_FILTER = "fileFilter"
    CODEMOD_ARGS = "codemodArgs"

    @property
    def token(self) -> str:
        """Return the literal ``${name}`` form of the placeholder."""

        return "${" + self.value + "}"


_PLACEHOLDER_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_KNOWN: Final[frozenset[str]] = frozenset(item.value for item in Placeholder)
REPO_DIR_VALUE: Final[str] = "."


@dataclass(frozen=True, slots=True)
class Command:
    """Fully resolved command for one external process.

    Attributes:
        args: Explicit argument list; never re-split on whitespace.
        env: Environment overrides applied on top of the runner's environment.
        allow_failure: Accept a non-zero exit without aborting the pass.
        emits_report: Standard output is a structured diagnostics report.
    """

    args: tuple[str, ...]
    env: Mapping[str, str] = field(default_factory=dict)
    allow_failure: bool = False
    emits_report: bool = False

    def display(self) -> str:
        """Return a shell-quoted rendering for logs."""

        return shlex.join(self.args)


class CommandBuilder:
    """Accumulate arguments explicitly so values containing spaces stay intact."""

    def __init__(self, *head: str) -> None:
        self._args: list[str] = list(head)

    def add(self, *args: str) -> CommandBuilder:
        """Append positional arguments verbatim."""

        self._args.extend(args)
        return self

    def option(self, name: str, value: object | None) -> CommandBuilder:
        """Append ``--name=value`` when ``value`` is not ``None``.

        Booleans render as ``true``/``false``.
        """

        if value is None:
            return self
        rendered = str(value).lower() if isinstance(value, bool) else str(value)
        self._args.append(f"--{name}={rendered}")
        return self

    def repeated(self, name: str, values: Sequence[str] | None) -> CommandBuilder:
        """Append ``--name=value`` once per entry of ``values``."""

        for value in values or ():
            self.option(name, value)
        return self

    def build(
        self,
        *,
        env: Mapping[str, str] | None = None,
        allow_failure: bool = False,
        emits_report: bool = False,
    ) -> Command:
        """Return the accumulated :class:`Command`."""

        return Command(
            args=tuple(self._args),
            env=dict(env or {}),
            allow_failure=allow_failure,
            emits_report=emits_report,
        )


@dataclass(frozen=True, slots=True)
class CommandTemplate:
    """Template tokenised once into arguments, with placeholders resolved per argument.

    ``${codemodArgs}`` expands to zero or more whole arguments; every other
    placeholder is substituted inside the argument that contains it.
    """

    parts: tuple[str, ...]

    @classmethod
    def parse(cls, template: str) -> CommandTemplate:
        """Tokenise ``template`` with shell-like quoting rules.

        Args:
            template: Command template such as
                ``${nodeModules}/.bin/jscodeshift -t ${nodeModules}/${npmPackage}/transforms/${transform} ${repoDir}``.

        Returns:
            CommandTemplate: Parsed template.

        Raises:
            ConfigurationError: If the template is empty, has unbalanced quotes,
                or references an unknown placeholder.
        """

        try:
            parts = tuple(shlex.split(template))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid command template {template!r}: {exc}") from exc
        if not parts:
            raise ConfigurationError("Command template is empty")
        unknown = sorted({name for part in parts for name in _PLACEHOLDER_PATTERN.findall(part)} - _KNOWN)
        if unknown:
            names = ", ".join("${" + name + "}" for name in unknown)
            raise ConfigurationError(f"Unknown placeholder(s) in command template: {names}")
        return cls(parts=parts)

    def placeholders(self) -> frozenset[Placeholder]:
        """Return the placeholders referenced by the template."""

        return frozenset(Placeholder(name) for part in self.parts for name in _PLACEHOLDER_PATTERN.findall(part))

    def resolve(
        self,
        values: Mapping[Placeholder, str],
        *,
        extra_args: Sequence[str] = (),
    ) -> list[str]:
        """Return the argument list with every placeholder substituted.

        Args:
            values: Values for the placeholders the template references.
            extra_args: Arguments spliced in at ``${codemodArgs}``; placeholders
                inside them are substituted too.

        Returns:
            list[str]: Explicit argument list.

        Raises:
            ConfigurationError: If a referenced placeholder has no value.
        """

        resolved: list[str] = []
        args_token = Placeholder.CODEMOD_ARGS.token
        for part in self.parts:
            index = part.find(args_token)
            if index == -1:
                _append_nonempty(resolved, _substitute(part, values))
                continue
            _append_nonempty(resolved, _substitute(part[:index], values))
            resolved.extend(render_placeholders(arg, values) for arg in extra_args)
            _append_nonempty(resolved, _substitute(part[index + len(args_token) :], values))
        return resolved


def _substitute(part: str, values: Mapping[Placeholder, str]) -> str:
    def replace(match: re.Match[str]) -> str:
        placeholder = Placeholder(match.group(1))
        if placeholder is Placeholder.CODEMOD_ARGS:
            raise ConfigurationError("${codemodArgs} may only expand to whole arguments")
        value = values.get(placeholder)
        if value is None:
            raise ConfigurationError(f"No value available for placeholder {placeholder.token}")
        return value

    return _PLACEHOLDER_PATTERN.sub(replace, part)


def _append_nonempty(target: list[str], value: str) -> None:
    if value:
        target.append(value)


def render_placeholders(text: str, values: Mapping[Placeholder, str]) -> str:
    """Substitute placeholders in a single free-form argument such as a user-supplied codemod arg."""

    unknown = sorted(set(_PLACEHOLDER_PATTERN.findall(text)) - _KNOWN)
    if unknown:
        raise ConfigurationError(f"Unknown placeholder(s): {', '.join(unknown)}")
    return _substitute(text, values)


__all__ = [
    "Command",
    "CommandBuilder",
    "CommandTemplate",
    "Placeholder",
    "REPO_DIR_VALUE",
    "render_placeholders",
]
