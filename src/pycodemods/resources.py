# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Extraction of a bundled Node tool distribution and repair of its ``.bin`` entry points."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import stat
import tarfile
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict

from .errors import StagingIOError, SymlinkReconstructionError

LOGGER = logging.getLogger(__name__)

NODE_MODULES_DIR: Final[str] = "node_modules"
BIN_DIR: Final[str] = ".bin"
MANIFEST_NAME: Final[str] = "package.json"
_SCOPE_PREFIX: Final[str] = "@"
_EXECUTABLE_BITS: Final[int] = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class PackageManifest(BaseModel):
    """Subset of a ``package.json`` relevant to executable entry points."""

    model_config = ConfigDict(frozen=True)

    directory: Path
    name: str | None = None
    bin: str | dict[str, str] | None = None

    @property
    def command_name(self) -> str | None:
        """Return the command npm derives from a string ``bin``: the unscoped package name."""

        if not self.name:
            return None
        return self.name.rsplit("/", 1)[-1]


@dataclass(frozen=True, slots=True)
class BinLink:
    """Planned symlink from ``node_modules/.bin/<name>`` to a package script."""

    link: Path
    target: Path

    @property
    def relative_target(self) -> str:
        """Return the target relative to the link's directory, as npm lays it out."""

        return os.path.relpath(self.target, self.link.parent)

    def is_intact(self) -> bool:
        """Return whether the link already resolves to its target."""

        if not self.link.exists():
            return False
        try:
            return self.link.resolve() == self.target.resolve()
        except OSError:
            return False


def read_manifests(node_modules: Path) -> list[PackageManifest]:
    """Read the manifests of top-level and scoped packages in ``node_modules``.

    Args:
        node_modules: The distribution's ``node_modules`` directory.

    Returns:
        list[PackageManifest]: Manifests sorted by package directory. Unreadable
        or malformed manifests are skipped.
    """

    candidates = sorted(
        [*node_modules.glob(f"*/{MANIFEST_NAME}"), *node_modules.glob(f"{_SCOPE_PREFIX}*/*/{MANIFEST_NAME}")],
    )
    manifests: list[PackageManifest] = []
    for path in candidates:
        if path.parent.name == BIN_DIR:
            continue
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.debug("skipping unreadable manifest %s: %s", path, exc)
            continue
        if not isinstance(data, dict):
            continue
        name = data.get("name")
        raw_bin = data.get("bin")
        if isinstance(raw_bin, dict):
            bin_value: str | dict[str, str] | None = {
                str(key): value for key, value in raw_bin.items() if isinstance(value, str)
            }
        elif isinstance(raw_bin, str):
            bin_value = raw_bin
        else:
            bin_value = None
        manifests.append(
            PackageManifest(
                directory=path.parent,
                name=name if isinstance(name, str) else path.parent.name,
                bin=bin_value,
            ),
        )
    return manifests


def plan_bin_links(manifests: Iterable[PackageManifest], bin_dir: Path) -> list[BinLink]:
    """Return the entry-point links declared by ``manifests``.

    This is a pure function: it neither reads nor writes the filesystem.

    Args:
        manifests: Package manifests of the distribution.
        bin_dir: The ``node_modules/.bin`` directory receiving the links.

    Returns:
        list[BinLink]: One link per declared command, in manifest order.
    """

    links: list[BinLink] = []
    for manifest in manifests:
        if isinstance(manifest.bin, str):
            command = manifest.command_name
            if command:
                links.append(BinLink(link=bin_dir / command, target=manifest.directory / manifest.bin))
        elif isinstance(manifest.bin, dict):
            for command, script in manifest.bin.items():
                links.append(BinLink(link=bin_dir / command, target=manifest.directory / script))
    return links


def apply_bin_links(links: Sequence[BinLink]) -> tuple[list[BinLink], list[SymlinkReconstructionError]]:
    """Create the missing or broken links among ``links``.

    Failures are collected and logged, never raised.

    Args:
        links: Planned links.

    Returns:
        tuple[list[BinLink], list[SymlinkReconstructionError]]: Links created
        and the mappings that had to be skipped.
    """

    created: list[BinLink] = []
    skipped: list[SymlinkReconstructionError] = []
    for link in links:
        if link.is_intact():
            continue
        if not link.target.is_file():
            skipped.append(
                SymlinkReconstructionError(
                    f"Entry point {link.link.name} targets missing script {link.target}",
                    link=link.link,
                    target=link.target,
                ),
            )
            continue
        try:
            mode = link.target.stat().st_mode
            link.target.chmod(mode | _EXECUTABLE_BITS)
            link.link.parent.mkdir(parents=True, exist_ok=True)
            if link.link.is_symlink() or link.link.exists():
                link.link.unlink()
            os.symlink(link.relative_target, link.link)
        except OSError as exc:
            skipped.append(
                SymlinkReconstructionError(
                    f"Unable to link {link.link.name}: {exc}",
                    link=link.link,
                    target=link.target,
                ),
            )
            continue
        created.append(link)
    for error in skipped:
        LOGGER.warning("%s", error)
    return created, skipped


def repair_entry_points(root: Path) -> list[BinLink]:
    """Recreate ``node_modules/.bin`` links that packaging dropped.

    Args:
        root: Directory containing the distribution's ``node_modules``.

    Returns:
        list[BinLink]: Links that were created.
    """

    node_modules = root / NODE_MODULES_DIR
    if not node_modules.is_dir():
        return []
    links = plan_bin_links(read_manifests(node_modules), node_modules / BIN_DIR)
    created, _ = apply_bin_links(links)
    return created


class ResourceStager:
    """Extract a tool distribution (directory or tar archive) once and publish it atomically.

    Extraction happens in a uniquely named sibling of the destination which is
    renamed into place only after entry points are repaired, so readers never
    observe a half-extracted tree. With ``cache_dir`` set, published copies are
    keyed by a digest of the source and reused across runs.
    """

    def __init__(self, source: Path, *, cache_dir: Path | None = None) -> None:
        self._source = source
        self._cache_dir = cache_dir

    @property
    def source(self) -> Path:
        """Return the distribution being staged."""

        return self._source

    def stage(self, target: Path) -> Path:
        """Make the distribution available and return its root directory.

        Args:
            target: Fresh per-run directory used when no cache is configured.

        Returns:
            Path: Directory holding the extracted distribution; the shared
            cache entry when caching is enabled.

        Raises:
            StagingIOError: If the source is missing, ``target`` already exists,
                or extraction fails.
        """

        if not self._source.exists():
            raise StagingIOError(f"Tool distribution not found: {self._source}", path=self._source)
        if self._cache_dir is not None:
            destination = self._cache_dir / f"{_stem(self._source)}-{self.digest()[:16]}"
            if destination.is_dir():
                LOGGER.debug("reusing cached distribution %s", destination)
                return destination
        else:
            if target.exists():
                raise StagingIOError(f"Distribution directory already exists: {target}", path=target)
            destination = target
        self._publish(destination)
        return destination

    def digest(self) -> str:
        """Return a digest identifying the source contents."""

        hasher = hashlib.sha256()
        if self._source.is_file():
            with self._source.open("rb") as handle:
                for chunk in iter(lambda: handle.read(1 << 16), b""):
                    hasher.update(chunk)
            return hasher.hexdigest()
        for path in sorted(self._source.rglob("*")):
            if path.is_file():
                info = path.stat()
                hasher.update(path.relative_to(self._source).as_posix().encode())
                hasher.update(f"{info.st_size}:{info.st_mtime_ns}".encode())
        return hasher.hexdigest()

    def _publish(self, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        scratch = destination.parent / f".{destination.name}.{uuid.uuid4().hex}.tmp"
        try:
            self._extract(scratch)
            repair_entry_points(scratch)
            os.rename(scratch, destination)
        except OSError as exc:
            shutil.rmtree(scratch, ignore_errors=True)
            if destination.is_dir():
                LOGGER.debug("distribution published concurrently at %s", destination)
                return
            raise StagingIOError(f"Unable to extract {self._source}: {exc}", path=destination) from exc
        except tarfile.TarError as exc:
            shutil.rmtree(scratch, ignore_errors=True)
            raise StagingIOError(f"Unable to extract {self._source}: {exc}", path=destination) from exc
        except BaseException:
            shutil.rmtree(scratch, ignore_errors=True)
            raise
        LOGGER.debug("published distribution %s", destination)

    def _extract(self, scratch: Path) -> None:
        if self._source.is_dir():
            shutil.copytree(self._source, scratch, symlinks=True)
            return
        scratch.mkdir()
        with tarfile.open(self._source) as archive:
            _safe_extract_tar(archive, scratch)


def _safe_extract_tar(archive: tarfile.TarFile, destination: Path) -> None:
    """Safely extract ``archive`` into ``destination`` preventing path escapes."""

    destination = destination.resolve()
    for member in archive.getmembers():
        member_path = (destination / member.name).resolve()
        if not member_path.is_relative_to(destination):
            raise StagingIOError(f"Unsafe path detected in archive: {member.name}", path=member_path)
    archive.extractall(path=destination, filter="tar")


def _stem(path: Path) -> str:
    name = path.name
    for suffix in (".tar.gz", ".tgz", ".tar"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


__all__ = [
    "BIN_DIR",
    "BinLink",
    "NODE_MODULES_DIR",
    "PackageManifest",
    "ResourceStager",
    "apply_bin_links",
    "plan_bin_links",
    "read_manifests",
    "repair_entry_points",
]
