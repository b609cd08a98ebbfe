# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""File operation strategies used by the local registry when installing components."""

from __future__ import annotations

import shutil
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..logging import info


class RegistryMode(str, Enum):
    """Describe how a local registry treats filesystem changes.

    ``default`` performs the operations, ``dryrun`` only describes them,
    ``nowrite`` skips them silently and ``verbose`` describes and performs them.
    """

    DEFAULT = "default"
    DRYRUN = "dryrun"
    NOWRITE = "nowrite"
    VERBOSE = "verbose"


@runtime_checkable
class FileOperations(Protocol):
    """Small file-operations interface applied to the registry tree."""

    @property
    def performs_io(self) -> bool:
        """Return ``True`` when the strategy changes the filesystem."""

    def mkdir_all(self, path: Path) -> None:
        """Create ``path`` and any missing parents."""

    def copy(self, source: Path, destination: Path) -> None:
        """Copy the file at ``source`` to ``destination``."""

    def write(self, path: Path, data: bytes) -> None:
        """Write ``data`` to ``path``."""

    def remove(self, path: Path) -> None:
        """Remove the file or directory tree at ``path``."""


class RealFileOperations:
    """Perform filesystem changes."""

    @property
    def performs_io(self) -> bool:
        return True

    def mkdir_all(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def copy(self, source: Path, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)

    def write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def remove(self, path: Path) -> None:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)


class _DescribingMixin:
    """Print shell-like descriptions of file operations."""

    def _describe_mkdir(self, path: Path) -> None:
        info(f"mkdir -p {path}")

    def _describe_copy(self, source: Path, destination: Path) -> None:
        info(f"cp {source} {destination}")

    def _describe_write(self, path: Path, data: bytes) -> None:
        info(f"write {path} ({len(data)} bytes)")

    def _describe_remove(self, path: Path) -> None:
        info(f"rm -rf {path}")


class VerboseFileOperations(_DescribingMixin, RealFileOperations):
    """Describe each operation, then perform it."""

    def mkdir_all(self, path: Path) -> None:
        self._describe_mkdir(path)
        super().mkdir_all(path)

    def copy(self, source: Path, destination: Path) -> None:
        self._describe_copy(source, destination)
        super().copy(source, destination)

    def write(self, path: Path, data: bytes) -> None:
        self._describe_write(path, data)
        super().write(path, data)

    def remove(self, path: Path) -> None:
        self._describe_remove(path)
        super().remove(path)


class DryRunFileOperations(_DescribingMixin):
    """Describe each operation without touching the filesystem."""

    @property
    def performs_io(self) -> bool:
        return False

    def mkdir_all(self, path: Path) -> None:
        self._describe_mkdir(path)

    def copy(self, source: Path, destination: Path) -> None:
        self._describe_copy(source, destination)

    def write(self, path: Path, data: bytes) -> None:
        self._describe_write(path, data)

    def remove(self, path: Path) -> None:
        self._describe_remove(path)


class NoWriteFileOperations:
    """Skip every operation silently."""

    @property
    def performs_io(self) -> bool:
        return False

    def mkdir_all(self, path: Path) -> None:
        _ = path

    def copy(self, source: Path, destination: Path) -> None:
        _ = (source, destination)

    def write(self, path: Path, data: bytes) -> None:
        _ = (path, data)

    def remove(self, path: Path) -> None:
        _ = path


_STRATEGIES: dict[RegistryMode, type[FileOperations]] = {
    RegistryMode.DEFAULT: RealFileOperations,
    RegistryMode.DRYRUN: DryRunFileOperations,
    RegistryMode.NOWRITE: NoWriteFileOperations,
    RegistryMode.VERBOSE: VerboseFileOperations,
}


def file_operations_for(mode: RegistryMode | str) -> FileOperations:
    """Return the file-operation strategy implementing ``mode``.

    Raises:
        ValueError: If ``mode`` is not a known registry mode.
    """

    return _STRATEGIES[RegistryMode(mode)]()


__all__ = [
    "DryRunFileOperations",
    "FileOperations",
    "NoWriteFileOperations",
    "RealFileOperations",
    "RegistryMode",
    "VerboseFileOperations",
    "file_operations_for",
]
