# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Abstract file-store interface for rule documents and evidence artifacts."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class FileInfo:
    path: Path
    modified_at: datetime
    size: int


class FileStore(abc.ABC):
    """Asynchronous read/write access to artifacts at configurable paths.

    Implementations surface failures as
    :class:`~lockward.core.exceptions.ExternalServiceError`; they never
    swallow them.
    """

    @abc.abstractmethod
    async def write_text(self, path: Path, text: str) -> None:
        """Write *text* to *path*, creating parent directories."""

    @abc.abstractmethod
    async def write_bytes(self, path: Path, data: bytes) -> None:
        """Write *data* to *path*, creating parent directories."""

    @abc.abstractmethod
    async def read_bytes(self, path: Path) -> bytes:
        """Return the contents of *path*."""

    @abc.abstractmethod
    async def stat(self, path: Path) -> FileInfo | None:
        """Return metadata for *path*, or ``None`` if it does not exist."""

    @abc.abstractmethod
    async def list_files(self, directory: Path, pattern: str = "*") -> list[FileInfo]:
        """List regular files in *directory* matching *pattern*.

        Returns:
            Matching files, newest first.  A missing directory yields an
            empty list.
        """
