# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Local-disk file store.

Blocking file operations run in a worker thread so callers can await them
without stalling the event loop.  Writes go to a temporary sibling first and
are moved into place, so readers never observe a half-written document.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from datetime import UTC, datetime
from pathlib import Path

from lockward.core.exceptions import ExternalServiceError
from lockward.storage.base import FileInfo, FileStore

logger = logging.getLogger("lockward.storage.local")


def _info(path: Path) -> FileInfo:
    st = path.stat()
    return FileInfo(
        path=path,
        modified_at=datetime.fromtimestamp(st.st_mtime, tz=UTC),
        size=st.st_size,
    )


def _atomic_write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{os.getpid()}.{uuid.uuid4().hex[:8]}.tmp")
    try:
        tmp.write_bytes(data)
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


class LocalFileStore(FileStore):
    async def write_text(self, path: Path, text: str) -> None:
        await self.write_bytes(path, text.encode("utf-8"))

    async def write_bytes(self, path: Path, data: bytes) -> None:
        try:
            await asyncio.to_thread(_atomic_write, Path(path), data)
        except OSError as exc:
            raise ExternalServiceError("filesystem", f"cannot write {path}: {exc}") from exc
        logger.debug("Wrote %d bytes to %s", len(data), path)

    async def read_bytes(self, path: Path) -> bytes:
        try:
            return await asyncio.to_thread(Path(path).read_bytes)
        except OSError as exc:
            raise ExternalServiceError("filesystem", f"cannot read {path}: {exc}") from exc

    async def stat(self, path: Path) -> FileInfo | None:
        def _stat() -> FileInfo | None:
            p = Path(path)
            return _info(p) if p.is_file() else None

        try:
            return await asyncio.to_thread(_stat)
        except OSError as exc:
            raise ExternalServiceError("filesystem", f"cannot stat {path}: {exc}") from exc

    async def list_files(self, directory: Path, pattern: str = "*") -> list[FileInfo]:
        def _list() -> list[FileInfo]:
            d = Path(directory)
            if not d.is_dir():
                return []
            infos = [_info(p) for p in d.glob(pattern) if p.is_file() and not p.name.startswith(".")]
            return sorted(infos, key=lambda i: (i.modified_at, i.path.name), reverse=True)

        try:
            return await asyncio.to_thread(_list)
        except OSError as exc:
            raise ExternalServiceError("filesystem", f"cannot list {directory}: {exc}") from exc
