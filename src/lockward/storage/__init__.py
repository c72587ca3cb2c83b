# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Storage layer -- file stores for rule documents and evidence artifacts."""

from lockward.storage.base import FileInfo, FileStore
from lockward.storage.local import LocalFileStore

__all__ = [
    "FileInfo",
    "FileStore",
    "LocalFileStore",
]
