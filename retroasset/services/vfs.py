"""Virtual filesystem over a category root with reserved listing resources."""

from __future__ import annotations

import io
import os
import posixpath
import stat
import time
from typing import BinaryIO

from retroasset.schemas.assets import AssetMount
from retroasset.services.listing import (
    DirectorySource,
    LocalDirectory,
    clean_path,
    list_directories,
    list_files,
)

INDEX_NAME = ".index"
DIRS_INDEX_NAME = ".index-dirs"

SYNTHETIC_MODE = stat.S_IFREG | 0o444


class SyntheticFile(io.BytesIO):
    """In-memory listing that quacks like a regular, read-only file."""

    def __init__(self, content: str, name: str):
        super().__init__(content.encode("utf-8"))
        self.name = name
        self.mtime = time.time()

    def __repr__(self) -> str:
        return f"SyntheticFile({self.name!r}, {len(self.getbuffer())} bytes)"

    def stat(self) -> os.stat_result:
        size = len(self.getbuffer())
        return os.stat_result((SYNTHETIC_MODE, 0, 0, 1, 0, 0, size, self.mtime, self.mtime, self.mtime))

    def is_dir(self) -> bool:
        return False

    def readdir(self) -> list:
        return []


class VirtualFilesystem:
    """Maps request paths under ``root_prefix`` onto ``source``.

    Two reserved names are answered with generated listings instead of file
    contents:

    * ``<dir>/.index`` (when ``indexed``): regular files directly in ``<dir>``
    * ``.index-dirs`` at the root (when ``indexed`` and ``has_subdir_index``):
      directories directly in the root

    Every other path is opened from ``source`` as-is. Instances are immutable
    and shared by all requests of a category.
    """

    def __init__(
        self,
        source: DirectorySource,
        root_prefix: str,
        *,
        indexed: bool = False,
        has_subdir_index: bool = False,
    ):
        self.source = source
        self.root_prefix = root_prefix
        self.indexed = indexed
        self.has_subdir_index = has_subdir_index

    @classmethod
    def from_mount(cls, mount: AssetMount) -> VirtualFilesystem:
        if mount.local_root is None:
            raise ValueError(f"{mount.category.value} has no local root")
        policy = mount.policy
        return cls(
            LocalDirectory(mount.local_root),
            policy.path_prefix,
            indexed=policy.indexed,
            has_subdir_index=policy.has_subdir_index,
        )

    def __repr__(self) -> str:
        return (
            f"VirtualFilesystem({self.root_prefix!r}, {self.source!r}, "
            f"indexed={self.indexed}, has_subdir_index={self.has_subdir_index})"
        )

    @property
    def special_names(self) -> frozenset[str]:
        names = set()
        if self.indexed:
            names.add(INDEX_NAME)
            if self.has_subdir_index:
                names.add(DIRS_INDEX_NAME)
        return frozenset(names)

    def relative_path(self, request_path: str) -> str:
        """Strip the category prefix (if present) and clean what is left."""
        prefix = self.root_prefix.rstrip("/")
        if request_path == prefix or request_path.startswith(prefix + "/"):
            request_path = request_path[len(prefix):]
        return clean_path(request_path)

    def open_special(self, relative: str) -> SyntheticFile | None:
        """Build the listing ``relative`` names, or None for ordinary paths."""
        if not self.indexed:
            return None
        relative = clean_path(relative)
        if self.has_subdir_index and relative == DIRS_INDEX_NAME:
            return SyntheticFile(list_directories(self.source, "", self.special_names), DIRS_INDEX_NAME)
        directory, base = posixpath.split(relative)
        if base == INDEX_NAME:
            return SyntheticFile(list_files(self.source, directory, self.special_names), INDEX_NAME)
        return None

    def open(self, request_path: str) -> BinaryIO:
        relative = self.relative_path(request_path)
        synthetic = self.open_special(relative)
        if synthetic is not None:
            return synthetic
        return self.source.open(relative)
