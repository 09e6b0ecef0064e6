"""Synthetic directory listings (``.index`` / ``.index-dirs``).

A listing is plain text, one entry name per line, each line newline
terminated. Entries come out in the order the directory enumeration yields
them; that order is OS-defined and deliberately not sorted. Symbolic links
are resolved to the type of their target before being classified, and a
link whose target cannot be stat'ed fails the whole listing.
"""

from __future__ import annotations

import logging
import os
import posixpath
import stat
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Iterable, NamedTuple, Protocol

logger = logging.getLogger(__name__)


class ListingError(Exception):
    """A directory entry could not be classified (e.g. dangling symlink)."""

    def __init__(self, path: str, cause: OSError):
        super().__init__(f"cannot resolve {path!r}: {cause.strerror or cause}")
        self.path = path


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"


class DirEntry(NamedTuple):
    name: str
    kind: EntryKind


def clean_path(path: str) -> str:
    """Lexically clean a slash-separated relative path; ``..`` cannot escape."""
    cleaned = posixpath.normpath("/" + path.replace("\\", "/")).lstrip("/")
    return "" if cleaned == "." else cleaned


class DirectorySource(Protocol):
    """Read-only view of a directory tree, addressed by relative paths."""

    def entries(self, directory: str) -> Iterable[DirEntry]:
        """Immediate children of ``directory``, symlinks not followed."""
        ...

    def resolve(self, path: str) -> EntryKind:
        """Kind of whatever ``path`` points to, following symlinks."""
        ...

    def open(self, path: str) -> BinaryIO:
        ...


def _kind_from_mode(mode: int) -> EntryKind:
    if stat.S_ISREG(mode):
        return EntryKind.FILE
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    return EntryKind.OTHER


def _scandir_kind(entry: os.DirEntry) -> EntryKind:
    if entry.is_symlink():
        return EntryKind.SYMLINK
    if entry.is_dir(follow_symlinks=False):
        return EntryKind.DIRECTORY
    if entry.is_file(follow_symlinks=False):
        return EntryKind.FILE
    return EntryKind.OTHER


class LocalDirectory:
    """DirectorySource backed by a directory on the host filesystem."""

    def __init__(self, root: str | Path):
        self.root = str(Path(root).resolve())

    def __repr__(self) -> str:
        return f"LocalDirectory({self.root!r})"

    def _full_path(self, path: str) -> str:
        relative = clean_path(path)
        if not relative:
            return self.root
        return os.path.join(self.root, *relative.split("/"))

    def entries(self, directory: str) -> list[DirEntry]:
        result: list[DirEntry] = []
        with os.scandir(self._full_path(directory)) as it:
            for entry in it:
                result.append(DirEntry(entry.name, _scandir_kind(entry)))
        return result

    def resolve(self, path: str) -> EntryKind:
        return _kind_from_mode(os.stat(self._full_path(path)).st_mode)

    def open(self, path: str) -> BinaryIO:
        full_path = self._full_path(path)
        if os.path.isdir(full_path):
            raise IsADirectoryError(full_path)
        return open(full_path, "rb")


def _resolved_entries(source: DirectorySource, directory: str) -> Iterable[DirEntry]:
    for entry in source.entries(directory):
        if entry.kind is not EntryKind.SYMLINK:
            yield entry
            continue
        target = posixpath.join(directory, entry.name)
        try:
            yield DirEntry(entry.name, source.resolve(target))
        except OSError as exc:
            raise ListingError(target, exc) from exc


def _render(source: DirectorySource, directory: str, kind: EntryKind, exclude: frozenset[str]) -> str:
    directory = clean_path(directory)
    lines = [
        entry.name + "\n"
        for entry in _resolved_entries(source, directory)
        if entry.kind is kind and entry.name not in exclude
    ]
    logger.debug("Listed %d %s entries in %r", len(lines), kind.value, directory or "/")
    return "".join(lines)


def list_files(source: DirectorySource, directory: str, exclude: frozenset[str] = frozenset()) -> str:
    """Regular files directly inside ``directory``."""
    return _render(source, directory, EntryKind.FILE, exclude)


def list_directories(source: DirectorySource, directory: str = "", exclude: frozenset[str] = frozenset()) -> str:
    """Directories directly inside ``directory`` (the root by default)."""
    return _render(source, directory, EntryKind.DIRECTORY, exclude)
