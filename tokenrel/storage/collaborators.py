"""
Storage collaborators consumed by the engine.

Key-value store:
    get(key) -> bytes | None, set(key, data)

File store (absolute POSIX-style paths such as /Documents/state.json):
    exists(path), read(path) -> bytes | None, write(path, data),
    list(directory) -> [FileEntry]

In-memory implementations back tests and embedding; the on-disk
implementations back the command line.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from ..domain import ErrorKind, StorageError


@dataclass(frozen=True)
class FileEntry:
    """One directory listing entry."""
    name: str
    path: str
    type: str  # "file" or "directory"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, data: bytes) -> None: ...


class FileStore(Protocol):
    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> Optional[bytes]: ...

    def write(self, path: str, data: bytes) -> None: ...

    def list(self, directory: str) -> list[FileEntry]: ...


def normalize_path(path: str) -> str:
    """
    Canonical absolute form of a virtual path.

    Raises:
        StorageError: If the path climbs above the root
    """
    parts = []
    for part in str(path).replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            raise StorageError(
                ErrorKind.STORAGE_ERROR,
                f"Path escapes the file store root: {path}",
            )
        parts.append(part)
    return "/" + "/".join(parts)


# =============================================================================
# KEY-VALUE STORES
# =============================================================================

class MemoryKeyValueStore:
    """Dictionary-backed key-value store."""

    def __init__(self):
        self._data: dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, data: bytes) -> None:
        self._data[key] = bytes(data)


class DirectoryKeyValueStore:
    """
    One file per key inside a directory.

    Keys are restricted to a safe file name alphabet.
    """

    _KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        if not self._KEY_PATTERN.match(key):
            raise StorageError(ErrorKind.STORAGE_ERROR, f"Invalid store key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(ErrorKind.STORAGE_ERROR, f"Failed to read {key}: {e}")

    def set(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(ErrorKind.STORAGE_ERROR, f"Failed to write {key}: {e}")


# =============================================================================
# FILE STORES
# =============================================================================

class MemoryFileStore:
    """Flat dictionary of normalized path -> bytes."""

    def __init__(self):
        self._files: dict[str, bytes] = {}

    def exists(self, path: str) -> bool:
        return normalize_path(path) in self._files

    def read(self, path: str) -> Optional[bytes]:
        return self._files.get(normalize_path(path))

    def write(self, path: str, data: bytes) -> None:
        self._files[normalize_path(path)] = bytes(data)

    def list(self, directory: str) -> list[FileEntry]:
        base = normalize_path(directory)
        prefix = base.rstrip("/") + "/"
        entries: dict[str, FileEntry] = {}
        for path in sorted(self._files):
            if not path.startswith(prefix):
                continue
            head, _, rest = path[len(prefix):].partition("/")
            if head in entries:
                continue
            entries[head] = FileEntry(
                name=head,
                path=posixpath.join(base, head),
                type="directory" if rest else "file",
            )
        return list(entries.values())


class LocalFileStore:
    """
    Virtual absolute paths mapped under a root directory on disk.

    /Documents/state.json lives at <root>/Documents/state.json.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        return self.root.joinpath(*normalize_path(path).split("/")[1:])

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def read(self, path: str) -> Optional[bytes]:
        target = self._resolve(path)
        if not target.is_file():
            return None
        try:
            return target.read_bytes()
        except OSError as e:
            raise StorageError(ErrorKind.STORAGE_ERROR, f"Failed to read {path}: {e}")

    def write(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise StorageError(ErrorKind.STORAGE_ERROR, f"Failed to write {path}: {e}")

    def list(self, directory: str) -> list[FileEntry]:
        base = normalize_path(directory)
        target = self._resolve(base)
        if not target.is_dir():
            return []
        return [
            FileEntry(
                name=child.name,
                path=posixpath.join(base, child.name),
                type="directory" if child.is_dir() else "file",
            )
            for child in sorted(target.iterdir())
        ]
