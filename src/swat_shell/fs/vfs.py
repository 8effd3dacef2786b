"""Virtual filesystem — path-addressed files persisted through a store.

Unlike an inode filesystem, the VFS keeps a *flat* table of files keyed
by absolute path:

- **FileNode**: one file — its normalized path, type (text or blob),
  content, and modification time.

- **Directories are implied.**  A directory is any strict ancestor of a
  stored file's path, plus the working directory itself.  Nothing is
  ever created with ``mkdir``; ``chdir`` accepts any normalized path, so
  there is no "empty directory" to lose.

- **A path may be both.**  Because directories are never stored, a
  file at ``/a`` and a file at ``/a/b`` can coexist: ``/a`` reads as a
  file and lists as a directory, and ``list("/")`` names ``a`` once.
  Neither write is rejected.

- **Write-through persistence.**  Every mutation updates the in-memory
  state, then saves the *whole* state as one entry in the key-value
  store before returning.  If the save fails the in-memory change is
  rolled back, so a caller never observes a mutation that was not
  durably stored.

Path normalization is root-clamped: ``..`` above ``/`` stays at ``/``.
"""

from __future__ import annotations

import base64
import copy
import time
from collections import deque
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from swat_shell.config import DEFAULT_HISTORY_CAPACITY
from swat_shell.logging import Logger
from swat_shell.store import KeyValueStore, StorageError

_SOURCE = "vfs"

ROOT = "/"


class FileType(StrEnum):
    """The kind of content a file node holds."""

    TEXT = "text"
    BLOB = "blob"


def normalize(path: str, cwd: str = ROOT) -> str:
    """Resolve *path* against *cwd* into a canonical absolute path.

    Examples::

        normalize("./a", "/x")      → "/x/a"
        normalize("../../a", "/")   → "/a"
        normalize("a/../../b", "/") → "/b"
        normalize("//a///b/", "/")  → "/a/b"

    """
    if not path.startswith("/"):
        path = cwd + "/" + path
    stack: list[str] = []
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if stack:
                stack.pop()
            continue
        stack.append(part)
    return "/" + "/".join(stack)


@dataclass
class FileNode:
    """A single stored file."""

    path: str
    type: FileType
    content: str | bytes
    mtime: float

    @property
    def size(self) -> int:
        """Return the content length in bytes."""
        if isinstance(self.content, bytes):
            return len(self.content)
        return len(self.content.encode())

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted ``{type, content, mtime}`` shape."""
        content = self.content
        if isinstance(content, bytes):
            content = base64.b64encode(content).decode("ascii")
        return {"type": str(self.type), "content": content, "mtime": self.mtime}

    @classmethod
    def from_dict(cls, path: str, data: dict[str, Any]) -> FileNode:
        """Rebuild a node stored at *path*.

        Raises:
            ValueError: If the entry is malformed.

        """
        if not isinstance(data, dict):
            msg = f"Entry for {path} must be a JSON object"
            raise ValueError(msg)  # noqa: TRY004
        file_type = FileType(data.get("type", FileType.TEXT))
        content = data.get("content", "")
        if not isinstance(content, str):
            msg = f"Content of {path} is not a string"
            raise ValueError(msg)  # noqa: TRY004
        if file_type is FileType.BLOB:
            content = base64.b64decode(content)
        return cls(path=path, type=file_type, content=content, mtime=float(data.get("mtime", 0)))


@dataclass(frozen=True)
class FileStat:
    """Read-only snapshot of a file's metadata (returned by stat)."""

    size: int
    mtime: float
    type: FileType


@dataclass
class FileSystemState:
    """Everything the VFS persists: cwd, the file table, and history."""

    cwd: str = ROOT
    files: dict[str, FileNode] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    history: deque[str] = field(default_factory=deque)  # pyright: ignore[reportUnknownVariableType]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted JSON layout."""
        return {
            "cwd": self.cwd,
            "files": {path: node.to_dict() for path, node in self.files.items()},
            "history": list(self.history),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, history_capacity: int) -> FileSystemState:
        """Rebuild state from its JSON layout, re-normalizing every path.

        Raises:
            ValueError: If the data does not have the expected shape.

        """
        if not isinstance(data, dict):
            msg = "Filesystem state must be a JSON object"
            raise ValueError(msg)  # noqa: TRY004
        cwd = normalize(str(data.get("cwd", ROOT)))
        files: dict[str, FileNode] = {}
        raw_files = data.get("files") or {}
        if not isinstance(raw_files, dict):
            msg = "'files' must be a JSON object"
            raise ValueError(msg)  # noqa: TRY004
        for raw_path, entry in raw_files.items():
            path = normalize(str(raw_path))
            if path == ROOT:
                msg = "A file cannot live at the root path"
                raise ValueError(msg)
            files[path] = FileNode.from_dict(path, entry)
        raw_history = data.get("history") or []
        history = deque((str(cmd) for cmd in raw_history), maxlen=history_capacity)
        return cls(cwd=cwd, files=files, history=history)


class VirtualFileSystem:
    """A flat, path-keyed filesystem persisted through a key-value store.

    Construct, then ``await load()`` once before use.  All paths may be
    relative; they are resolved against the current working directory.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        state_key: str = "vfs:state",
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
        logger: Logger | None = None,
    ) -> None:
        """Create a VFS saving its state under *state_key* in *store*."""
        self._store = store
        self._key = state_key
        self._capacity = history_capacity
        self._logger = logger or Logger()
        self._state = FileSystemState(history=deque(maxlen=history_capacity))

    async def load(self) -> None:
        """Hydrate from the store, or start empty if nothing usable is saved."""
        data = await self._store.get(self._key)
        if data is None:
            self._state = FileSystemState(history=deque(maxlen=self._capacity))
            self._logger.info("No saved state, starting empty", source=_SOURCE)
            return
        try:
            self._state = FileSystemState.from_dict(data, history_capacity=self._capacity)
        except (ValueError, TypeError, AttributeError) as e:
            self._logger.warning(f"Saved state is malformed, starting empty: {e}", source=_SOURCE)
            self._state = FileSystemState(history=deque(maxlen=self._capacity))
            return
        self._logger.info(f"Loaded {len(self._state.files)} file(s)", source=_SOURCE)

    async def _commit(self, previous: FileSystemState) -> None:
        """Persist the current state, restoring *previous* if the save fails."""
        try:
            await self._store.set(self._key, self._state.to_dict())
        except StorageError as e:
            self._state = previous
            self._logger.error(f"Persist failed, change rolled back: {e}", source=_SOURCE)
            raise

    def _snapshot(self) -> FileSystemState:
        return copy.deepcopy(self._state)

    def resolve(self, path: str) -> str:
        """Normalize *path* against the current working directory."""
        return normalize(path, self._state.cwd)

    # -- Queries ---------------------------------------------------------

    def cwd(self) -> str:
        """Return the current working directory."""
        return self._state.cwd

    def exists(self, path: str) -> bool:
        """Check whether a file is stored at *path*."""
        return self.resolve(path) in self._state.files

    def paths(self) -> list[str]:
        """Return the absolute path of every stored file, sorted."""
        return sorted(self._state.files)

    def history(self) -> list[str]:
        """Return remembered command lines, oldest first."""
        return list(self._state.history)

    async def read(self, path: str) -> str:
        """Return the text content of the file at *path*.

        Raises:
            FileNotFoundError: If no text file exists at the path.

        """
        full = self.resolve(path)
        node = self._state.files.get(full)
        if node is None or node.type is not FileType.TEXT:
            msg = f"No such file: {full}"
            raise FileNotFoundError(msg)
        return str(node.content)

    async def read_bytes(self, path: str) -> bytes:
        """Return the content of any file as bytes.

        Raises:
            FileNotFoundError: If nothing is stored at the path.

        """
        full = self.resolve(path)
        node = self._state.files.get(full)
        if node is None:
            msg = f"No such file: {full}"
            raise FileNotFoundError(msg)
        return node.content if isinstance(node.content, bytes) else node.content.encode()

    def list(self, directory: str = ROOT) -> list[str]:
        """Return the sorted, distinct names one level below *directory*.

        Children come from stored files and from the working directory,
        which is always a directory even when it holds nothing.
        """
        base = self.resolve(directory)
        prefix = base if base == ROOT else base + "/"
        names: set[str] = set()
        for path in (*self._state.files, self._state.cwd):
            if path.startswith(prefix) and path != base:
                names.add(path[len(prefix) :].split("/", 1)[0])
        return sorted(names)

    def stat(self, path: str) -> FileStat:
        """Return metadata for the file at *path*.

        Raises:
            FileNotFoundError: If nothing is stored at the path.

        """
        full = self.resolve(path)
        node = self._state.files.get(full)
        if node is None:
            msg = f"No such file: {full}"
            raise FileNotFoundError(msg)
        return FileStat(size=node.size, mtime=node.mtime, type=node.type)

    # -- Mutations -------------------------------------------------------

    async def write(self, path: str, content: str) -> None:
        """Create or replace a text file with *content*.

        Raises:
            IsADirectoryError: If *path* normalizes to ``/``.
            StorageError: If the new state cannot be persisted.

        """
        await self._put(path, FileType.TEXT, content)

    async def write_blob(self, path: str, content: bytes) -> None:
        """Create or replace a binary file with *content*.

        Raises:
            IsADirectoryError: If *path* normalizes to ``/``.
            StorageError: If the new state cannot be persisted.

        """
        await self._put(path, FileType.BLOB, content)

    async def _put(self, path: str, file_type: FileType, content: str | bytes) -> None:
        full = self.resolve(path)
        if full == ROOT:
            msg = "Cannot write to the root directory"
            raise IsADirectoryError(msg)
        previous = self._snapshot()
        self._state.files[full] = FileNode(
            path=full, type=file_type, content=content, mtime=time.time()
        )
        await self._commit(previous)

    async def delete(self, path: str) -> None:
        """Remove the file at *path*.

        Raises:
            FileNotFoundError: If nothing is stored at the path.
            StorageError: If the new state cannot be persisted.

        """
        full = self.resolve(path)
        if full not in self._state.files:
            msg = f"No such file: {full}"
            raise FileNotFoundError(msg)
        previous = self._snapshot()
        del self._state.files[full]
        await self._commit(previous)

    async def chdir(self, path: str) -> str:
        """Change the working directory and return the normalized target.

        Any normalized path is accepted, even one with nothing under it.

        Raises:
            StorageError: If the new state cannot be persisted.

        """
        full = self.resolve(path)
        previous = self._snapshot()
        self._state.cwd = full
        await self._commit(previous)
        return full

    async def history_push(self, command: str) -> None:
        """Append *command* to history, evicting the oldest line when full.

        Raises:
            StorageError: If the new state cannot be persisted.

        """
        previous = self._snapshot()
        self._state.history.append(command)
        await self._commit(previous)

    # -- Backup and restore ----------------------------------------------

    def dump(self) -> dict[str, Any]:
        """Return a JSON-ready snapshot of the whole filesystem."""
        return self._state.to_dict()

    async def import_state(self, data: dict[str, Any]) -> None:
        """Replace the whole filesystem with *data*.

        The replacement is atomic: if *data* is malformed or cannot be
        persisted, the current state is left untouched.

        Raises:
            ValueError: If *data* does not have the persisted layout.
            StorageError: If the new state cannot be persisted.

        """
        incoming = FileSystemState.from_dict(data, history_capacity=self._capacity)
        previous = self._state
        self._state = incoming
        await self._commit(previous)
        self._logger.info(f"Imported {len(incoming.files)} file(s)", source=_SOURCE)

    async def reset(self) -> None:
        """Discard every file, the history, and the persisted entry."""
        await self._store.delete(self._key)
        self._state = FileSystemState(history=deque(maxlen=self._capacity))
        self._logger.info("State reset", source=_SOURCE)
