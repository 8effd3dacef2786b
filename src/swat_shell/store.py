"""Persistent key-value store — the medium the filesystem is saved to.

The store is deliberately dumb: it maps string keys to JSON-serializable
values and knows nothing about paths or files.  Higher layers (the VFS)
decide what to keep in it.

Two backends share one interface:

    - ``MemoryStore`` — an in-process dict with a byte quota, the
      analogue of browser ``localStorage``.
    - ``FileStore`` — one JSON file per key under a directory, so state
      survives restarting the process.

Every key is namespaced with a prefix, which lets several independent
shells share one backing medium without seeing each other's entries.

Operations are ``async`` because real backing media (disk, network,
browser storage) may suspend; callers never assume they complete
synchronously.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

from swat_shell.logging import Logger

_SOURCE = "store"
_SUFFIX = ".json"


class StorageError(Exception):
    """Raise when a value cannot be written to the backing medium."""


class KeyValueStore(ABC):
    """Namespaced async key-value store over an opaque backing medium.

    Subclasses implement the raw ``_load`` / ``_save`` / ``_remove`` /
    ``_keys`` primitives on fully-qualified (prefixed) keys; this base
    class handles namespacing and JSON encoding.
    """

    def __init__(self, *, prefix: str = "", logger: Logger | None = None) -> None:
        """Create a store whose keys all live under *prefix*."""
        self._prefix = prefix
        self._logger = logger or Logger()

    @property
    def prefix(self) -> str:
        """Return the namespace prefix."""
        return self._prefix

    async def get(self, key: str) -> Any:
        """Return the value stored at *key*, or ``None`` if absent.

        A stored value that cannot be decoded is logged and reported as
        ``None`` so that a corrupt entry never prevents startup.
        """
        raw = await self._load(self._prefix + key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            self._logger.warning(f"Discarding corrupt value at {key!r}: {e}", source=_SOURCE)
            return None

    async def set(self, key: str, value: Any) -> None:
        """Store *value* at *key*, replacing any previous value.

        Raises:
            StorageError: If the value is not JSON-serializable or the
                write would exceed the medium's capacity.

        """
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            msg = f"Cannot serialize value for {key!r}: {e}"
            raise StorageError(msg) from e
        await self._save(self._prefix + key, raw)

    async def delete(self, key: str) -> None:
        """Remove *key*.  Removing an absent key is a no-op."""
        await self._remove(self._prefix + key)

    async def list(self, prefix: str = "") -> set[str]:
        """Return every key (without the namespace) starting with *prefix*."""
        full = self._prefix + prefix
        start = len(self._prefix)
        return {k[start:] for k in await self._keys() if k.startswith(full)}

    @abstractmethod
    async def _load(self, key: str) -> str | None: ...

    @abstractmethod
    async def _save(self, key: str, raw: str) -> None: ...

    @abstractmethod
    async def _remove(self, key: str) -> None: ...

    @abstractmethod
    async def _keys(self) -> list[str]: ...


def _entry_size(key: str, raw: str) -> int:
    return len(key.encode()) + len(raw.encode())


class MemoryStore(KeyValueStore):
    """In-process store with a byte quota.

    The quota counts encoded key and value bytes across *all* namespaces
    sharing the same backing dict, exactly as a browser's storage quota
    is shared by every key of an origin.
    """

    def __init__(
        self,
        *,
        prefix: str = "",
        quota_bytes: int | None = None,
        logger: Logger | None = None,
        backing: dict[str, str] | None = None,
    ) -> None:
        """Create a memory store.

        Args:
            prefix: Namespace prefix for every key.
            quota_bytes: Maximum total size; ``None`` means unbounded.
            logger: Where to report corrupt entries.
            backing: Share an existing backing dict with another store.

        """
        super().__init__(prefix=prefix, logger=logger)
        self._data: dict[str, str] = backing if backing is not None else {}
        self._quota = quota_bytes

    @property
    def used_bytes(self) -> int:
        """Return the number of bytes currently held in the backing dict."""
        return sum(_entry_size(k, v) for k, v in self._data.items())

    async def _load(self, key: str) -> str | None:
        return self._data.get(key)

    async def _save(self, key: str, raw: str) -> None:
        if self._quota is not None:
            current = self._data.get(key)
            freed = _entry_size(key, current) if current is not None else 0
            needed = self.used_bytes - freed + _entry_size(key, raw)
            if needed > self._quota:
                msg = f"Quota exceeded writing {key!r}: {needed} > {self._quota} bytes"
                raise StorageError(msg)
        self._data[key] = raw

    async def _remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def _keys(self) -> list[str]:
        return list(self._data)


class FileStore(KeyValueStore):
    """Directory-backed store: each key is a ``<quoted-key>.json`` file.

    Disk access runs in a worker thread so a slow disk never stalls the
    event loop.  Any ``OSError`` from the medium becomes ``StorageError``.
    """

    def __init__(
        self,
        root: Path,
        *,
        prefix: str = "",
        quota_bytes: int | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Create a store rooted at *root* (created on first write)."""
        super().__init__(prefix=prefix, logger=logger)
        self._root = root
        self._quota = quota_bytes

    def _path(self, key: str) -> Path:
        return self._root / (quote(key, safe="") + _SUFFIX)

    def _used_bytes(self, *, excluding: Path) -> int:
        if not self._root.is_dir():
            return 0
        return sum(
            p.stat().st_size for p in self._root.glob("*" + _SUFFIX) if p != excluding
        )

    async def _load(self, key: str) -> str | None:
        path = self._path(key)

        def _read() -> str | None:
            try:
                return path.read_text()
            except FileNotFoundError:
                return None

        try:
            return await asyncio.to_thread(_read)
        except UnicodeDecodeError as e:
            self._logger.warning(f"Unreadable entry {path.name}: {e}", source=_SOURCE)
            return None
        except OSError as e:
            msg = f"Cannot read {key!r}: {e}"
            raise StorageError(msg) from e

    async def _save(self, key: str, raw: str) -> None:
        path = self._path(key)

        def _write() -> None:
            if self._quota is not None:
                needed = self._used_bytes(excluding=path) + len(raw.encode())
                if needed > self._quota:
                    msg = f"Quota exceeded writing {key!r}: {needed} > {self._quota} bytes"
                    raise StorageError(msg)
            tmp = path.with_suffix(".tmp")
            self._root.mkdir(parents=True, exist_ok=True)
            tmp.write_text(raw)
            tmp.replace(path)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            msg = f"Cannot write {key!r}: {e}"
            raise StorageError(msg) from e

    async def _remove(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._path(key).unlink, missing_ok=True)
        except OSError as e:
            msg = f"Cannot remove {key!r}: {e}"
            raise StorageError(msg) from e

    async def _keys(self) -> list[str]:
        def _scan() -> list[str]:
            if not self._root.is_dir():
                return []
            return [unquote(p.name[: -len(_SUFFIX)]) for p in self._root.glob("*" + _SUFFIX)]

        try:
            return await asyncio.to_thread(_scan)
        except OSError as e:
            msg = f"Cannot list entries under {self._root}: {e}"
            raise StorageError(msg) from e
