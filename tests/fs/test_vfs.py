"""Tests for the virtual filesystem.

The VFS is a flat table of files keyed by normalized path.  Directories
are implied by file paths and the working directory.  Every mutation is
saved to the store before it returns, and rolled back if the save fails.
"""

import pytest

from swat_shell.fs.vfs import FileType, VirtualFileSystem
from swat_shell.logging import Logger, LogLevel
from swat_shell.store import MemoryStore, StorageError

STATE_KEY = "vfs:state"


async def _loaded_fs(
    store: MemoryStore | None = None, *, history_capacity: int = 100
) -> VirtualFileSystem:
    """Create and hydrate a VFS for testing."""
    fs = VirtualFileSystem(store or MemoryStore(), history_capacity=history_capacity)
    await fs.load()
    return fs


class TestReadWrite:
    """Verify write-then-read round trips and overwrite semantics."""

    @pytest.mark.parametrize("content", ["", "hello", "multi\nline\n", "ünïcødé ✓"])
    async def test_write_then_read(self, content: str) -> None:
        """Read returns exactly what was written, including empty content."""
        fs = await _loaded_fs()
        await fs.write("/f.txt", content)
        assert await fs.read("/f.txt") == content

    async def test_overwrite_replaces(self) -> None:
        """A second write replaces the content entirely."""
        fs = await _loaded_fs()
        await fs.write("/f", "long original content")
        await fs.write("/f", "new")
        assert await fs.read("/f") == "new"

    async def test_relative_paths_use_cwd(self) -> None:
        """Relative paths resolve against the working directory."""
        fs = await _loaded_fs()
        await fs.chdir("/docs")
        await fs.write("a.txt", "x")
        assert await fs.read("/docs/a.txt") == "x"
        assert await fs.read("./a.txt") == "x"

    async def test_read_missing_raises(self) -> None:
        """Reading a missing file is FileNotFoundError."""
        fs = await _loaded_fs()
        with pytest.raises(FileNotFoundError):
            await fs.read("/nope")

    async def test_read_blob_as_text_raises(self) -> None:
        """Text reads refuse binary nodes."""
        fs = await _loaded_fs()
        await fs.write_blob("/img", b"\x00\xff")
        with pytest.raises(FileNotFoundError):
            await fs.read("/img")
        assert await fs.read_bytes("/img") == b"\x00\xff"

    async def test_write_root_raises(self) -> None:
        """The root path cannot hold a file."""
        fs = await _loaded_fs()
        with pytest.raises(IsADirectoryError):
            await fs.write("/", "x")


class TestDelete:
    """Verify that delete removes present files and rejects absent ones."""

    async def test_delete_removes(self) -> None:
        """A deleted file can no longer be read."""
        fs = await _loaded_fs()
        await fs.write("/f", "x")
        await fs.delete("/f")
        assert not fs.exists("/f")

    async def test_delete_missing_raises(self) -> None:
        """Deleting an absent path is FileNotFoundError, like rm."""
        fs = await _loaded_fs()
        with pytest.raises(FileNotFoundError):
            await fs.delete("/nope")


class TestList:
    """Verify directory listing over implied directories."""

    async def test_lists_written_files_sorted(self) -> None:
        """N distinct files under a directory list back sorted and unique."""
        fs = await _loaded_fs()
        names = ["c.txt", "a.txt", "b.txt", "a.txt"]
        for name in names:
            await fs.write(f"/dir/{name}", name)
        assert fs.list("/dir") == ["a.txt", "b.txt", "c.txt"]

    async def test_lists_implied_subdirectories_once(self) -> None:
        """Nested files show up as one child directory name."""
        fs = await _loaded_fs()
        await fs.write("/notes/a.txt", "")
        await fs.write("/notes/deep/b.txt", "")
        await fs.write("/top.txt", "")
        assert fs.list("/") == ["notes", "top.txt"]
        assert fs.list("/notes") == ["a.txt", "deep"]

    async def test_prefix_is_not_a_parent(self) -> None:
        """``/ab`` is not a child of ``/a``."""
        fs = await _loaded_fs()
        await fs.write("/ab/x", "")
        assert fs.list("/a") == []

    async def test_cwd_is_listed_as_directory(self) -> None:
        """The working directory exists even with nothing in it."""
        fs = await _loaded_fs()
        await fs.chdir("/work/space")
        assert fs.list("/") == ["work"]
        assert fs.list("/work") == ["space"]

    async def test_file_and_directory_may_share_a_path(self) -> None:
        """``/a`` stays readable as a file while ``/a/b`` makes it a directory."""
        fs = await _loaded_fs()
        await fs.write("/a", "file\n")
        await fs.write("/a/b", "nested\n")
        assert await fs.read("/a") == "file\n"
        assert fs.list("/") == ["a"]
        assert fs.list("/a") == ["b"]

    async def test_list_normalizes(self) -> None:
        """The directory argument is normalized first."""
        fs = await _loaded_fs()
        await fs.write("/d/f", "")
        assert fs.list("//d/./") == ["f"]


class TestStat:
    """Verify file metadata."""

    async def test_size_is_byte_length(self) -> None:
        """Size counts encoded bytes, not characters."""
        fs = await _loaded_fs()
        await fs.write("/u", "é")
        info = fs.stat("/u")
        assert info.size == 2  # noqa: PLR2004
        assert info.type is FileType.TEXT
        assert info.mtime > 0

    async def test_stat_missing_raises(self) -> None:
        """Stat of a missing file is FileNotFoundError."""
        fs = await _loaded_fs()
        with pytest.raises(FileNotFoundError):
            fs.stat("/nope")


class TestChdir:
    """Verify the working directory."""

    async def test_default_is_root(self) -> None:
        """A fresh VFS starts at ``/``."""
        fs = await _loaded_fs()
        assert fs.cwd() == "/"

    async def test_chdir_normalizes(self) -> None:
        """The new cwd is stored in normalized form."""
        fs = await _loaded_fs()
        assert await fs.chdir("a//b/../c/") == "/a/c"
        assert fs.cwd() == "/a/c"
        await fs.chdir("..")
        assert fs.cwd() == "/a"

    async def test_chdir_to_empty_directory(self) -> None:
        """Directories are virtual, so any path is accepted."""
        fs = await _loaded_fs()
        await fs.chdir("/nothing/here")
        assert fs.cwd() == "/nothing/here"


class TestHistory:
    """Verify the bounded history buffer."""

    async def test_keeps_most_recent_in_order(self) -> None:
        """Pushing M > C entries keeps the last C in original order."""
        capacity = 5
        fs = await _loaded_fs(history_capacity=capacity)
        for i in range(12):
            await fs.history_push(f"cmd {i}")
        assert fs.history() == [f"cmd {i}" for i in range(7, 12)]

    async def test_under_capacity_keeps_all(self) -> None:
        """Fewer pushes than capacity keeps everything."""
        fs = await _loaded_fs()
        await fs.history_push("a")
        await fs.history_push("b")
        assert fs.history() == ["a", "b"]


class TestPersistence:
    """Verify write-through persistence and hydration."""

    async def test_state_survives_reload(self) -> None:
        """A second VFS on the same store sees files, cwd and history."""
        store = MemoryStore()
        fs = await _loaded_fs(store)
        await fs.write("/a.txt", "alpha")
        await fs.write_blob("/b.bin", b"\x01\x02")
        await fs.chdir("/sub")
        await fs.history_push("echo hi")

        again = await _loaded_fs(store)
        assert await again.read("/a.txt") == "alpha"
        assert await again.read_bytes("/b.bin") == b"\x01\x02"
        assert again.cwd() == "/sub"
        assert again.history() == ["echo hi"]

    async def test_persisted_layout(self) -> None:
        """The store holds one JSON object with cwd, files and history."""
        store = MemoryStore()
        fs = await _loaded_fs(store)
        await fs.write("/a", "x")
        saved = await store.get(STATE_KEY)
        assert set(saved) == {"cwd", "files", "history"}
        assert saved["files"]["/a"]["type"] == "text"
        assert saved["files"]["/a"]["content"] == "x"
        assert isinstance(saved["files"]["/a"]["mtime"], float)

    async def test_failed_persist_rolls_back(self) -> None:
        """If the store rejects the write, the change is undone."""
        store = MemoryStore(quota_bytes=200)
        fs = await _loaded_fs(store)
        await fs.write("/small", "ok")
        with pytest.raises(StorageError):
            await fs.write("/big", "x" * 500)
        assert not fs.exists("/big")
        assert await fs.read("/small") == "ok"
        again = await _loaded_fs(store)
        assert not again.exists("/big")

    async def test_corrupt_state_starts_empty_and_logs(self) -> None:
        """A malformed saved state is logged and replaced by an empty one."""
        store = MemoryStore()
        await store.set(STATE_KEY, {"files": {"/a": {"type": "weird"}}})
        logger = Logger()
        fs = VirtualFileSystem(store, logger=logger)
        await fs.load()
        assert fs.paths() == []
        assert logger.filter(min_level=LogLevel.WARNING, source="vfs")


class TestDumpImport:
    """Verify whole-state snapshots."""

    async def test_import_replaces_everything(self) -> None:
        """Import swaps the whole state for the snapshot."""
        source = await _loaded_fs()
        await source.write("/keep", "1")
        await source.chdir("/x")
        snapshot = source.dump()

        target = await _loaded_fs()
        await target.write("/gone", "2")
        await target.import_state(snapshot)
        assert target.paths() == ["/keep"]
        assert target.cwd() == "/x"

    async def test_bad_import_leaves_state(self) -> None:
        """A malformed snapshot raises and changes nothing."""
        fs = await _loaded_fs()
        await fs.write("/a", "x")
        with pytest.raises(ValueError):  # noqa: PT011
            await fs.import_state({"files": "nope"})
        assert fs.paths() == ["/a"]

    async def test_reset_clears_store(self) -> None:
        """Reset empties memory and the persisted entry."""
        store = MemoryStore()
        fs = await _loaded_fs(store)
        await fs.write("/a", "x")
        await fs.reset()
        assert fs.paths() == []
        assert await store.get(STATE_KEY) is None
