"""Filesystem snapshots — back up and restore to a host file.

The key-value store keeps the *live* state.  Snapshots are for moving a
whole filesystem somewhere else: saving a session before wiping it, or
seeding a new shell from a prepared image.

    - ``dump_snapshot(vfs, path)`` — write ``vfs.dump()`` as JSON.
    - ``load_snapshot(vfs, path)`` — atomically replace the VFS contents.

Binary files appear base64-encoded in the snapshot, so it is plain JSON.
"""

import json
from pathlib import Path

from swat_shell.fs.vfs import VirtualFileSystem


def dump_snapshot(vfs: VirtualFileSystem, path: Path) -> None:
    """Save the whole filesystem to a JSON file.

    Args:
        vfs: The filesystem to save.
        path: The host file path to write to.

    """
    path.write_text(json.dumps(vfs.dump(), indent=2))


async def load_snapshot(vfs: VirtualFileSystem, path: Path) -> None:
    """Replace the filesystem with the snapshot stored at *path*.

    Args:
        vfs: The filesystem to overwrite.
        path: The host file path to read from.

    Raises:
        FileNotFoundError: If the path does not exist.
        ValueError: If the file is not a valid snapshot.
        StorageError: If the restored state cannot be persisted.

    """
    data = json.loads(path.read_text())
    await vfs.import_state(data)
