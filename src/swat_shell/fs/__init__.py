"""Virtual filesystem subsystem — path semantics, persistence, snapshots.

Re-exports public symbols so callers can write::

    from swat_shell.fs import VirtualFileSystem, normalize
"""

from swat_shell.fs.persistence import dump_snapshot, load_snapshot
from swat_shell.fs.vfs import (
    ROOT,
    FileNode,
    FileStat,
    FileSystemState,
    FileType,
    VirtualFileSystem,
    normalize,
)

__all__ = [
    "ROOT",
    "FileNode",
    "FileStat",
    "FileSystemState",
    "FileType",
    "VirtualFileSystem",
    "dump_snapshot",
    "load_snapshot",
    "normalize",
]
