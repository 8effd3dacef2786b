"""Shell assembly — wire store, filesystem, registry and executor.

Nothing in the package is a module-level singleton.  ``boot_shell``
builds one fully independent shell; calling it twice gives two shells
that share nothing unless they are handed the same store.

Boot order (each step needs the previous one):
    0. Logger — capture events from the start.
    1. Store — the medium everything else persists to.
    2. VFS — hydrated from the store before anything reads it.
    3. Registry — built-in commands.
    4. Executor — ready to accept command lines.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from swat_shell.builtins import register_builtins
from swat_shell.config import ShellConfig
from swat_shell.executor import Executor
from swat_shell.fs.vfs import VirtualFileSystem
from swat_shell.logging import Logger
from swat_shell.registry import CommandRegistry, CommandResult
from swat_shell.store import FileStore, KeyValueStore, MemoryStore

SAMPLE_FILES: dict[str, str] = {
    "/hello.txt": "Hello from SWAT terminal\nLine two\nLine three\n",
    "/notes/todo.txt": "buy milk\ncall mom\n",
}
"""Files written into a brand-new, empty filesystem by ``seed_samples``."""


@dataclass
class Shell:
    """One assembled shell and the subsystems behind it."""

    config: ShellConfig
    logger: Logger
    store: KeyValueStore
    fs: VirtualFileSystem
    registry: CommandRegistry
    executor: Executor

    async def run_line(self, text: str) -> CommandResult:
        """Run one command line; see ``Executor.run_line``."""
        return await self.executor.run_line(text)


def make_store(config: ShellConfig, logger: Logger) -> KeyValueStore:
    """Create the store the config asks for (on disk if ``data_dir`` is set)."""
    if config.data_dir is not None:
        return FileStore(
            config.data_dir,
            prefix=config.storage_prefix,
            quota_bytes=config.store_quota_bytes,
            logger=logger,
        )
    return MemoryStore(
        prefix=config.storage_prefix, quota_bytes=config.store_quota_bytes, logger=logger
    )


async def boot_shell(
    config: ShellConfig | None = None,
    *,
    store: KeyValueStore | None = None,
    logger: Logger | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Shell:
    """Build and hydrate a complete shell.

    Args:
        config: Tunables (defaults to ``ShellConfig()``).
        store: Use this store instead of the one *config* describes.
        logger: Share an existing logger.
        transport: httpx transport for ``curl`` (tests pass a mock).

    Returns:
        A ready-to-use shell.

    """
    config = config or ShellConfig()
    logger = logger or Logger()
    store = store or make_store(config, logger)
    fs = VirtualFileSystem(
        store,
        state_key=config.state_key,
        history_capacity=config.history_capacity,
        logger=logger,
    )
    await fs.load()
    registry = CommandRegistry()
    register_builtins(registry, config=config, transport=transport)
    executor = Executor(registry, fs, logger=logger)
    logger.info(f"Shell ready with {len(registry)} commands", source="boot")
    return Shell(
        config=config,
        logger=logger,
        store=store,
        fs=fs,
        registry=registry,
        executor=executor,
    )


async def seed_samples(fs: VirtualFileSystem) -> bool:
    """Write ``SAMPLE_FILES`` into *fs* if it holds no files yet.

    Returns:
        True if the samples were written.

    """
    if fs.paths():
        return False
    for path, content in SAMPLE_FILES.items():
        await fs.write(path, content)
    return True
