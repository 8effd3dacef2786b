"""Command registry — the name → handler dispatch table.

A command is a single async callable: it receives a ``CommandContext``
and returns a ``CommandResult``.  No base class, no inheritance; any
coroutine function with that shape can be registered.

Handlers report *expected* failures (bad arguments, missing files) in
the result — non-zero ``exit_code`` plus a ``stderr`` message — and only
raise for genuine bugs.  The executor turns such exceptions into a
failed stage.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, TypeAlias

if TYPE_CHECKING:
    from swat_shell.fs.vfs import VirtualFileSystem

EXIT_OK: Final = 0
EXIT_FAILURE: Final = 1
EXIT_NOT_FOUND: Final = 127
EXIT_CANCELLED: Final = 130
"""Reserved status for a command that stopped because it was cancelled."""


@dataclass(frozen=True)
class CommandResult:
    """The observable outcome of a command or a whole pipeline."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int = EXIT_OK

    @property
    def ok(self) -> bool:
        """Return True when the command succeeded."""
        return self.exit_code == EXIT_OK


class CancellationSignal:
    """Cooperative cancellation flag shared by every stage of one pipeline.

    Setting the signal never interrupts a handler; handlers check
    ``cancelled`` (or await ``wait()``) and return ``EXIT_CANCELLED``.
    """

    def __init__(self) -> None:
        """Create an unset signal."""
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Return True once ``cancel()`` has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    async def wait(self) -> None:
        """Suspend until cancellation is requested."""
        await self._event.wait()


@dataclass
class CommandContext:
    """Everything a handler may use while it runs."""

    args: list[str]
    stdin: str
    fs: VirtualFileSystem
    signal: CancellationSignal
    registry: CommandRegistry


# A command handler: takes the execution context, returns a result.
Handler: TypeAlias = Callable[[CommandContext], Awaitable[CommandResult]]


class _Missing:
    """Type of the ``MISSING`` sentinel."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing()
"""Returned by ``CommandRegistry.get`` for an unknown name."""


class CommandRegistry:
    """Maps command names to handlers."""

    def __init__(self) -> None:
        """Create an empty registry."""
        self._handlers: dict[str, Handler] = {}

    def register(self, name: str, handler: Handler) -> None:
        """Bind *name* to *handler*, replacing any existing binding.

        Raises:
            ValueError: If *name* is empty or contains whitespace.

        """
        if not name or any(ch.isspace() for ch in name):
            msg = f"Invalid command name: {name!r}"
            raise ValueError(msg)
        self._handlers[name] = handler

    def unregister(self, name: str) -> None:
        """Remove *name*.  Unknown names are ignored."""
        self._handlers.pop(name, None)

    def get(self, name: str) -> Handler | _Missing:
        """Return the handler for *name*, or ``MISSING``."""
        return self._handlers.get(name, MISSING)

    def list(self) -> list[str]:
        """Return every registered name in sorted order."""
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        """Check whether *name* is registered."""
        return name in self._handlers

    def __len__(self) -> int:
        """Return the number of registered commands."""
        return len(self._handlers)
