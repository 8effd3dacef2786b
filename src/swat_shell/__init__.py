"""SWAT shell — a persisted virtual filesystem with a piping command shell."""

from swat_shell.boot import Shell, boot_shell
from swat_shell.config import ShellConfig
from swat_shell.executor import BusyError, Executor
from swat_shell.parser import ParseError
from swat_shell.registry import CommandContext, CommandRegistry, CommandResult
from swat_shell.store import StorageError

__all__ = [
    "BusyError",
    "CommandContext",
    "CommandRegistry",
    "CommandResult",
    "Executor",
    "ParseError",
    "Shell",
    "ShellConfig",
    "StorageError",
    "boot_shell",
]
