"""Built-in commands — the standard toolkit every shell starts with.

Each command is a small async function taking a ``CommandContext``.
``register_builtins`` wraps every one with the shared ``--help`` / ``-h``
check, so a command only has to implement its normal behaviour.

Conventions:
    - Output is newline-terminated; an empty result is ``""``.
    - Expected failures return ``exit_code=1`` with a ``<name>: ...``
      message on stderr.  Nothing here raises for bad input.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import UTC, datetime

import httpx

from swat_shell.config import ShellConfig
from swat_shell.registry import (
    EXIT_CANCELLED,
    EXIT_FAILURE,
    MISSING,
    CommandContext,
    CommandRegistry,
    CommandResult,
    Handler,
)

_HELP_FLAGS = frozenset(["--help", "-h"])


def _usage(name: str, summary: str, synopsis: str) -> str:
    usage = f"Usage: {name} [options] {synopsis}" if synopsis else f"Usage: {name} [options]"
    return f"{name}: {summary}\n{usage}\nOptions:\n  --help, -h  Show this help\n"


def _fail(name: str, message: str) -> CommandResult:
    return CommandResult(stderr=f"{name}: {message}\n", exit_code=EXIT_FAILURE)


def _lines(items: list[str]) -> str:
    return "\n".join(items) + "\n" if items else ""


async def _cmd_echo(ctx: CommandContext) -> CommandResult:
    """Print the arguments separated by single spaces."""
    return CommandResult(stdout=" ".join(ctx.args) + "\n")


async def _cmd_pwd(ctx: CommandContext) -> CommandResult:
    """Print the working directory."""
    return CommandResult(stdout=ctx.fs.cwd() + "\n")


async def _cmd_cd(ctx: CommandContext) -> CommandResult:
    """Change the working directory (default ``/``)."""
    await ctx.fs.chdir(ctx.args[0] if ctx.args else "/")
    return CommandResult()


async def _cmd_write(ctx: CommandContext) -> CommandResult:
    """Write the remaining arguments, space-joined, to a file."""
    if not ctx.args:
        return _fail("write", "missing path")
    path = ctx.fs.resolve(ctx.args[0])
    try:
        await ctx.fs.write(path, " ".join(ctx.args[1:]))
    except IsADirectoryError as e:
        return _fail("write", str(e))
    return CommandResult(stdout=f"Wrote {path}\n")


async def _cmd_cat(ctx: CommandContext) -> CommandResult:
    """Concatenate files, or pass stdin through when no file is given."""
    if not ctx.args:
        return CommandResult(stdout=ctx.stdin)
    parts: list[str] = []
    for path in ctx.args:
        try:
            parts.append(await ctx.fs.read(path))
        except FileNotFoundError:
            return _fail("cat", f"{path}: No such file")
    return CommandResult(stdout="".join(parts))


async def _cmd_ls(ctx: CommandContext) -> CommandResult:
    """List the children of a directory (default ``/``)."""
    return CommandResult(stdout=_lines(ctx.fs.list(ctx.args[0] if ctx.args else "/")))


async def _cmd_rm(ctx: CommandContext) -> CommandResult:
    """Remove files."""
    if not ctx.args:
        return _fail("rm", "missing path")
    for path in ctx.args:
        try:
            await ctx.fs.delete(path)
        except FileNotFoundError:
            return _fail("rm", f"{path}: No such file")
    return CommandResult()


async def _cmd_stat(ctx: CommandContext) -> CommandResult:
    """Show size, modification time and type of a file."""
    if not ctx.args:
        return _fail("stat", "missing path")
    try:
        info = ctx.fs.stat(ctx.args[0])
    except FileNotFoundError:
        return _fail("stat", f"{ctx.args[0]}: No such file")
    mtime = datetime.fromtimestamp(info.mtime, tz=UTC).isoformat()
    return CommandResult(
        stdout=f"  File: {ctx.fs.resolve(ctx.args[0])}\n"
        f"  Size: {info.size}\n"
        f"  Type: {info.type}\n"
        f"Modify: {mtime}\n"
    )


async def _cmd_history(ctx: CommandContext) -> CommandResult:
    """Show remembered command lines, oldest first."""
    return CommandResult(stdout=_lines(ctx.fs.history()))


async def _cmd_grep(ctx: CommandContext) -> CommandResult:
    """Keep the non-blank stdin lines containing a pattern."""
    if not ctx.args:
        return _fail("grep", "missing pattern")
    pattern = ctx.args[0]
    lines = [line for line in ctx.stdin.split("\n") if line.strip()]
    return CommandResult(stdout=_lines([line for line in lines if pattern in line]))


async def _cmd_help(ctx: CommandContext) -> CommandResult:
    """List every registered command, or show one command's usage."""
    if ctx.args:
        handler = ctx.registry.get(ctx.args[0])
        if handler is MISSING:
            return _fail("help", f"no such command: {ctx.args[0]}")
        return await handler(
            CommandContext(
                args=["--help"],
                stdin="",
                fs=ctx.fs,
                signal=ctx.signal,
                registry=ctx.registry,
            )
        )
    return CommandResult(stdout=_lines(ctx.registry.list()))


def make_curl(
    *,
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Handler:
    """Build the ``curl`` command around an HTTP client configuration.

    Args:
        timeout: Seconds before a request is abandoned.
        transport: Optional httpx transport (tests pass a mock).

    """

    async def _cmd_curl(ctx: CommandContext) -> CommandResult:
        """Fetch a URL and print the response body."""
        if not ctx.args:
            return _fail("curl", "missing url")
        url = ctx.args[0]
        async with httpx.AsyncClient(
            timeout=timeout, transport=transport, follow_redirects=True
        ) as client:
            fetch = asyncio.ensure_future(client.get(url))
            cancel = asyncio.ensure_future(ctx.signal.wait())
            try:
                await asyncio.wait({fetch, cancel}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                cancel.cancel()
            if not fetch.done():
                fetch.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await fetch
                return CommandResult(stderr="curl: cancelled\n", exit_code=EXIT_CANCELLED)
            try:
                response = fetch.result()
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                return _fail("curl", f"failed: {str(e) or type(e).__name__}")
        if not response.is_success:
            return _fail("curl", f"failed: HTTP {response.status_code}")
        return CommandResult(stdout=response.text)

    return _cmd_curl


def with_help(usage: str, handler: Handler) -> Handler:
    """Wrap *handler* so ``--help`` / ``-h`` anywhere prints *usage* instead."""

    async def _wrapped(ctx: CommandContext) -> CommandResult:
        if any(arg in _HELP_FLAGS for arg in ctx.args):
            return CommandResult(stdout=usage)
        return await handler(ctx)

    return _wrapped


_BUILTINS: dict[str, tuple[str, str, Handler]] = {
    "echo": ("print arguments to stdout", "[args...]", _cmd_echo),
    "pwd": ("print working directory", "", _cmd_pwd),
    "cd": ("change working directory", "[dir]", _cmd_cd),
    "write": ("write content to file", "<path> <content...>", _cmd_write),
    "cat": ("concatenate files or stdin", "[file...]", _cmd_cat),
    "ls": ("list directory contents", "[dir]", _cmd_ls),
    "rm": ("remove files", "<path...>", _cmd_rm),
    "stat": ("show file metadata", "<path>", _cmd_stat),
    "history": ("show command history", "", _cmd_history),
    "grep": ("search for pattern in input", "<pattern>", _cmd_grep),
    "help": ("show available commands", "[command]", _cmd_help),
}


def usage_for(name: str) -> str:
    """Return the fixed usage text of a built-in command.

    Raises:
        KeyError: If *name* is not a built-in.

    """
    if name == "curl":
        return _usage("curl", "fetch URL content", "<url>")
    summary, synopsis, _handler = _BUILTINS[name]
    return _usage(name, summary, synopsis)


def register_builtins(
    registry: CommandRegistry,
    *,
    config: ShellConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """Register every built-in command on *registry*.

    Existing bindings with the same names are replaced.
    """
    config = config or ShellConfig()
    handlers: dict[str, Handler] = {name: entry[2] for name, entry in _BUILTINS.items()}
    handlers["curl"] = make_curl(timeout=config.curl_timeout, transport=transport)
    for name, handler in handlers.items():
        registry.register(name, with_help(usage_for(name), handler))
