"""Interactive REPL (Read-Eval-Print Loop) for the shell.

The REPL is the thin I/O wrapper around ``Shell.run_line``:

    1. **Read** — show a prompt with the working directory.
    2. **Eval** — run the line through the executor.
    3. **Print** — stdout to ``sys.stdout``, stderr to ``sys.stderr``.
    4. **Loop** — until ``exit``, Ctrl+D, or Ctrl+C.

Readline history is preloaded from the persisted VFS history, so the
arrow keys recall commands from earlier sessions.

The helper functions (``build_prompt``, ``format_banner``) are pure
and testable.  ``run()`` is the I/O entrypoint.
"""

import asyncio
import readline
import sys

from swat_shell.boot import Shell, boot_shell, seed_samples
from swat_shell.completer import Completer
from swat_shell.config import ShellConfig
from swat_shell.registry import CommandResult

EXIT_COMMANDS = frozenset(["exit", "quit"])

_BANNER_WIDTH = 38


def format_banner(*, seeded: bool) -> str:
    """Return the welcome banner shown at startup."""
    border = "=" * _BANNER_WIDTH
    header = f"\n  {border}\n           SWAT terminal\n  {border}\n\n"
    state = "  Sample files written." if seeded else "  (state loaded)"
    footer = "\nTry: echo hi | grep h.  Type 'help' for commands, 'exit' to quit.\n"
    return header + state + footer


def build_prompt(shell: Shell) -> str:
    """Build a prompt like ``swat:/notes $ ``."""
    return f"swat:{shell.fs.cwd()} $ "


def print_result(result: CommandResult) -> None:
    """Write a result's streams to the terminal."""
    if result.stdout:
        sys.stdout.write(result.stdout if result.stdout.endswith("\n") else result.stdout + "\n")
    if result.stderr:
        sys.stderr.write(result.stderr)


async def main(config: ShellConfig | None = None) -> None:
    """Boot a shell and run the read-eval-print loop until exit."""
    shell = await boot_shell(config or ShellConfig.from_env())
    seeded = await seed_samples(shell.fs)

    completer = Completer(shell)
    readline.set_completer(completer.complete)
    readline.set_completer_delims(" \t|>")
    readline.parse_and_bind("tab: complete")
    for line in shell.fs.history():
        readline.add_history(line)

    print(format_banner(seeded=seeded))  # noqa: T201
    loop = asyncio.get_running_loop()
    while True:
        try:
            line = await loop.run_in_executor(None, input, build_prompt(shell))
        except EOFError:
            # Ctrl+D — graceful exit
            print()  # noqa: T201
            break
        if line.strip() in EXIT_COMMANDS:
            break
        print_result(await shell.run_line(line))


def run() -> None:
    """Console entry point (``swat-shell``)."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nInterrupted.")  # noqa: T201
