"""Tab completer for the interactive shell.

``completions(text, line)`` is pure and testable: the first word
completes against registered command names, later words against VFS
paths.  ``complete(text, state)`` is the readline callback.
"""

from __future__ import annotations

import readline
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from swat_shell.boot import Shell


class Completer:
    """Command-name and path completer for one shell."""

    def __init__(self, shell: Shell) -> None:
        """Create a completer attached to *shell*."""
        self._shell = shell
        self._matches: list[str] = []

    def complete(self, text: str, state: int) -> str | None:
        """Readline callback — return the *state*-th candidate for *text*."""
        if state == 0:
            self._matches = self.completions(text, readline.get_line_buffer())
        return self._matches[state] if state < len(self._matches) else None

    def completions(self, text: str, line: str) -> list[str]:
        """Return sorted candidates completing *text* within *line*."""
        before = line[: len(line) - len(text)] if line.endswith(text) else line
        segment = before.rsplit("|", 1)[-1]
        if not segment.split():
            return [name for name in self._shell.registry.list() if name.startswith(text)]
        return self._path_completions(text)

    def _path_completions(self, text: str) -> list[str]:
        head, sep, _partial = text.rpartition("/")
        directory = (head or "/") if sep else "."
        prefix = head + sep
        fs = self._shell.fs
        candidates: list[str] = []
        for name in fs.list(directory):
            candidate = prefix + name
            if not candidate.startswith(text):
                continue
            if not fs.exists(candidate):
                candidate += "/"
            candidates.append(candidate)
        return candidates
