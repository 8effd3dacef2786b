"""Event log shared by the store, the filesystem and the executor.

Nothing below the front end prints.  Subsystems record what happened
here, tagged with their own name, and the REPL or web app decides what
to surface.  The buffer is bounded, so a long-lived web process keeps
only its most recent events.
"""

from collections import deque
from dataclasses import dataclass
from enum import IntEnum

DEFAULT_LOG_CAPACITY = 1000


class LogLevel(IntEnum):
    """How serious an event is; higher values are more severe."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """One recorded event.

    Attributes:
        level: Severity.
        message: What happened, in plain words.
        source: Name of the subsystem that recorded it ("store", "vfs", ...).

    """

    level: LogLevel
    message: str
    source: str

    def __str__(self) -> str:
        """Render as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class Logger:
    """Bounded in-memory event buffer, oldest entries dropped first."""

    def __init__(self, capacity: int = DEFAULT_LOG_CAPACITY) -> None:
        """Create an empty log holding at most *capacity* entries."""
        self._buffer: deque[LogEntry] = deque(maxlen=capacity)

    @property
    def entries(self) -> list[LogEntry]:
        """Return a copy of the buffered entries, oldest first."""
        return list(self._buffer)

    def log(self, level: LogLevel, message: str, *, source: str) -> None:
        """Record *message* from *source* at *level*."""
        self._buffer.append(LogEntry(level, message, source))

    def debug(self, message: str, *, source: str) -> None:
        self.log(LogLevel.DEBUG, message, source=source)

    def info(self, message: str, *, source: str) -> None:
        self.log(LogLevel.INFO, message, source=source)

    def warning(self, message: str, *, source: str) -> None:
        self.log(LogLevel.WARNING, message, source=source)

    def error(self, message: str, *, source: str) -> None:
        self.log(LogLevel.ERROR, message, source=source)

    def filter(
        self,
        *,
        min_level: LogLevel = LogLevel.DEBUG,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Select entries at or above *min_level*, optionally from one *source*.

        The result is a fresh list; mutating it leaves the log untouched.
        """
        return [
            entry
            for entry in self._buffer
            if entry.level >= min_level and (source is None or entry.source == source)
        ]

    def clear(self) -> None:
        """Drop every buffered entry."""
        self._buffer.clear()
