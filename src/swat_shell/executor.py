"""Pipeline executor — runs a parsed command line stage by stage.

Each submitted line walks a small state machine::

    IDLE → PARSING → PARSE_ERROR → IDLE
                   → EXECUTING → COMPLETED → IDLE
                               → ABORTED   → IDLE

Stages run strictly in order.  A stage starts only after the previous
one has fully finished, because its stdin *is* the previous stdout.
The first stage that fails (non-zero exit, unknown command, or an
unexpected exception) aborts the rest of the pipeline.

One executor runs one line at a time.  A second ``run_line`` while one
is in flight raises ``BusyError`` instead of interleaving: the VFS saves
its whole state on every write, so two interleaved pipelines would
silently overwrite each other's changes.
"""

from __future__ import annotations

import threading
from enum import StrEnum

from swat_shell.fs.vfs import VirtualFileSystem
from swat_shell.logging import Logger
from swat_shell.parser import ParseError, PipelineStage, RedirectMode, parse_line
from swat_shell.registry import (
    EXIT_CANCELLED,
    EXIT_FAILURE,
    EXIT_NOT_FOUND,
    MISSING,
    CancellationSignal,
    CommandContext,
    CommandRegistry,
    CommandResult,
)
from swat_shell.store import StorageError

_SOURCE = "executor"


class BusyError(RuntimeError):
    """Raise when a line is submitted while another is still running."""


class ExecutorState(StrEnum):
    """Where the executor is in processing the current line."""

    IDLE = "idle"
    PARSING = "parsing"
    PARSE_ERROR = "parse_error"
    EXECUTING = "executing"
    ABORTED = "aborted"
    COMPLETED = "completed"


class Executor:
    """Runs command lines against a registry and a filesystem."""

    def __init__(
        self,
        registry: CommandRegistry,
        fs: VirtualFileSystem,
        *,
        logger: Logger | None = None,
    ) -> None:
        """Create an executor dispatching through *registry* onto *fs*."""
        self._registry = registry
        self._fs = fs
        self._logger = logger or Logger()
        self._state = ExecutorState.IDLE
        self._signal: CancellationSignal | None = None
        self._transitions: list[ExecutorState] = []
        self._entry = threading.Lock()

    @property
    def state(self) -> ExecutorState:
        """Return the current state."""
        return self._state

    @property
    def transitions(self) -> list[ExecutorState]:
        """Return every state entered while running the most recent line."""
        return list(self._transitions)

    @property
    def busy(self) -> bool:
        """Return True while a line is being processed."""
        return self._state is not ExecutorState.IDLE

    def _enter(self, state: ExecutorState) -> None:
        self._state = state
        self._transitions.append(state)

    def cancel(self) -> bool:
        """Ask the running pipeline to stop.

        Returns:
            True if a pipeline was running and has been signalled.

        """
        if self._signal is None:
            return False
        self._signal.cancel()
        return True

    async def run_line(self, text: str, stdin: str = "") -> CommandResult:
        """Parse and run one command line.

        Args:
            text: The raw line, e.g. ``"cat /a.txt | grep x > /b.txt"``.
            stdin: Input for the first stage.

        Returns:
            The aggregated result of the pipeline.

        Raises:
            BusyError: If another line is still running on this executor.
            StorageError: If the filesystem cannot persist a change.

        """
        # Non-blocking acquire makes check-and-enter one step across threads.
        if not self._entry.acquire(blocking=False):
            msg = "executor is busy with another command line"
            raise BusyError(msg)
        self._transitions = []
        self._enter(ExecutorState.PARSING)
        try:
            try:
                stages = parse_line(text)
            except ParseError as e:
                self._enter(ExecutorState.PARSE_ERROR)
                self._logger.warning(f"Parse error in {text!r}: {e}", source=_SOURCE)
                return CommandResult(stderr=f"parse error: {e}\n", exit_code=EXIT_FAILURE)
            if not stages:
                self._enter(ExecutorState.COMPLETED)
                return CommandResult()
            await self._fs.history_push(text.strip())
            self._enter(ExecutorState.EXECUTING)
            self._signal = CancellationSignal()
            result = await self._run_stages(stages, stdin, self._signal)
            self._enter(ExecutorState.COMPLETED if result.ok else ExecutorState.ABORTED)
            return result
        finally:
            self._signal = None
            self._state = ExecutorState.IDLE
            self._transitions.append(ExecutorState.IDLE)
            self._entry.release()

    async def _run_stages(
        self,
        stages: list[PipelineStage],
        stdin: str,
        signal: CancellationSignal,
    ) -> CommandResult:
        result = CommandResult()
        for index, stage in enumerate(stages):
            if signal.cancelled:
                self._logger.info(f"Cancelled before stage {index}", source=_SOURCE)
                return CommandResult(
                    stderr=f"{stage.command}: cancelled\n", exit_code=EXIT_CANCELLED
                )
            result = await self._run_stage(stage, stdin, signal)
            if not result.ok:
                self._logger.info(
                    f"Stage {index} ({stage.command}) exited {result.exit_code}",
                    source=_SOURCE,
                )
                return result
            stdin = result.stdout

        redirect = stages[-1].redirect
        if redirect is None:
            return result
        content = result.stdout
        if redirect.mode is RedirectMode.APPEND and self._fs.exists(redirect.target):
            try:
                content = await self._fs.read(redirect.target) + content
            except FileNotFoundError:
                return CommandResult(
                    stderr=f"{redirect.target}: cannot append to a binary file\n",
                    exit_code=EXIT_FAILURE,
                )
        try:
            await self._fs.write(redirect.target, content)
        except IsADirectoryError as e:
            return CommandResult(stderr=f"{redirect.target}: {e}\n", exit_code=EXIT_FAILURE)
        return CommandResult(stderr=result.stderr, exit_code=result.exit_code)

    async def _run_stage(
        self,
        stage: PipelineStage,
        stdin: str,
        signal: CancellationSignal,
    ) -> CommandResult:
        handler = self._registry.get(stage.command)
        if handler is MISSING:
            return CommandResult(
                stderr=f"{stage.command}: command not found\n", exit_code=EXIT_NOT_FOUND
            )
        context = CommandContext(
            args=list(stage.args),
            stdin=stdin,
            fs=self._fs,
            signal=signal,
            registry=self._registry,
        )
        try:
            result = await handler(context)
        except StorageError:
            raise
        except Exception as e:  # noqa: BLE001
            self._logger.error(
                f"{stage.command} raised {type(e).__name__}: {e}", source=_SOURCE
            )
            return CommandResult(stderr=f"{stage.command}: {e}\n", exit_code=EXIT_FAILURE)
        if not isinstance(result, CommandResult):
            kind = type(result).__name__
            self._logger.error(f"{stage.command} returned {kind}", source=_SOURCE)
            return CommandResult(
                stderr=f"{stage.command}: returned {kind}, not a CommandResult\n",
                exit_code=EXIT_FAILURE,
            )
        return result
