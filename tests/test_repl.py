"""Tests for the REPL's pure helpers and its read-eval-print loop."""

import builtins
from pathlib import Path

import pytest

from swat_shell.boot import boot_shell
from swat_shell.config import ShellConfig
from swat_shell.registry import CommandResult
from swat_shell.repl import build_prompt, format_banner, main, print_result


class TestHelpers:
    """Verify prompt, banner and result printing."""

    async def test_prompt_shows_cwd(self) -> None:
        """The prompt includes the working directory."""
        shell = await boot_shell()
        await shell.fs.chdir("/notes")
        assert build_prompt(shell) == "swat:/notes $ "

    def test_banner(self) -> None:
        """The banner says whether samples were written."""
        assert "Sample files written" in format_banner(seeded=True)
        assert "(state loaded)" in format_banner(seeded=False)

    def test_print_result(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Stdout and stderr go to their own streams."""
        print_result(CommandResult(stdout="out", stderr="err\n", exit_code=1))
        captured = capsys.readouterr()
        assert captured.out == "out\n"
        assert captured.err == "err\n"


class TestMainLoop:
    """Drive the loop with scripted input."""

    async def test_runs_lines_until_exit(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Each line is executed; ``exit`` ends the loop."""
        lines = iter(["echo hi", "cat /nope", "exit", "echo never"])
        monkeypatch.setattr(builtins, "input", lambda _prompt="": next(lines))
        await main(ShellConfig(data_dir=tmp_path))
        captured = capsys.readouterr()
        assert "hi\n" in captured.out
        assert "never" not in captured.out
        assert "cat: /nope: No such file" in captured.err

    async def test_eof_ends_loop(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Ctrl+D (EOFError) exits cleanly and state is kept."""
        lines = iter(["write /kept yes"])

        def _input(_prompt: str = "") -> str:
            try:
                return next(lines)
            except StopIteration:
                raise EOFError from None

        monkeypatch.setattr(builtins, "input", _input)
        config = ShellConfig(data_dir=tmp_path)
        await main(config)
        again = await boot_shell(config)
        assert await again.fs.read("/kept") == "yes"
