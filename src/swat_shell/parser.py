"""Shell-line parsing — lexing, pipe splitting, and redirection.

Parsing happens in two passes:

1. **Lexing** (``tokenize``) turns raw text into tokens.  Single and
   double quotes suppress whitespace splitting; a backslash takes the
   next character literally (inside quotes too).  Unquoted, unescaped
   ``|``, ``>`` and ``>>`` become operator tokens even without spaces
   around them, so ``echo hi>out`` redirects.

2. **Staging** (``parse_line``) splits the tokens on ``|`` into
   ``PipelineStage`` records and peels a trailing ``> path`` or
   ``>> path`` off the final stage.

Any malformed input raises ``ParseError`` and nothing runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

_QUOTES = frozenset("'\"")
_PIPE = "|"
_OVERWRITE = ">"
_APPEND = ">>"


class ParseError(ValueError):
    """Raise when a command line cannot be parsed."""


class RedirectMode(StrEnum):
    """How redirected output lands in the target file."""

    OVERWRITE = "overwrite"
    APPEND = "append"


@dataclass(frozen=True)
class Redirect:
    """Parsed ``>`` / ``>>`` redirection of a pipeline's final output."""

    target: str
    mode: RedirectMode = RedirectMode.OVERWRITE


@dataclass(frozen=True)
class Token:
    """A lexed word, or a shell operator when ``operator`` is True."""

    text: str
    operator: bool = False


@dataclass
class PipelineStage:
    """One command invocation within a ``|``-chained line."""

    command: str
    args: list[str] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]
    redirect: Redirect | None = None


def tokenize(line: str) -> list[Token]:
    """Split *line* into words and operators.

    Raises:
        ParseError: On an unterminated quote or a trailing backslash.

    """
    tokens: list[Token] = []
    current: list[str] = []
    in_word = False  # distinguishes "" (an empty word) from no word
    quote: str | None = None
    i = 0

    def _flush() -> None:
        nonlocal in_word
        if in_word:
            tokens.append(Token("".join(current)))
            current.clear()
            in_word = False

    while i < len(line):
        ch = line[i]
        i += 1
        if ch == "\\":
            if i >= len(line):
                msg = "trailing backslash"
                raise ParseError(msg)
            current.append(line[i])
            in_word = True
            i += 1
        elif quote is not None:
            if ch == quote:
                quote = None
            else:
                current.append(ch)
        elif ch in _QUOTES:
            quote = ch
            in_word = True
        elif ch.isspace():
            _flush()
        elif ch == _PIPE:
            _flush()
            tokens.append(Token(_PIPE, operator=True))
        elif ch == ">":
            _flush()
            if i < len(line) and line[i] == ">":
                i += 1
                tokens.append(Token(_APPEND, operator=True))
            else:
                tokens.append(Token(_OVERWRITE, operator=True))
        else:
            current.append(ch)
            in_word = True

    if quote is not None:
        msg = f"unterminated {quote} quote"
        raise ParseError(msg)
    _flush()
    return tokens


def _split_pipes(tokens: list[Token]) -> list[list[Token]]:
    groups: list[list[Token]] = [[]]
    for token in tokens:
        if token.operator and token.text == _PIPE:
            groups.append([])
        else:
            groups[-1].append(token)
    return groups


def _build_stage(group: list[Token], *, final: bool) -> PipelineStage:
    redirect: Redirect | None = None
    words: list[str] = []
    for index, token in enumerate(group):
        if not token.operator:
            words.append(token.text)
            continue
        if not final:
            msg = f"redirection '{token.text}' is only allowed on the last command"
            raise ParseError(msg)
        if redirect is not None:
            msg = "only one output redirection is allowed"
            raise ParseError(msg)
        rest = group[index + 1 :]
        if not rest or rest[0].operator:
            msg = f"missing target after '{token.text}'"
            raise ParseError(msg)
        if len(rest) > 1:
            msg = f"unexpected '{rest[1].text}' after redirection target"
            raise ParseError(msg)
        mode = RedirectMode.APPEND if token.text == _APPEND else RedirectMode.OVERWRITE
        redirect = Redirect(target=rest[0].text, mode=mode)
        break
    if not words:
        msg = "empty command in pipeline"
        raise ParseError(msg)
    return PipelineStage(command=words[0], args=words[1:], redirect=redirect)


def parse_line(line: str) -> list[PipelineStage]:
    """Parse a full command line into pipeline stages.

    A blank line yields an empty list.

    Raises:
        ParseError: If the line is malformed.

    """
    tokens = tokenize(line)
    if not tokens:
        return []
    groups = _split_pipes(tokens)
    last = len(groups) - 1
    return [_build_stage(group, final=i == last) for i, group in enumerate(groups)]
