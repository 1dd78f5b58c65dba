"""Split migration SQL text into individual statements.

Drivers execute one statement per call, so a migration file has to be cut
at its terminating semicolons -- but not at semicolons inside string
literals, quoted identifiers or comments. Nested quoting/comment interaction
is not a regular language, so this is an explicit state machine over the
characters rather than a regex.

States (mutually exclusive)::

    NONE ──'--'──▶ LINE_COMMENT ──'\\n'──▶ NONE     (newline kept)
    NONE ──'/*'──▶ BLOCK_COMMENT ──'*/'──▶ NONE     (all discarded)
    NONE ──'  ──▶ SINGLE_QUOTED ──'──▶ NONE         (unless preceded by \\)
    NONE ──"  ──▶ DOUBLE_QUOTED ──"──▶ NONE
    NONE ──`  ──▶ BACKTICK_QUOTED ──`──▶ NONE
    NONE ──;  ──▶ emit statement

Examples:
    >>> split_statements("SELECT 'a;b'; SELECT 1;")
    ["SELECT 'a;b'", 'SELECT 1']
    >>> split_statements("-- comment\\nSELECT 1;")
    ['SELECT 1']
"""

from __future__ import annotations

from enum import Enum


class _State(Enum):
    NONE = "none"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"
    SINGLE_QUOTED = "single_quoted"
    DOUBLE_QUOTED = "double_quoted"
    BACKTICK_QUOTED = "backtick_quoted"


_QUOTES = {
    "'": _State.SINGLE_QUOTED,
    '"': _State.DOUBLE_QUOTED,
    "`": _State.BACKTICK_QUOTED,
}


def split_statements(sql: str) -> list[str]:
    """Split ``sql`` into trimmed, non-empty statements in source order.

    Terminating semicolons are removed and comment text is dropped. A final
    statement without a trailing ``;`` is still returned.
    """
    statements: list[str] = []
    buffer: list[str] = []
    state = _State.NONE
    length = len(sql)
    i = 0

    def flush() -> None:
        statement = "".join(buffer).strip()
        if statement:
            statements.append(statement)
        buffer.clear()

    while i < length:
        ch = sql[i]
        nxt = sql[i + 1] if i + 1 < length else ""

        if state is _State.LINE_COMMENT:
            if ch == "\n":
                state = _State.NONE
                buffer.append(ch)
            i += 1
            continue

        if state is _State.BLOCK_COMMENT:
            if ch == "*" and nxt == "/":
                state = _State.NONE
                i += 1
            i += 1
            continue

        if state is _State.NONE:
            if ch == "-" and nxt == "-":
                state = _State.LINE_COMMENT
                i += 2
                continue
            if ch == "/" and nxt == "*":
                state = _State.BLOCK_COMMENT
                i += 2
                continue

        if ch in _QUOTES and (i == 0 or sql[i - 1] != "\\"):
            quoted = _QUOTES[ch]
            if state is _State.NONE:
                state = quoted
            elif state is quoted:
                state = _State.NONE

        if ch == ";" and state is _State.NONE:
            flush()
            i += 1
            continue

        buffer.append(ch)
        i += 1

    flush()
    return statements


__all__ = ["split_statements"]
