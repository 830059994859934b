"""Escape-aware splitting for browser configuration strings.

A backslash escapes the next character when that character is one of
``ESCAPABLE``; any other backslash is an ordinary character, so Windows paths
such as ``C:\\Program Files`` survive unescaped. Splitting keeps escape
sequences intact so that nested splits (``:`` then ``;``) see the same
escapes; ``unescape`` is applied once to each final token.
"""

from enum import Enum

ESCAPE_CHAR = "\\"
ESCAPABLE = frozenset({"\\", ":", ";", "-"})


class _State(Enum):
    NORMAL = "normal"
    ESCAPE = "escape"


def split_escaped(text: str, separator: str) -> list[str]:
    """
    Split text on an unescaped separator.

    Escape sequences are kept verbatim in the returned pieces.

    Args:
        text: Raw text
        separator: Single separator character

    Returns:
        List of raw pieces (at least one, possibly empty)
    """
    pieces: list[str] = []
    current: list[str] = []
    state = _State.NORMAL

    for char in text:
        if state == _State.ESCAPE:
            current.append(char)
            state = _State.NORMAL
        elif char == ESCAPE_CHAR:
            current.append(char)
            state = _State.ESCAPE
        elif char == separator:
            pieces.append("".join(current))
            current = []
        else:
            current.append(char)

    pieces.append("".join(current))
    return pieces


def unescape(text: str) -> str:
    """Resolve escape sequences for escapable characters."""
    result: list[str] = []
    state = _State.NORMAL

    for char in text:
        if state == _State.ESCAPE:
            if char not in ESCAPABLE:
                result.append(ESCAPE_CHAR)
            result.append(char)
            state = _State.NORMAL
        elif char == ESCAPE_CHAR:
            state = _State.ESCAPE
        else:
            result.append(char)

    if state == _State.ESCAPE:
        result.append(ESCAPE_CHAR)

    return "".join(result)


def find_argument_tail(text: str) -> int:
    """
    Find where the free-form argument tail starts.

    The tail starts at the first unescaped ``-`` that begins the string or
    follows whitespace.

    Returns:
        Index of the tail start, or ``len(text)`` when there is no tail
    """
    state = _State.NORMAL
    previous = ""

    for index, char in enumerate(text):
        if state == _State.ESCAPE:
            state = _State.NORMAL
        elif char == ESCAPE_CHAR:
            state = _State.ESCAPE
        elif char == "-" and (index == 0 or previous.isspace()):
            return index
        previous = char

    return len(text)
