"""Locate the next rewritable scope in live program text."""

from __future__ import annotations

from typing import Optional

from ..constants import (
    BUILTIN_KEYWORDS,
    COMMENT_CHAR,
    DEF_KEYWORD,
    ESCAPE,
    GLOBAL_MARKER,
    SCOPE_CLOSE,
    SCOPE_OPEN,
    WHITESPACE,
)
from .errors import ClosingBeforeOpening, NoClosingBrace
from .lexer import is_name_char


def _skip(text, pos: int, floor: int = 0) -> Optional[int]:
    """Return the offset after an escape, comment or built-in call starting at ``pos``, if any."""
    c = text[pos]
    if c == ESCAPE:
        return pos + 2
    if c == COMMENT_CHAR and pos + 1 < len(text) and text[pos + 1] == COMMENT_CHAR:
        pos += 2
        while pos < len(text) and text[pos] != "\n":
            pos += 1
        return pos
    if is_name_char(c) and _name_starts_at(text, pos, floor):
        return _skip_builtin(text, pos)
    return None


def _name_starts_at(text, pos: int, floor: int = 0) -> bool:
    """Whether the lexer's name buffer is empty when it reaches ``pos``, lexing from ``floor``."""
    stars = 0
    prev = pos - 1
    while prev >= floor and text[prev] == GLOBAL_MARKER and not _is_escaped(text, prev):
        stars += 1
        prev -= 1
    empty = prev < floor or _is_escaped(text, prev) or not is_name_char(text[prev])
    # a star joins an empty buffer and flushes a non-empty one
    return empty != (stars % 2 == 1)


def _skip_builtin(text, pos: int) -> Optional[int]:
    """Skip ``keyword(payload)`` through the first unescaped ``)``, as the lexer reads it."""
    for keyword in BUILTIN_KEYWORDS:
        end = pos + len(keyword)
        if end >= len(text) or text[pos:end] != keyword or text[end] != "(":
            continue
        pos = end + 1
        while pos < len(text):
            if text[pos] == ESCAPE:
                pos += 2
                continue
            if text[pos] == ")":
                return pos + 1
            pos += 1
        return len(text)
    return None


def find_next_scope(text, start: int = 0) -> Optional[tuple[int, int]]:
    """
    Find the first balanced ``{...}`` region at or after ``start``.

    ``text`` is anything indexable by offset (a ``str`` or a
    :class:`~rescope.runtime.core.TextBuffer`). Returns the offsets of the
    opening and closing braces, or ``None`` if no opening brace remains.
    Offsets are only valid until the text is next modified.
    """
    size = len(text)
    pos = start
    opening = None
    depth = 0
    while pos < size:
        skipped = _skip(text, pos, start)
        if skipped is not None:
            pos = skipped
            continue
        c = text[pos]
        if c == SCOPE_OPEN:
            if opening is None:
                opening = pos
            depth += 1
        elif c == SCOPE_CLOSE:
            if opening is None:
                raise ClosingBeforeOpening(
                    "found '}' before any '{'", offset=pos
                )
            depth -= 1
            if depth == 0:
                return opening, pos
        pos += 1
    if opening is not None:
        raise NoClosingBrace("scope is never closed", offset=opening)
    return None


def has_opening_brace(text, start: int = 0) -> bool:
    """Whether an unescaped ``{`` outside comments exists at or after ``start``."""
    pos = start
    while pos < len(text):
        skipped = _skip(text, pos, start)
        if skipped is not None:
            pos = skipped
            continue
        if text[pos] == SCOPE_OPEN:
            return True
        pos += 1
    return False


def _is_escaped(text, pos: int) -> bool:
    count = 0
    pos -= 1
    while pos >= 0 and text[pos] == ESCAPE:
        count += 1
        pos -= 1
    return count % 2 == 1


def _name_run_start(text, end: int, floor: int) -> int:
    """Walk back over unescaped name characters ending just before ``end``."""
    pos = end
    while pos > floor and is_name_char(text[pos - 1]):
        pos -= 1
    while pos < end and _is_escaped(text, pos):
        pos += 1
    return pos


def _definition_start(text, name_start: int, floor: int) -> Optional[int]:
    """Offset of the ``def``/``*def`` keyword heading the name at ``name_start``, if any."""
    sep = name_start - 1
    if sep < floor or text[sep] not in WHITESPACE:
        return None
    keyword_start = sep - len(DEF_KEYWORD)
    if keyword_start < floor or text[keyword_start:sep] != DEF_KEYWORD:
        return None
    if _is_escaped(text, keyword_start):
        return None
    if _name_starts_at(text, keyword_start, floor):
        return keyword_start
    marker = keyword_start - 1
    if (
        marker >= floor
        and text[marker] == GLOBAL_MARKER
        and not _is_escaped(text, marker)
        and _name_starts_at(text, marker, floor)
    ):
        return marker
    return None


def scope_head_start(text, open_offset: int, floor: int = 0) -> int:
    """
    Return where the scope whose ``{`` sits at ``open_offset`` really begins.

    A call head (``name{``) or a definition header belongs to the scope; a
    bare ``{`` starts at itself. A header is ``def`` or ``*def``, exactly one
    whitespace character, the name, one space, then ``{``. The walk never
    goes below ``floor``.
    """
    name_start = _name_run_start(text, open_offset, floor)
    if name_start < open_offset:
        # ``def name{`` is a malformed header, left for the lexer to reject
        header = _definition_start(text, name_start, floor)
        return name_start if header is None else header

    pos = open_offset - 1
    if pos < floor or text[pos] != " ":
        return open_offset
    name_start = _name_run_start(text, pos, floor)
    if name_start == pos:
        return open_offset
    header = _definition_start(text, name_start, floor)
    return open_offset if header is None else header


def locate_region(text, start: int = 0) -> Optional[tuple[int, int]]:
    """Return ``(begin, end)`` of the next scope including its head; ``end`` is exclusive."""
    found = find_next_scope(text, start)
    if found is None:
        return None
    opening, closing = found
    return scope_head_start(text, opening, start), closing + 1


__all__ = [
    "find_next_scope",
    "has_opening_brace",
    "locate_region",
    "scope_head_start",
]
