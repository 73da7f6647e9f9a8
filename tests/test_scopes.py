import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from rescope.runtime.core import TextBuffer
from rescope.runtime.errors import ClosingBeforeOpening, NoClosingBrace, ScopeLocationError
from rescope.runtime.scopes import (
    find_next_scope,
    has_opening_brace,
    locate_region,
    scope_head_start,
)


def test_no_scope_returns_none():
    assert find_next_scope("plain text") is None
    assert locate_region("") is None


def test_finds_balanced_outer_region():
    text = "ab {x {y} z} cd {w}"
    assert find_next_scope(text) == (3, 11)
    assert find_next_scope(text, 12) == (16, 18)


def test_works_over_a_text_buffer():
    assert find_next_scope(TextBuffer("-{}-")) == (1, 2)


def test_unclosed_scope_fails():
    with pytest.raises(NoClosingBrace) as excinfo:
        find_next_scope("a {b {c}")
    assert excinfo.value.offset == 2
    assert isinstance(excinfo.value, ScopeLocationError)


def test_closer_before_opener_is_relative_to_start():
    with pytest.raises(ClosingBeforeOpening) as excinfo:
        find_next_scope("} {a}")
    assert excinfo.value.offset == 0
    assert find_next_scope("} {a}", 1) == (2, 4)


def test_escaped_braces_and_comments_are_skipped():
    assert find_next_scope("\\{ \\} {a}") == (6, 8)
    assert find_next_scope("// {x\n{y}") == (6, 8)
    assert find_next_scope("{a // }\n}") == (0, 8)


def test_lone_slash_is_not_a_comment():
    assert find_next_scope("a/{b}") == (2, 4)


def test_has_opening_brace():
    assert has_opening_brace("x } y {", 2)
    assert not has_opening_brace("x } y \\{ // {", 2)
    assert not has_opening_brace("print({)")
    assert has_opening_brace("*print({)")


@pytest.mark.parametrize(
    "text, open_offset, expected",
    [
        ("{a}", 0, 0),
        ("x {a}", 2, 2),
        ("say foo{a}", 7, 4),
        ("def f {a}", 6, 0),
        ("x *def g {a}", 9, 2),
        ("x\ndef long_name {a}", 16, 2),
        ("x\ndef  long_name {a}", 17, 17),
        ("def f{a}", 5, 0),
        ("x def\tf {a}", 8, 2),
        ("undef f {a}", 8, 8),
        ("\\def f {a}", 7, 7),
        ("a\\bc{x}", 4, 3),
    ],
)
def test_scope_head_start(text, open_offset, expected):
    assert text[open_offset] == "{"
    assert scope_head_start(text, open_offset) == expected


def test_scope_head_start_respects_floor():
    assert scope_head_start("foo{a}", 3, floor=2) == 2


def test_locate_region_includes_head_and_closer():
    text = "a def f {x:y:z} f{x} b"
    begin, end = locate_region(text)
    assert text[begin:end] == "def f {x:y:z}"
    begin, end = locate_region(text, end)
    assert text[begin:end] == "f{x}"


def test_builtin_payload_braces_are_skipped():
    assert find_next_scope("{ x : x : print(a}b)done }") == (0, 25)
    assert find_next_scope("print(a\\)})x{b}") == (12, 14)
    assert find_next_scope("get_input({) {a}") == (13, 15)


def test_only_a_bare_keyword_starts_a_builtin():
    assert find_next_scope("reprint(a{b})") == (9, 11)
    assert find_next_scope("*print(a{b})") == (8, 10)
    assert find_next_scope("x*print(a{b})") is None
