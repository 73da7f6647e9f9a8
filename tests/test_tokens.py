import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from rescope.runtime.core import ROOT, SCOPE_END, Token, literal_tokens
from rescope.runtime.errors import (
    ArenaIndexError,
    InsertionEmptyTokens,
    InsertionInvalidIndex,
    RemovalInvalidIndex,
    RemovalRangeTooBig,
    UnbalancedScope,
)
from rescope.runtime.lexer import tokenize
from rescope.runtime.tokens import LinkedTokens, token_label


def assert_arena_invariant(tokens: LinkedTokens):
    """Every successor link points inside the arena and the walk from the root terminates."""
    seen = set()
    current = 0
    while current is not None:
        assert 0 <= current < len(tokens)
        assert current not in seen
        seen.add(current)
        current = tokens.next_of(current)
    assert tokens.token_at(0).kind == ROOT


@pytest.fixture
def abc():
    return LinkedTokens.from_tokens(literal_tokens("abc"))


def test_from_text_links_tokens_in_order():
    tokens = LinkedTokens.from_text("x{y}")
    assert tokens.tokens() == tokenize("x{y}")
    assert [i for i, _ in tokens] == [1, 2, 3]
    assert_arena_invariant(tokens)


def test_empty_text_holds_only_the_root():
    tokens = LinkedTokens.from_text("")
    assert len(tokens) == 1
    assert tokens.next_of(0) is None
    assert tokens.render_text() == ""


@pytest.mark.parametrize(
    "source",
    [
        "plain text",
        "{ a : (b+) : $1 }",
        "def f { x : y : z ; p : q : ^$0 }",
        "*def g {a:b:c}",
        "call{ print(hi) get_input(name) error(no) }",
        "^^$3 tail",
    ],
)
def test_render_round_trips_lexically(source):
    rendered = LinkedTokens.from_text(source).render_text()
    assert tokenize(rendered) == tokenize(source)


def test_render_drops_comments_and_collapses_whitespace():
    tokens = LinkedTokens.from_text("a   b // gone\n  c")
    assert tokens.render_text() == "a b c"


def test_insert_after_splices_into_the_middle(abc):
    abc.insert_after(1, literal_tokens("XY"))
    assert abc.render_text() == "aXYbc"
    assert len(abc) == 6
    assert_arena_invariant(abc)


def test_insert_after_root_prepends(abc):
    abc.insert_after(0, [Token.char("_")])
    assert abc.render_text() == "_abc"


def test_insert_after_tail_appends(abc):
    abc.insert_after(3, [Token.char("!")])
    assert abc.render_text() == "abc!"
    assert abc.next_of(4) is None


def test_insert_errors(abc):
    with pytest.raises(InsertionInvalidIndex):
        abc.insert_after(9, [Token.char("x")])
    with pytest.raises(InsertionEmptyTokens):
        abc.insert_after(1, [])
    assert issubclass(InsertionInvalidIndex, ArenaIndexError)
    assert issubclass(InsertionInvalidIndex, IndexError)


def test_remove_range_unlinks_following_tokens(abc):
    abc.remove_range(0, 2)
    assert abc.render_text() == "c"
    assert len(abc) == 4
    assert abc.dead_count() == 2


def test_remove_range_zero_is_a_no_op(abc):
    abc.remove_range(1, 0)
    assert abc.render_text() == "abc"


def test_remove_range_errors(abc):
    with pytest.raises(RemovalInvalidIndex):
        abc.remove_range(-1, 1)
    with pytest.raises(RemovalRangeTooBig):
        abc.remove_range(1, 3)
    assert abc.render_text() == "abc"


def test_remove_between_links_the_endpoints(abc):
    abc.remove_between(1, 3)
    assert abc.render_text() == "ac"
    with pytest.raises(RemovalInvalidIndex):
        abc.remove_between(0, 42)


def test_compact_preserves_order_and_drops_dead_nodes(abc):
    abc.remove_range(1, 1)
    abc.insert_after(3, literal_tokens("de"))
    before = abc.render_text()
    remap = abc.compact()
    assert abc.render_text() == before == "acde"
    assert len(abc) == abc.live_count() == 5
    assert abc.dead_count() == 0
    assert remap == {0: 0, 1: 1, 3: 2, 4: 3, 5: 4}
    assert_arena_invariant(abc)


def test_compact_is_idempotent(abc):
    abc.remove_range(0, 1)
    abc.compact()
    snapshot = [(node.token, node.next) for node in abc.arena]
    abc.compact()
    assert [(node.token, node.next) for node in abc.arena] == snapshot


def test_matching_end_and_tokens_between():
    tokens = LinkedTokens.from_text("f{a{b}c}d")
    end = tokens.matching_end(1)
    assert tokens.token_at(end).kind == SCOPE_END
    inner = tokens.tokens_between(1, end)
    assert "".join(t.render() for t in inner) == "a{b}c"
    assert tokens.next_of(end) is not None


def test_matching_end_requires_a_closer():
    tokens = LinkedTokens.from_text("{a{b}")
    with pytest.raises(UnbalancedScope):
        tokens.matching_end(1)


def test_str_dumps_one_token_per_line():
    dump = str(LinkedTokens.from_text("a:"))
    assert dump.splitlines() == ["Token(char, 'a')", "Token(colon)"]


def test_token_label_uses_surface_form():
    assert token_label(Token.call("f")) == "f{"
    assert token_label(Token.register(1, 2)) == "^$2"
    assert token_label(Token(ROOT)) == ROOT
