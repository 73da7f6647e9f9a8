"""Arena-backed editable linked list of tokens."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Sequence

from .core import ROOT_TOKEN, SCOPE_END, Token, TokenNode
from .errors import (
    InsertionEmptyTokens,
    InsertionInvalidIndex,
    RemovalInvalidIndex,
    RemovalRangeTooBig,
    UnbalancedScope,
)
from .lexer import tokenize


class LinkedTokens:
    """
    Tokens stored in an append-only arena and linked by successor index.

    Index 0 always holds the root node; its successor is the first real
    token. The logical order is defined only by successor links, so new
    nodes can be appended to the arena while being linked into the middle of
    the sequence. Unlinked nodes stay in the arena until :meth:`compact`.
    """

    def __init__(self, arena: list[TokenNode] | None = None):
        self.arena: list[TokenNode] = arena or [TokenNode(ROOT_TOKEN)]

    @classmethod
    def from_tokens(cls, tokens: Iterable[Token]) -> "LinkedTokens":
        arena = [TokenNode(ROOT_TOKEN)]
        for token in tokens:
            arena[-1].next = len(arena)
            arena.append(TokenNode(token))
        return cls(arena)

    @classmethod
    def from_text(cls, text: str) -> "LinkedTokens":
        """Lex ``text`` into a new arena. Raises :class:`LexError` on bad input."""
        return cls.from_tokens(tokenize(text))

    def __len__(self) -> int:
        return len(self.arena)

    def __iter__(self) -> Iterator[tuple[int, Token]]:
        current = self.arena[0].next
        while current is not None:
            node = self.arena[current]
            yield current, node.token
            current = node.next

    def tokens(self) -> list[Token]:
        return [token for _, token in self]

    def next_of(self, index: int) -> Optional[int]:
        return self.arena[index].next

    def token_at(self, index: int) -> Token:
        return self.arena[index].token

    def live_count(self) -> int:
        """Number of reachable nodes, the root included."""
        return 1 + sum(1 for _ in self)

    def dead_count(self) -> int:
        return len(self.arena) - self.live_count()

    def insert_after(self, index: int, tokens: Sequence[Token]) -> None:
        """Splice ``tokens`` in right after the node at ``index``."""
        if not 0 <= index < len(self.arena):
            raise InsertionInvalidIndex(f"cannot insert after index {index}")
        if not tokens:
            raise InsertionEmptyTokens("cannot insert an empty token sequence")

        start = len(self.arena)
        old_next = self.arena[index].next
        last = len(tokens) - 1
        for i, token in enumerate(tokens):
            self.arena.append(TokenNode(token, old_next if i == last else start + i + 1))
        self.arena[index].next = start

    def remove_range(self, index: int, n: int) -> None:
        """Unlink the ``n`` tokens following ``index``; ``index`` itself stays."""
        if not 0 <= index < len(self.arena):
            raise RemovalInvalidIndex(f"cannot remove after index {index}")
        if n == 0:
            return

        current = index
        for _ in range(n):
            following = self.arena[current].next
            if following is None:
                raise RemovalRangeTooBig(
                    f"fewer than {n} tokens follow index {index}"
                )
            current = following
        self.arena[index].next = self.arena[current].next

    def remove_between(self, start_index: int, end_index: int) -> None:
        """Link ``start_index`` straight to ``end_index``, dropping what lies between."""
        size = len(self.arena)
        if not 0 <= start_index < size or not 0 <= end_index < size:
            raise RemovalInvalidIndex(
                f"cannot remove between {start_index} and {end_index}"
            )
        self.arena[start_index].next = end_index

    def compact(self) -> dict[int, int]:
        """
        Rebuild the arena from the live nodes only.

        Returns the mapping from old to new index for every live node (the
        root maps to itself) so callers can translate indices they hold.
        """
        remap = {0: 0}
        arena = [TokenNode(ROOT_TOKEN)]
        for old_index, token in self:
            arena[-1].next = len(arena)
            remap[old_index] = len(arena)
            arena.append(TokenNode(token))
        self.arena = arena
        return remap

    def matching_end(self, index: int) -> int:
        """Return the index of the scope end closing the opener at ``index``."""
        depth = 0
        current: Optional[int] = index
        while current is not None:
            token = self.arena[current].token
            if token.opens_scope:
                depth += 1
            elif token.kind == SCOPE_END:
                depth -= 1
                if depth == 0:
                    return current
            current = self.arena[current].next
        raise UnbalancedScope(f"scope opened by {token_label(self.arena[index].token)} is never closed")

    def tokens_between(self, start_index: int, end_index: int) -> list[Token]:
        """Tokens strictly between two linked nodes."""
        tokens = []
        current = self.arena[start_index].next
        while current is not None and current != end_index:
            tokens.append(self.arena[current].token)
            current = self.arena[current].next
        return tokens

    def render_text(self) -> str:
        return "".join(token.render() for _, token in self)

    def __str__(self) -> str:
        return "".join(f"{token!r}\n" for _, token in self)

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"LinkedTokens(arena={len(self.arena)}, live={self.live_count()})"


def token_label(token: Token) -> str:
    return token.render().strip() or token.kind


__all__ = ["LinkedTokens", "token_label"]
