"""Character-level lexer turning rescope program text into tokens."""

from __future__ import annotations

from enum import Enum, auto
from typing import Optional

from ..constants import (
    ARM_SEPARATOR,
    BUILTIN_KEYWORDS,
    COLON,
    COMMENT_CHAR,
    DEF_KEYWORD,
    ESCAPE,
    GLOBAL_MARKER,
    INDIRECTION_MARKER,
    REGISTER_MARKER,
    SCOPE_CLOSE,
    SCOPE_OPEN,
    WHITESPACE,
)
from .core import (
    COLON_SEP,
    NEW_ARM,
    SCOPE_END,
    SCOPE_START,
    WHITESPACE_RUN,
    WHITESPACE_TOKEN,
    Token,
)
from .errors import (
    ExpectedFunctionNameAfterDef,
    ExpectedScopeStartAfterFunctionDefinition,
    IndexMissingInRegisterCall,
    InputEndedUnexpectedly,
    InvalidFunctionNameCharacter,
    InvalidRegisterIndexCharacter,
)


class LexState(Enum):
    NORMAL = auto()
    POTENTIAL_INDIRECTION = auto()
    PARSING_REGISTER_INDEX = auto()
    PARSING_DEFINITION_NAME = auto()
    POTENTIAL_COMMENT = auto()
    IN_COMMENT = auto()
    ESCAPE = auto()


# states in which the input may legally end
TERMINAL_STATES = frozenset(
    {LexState.NORMAL, LexState.POTENTIAL_COMMENT, LexState.POTENTIAL_INDIRECTION}
)


def is_name_char(c: str) -> bool:
    return c == "_" or (c.isascii() and c.isalnum())


class Parser:
    """Transient per-run lexer state, reset between tokens."""

    def __init__(self):
        self.state = LexState.NORMAL
        self.buffer: list[str] = []
        self.depth = 0
        self.index: list[str] = []
        self.is_global = False

    def reset_buffers(self) -> None:
        self.buffer.clear()
        self.depth = 0
        self.index.clear()
        self.is_global = False

    @property
    def name(self) -> str:
        return "".join(self.buffer)


class Lexer:
    """
    Drive the :class:`Parser` state machine over a program text.

    Each character is handled by the method for the current state; a handler
    returns ``True`` when the same character must be handled again from the
    (new) state.
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.parser = Parser()
        self.tokens: list[Token] = []

    # emission helpers

    def emit(self, token: Token) -> None:
        if token.kind == WHITESPACE_RUN and self.tokens and self.tokens[-1].kind == WHITESPACE_RUN:
            return
        self.tokens.append(token)

    def flush_buffer(self) -> None:
        for c in self.parser.buffer:
            self.emit(Token.char(c))
        self.parser.reset_buffers()

    def flush_head(self) -> None:
        """Flush the buffer as the head of a scope that starts here."""
        buffer = self.parser.buffer
        if buffer and buffer[0] == GLOBAL_MARKER:
            self.emit(Token.char(GLOBAL_MARKER))
            del buffer[0]
        if buffer:
            self.emit(Token.call(self.parser.name))
        else:
            self.emit(Token(SCOPE_START))
        self.parser.reset_buffers()

    def next_raw(self) -> Optional[str]:
        if self.pos >= len(self.text):
            return None
        c = self.text[self.pos]
        self.pos += 1
        return c

    # state handlers

    def handle_normal(self, c: str) -> bool:
        parser = self.parser
        if c == SCOPE_OPEN:
            self.flush_head()
        elif c == SCOPE_CLOSE:
            self.flush_buffer()
            self.emit(Token(SCOPE_END))
        elif c == COLON:
            self.flush_buffer()
            self.emit(Token(COLON_SEP))
        elif c == ARM_SEPARATOR:
            self.flush_buffer()
            self.emit(Token(NEW_ARM))
        elif c == INDIRECTION_MARKER:
            self.flush_buffer()
            parser.state = LexState.POTENTIAL_INDIRECTION
            parser.depth = 1
        elif c == REGISTER_MARKER:
            self.flush_buffer()
            parser.state = LexState.PARSING_REGISTER_INDEX
        elif c in WHITESPACE:
            name = parser.name
            if name in (DEF_KEYWORD, GLOBAL_MARKER + DEF_KEYWORD):
                is_global = name.startswith(GLOBAL_MARKER)
                parser.reset_buffers()
                parser.is_global = is_global
                parser.state = LexState.PARSING_DEFINITION_NAME
            else:
                self.flush_buffer()
                self.emit(WHITESPACE_TOKEN)
        elif c == COMMENT_CHAR:
            self.flush_buffer()
            parser.state = LexState.POTENTIAL_COMMENT
        elif c == GLOBAL_MARKER and not parser.buffer:
            parser.buffer.append(c)
        elif is_name_char(c):
            parser.buffer.append(c)
        elif c == ESCAPE:
            self.flush_buffer()
            parser.state = LexState.ESCAPE
        elif c == "(" and parser.name in BUILTIN_KEYWORDS:
            kind = BUILTIN_KEYWORDS[parser.name]
            parser.reset_buffers()
            self.emit(Token.builtin(kind, self.read_payload()))
        else:
            self.flush_buffer()
            self.emit(Token.char(c))
        return False

    def handle_potential_indirection(self, c: str) -> bool:
        parser = self.parser
        if c == INDIRECTION_MARKER:
            parser.depth += 1
            return False
        if c == REGISTER_MARKER:
            parser.state = LexState.PARSING_REGISTER_INDEX
            return False
        for _ in range(parser.depth):
            self.emit(Token.char(INDIRECTION_MARKER))
        parser.reset_buffers()
        parser.state = LexState.NORMAL
        return True

    def handle_register_index(self, c: str) -> bool:
        parser = self.parser
        if c.isascii() and c.isdigit():
            parser.index.append(c)
            return False
        if c in WHITESPACE:
            if not parser.index:
                raise IndexMissingInRegisterCall(
                    "register reference has no index", offset=self.pos - 1
                )
            self.emit(Token.register(parser.depth, int("".join(parser.index))))
            parser.reset_buffers()
            parser.state = LexState.NORMAL
            return False
        raise InvalidRegisterIndexCharacter(
            "invalid register index character", char=c, offset=self.pos - 1
        )

    def handle_definition_name(self, c: str) -> bool:
        parser = self.parser
        if is_name_char(c):
            parser.buffer.append(c)
            return False
        if c == " ":
            if not parser.buffer:
                raise ExpectedFunctionNameAfterDef(
                    "expected a function name after def", offset=self.pos - 1
                )
            self.emit(Token.definition(parser.name, parser.is_global))
            parser.reset_buffers()
            parser.state = LexState.NORMAL
            following = self.next_raw()
            if following != SCOPE_OPEN:
                raise ExpectedScopeStartAfterFunctionDefinition(
                    "expected '{' after function definition header",
                    char=following,
                    offset=self.pos - 1,
                )
            return False
        raise InvalidFunctionNameCharacter(
            "invalid function name character", char=c, offset=self.pos - 1
        )

    def handle_potential_comment(self, c: str) -> bool:
        if c == COMMENT_CHAR:
            self.parser.state = LexState.IN_COMMENT
            return False
        self.emit(Token.char(COMMENT_CHAR))
        self.parser.state = LexState.NORMAL
        return True

    def handle_comment(self, c: str) -> bool:
        if c == "\n":
            self.parser.state = LexState.NORMAL
            return True
        return False

    def handle_escape(self, c: str) -> bool:
        self.emit(Token.char(c))
        self.parser.state = LexState.NORMAL
        return False

    def read_payload(self) -> str:
        """Consume a built-in payload up to the next unescaped ``)``."""
        chars: list[str] = []
        while True:
            c = self.next_raw()
            if c is None:
                raise InputEndedUnexpectedly(
                    "built-in call is missing its closing ')'", offset=self.pos
                )
            if c == ")":
                return "".join(chars)
            if c == ESCAPE:
                escaped = self.next_raw()
                if escaped is None:
                    raise InputEndedUnexpectedly(
                        "built-in call is missing its closing ')'", offset=self.pos
                    )
                chars.append(escaped)
                continue
            chars.append(c)

    def tokenize(self) -> list[Token]:
        handlers = {
            LexState.NORMAL: self.handle_normal,
            LexState.POTENTIAL_INDIRECTION: self.handle_potential_indirection,
            LexState.PARSING_REGISTER_INDEX: self.handle_register_index,
            LexState.PARSING_DEFINITION_NAME: self.handle_definition_name,
            LexState.POTENTIAL_COMMENT: self.handle_potential_comment,
            LexState.IN_COMMENT: self.handle_comment,
            LexState.ESCAPE: self.handle_escape,
        }
        while True:
            c = self.next_raw()
            if c is None:
                break
            while handlers[self.parser.state](c):
                pass

        state = self.parser.state
        if state not in TERMINAL_STATES:
            raise InputEndedUnexpectedly(
                f"input ended while in state {state.name}", offset=self.pos
            )
        if state == LexState.POTENTIAL_COMMENT:
            self.emit(Token.char(COMMENT_CHAR))
        elif state == LexState.POTENTIAL_INDIRECTION:
            for _ in range(self.parser.depth):
                self.emit(Token.char(INDIRECTION_MARKER))
        self.flush_buffer()
        return self.tokens


def tokenize(text: str) -> list[Token]:
    """Lex ``text`` into a flat token list (no root token)."""
    return Lexer(text).tokenize()


__all__ = [
    "LexState",
    "TERMINAL_STATES",
    "Lexer",
    "Parser",
    "is_name_char",
    "tokenize",
]
