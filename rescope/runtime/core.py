"""Core runtime data structures for rescope."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import re
from typing import Iterable, Iterator, Optional

from ..constants import (
    ARM_SEPARATOR,
    COLON,
    DEF_KEYWORD,
    GLOBAL_MARKER,
    INDIRECTION_MARKER,
    REGISTER_MARKER,
    SCOPE_CLOSE,
    SCOPE_OPEN,
)
from .errors import UnboundRegister

CHAR = "char"
SCOPE_START = "scope_start"
SCOPE_END = "scope_end"
COLON_SEP = "colon"
NEW_ARM = "new_arm"
CALL = "call"
DEF = "def"
DEF_GLOBAL = "def_global"
REGISTER = "register"
ROOT = "root"
GET_INPUT = "get_input"
ERROR = "error"
PRINT = "print"
WHITESPACE_RUN = "whitespace"

TOKEN_KINDS = (
    CHAR,
    SCOPE_START,
    SCOPE_END,
    COLON_SEP,
    NEW_ARM,
    CALL,
    DEF,
    DEF_GLOBAL,
    REGISTER,
    ROOT,
    GET_INPUT,
    ERROR,
    PRINT,
    WHITESPACE_RUN,
)

# kinds that open a region closed by a SCOPE_END token
OPENING_KINDS = frozenset({SCOPE_START, CALL, DEF, DEF_GLOBAL})
BUILTIN_KINDS = frozenset({GET_INPUT, ERROR, PRINT})


@dataclass(frozen=True)
class Token:
    """One lexical unit. Payload fields are only meaningful for some kinds."""

    kind: str
    text: str = ""
    depth: int = 0
    index: int = 0

    def __post_init__(self):
        if self.kind not in TOKEN_KINDS:
            raise ValueError(f"Unknown token kind: {self.kind}")

    @classmethod
    def char(cls, c: str) -> "Token":
        return cls(CHAR, c)

    @classmethod
    def call(cls, name: str) -> "Token":
        return cls(CALL, name)

    @classmethod
    def definition(cls, name: str, is_global: bool = False) -> "Token":
        return cls(DEF_GLOBAL if is_global else DEF, name)

    @classmethod
    def register(cls, depth: int, index: int) -> "Token":
        return cls(REGISTER, depth=depth, index=index)

    @classmethod
    def builtin(cls, kind: str, payload: str) -> "Token":
        return cls(kind, payload)

    @property
    def opens_scope(self) -> bool:
        return self.kind in OPENING_KINDS

    @property
    def is_literal(self) -> bool:
        return self.kind in (CHAR, WHITESPACE_RUN)

    def render(self) -> str:
        """Return the canonical surface form of this token."""
        kind = self.kind
        if kind == CHAR:
            return self.text
        if kind == SCOPE_START:
            return SCOPE_OPEN
        if kind == SCOPE_END:
            return SCOPE_CLOSE
        if kind == COLON_SEP:
            return COLON
        if kind == NEW_ARM:
            return ARM_SEPARATOR
        if kind == CALL:
            return f"{self.text}{SCOPE_OPEN}"
        if kind == DEF:
            return f"{DEF_KEYWORD} {self.text} {SCOPE_OPEN}"
        if kind == DEF_GLOBAL:
            return f"{GLOBAL_MARKER}{DEF_KEYWORD} {self.text} {SCOPE_OPEN}"
        if kind == REGISTER:
            # the terminating whitespace is part of the reference
            return f"{INDIRECTION_MARKER * self.depth}{REGISTER_MARKER}{self.index} "
        if kind in BUILTIN_KINDS:
            return f"{kind}({self.text})"
        if kind == WHITESPACE_RUN:
            return " "
        return ""

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        if self.kind == REGISTER:
            return f"Token(register, depth={self.depth}, index={self.index})"
        if self.kind in (CHAR, CALL, DEF, DEF_GLOBAL) or self.kind in BUILTIN_KINDS:
            return f"Token({self.kind}, {self.text!r})"
        return f"Token({self.kind})"


ROOT_TOKEN = Token(ROOT)
WHITESPACE_TOKEN = Token(WHITESPACE_RUN)


def literal_tokens(text: str) -> list[Token]:
    """Turn already-evaluated text into literal character tokens."""
    return [Token.char(c) for c in text]


class TokenNode:
    """A token plus the arena index of its logical successor."""

    __slots__ = ("token", "next")

    def __init__(self, token: Token, next: Optional[int] = None):
        self.token = token
        self.next = next

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"<{self.token!r} -> {self.next}>"


@dataclass
class Arm:
    """One ``input : pattern : output`` clause, kept as token templates."""

    input: tuple[Token, ...]
    pattern: tuple[Token, ...]
    output: tuple[Token, ...]
    compiled: Optional[re.Pattern] = None

    @property
    def is_static_pattern(self) -> bool:
        return all(t.is_literal for t in self.pattern)


@dataclass
class FunctionDef:
    name: str
    arms: list[Arm]
    is_global: bool = False


class FunctionTable:
    """Function definitions visible to one evaluation, chained to enclosing tables."""

    def __init__(self, parent: "FunctionTable | None" = None):
        self.parent = parent
        self.functions: dict[str, FunctionDef] = {}

    @property
    def root(self) -> "FunctionTable":
        table = self
        while table.parent is not None:
            table = table.parent
        return table

    def child(self) -> "FunctionTable":
        return FunctionTable(self)

    def define(self, function: FunctionDef) -> None:
        """Register a definition; global ones always land in the root table."""
        target = self.root if function.is_global else self
        target.functions[function.name] = function

    def lookup(self, name: str) -> Optional[FunctionDef]:
        table = self
        while table is not None:
            if name in table.functions:
                return table.functions[name]
            table = table.parent
        return None

    def visible_names(self) -> list[str]:
        names: dict[str, None] = {}
        table = self
        while table is not None:
            for name in table.functions:
                names.setdefault(name, None)
            table = table.parent
        return sorted(names)

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"FunctionTable({sorted(self.functions)})"


class RegisterStack:
    """Stack of register frames; depth 0 is the innermost active frame."""

    def __init__(self, frames: Iterable[Iterable[str]] | None = None):
        self.frames: list[list[str]] = [list(f) for f in frames or []]

    def __len__(self) -> int:
        return len(self.frames)

    def push(self, values: Iterable[str]) -> None:
        self.frames.append(list(values))

    def pop(self) -> list[str]:
        return self.frames.pop()

    def replace_top(self, values: Iterable[str]) -> None:
        self.frames[-1] = list(values)

    @contextmanager
    def frame(self, values: Iterable[str]) -> Iterator[None]:
        self.push(values)
        height = len(self.frames)
        try:
            yield
        finally:
            del self.frames[height - 1:]

    def resolve(self, depth: int, index: int) -> str:
        if depth >= len(self.frames):
            raise UnboundRegister(
                depth, index, f"only {len(self.frames)} frame(s) are active"
            )
        frame = self.frames[-1 - depth]
        if index >= len(frame):
            raise UnboundRegister(
                depth, index, f"the frame holds {len(frame)} slot(s)"
            )
        return frame[index]


class TextBuffer:
    """Mutable program text addressed by character offset."""

    def __init__(self, text: str = ""):
        self._text = text

    def __len__(self) -> int:
        return len(self._text)

    def __getitem__(self, key):
        return self._text[key]

    def __str__(self) -> str:
        return self._text

    def __eq__(self, other) -> bool:
        if isinstance(other, TextBuffer):
            return self._text == other._text
        if isinstance(other, str):
            return self._text == other
        return NotImplemented

    def splice(self, start: int, end: int, replacement: str) -> None:
        if not 0 <= start <= end <= len(self._text):
            raise IndexError(f"splice range {start}:{end} outside buffer of {len(self._text)}")
        self._text = self._text[:start] + replacement + self._text[end:]

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"TextBuffer({len(self._text)} chars)"


@dataclass
class RunResult:
    """Final text of a run plus its step count and execution log."""

    text: str
    steps: int = 0
    log: list[str] = field(default_factory=list)


__all__ = [
    "CHAR",
    "SCOPE_START",
    "SCOPE_END",
    "COLON_SEP",
    "NEW_ARM",
    "CALL",
    "DEF",
    "DEF_GLOBAL",
    "REGISTER",
    "ROOT",
    "GET_INPUT",
    "ERROR",
    "PRINT",
    "WHITESPACE_RUN",
    "TOKEN_KINDS",
    "OPENING_KINDS",
    "BUILTIN_KINDS",
    "Token",
    "ROOT_TOKEN",
    "WHITESPACE_TOKEN",
    "literal_tokens",
    "TokenNode",
    "Arm",
    "FunctionDef",
    "FunctionTable",
    "RegisterStack",
    "TextBuffer",
    "RunResult",
]
