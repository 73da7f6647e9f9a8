"""Rewrite evaluation of located scopes."""

from __future__ import annotations

from contextlib import contextmanager
import re
from typing import Callable, Iterator, Optional, Sequence

from ..constants import COMPACT_MIN_DEAD, MAX_NESTING
from .core import (
    CALL,
    COLON_SEP,
    DEF,
    DEF_GLOBAL,
    ERROR,
    GET_INPUT,
    NEW_ARM,
    PRINT,
    REGISTER,
    SCOPE_END,
    SCOPE_START,
    WHITESPACE_RUN,
    Arm,
    FunctionDef,
    FunctionTable,
    RegisterStack,
    Token,
    literal_tokens,
)
from .errors import (
    EvaluationDepthExceeded,
    InvalidPattern,
    MalformedArm,
    NoArmMatched,
    ProgramError,
    UnbalancedScope,
    UnknownFunction,
)
from .tokens import LinkedTokens, token_label

PATTERN_FLAGS = re.DOTALL


class Console:
    """Line-based input source and output sink used by the built-ins."""

    def __init__(
        self,
        read_line: Callable[[str], str] | None = None,
        write_line: Callable[[str], None] | None = None,
    ):
        self.read_line = read_line or input
        self.write_line = write_line or print

    def prompt(self, text: str) -> str:
        return self.read_line(text)

    def emit(self, message: str) -> None:
        self.write_line(message)


def split_parts(tokens: Sequence[Token], separator: str) -> list[list[Token]]:
    """Split a token run on ``separator`` tokens that sit at nesting depth zero."""
    parts: list[list[Token]] = [[]]
    depth = 0
    for token in tokens:
        if token.opens_scope:
            depth += 1
        elif token.kind == SCOPE_END:
            depth -= 1
        elif token.kind == separator and depth == 0:
            parts.append([])
            continue
        parts[-1].append(token)
    return parts


def trim(tokens: Sequence[Token]) -> tuple[Token, ...]:
    start, end = 0, len(tokens)
    while start < end and tokens[start].kind == WHITESPACE_RUN:
        start += 1
    while end > start and tokens[end - 1].kind == WHITESPACE_RUN:
        end -= 1
    return tuple(tokens[start:end])


def compile_pattern(source: str) -> re.Pattern:
    try:
        return re.compile(source, PATTERN_FLAGS)
    except re.error as exc:
        raise InvalidPattern(f"invalid pattern {source!r}: {exc}") from exc


def build_arm(parts: list[list[Token]], owner: str) -> Arm:
    if len(parts) != 3:
        raise MalformedArm(
            f"{owner} needs 'input : pattern : output', found {len(parts)} part(s)"
        )
    arm = Arm(*(trim(p) for p in parts))
    if arm.is_static_pattern:
        arm.compiled = compile_pattern("".join(t.render() for t in arm.pattern))
    return arm


def compile_definition(token: Token, inner: Sequence[Token]) -> FunctionDef:
    """Compile the arms of a ``def``/``*def`` body into a function definition."""
    arms = []
    for raw in split_parts(inner, NEW_ARM):
        if not trim(raw):
            continue
        arms.append(build_arm(split_parts(raw, COLON_SEP), f"arm of '{token.text}'"))
    return FunctionDef(token.text, arms, is_global=token.kind == DEF_GLOBAL)


def frame_from_match(match: re.Match) -> list[str]:
    return [match.group(0)] + [g if g is not None else "" for g in match.groups()]


class Evaluator:
    """
    Reduce token runs to text.

    The function table and register stack are owned by the caller and
    injected here; the evaluator only mutates them for the duration of a
    scope and restores the frame stack when the scope finishes.
    """

    def __init__(
        self,
        functions: FunctionTable | None = None,
        registers: RegisterStack | None = None,
        console: Console | None = None,
        log: list[str] | None = None,
        max_nesting: int = MAX_NESTING,
    ):
        self.functions = functions if functions is not None else FunctionTable()
        self.registers = registers if registers is not None else RegisterStack()
        self.console = console or Console()
        self.log = log if log is not None else []
        self.max_nesting = max_nesting
        self.nesting = 0

    # public entry points

    def evaluate_text(self, text: str) -> str:
        """Lex ``text`` and reduce every scope, register and built-in in it."""
        tokens = LinkedTokens.from_text(text)
        return self.reduce(tokens)

    def evaluate_tokens(self, tokens: Sequence[Token]) -> str:
        return self.reduce(LinkedTokens.from_tokens(tokens))

    # reduction

    def reduce(self, tokens: LinkedTokens) -> str:
        """Rewrite ``tokens`` in place until only literal text remains, and render it."""
        prev = 0
        while True:
            current = tokens.next_of(prev)
            if current is None:
                break
            token = tokens.token_at(current)
            if token.opens_scope:
                last = tokens.matching_end(current)
                inner = tokens.tokens_between(current, last)
                replacement = self.evaluate_scope(token, inner)
                prev = self._replace(tokens, prev, last, replacement)
            elif token.kind == REGISTER:
                value = self.registers.resolve(token.depth, token.index)
                prev = self._replace(tokens, prev, current, value)
            elif token.kind == GET_INPUT:
                self.log.append(f"input:{token.text}")
                value = self.console.prompt(token.text)
                prev = self._replace(tokens, prev, current, value)
            elif token.kind == PRINT:
                self.log.append(f"print:{token.text}")
                self.console.emit(token.text)
                prev = self._replace(tokens, prev, current, "")
            elif token.kind == ERROR:
                self.log.append(f"error:{token.text}")
                raise ProgramError(token.text)
            elif token.kind == SCOPE_END:
                raise UnbalancedScope("found '}' with no matching opener")
            else:
                prev = current
                continue

            if len(tokens) > COMPACT_MIN_DEAD and tokens.dead_count() > tokens.live_count():
                prev = tokens.compact()[prev]
        return tokens.render_text()

    def _replace(self, tokens: LinkedTokens, prev: int, last: int, text: str) -> int:
        """Replace the run ``prev.next .. last`` with literal ``text``; return the new ``prev``."""
        after = tokens.next_of(last)
        if after is None:
            count = 0
            current = prev
            while current != last:
                current = tokens.next_of(current)
                count += 1
            tokens.remove_range(prev, count)
        else:
            tokens.remove_between(prev, after)
        if not text:
            return prev
        tokens.insert_after(prev, literal_tokens(text))
        return len(tokens) - 1

    # scopes

    @contextmanager
    def _nested(self) -> Iterator[None]:
        if self.nesting >= self.max_nesting:
            raise EvaluationDepthExceeded(
                f"evaluation nested deeper than {self.max_nesting} scopes"
            )
        outer = self.functions
        self.nesting += 1
        self.functions = outer.child()
        try:
            yield
        finally:
            self.functions = outer
            self.nesting -= 1

    def evaluate_scope(self, head: Token, inner: Sequence[Token]) -> str:
        """Evaluate one scope given its head token and the tokens inside it."""
        if head.kind in (DEF, DEF_GLOBAL):
            return self.define(head, inner)
        if head.kind == CALL:
            return self.call(head.text, inner)
        if head.kind == SCOPE_START:
            return self.bare_scope(inner)
        raise UnbalancedScope(f"{token_label(head)} does not open a scope")

    def define(self, head: Token, inner: Sequence[Token]) -> str:
        function = compile_definition(head, inner)
        self.functions.define(function)
        self.log.append(f"def:{function.name}")
        return ""

    def call(self, name: str, inner: Sequence[Token]) -> str:
        function = self.functions.lookup(name)
        if function is None:
            raise UnknownFunction(name)
        self.log.append(f"call:{name}")
        with self._nested():
            argument = self.evaluate_tokens(inner)
            with self.registers.frame([argument]):
                for arm in function.arms:
                    _, match = self.match_arm(arm)
                    if match is None:
                        continue
                    # the argument frame gives way to the match frame
                    self.registers.replace_top(frame_from_match(match))
                    return self.evaluate_tokens(arm.output)
        raise NoArmMatched(name, argument)

    def bare_scope(self, inner: Sequence[Token]) -> str:
        if len(split_parts(inner, NEW_ARM)) > 1:
            raise MalformedArm("a bare scope holds exactly one arm")
        arm = build_arm(split_parts(inner, COLON_SEP), "scope")
        self.log.append("scope")
        with self._nested():
            value, match = self.match_arm(arm)
            if match is None:
                raise NoArmMatched("scope", value)
            with self.registers.frame(frame_from_match(match)):
                return self.evaluate_tokens(arm.output)

    def match_arm(self, arm: Arm) -> tuple[str, Optional[re.Match]]:
        """
        Resolve the arm's input and pattern against the active frames and match.

        Returns the resolved input with the match (``None`` when the pattern
        does not match); the input is evaluated exactly once.
        """
        value = self.evaluate_tokens(arm.input)
        pattern = arm.compiled
        if pattern is None:
            pattern = compile_pattern(self.evaluate_tokens(arm.pattern))
        return value, pattern.fullmatch(value)


__all__ = [
    "Console",
    "Evaluator",
    "PATTERN_FLAGS",
    "build_arm",
    "compile_definition",
    "compile_pattern",
    "frame_from_match",
    "split_parts",
    "trim",
]
