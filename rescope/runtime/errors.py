"""Error taxonomy for the rescope runtime."""

from __future__ import annotations


class RescopeError(Exception):
    """Base class for every error raised while lexing or rewriting a program."""

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def __str__(self) -> str:
        return self.message


class LexError(RescopeError, ValueError):
    """The program text could not be tokenized."""

    def __init__(self, message: str = "", *, char: str | None = None, offset: int | None = None):
        if char is not None:
            message = f"{message} {char!r}" if message else repr(char)
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
        self.char = char
        self.offset = offset


class InvalidFunctionNameCharacter(LexError):
    pass


class InvalidRegisterIndexCharacter(LexError):
    pass


class IndexMissingInRegisterCall(LexError):
    pass


class ExpectedScopeStartAfterFunctionDefinition(LexError):
    pass


class ExpectedFunctionNameAfterDef(LexError):
    pass


class InputEndedUnexpectedly(LexError):
    pass


class ScopeLocationError(RescopeError, ValueError):
    """The live program text has unbalanced braces."""

    def __init__(self, message: str = "", *, offset: int | None = None):
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
        self.offset = offset


class NoClosingBrace(ScopeLocationError):
    pass


class ClosingBeforeOpening(ScopeLocationError):
    pass


class EvaluationError(RescopeError, RuntimeError):
    """A located scope could not be rewritten."""


class UnknownFunction(EvaluationError):
    def __init__(self, name: str):
        super().__init__(f"no function named '{name}' is defined")
        self.name = name


class NoArmMatched(EvaluationError):
    def __init__(self, name: str, value: str):
        super().__init__(f"no arm of '{name}' matched {value!r}")
        self.name = name
        self.value = value


class UnboundRegister(EvaluationError):
    def __init__(self, depth: int, index: int, reason: str):
        super().__init__(f"register {'^' * depth}${index} is unbound: {reason}")
        self.depth = depth
        self.index = index


class ProgramError(EvaluationError):
    """Raised by the ``error(...)`` built-in."""


class MalformedArm(EvaluationError):
    pass


class InvalidPattern(EvaluationError):
    pass


class UnbalancedScope(EvaluationError):
    pass


class EvaluationDepthExceeded(EvaluationError):
    pass


class ArenaIndexError(RescopeError, IndexError):
    """A token arena operation was given an index or range it cannot honour."""


class InsertionInvalidIndex(ArenaIndexError):
    pass


class InsertionEmptyTokens(ArenaIndexError):
    pass


class RemovalInvalidIndex(ArenaIndexError):
    pass


class RemovalRangeTooBig(ArenaIndexError):
    pass


__all__ = [
    "RescopeError",
    "LexError",
    "InvalidFunctionNameCharacter",
    "InvalidRegisterIndexCharacter",
    "IndexMissingInRegisterCall",
    "ExpectedScopeStartAfterFunctionDefinition",
    "ExpectedFunctionNameAfterDef",
    "InputEndedUnexpectedly",
    "ScopeLocationError",
    "NoClosingBrace",
    "ClosingBeforeOpening",
    "EvaluationError",
    "UnknownFunction",
    "NoArmMatched",
    "UnboundRegister",
    "ProgramError",
    "MalformedArm",
    "InvalidPattern",
    "UnbalancedScope",
    "EvaluationDepthExceeded",
    "ArenaIndexError",
    "InsertionInvalidIndex",
    "InsertionEmptyTokens",
    "RemovalInvalidIndex",
    "RemovalRangeTooBig",
]
