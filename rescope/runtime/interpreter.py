"""Fixpoint driver that rewrites a program's text scope by scope."""

from __future__ import annotations

from pathlib import Path

from ..constants import MAX_NESTING
from .core import FunctionTable, RegisterStack, RunResult, TextBuffer
from .errors import ClosingBeforeOpening
from .evaluator import Console, Evaluator
from .scopes import has_opening_brace, locate_region


class Interpreter:
    """
    Owns the program text, the function table and the register frames of a run.

    ``run()`` repeatedly locates the next top-level scope after the cursor,
    evaluates it and splices the result back in, until no scope remains.
    """

    def __init__(
        self,
        source: str,
        *,
        console: Console | None = None,
        functions: FunctionTable | None = None,
        max_nesting: int = MAX_NESTING,
    ):
        self.text = TextBuffer(source)
        self.functions = functions if functions is not None else FunctionTable()
        self.registers = RegisterStack()
        self.cursor = 0
        self.steps = 0
        self.log: list[str] = []
        self.evaluator = Evaluator(
            self.functions,
            self.registers,
            console=console,
            log=self.log,
            max_nesting=max_nesting,
        )

    def step(self) -> bool:
        """Rewrite the next scope. Returns ``False`` once nothing is left to do."""
        try:
            region = locate_region(self.text, self.cursor)
        except ClosingBeforeOpening as exc:
            if has_opening_brace(self.text, exc.offset + 1):
                raise
            return False
        if region is None:
            return False

        begin, end = region
        self.steps += 1
        self.log.append(f"step:{self.steps}")
        replacement = self.evaluator.evaluate_text(self.text[begin:end])
        self.text.splice(begin, end, replacement)
        # replacement text is final; never rescan it
        self.cursor = begin + len(replacement)
        return True

    def run(self) -> RunResult:
        while self.step():
            pass
        return RunResult(str(self.text), self.steps, list(self.log))


def run_program(source: str, console: Console | None = None, **kwargs) -> RunResult:
    """Run ``source`` to completion and return its final text."""
    return Interpreter(source, console=console, **kwargs).run()


def read_program(path) -> str:
    with open(Path(path), "r", encoding="utf-8") as f:
        return f.read()


def run_file(path, console: Console | None = None, **kwargs) -> RunResult:
    return run_program(read_program(path), console=console, **kwargs)


__all__ = [
    "Interpreter",
    "read_program",
    "run_file",
    "run_program",
]
