"""Command-line interface for the rescope runtime."""
from __future__ import annotations

import argparse
import sys
from collections import deque

from ..constants import REPL_HISTORY_LIMIT
from .analysis import build_scope_tree, export_graphviz, print_scope_tree, print_tokens
from .core import FunctionTable
from .errors import RescopeError
from .interpreter import Interpreter, read_program, run_program
from .logbook import diff_outputs, hash_output, record_run, show_logbook
from .tokens import LinkedTokens


def _runtime_callable(name, fallback):
    runtime_mod = sys.modules.get('rescope.runtime')
    if runtime_mod and hasattr(runtime_mod, name):
        return getattr(runtime_mod, name)
    return fallback


def report_error(exc: RescopeError) -> None:
    print(f"error: {exc.kind}: {exc}", file=sys.stderr)


def write_output(text: str) -> None:
    print(text, end="" if text.endswith("\n") else "\n")


class ReplSession:
    """State of one interactive session: the function table and recent programs."""

    HELP = "Commands: :help, :quit, :functions, :tokens [n], :hash [n], :diff n m"

    def __init__(self, history_limit=REPL_HISTORY_LIMIT):
        self.functions = FunctionTable()
        self.history = deque(maxlen=history_limit)
        self.runs = 0
        self.commands = {
            ":help": self.show_help,
            ":functions": self.show_functions,
            ":tokens": self.show_tokens,
            ":hash": self.show_hash,
            ":diff": self.show_diff,
        }

    def find_entry(self, ref=None):
        """Look up a cached program by its run number, or the latest one."""
        if not self.history:
            print("No cached programs yet.")
            return None
        if ref is None:
            return self.history[-1]
        try:
            number = int(ref)
        except ValueError:
            print("Program index must be an integer.")
            return None
        found = next((e for e in self.history if e["index"] == number), None)
        if found is None:
            print(f"No cached program #{number}.")
        return found

    def show_help(self, args):
        print(self.HELP)
        print(f"History: last {self.history.maxlen} programs cached.")

    def show_functions(self, args):
        names = self.functions.visible_names()
        print(", ".join(names) if names else "No functions defined.")

    def show_tokens(self, args):
        entry = self.find_entry(*args[:1])
        if entry is None:
            return
        try:
            print_tokens(LinkedTokens.from_text(entry["src"]))
        except RescopeError as exc:
            report_error(exc)

    def show_hash(self, args):
        entry = self.find_entry(*args[:1])
        if entry is not None and entry["result"] is not None:
            digest = _runtime_callable('hash_output', hash_output)(entry["result"])
            print(f"SHA256(program_{entry['index']}) = {digest}")

    def show_diff(self, args):
        if len(args) != 2:
            print("Usage: :diff <a> <b>")
            return
        left, right = (self.find_entry(ref) for ref in args)
        if left is None or right is None:
            return
        if left["result"] is None or right["result"] is None:
            print("Only successful programs can be compared.")
            return
        lines = diff_outputs(
            left["result"].text,
            right["result"].text,
            f"program_{left['index']}",
            f"program_{right['index']}",
        )
        print("\n".join(lines) if lines else "Outputs are identical.")

    def command(self, line) -> bool:
        """Dispatch a ``:command``; returns ``False`` when the session should end."""
        name, *args = line.split()
        if name in (":quit", ":exit"):
            return False
        handler = self.commands.get(name)
        if handler is None:
            print(f"Unknown command: {name}")
        else:
            handler(args)
        return True

    def execute(self, line):
        self.runs += 1
        entry = {"index": self.runs, "src": line, "result": None}
        self.history.append(entry)
        try:
            entry["result"] = Interpreter(line, functions=self.functions).run()
        except RescopeError as exc:
            report_error(exc)
            return
        print(f"[#{entry['index']}] {entry['result'].text}")


def run_repl(history_limit=REPL_HISTORY_LIMIT):
    """Interactive rescope shell; definitions persist across lines."""

    print("rescope REPL — enter program text or commands (:help for help)")
    session = ReplSession(history_limit)
    while True:
        try:
            line = input("rescope> ")
        except EOFError:
            print()
            return
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith(":"):
            if not session.command(stripped):
                return
            continue
        session.execute(line)


def parse_args(args):
    argp = argparse.ArgumentParser(description="rescope scope-rewriting interpreter")

    argp.add_argument("program", nargs="?", help="Path to the program file")
    argp.add_argument("-c", "--command", help="Run inline program text instead of a file")
    argp.add_argument("--trace", action="store_true", help="Print the execution log")
    argp.add_argument(
        "--tokens", action="store_true", help="Print the lexed token stream and exit"
    )
    argp.add_argument(
        "--tree", action="store_true", help="Print the program's scope tree and exit"
    )
    argp.add_argument(
        "--viz",
        metavar="OUTPUT",
        help="Export a Graphviz scope-tree visualization to an SVG file",
    )
    argp.add_argument(
        "--record", action="store_true", help="Append this run to the logbook"
    )
    argp.add_argument(
        "--logbook", action="store_true", help="Show the rescope run logbook"
    )
    argp.add_argument("--repl", action="store_true", help="Start an interactive REPL")

    return argp.parse_args(args)


def main(args):
    params = parse_args(args)

    if params.logbook:
        _runtime_callable('show_logbook', show_logbook)()
        return 0
    if params.repl:
        _runtime_callable('run_repl', run_repl)()
        return 0

    if params.command is not None:
        program, source = "<command>", params.command
    elif params.program:
        program = params.program
        try:
            source = read_program(program)
        except FileNotFoundError:
            print(f"error: file not found: {program}", file=sys.stderr)
            return 1
        except UnicodeDecodeError:
            print(f"error: {program} is not UTF-8 text", file=sys.stderr)
            return 1
    else:
        print("error: no program given (pass a file, -c SOURCE or --repl)", file=sys.stderr)
        return 2

    try:
        if params.tokens or params.tree or params.viz:
            tokens = LinkedTokens.from_text(source)
            if params.tokens:
                print_tokens(tokens)
            if params.tree or params.viz:
                tree = build_scope_tree(tokens)
                if params.tree:
                    print_scope_tree(tree)
                if params.viz:
                    _runtime_callable('export_graphviz', export_graphviz)(tree, params.viz)
            return 0

        result = _runtime_callable('run_program', run_program)(source)
    except RescopeError as exc:
        report_error(exc)
        return 1
    except RuntimeError as exc:
        print(f"  ✗ {exc}", file=sys.stderr)
        return 1

    write_output(result.text)

    if params.trace:
        print("  → execution log:", file=sys.stderr)
        if result.log:
            for entry in result.log:
                print("   ", entry, file=sys.stderr)
        else:
            print("    (no log entries)", file=sys.stderr)

    if params.record:
        _runtime_callable('record_run', record_run)(program, source, result)
    return 0


__all__ = [
    "ReplSession",
    "main",
    "parse_args",
    "run_repl",
]


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
