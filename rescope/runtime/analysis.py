"""Structural views of a token stream: scope trees, dumps and Graphviz export."""
from __future__ import annotations

from pathlib import Path
from typing import Iterator

try:
    import pydot
except ModuleNotFoundError:  # pragma: no cover
    pydot = None

from .core import BUILTIN_KINDS, CALL, DEF, DEF_GLOBAL, REGISTER, SCOPE_END, Token
from .errors import UnbalancedScope
from .tokens import LinkedTokens

SCOPE_COLORS = {
    "scope": "#B0BEC5",
    CALL: "#8BC34A",
    DEF: "#FFEB3B",
    DEF_GLOBAL: "#FF7043",
}


class ScopeTreeNode:
    """A scope in the static structure of a program, with its nested scopes."""

    def __init__(self, kind: str, name: str = "", parent: "ScopeTreeNode | None" = None):
        self.kind = kind
        self.name = name
        self.parent = parent
        self.children: list[ScopeTreeNode] = []
        self.registers: list[Token] = []
        self.builtins: list[Token] = []
        if parent:
            parent.children.append(self)

    @property
    def label(self) -> str:
        if self.kind == "root":
            return "root"
        if self.kind == CALL:
            return f"{self.name}{{}}"
        if self.kind == DEF:
            return f"def {self.name}"
        if self.kind == DEF_GLOBAL:
            return f"*def {self.name}"
        return "{}"

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"ScopeTreeNode({self.label}, children={len(self.children)})"


def build_scope_tree(tokens) -> ScopeTreeNode:
    """Build the scope nesting of ``tokens`` (a LinkedTokens or a token sequence)."""
    if isinstance(tokens, LinkedTokens):
        tokens = tokens.tokens()
    root = ScopeTreeNode("root")
    current = root
    for token in tokens:
        if token.opens_scope:
            kind = "scope" if token.kind not in (CALL, DEF, DEF_GLOBAL) else token.kind
            current = ScopeTreeNode(kind, token.text, current)
        elif token.kind == SCOPE_END:
            if current.parent is None:
                raise UnbalancedScope("found '}' with no matching opener")
            current = current.parent
        elif token.kind == REGISTER:
            current.registers.append(token)
        elif token.kind in BUILTIN_KINDS:
            current.builtins.append(token)
    if current is not root:
        raise UnbalancedScope(f"scope {current.label} is never closed")
    return root


def iter_scopes(node: ScopeTreeNode) -> Iterator[ScopeTreeNode]:
    """Yield a scope and all descendants in depth-first order."""
    yield node
    for child in node.children:
        yield from iter_scopes(child)


def format_scope_tree(node: ScopeTreeNode, indent: int = 0) -> list[str]:
    pad = "  " * indent
    lines = [f"{pad}{node.label}"]
    if node.registers:
        refs = " ".join(t.render().strip() for t in node.registers)
        lines.append(f"{pad}  registers {refs}")
    for builtin in node.builtins:
        lines.append(f"{pad}  {builtin.render()}")
    for child in node.children:
        lines.extend(format_scope_tree(child, indent + 1))
    return lines


def print_scope_tree(node: ScopeTreeNode) -> None:
    for line in format_scope_tree(node):
        print(line)


def print_tokens(tokens: LinkedTokens) -> None:
    """Dump a token stream one token per line, in logical order."""
    for index, token in tokens:
        print(f"{index:>5}  {token!r}")


def export_graphviz(root: ScopeTreeNode, output_path):
    """Export a Graphviz SVG of the scope nesting."""
    if pydot is None:
        raise RuntimeError("Graphviz export requires the optional pydot dependency")

    graph = pydot.Dot(
        "rescope_scopes",
        graph_type="digraph",
        rankdir="TB",
        fontname="Helvetica",
    )

    ids = {}
    for i, node in enumerate(iter_scopes(root)):
        ids[id(node)] = f"s{i}"
        graph.add_node(
            pydot.Node(
                f"s{i}",
                label=node.label,
                shape="box",
                style="rounded,filled",
                fillcolor=SCOPE_COLORS.get(node.kind, "#ECEFF1"),
                fontname="Helvetica",
            )
        )
    for node in iter_scopes(root):
        for child in node.children:
            graph.add_edge(pydot.Edge(ids[id(node)], ids[id(child)], color="#7f8c8d"))

    output_path = Path(output_path)
    if output_path.parent and not output_path.parent.exists():
        output_path.parent.mkdir(parents=True, exist_ok=True)

    graph.write_svg(str(output_path))
    print(f"  ✓ Graphviz scope tree exported → {output_path}")


__all__ = [
    "ScopeTreeNode",
    "build_scope_tree",
    "export_graphviz",
    "format_scope_tree",
    "iter_scopes",
    "print_scope_tree",
    "print_tokens",
]
