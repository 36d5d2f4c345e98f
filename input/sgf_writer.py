"""Serialise game trees back to SGF text.

Straight output: values are written exactly as they were read.  Move nodes
are packed up to ten per line, other properties go on their own line, and an
empty sequence is written as ``(;)``.
"""
from __future__ import annotations

import io
from typing import Iterable, List, TextIO

from input.sgf_tree import GameTree, Node, Property

MOVES_PER_LINE = 10

# properties written on the same line as the move they belong to
SAME_LINE_PROPS = ("BL", "WL", "OB", "OW", "CR")


def _is_move(prop: Property) -> bool:
    return prop.ident in ("B", "W") and len(prop.values) == 1


class SgfWriter:
    """Write a collection to a text stream."""

    def __init__(self, out: TextIO, moves_per_line: int = MOVES_PER_LINE) -> None:
        self.out = out
        self.moves_per_line = moves_per_line
        self._moves_on_line = 0

    def write(self, trees: Iterable[GameTree]) -> None:
        for tree in trees:
            self._write_tree(tree, top=True)

    def _write_values(self, prop: Property) -> None:
        self.out.write(prop.ident)
        for value in prop.values:
            self.out.write(f"[{value}]")

    def _write_properties(self, props: List[Property]) -> None:
        started = False
        for prop in props:
            same_line = prop.ident in SAME_LINE_PROPS
            if same_line:
                self._moves_on_line = self.moves_per_line
            elif not started:
                self.out.write("\n")
                started = True
            self._write_values(prop)
            if not same_line:
                self.out.write("\n")
                self._moves_on_line = 0

    def _write_node(self, node: Node) -> None:
        props = node.properties
        if props and _is_move(props[0]):
            if self._moves_on_line >= self.moves_per_line:
                self.out.write("\n")
                self._moves_on_line = 0
            self.out.write(";")
            self._write_values(props[0])
            self._moves_on_line += 1
            props = props[1:]
        else:
            self.out.write(";")
        if props:
            self._write_properties(props)

    def _write_tree(self, tree: GameTree, top: bool = False) -> None:
        self.out.write("(")
        if not tree.sequence:
            self.out.write(";")
        for i, node in enumerate(tree.sequence):
            self._write_node(node)
            if top and i == 0:
                self.out.write("\n")
                self._moves_on_line = 0
        for child in tree.children:
            self._write_tree(child)
        self.out.write(")\n")
        self._moves_on_line = 0


def write_sgf(trees: Iterable[GameTree]) -> str:
    """Return the SGF text for ``trees``."""
    buf = io.StringIO()
    SgfWriter(buf).write(trees)
    return buf.getvalue()


def write_sgf_file(trees: Iterable[GameTree], path: str, encoding: str = "utf-8") -> None:
    """Write ``trees`` to ``path`` restoring the original value bytes."""
    with open(path, "w", encoding=encoding, errors="surrogateescape", newline="\n") as f:
        SgfWriter(f).write(trees)


__all__ = ["SgfWriter", "write_sgf", "write_sgf_file"]
