"""In-memory representation of a parsed SGF collection.

A collection is a plain list of :class:`GameTree` objects.  Each tree owns its
node sequence and its variations; nothing points back to a parent, so a tree
can be copied, rewritten or dropped without any bookkeeping.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional


@dataclass
class Property:
    """A property identifier with its raw values (always at least one)."""

    ident: str
    values: List[str] = field(default_factory=list)

    @property
    def value(self) -> str:
        """Return the first value."""
        return self.values[0]


@dataclass
class Node:
    """An ordered list of properties."""

    properties: List[Property] = field(default_factory=list)

    def get(self, ident: str) -> Optional[Property]:
        """Return the first property named ``ident`` or ``None``."""
        for prop in self.properties:
            if prop.ident == ident:
                return prop
        return None

    def get_all(self, ident: str) -> List[Property]:
        """Return every property named ``ident``, in order."""
        return [p for p in self.properties if p.ident == ident]

    def __contains__(self, ident: object) -> bool:
        return any(p.ident == ident for p in self.properties)

    def idents(self) -> List[str]:
        return [p.ident for p in self.properties]


@dataclass
class GameTree:
    """A node sequence followed by zero or more variations."""

    sequence: List[Node] = field(default_factory=list)
    children: List["GameTree"] = field(default_factory=list)

    @property
    def root(self) -> Node:
        """Return the first node of the sequence."""
        return self.sequence[0]

    def mainline(self) -> Iterator[Node]:
        """Yield the nodes of the main line (first variation at every branch)."""
        tree: Optional[GameTree] = self
        while tree is not None:
            yield from tree.sequence
            tree = tree.children[0] if tree.children else None

    def walk(self) -> Iterator["GameTree"]:
        """Yield this tree and every subtree in depth-first order."""
        stack = [self]
        while stack:
            tree = stack.pop()
            yield tree
            stack.extend(reversed(tree.children))

    def node_count(self) -> int:
        return sum(len(t.sequence) for t in self.walk())


__all__ = ["Property", "Node", "GameTree"]
