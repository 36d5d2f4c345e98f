"""Chains of connected stones and their liberties."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from core.board import BLACK, BOARD_CELLS, EMPTY, WHITE, neighbors, pack, unpack


@dataclass
class Chain:
    """A connected group of same-coloured stones.

    ``liberties`` is the sum, over all stones, of their empty neighbours.  A
    point next to two stones of the chain is counted twice; the count is only
    ever compared with zero, and keeping it as a plain sum makes placing,
    merging and capturing simple increments and decrements.
    """

    color: int
    stones: List[int] = field(default_factory=list)
    liberties: int = 0

    def __len__(self) -> int:
        return len(self.stones)


class ChainTable:
    """Ownership map from occupied positions to their chain."""

    def __init__(self) -> None:
        self.owner: List[Optional[Chain]] = [None] * BOARD_CELLS
        self.created = 0

    def new_chain(self, pos: int, color: int) -> Chain:
        """Create a one-stone chain at ``pos``."""
        chain = Chain(color, [pos])
        self.owner[pos] = chain
        self.created += 1
        return chain

    def chain_at(self, pos: int) -> Optional[Chain]:
        return self.owner[pos]

    def merge(self, a: Chain, b: Chain) -> Chain:
        """Merge two chains and return the survivor.

        The smaller chain's stones move into the larger one.
        """
        if len(a) < len(b):
            a, b = b, a
        a.liberties += b.liberties
        for s in b.stones:
            a.stones.append(s)
            self.owner[s] = a
        b.stones = []
        return a

    def release(self, pos: int) -> None:
        self.owner[pos] = None


def group_and_liberties(cells: Sequence[int], pos: int) -> Tuple[Set[int], Set[int]]:
    """Return the connected group at ``pos`` and its distinct liberties.

    Works on the bordered cell array of :mod:`core.board`; both sets hold
    packed positions.
    """
    color = cells[pos]
    group = {pos}
    liberties: Set[int] = set()
    stack = [pos]
    while stack:
        p = stack.pop()
        for n in neighbors(p):
            val = cells[n]
            if val == EMPTY:
                liberties.add(n)
            elif val == color and n not in group:
                group.add(n)
                stack.append(n)
    return group, liberties


def count_liberties(cells: Sequence[int], size: int) -> List[Tuple[int, int, int]]:
    """Return ``(x, y, liberties)`` for every stone, negative for white."""
    visited: Set[int] = set()
    result: List[Tuple[int, int, int]] = []
    for y in range(1, size + 1):
        for x in range(1, size + 1):
            pos = pack(x, y)
            color = cells[pos]
            if color not in (BLACK, WHITE) or pos in visited:
                continue
            group, libs = group_and_liberties(cells, pos)
            visited |= group
            val = len(libs) if color == BLACK else -len(libs)
            for g in sorted(group):
                gx, gy = unpack(g)
                result.append((gx, gy, val))
    return result


__all__ = ["Chain", "ChainTable", "group_and_liberties", "count_liberties"]
