"""Shared fixtures for component tests.

This module provides component-specific fixtures. Common fixtures like
diagnostics channels, move factories and SGF content are inherited from
tests/conftest.py.
"""
from __future__ import annotations

from typing import Callable, List, Optional, Tuple

import pytest
from sgfmill import boards

from core.board import BLACK
from core.playgame import Move

Board = List[List[int]]


# ---------------------------------------------------------------------------
# Independent rules oracle
# ---------------------------------------------------------------------------

class SgfmillOracle:
    """Replay moves on :class:`sgfmill.boards.Board` for cross-checking.

    sgfmill uses ``(row, col)`` with row 0 at the bottom; our moves use
    ``(x, y)`` with ``y = 1`` at the top, so ``row = size - y`` and
    ``col = x - 1``.
    """

    def __init__(self, size: int) -> None:
        self.size = size
        self.board = boards.Board(size)

    def play(self, move: Move) -> Optional[Tuple[int, int]]:
        if move.is_pass:
            return None
        colour = "b" if move.color == BLACK else "w"
        return self.board.play(self.size - move.y, move.x - 1, colour)

    def matrix(self) -> Board:
        result = [[0] * self.size for _ in range(self.size)]
        for colour, (row, col) in self.board.list_occupied_points():
            result[self.size - 1 - row][col] = 1 if colour == "b" else -1
        return result


@pytest.fixture
def oracle() -> Callable[[int, List[Move]], SgfmillOracle]:
    """Factory fixture replaying a move list on an sgfmill board."""
    def _oracle(size: int, moves: List[Move]) -> SgfmillOracle:
        o = SgfmillOracle(size)
        for m in moves:
            o.play(m)
        return o
    return _oracle
