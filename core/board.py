"""Board geometry shared by the replay engine and its consumers.

Points are packed into one integer, ``x * STRIDE + y`` with ``x`` and ``y``
running from 1 to the board size.  The cell array is surrounded by a ring of
``BORDER`` cells, so the four neighbours of any playable point are always
valid indices and no bounds checks are needed while scanning.
"""
from __future__ import annotations

from typing import Iterator, List, Sequence, Tuple

MAX_SIZE = 31
STRIDE = MAX_SIZE + 1
BOARD_CELLS = STRIDE * (STRIDE + 1)

EMPTY = 0
BLACK = 1
WHITE = 2
BORDER = 3

DIRECTIONS = (-1, 1, -STRIDE, STRIDE)

COLOR_LETTERS = {BLACK: "B", WHITE: "W"}
COLOR_NAMES = {BLACK: "black", WHITE: "white"}

Board = List[List[int]]


def pack(x: int, y: int) -> int:
    """Return the packed position of ``(x, y)``."""
    return x * STRIDE + y


def unpack(pos: int) -> Tuple[int, int]:
    """Return ``(x, y)`` for a packed position."""
    return divmod(pos, STRIDE)


def opponent(color: int) -> int:
    return BLACK + WHITE - color


def new_cells(size: int) -> bytearray:
    """Return an empty ``size`` x ``size`` board with its border ring."""
    cells = bytearray([BORDER]) * BOARD_CELLS
    for x in range(1, size + 1):
        for y in range(1, size + 1):
            cells[pack(x, y)] = EMPTY
    return cells


def neighbors(pos: int) -> Iterator[int]:
    """Yield the four packed neighbours of ``pos`` (border cells included)."""
    for d in DIRECTIONS:
        yield pos + d


def to_matrix(cells: Sequence[int], size: int) -> Board:
    """Convert a cell array to rows of ``1`` (black), ``-1`` (white), ``0``.

    Row ``y - 1`` column ``x - 1`` holds point ``(x, y)``.
    """
    values = {EMPTY: 0, BLACK: 1, WHITE: -1}
    return [
        [values[cells[pack(x, y)]] for x in range(1, size + 1)]
        for y in range(1, size + 1)
    ]


__all__ = [
    "MAX_SIZE",
    "STRIDE",
    "BOARD_CELLS",
    "EMPTY",
    "BLACK",
    "WHITE",
    "BORDER",
    "DIRECTIONS",
    "COLOR_LETTERS",
    "COLOR_NAMES",
    "Board",
    "pack",
    "unpack",
    "opponent",
    "new_cells",
    "neighbors",
    "to_matrix",
]
