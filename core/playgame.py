"""Replay a sequence of moves under the rules of Go.

:func:`replay` turns a linear move array into a :class:`PlayedGame`: a flat
log of small integers in which every placed stone, every captured stone and
every pass is one record.  Captures are explicit, so consumers (diffing,
indexing, signatures, final positions) never have to re-derive them.

Record layout::

    bits  0-9   packed position x * 32 + y (0 for a pass)
    bits 10-11  colour (1 black, 2 white)
    0x1000      PASS
    0x2000      PERMANENT   the point is not touched again in this game
    0x4000      CAPTURE     the stone at this point is removed

All board and chain state belongs to a :class:`ReplayContext` built per call,
so independent games can be replayed concurrently.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Set, Tuple

import numpy as np

from core.board import (
    BLACK,
    BOARD_CELLS,
    EMPTY,
    MAX_SIZE,
    WHITE,
    Board,
    neighbors,
    new_cells,
    opponent,
    pack,
    to_matrix,
    unpack,
)
from core.errors import CapacityOverflow, IllegalMove
from core.liberty import Chain, ChainTable
from monitoring.diagnostics import Diagnostics

POSITION_MASK = 0x3FF
COLOR_SHIFT = 10
COLOR_MASK = 0xC00
KEY_MASK = POSITION_MASK | COLOR_MASK
PASS = 0x1000
PERMANENT = 0x2000
CAPTURE = 0x4000

MAX_MOVES = 10000
MAX_RECORDS = 4 * MAX_MOVES


class Move(NamedTuple):
    """A stone of ``color`` at ``(x, y)``; ``(0, 0)`` denotes a pass."""

    color: int
    x: int
    y: int

    @property
    def is_pass(self) -> bool:
        return self.x == 0 and self.y == 0

    @classmethod
    def pass_move(cls, color: int) -> "Move":
        return cls(color, 0, 0)


class DecodedRecord(NamedTuple):
    color: int
    x: int
    y: int
    is_pass: bool
    is_capture: bool
    is_permanent: bool


def decode(record: int) -> DecodedRecord:
    """Split a log record into its fields."""
    x, y = unpack(record & POSITION_MASK)
    return DecodedRecord(
        (record & COLOR_MASK) >> COLOR_SHIFT,
        x,
        y,
        bool(record & PASS),
        bool(record & CAPTURE),
        bool(record & PERMANENT),
    )


@dataclass
class PlayedGame:
    """Capture-annotated move log of one game."""

    size: int
    records: List[int] = field(default_factory=list)
    setup_count: int = 0
    black_setup: int = 0
    white_setup: int = 0
    move_count: int = 0
    black_captured: int = 0
    white_captured: int = 0
    cycles: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def played_moves(self) -> int:
        """Number of moves after the setup stones, passes included."""
        return self.move_count - self.setup_count

    def to_array(self) -> np.ndarray:
        """Return the records as a NumPy ``int16`` array."""
        return np.asarray(self.records, dtype=np.int16)

    def captures(self) -> List[Tuple[int, int, int]]:
        """Return ``(color, x, y)`` for every captured stone, in order."""
        return [
            (d.color, d.x, d.y)
            for d in map(decode, self.records)
            if d.is_capture
        ]

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-friendly summary."""
        return {
            "size": self.size,
            "records": list(self.records),
            "setup_count": self.setup_count,
            "black_setup": self.black_setup,
            "white_setup": self.white_setup,
            "move_count": self.move_count,
            "black_captured": self.black_captured,
            "white_captured": self.white_captured,
            "cycles": [list(c) for c in self.cycles],
        }

    def final_cells(self) -> bytearray:
        """Return the bordered cell array after the last record."""
        cells = new_cells(self.size)
        for r in self.records:
            if r & PASS:
                continue
            pos = r & POSITION_MASK
            cells[pos] = EMPTY if r & CAPTURE else (r & COLOR_MASK) >> COLOR_SHIFT
        return cells

    def final_position(self) -> Board:
        """Return the position after the last record as a matrix."""
        return to_matrix(self.final_cells(), self.size)


class ReplayContext:
    """Mutable board and chain state for a single replay."""

    def __init__(self, size: int, setup_count: int = 0, diagnostics: Optional[Diagnostics] = None) -> None:
        if size < 1 or size > MAX_SIZE:
            raise CapacityOverflow(f"unsupported board size {size}")
        self.size = size
        self.setup_count = setup_count
        self.diagnostics = diagnostics
        self.cells = new_cells(size)
        self.chains = ChainTable()
        self.last_change: List[int] = [-1] * BOARD_CELLS
        self.game = PlayedGame(size, setup_count=setup_count)

    # ------------------------------------------------------------------
    # Log helpers
    # ------------------------------------------------------------------
    def _append(self, record: int) -> None:
        if len(self.game.records) >= MAX_RECORDS:
            raise CapacityOverflow("played game record overflow")
        self.game.records.append(record)

    def _add_pass(self, color: int) -> None:
        self.game.move_count += 1
        self._append((color << COLOR_SHIFT) | PASS)

    def _add_stone(self, pos: int, color: int) -> None:
        self.cells[pos] = color
        self.game.move_count += 1
        self.last_change[pos] = len(self.game.records)
        self._append(pos | (color << COLOR_SHIFT))

    def _add_capture(self, pos: int) -> None:
        color = self.cells[pos]
        self.cells[pos] = EMPTY
        self.chains.release(pos)
        if color == BLACK:
            self.game.black_captured += 1
        else:
            self.game.white_captured += 1
        self.last_change[pos] = len(self.game.records)
        self._append(pos | (color << COLOR_SHIFT) | CAPTURE)

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------
    def _remove_chain(self, chain: Chain) -> None:
        for s in chain.stones:
            self._add_capture(s)
            for n in neighbors(s):
                other = self.chains.chain_at(n)
                if other is not None:
                    other.liberties += 1

    def _check_ko(self, pos: int, move_number: int) -> None:
        """Reject the immediate single-stone recapture of a single stone."""
        records = self.game.records
        if len(records) < 4:
            return
        prev_place, prev_capture, place, capture = records[-4:]
        if prev_place & (CAPTURE | PASS) or not prev_capture & CAPTURE:
            return
        if place & CAPTURE or not capture & CAPTURE:
            return
        if (place & POSITION_MASK) != pos:
            return
        if (prev_place & POSITION_MASK) == (capture & POSITION_MASK) and (
            prev_capture & POSITION_MASK
        ) == pos:
            raise IllegalMove("ko-recapture", move_number)

    def _off_board_pass(self, move: Move) -> bool:
        # (size+1, size+1), and 20,20 ('tt') on boards below 19
        if move.x != move.y:
            return False
        return move.x == self.size + 1 or (move.x == 20 and self.size < 19)

    def play(self, move: Move, move_number: int) -> None:
        """Play ``move``; raise :class:`IllegalMove` if the rules forbid it."""
        color = move.color
        if color not in (BLACK, WHITE):
            raise IllegalMove("off-board", move_number, f"bad colour {color}")
        if move.is_pass or self._off_board_pass(move):
            self._add_pass(color)
            return
        if not (1 <= move.x <= self.size and 1 <= move.y <= self.size):
            raise IllegalMove("off-board", move_number, f"bad coordinates {move.x},{move.y}")

        pos = pack(move.x, move.y)
        if self.cells[pos] != EMPTY:
            raise IllegalMove("occupied", move_number)

        self._add_stone(pos, color)
        placed = len(self.game.records)
        chain = self.chains.new_chain(pos, color)
        enemy = opponent(color)

        for n in neighbors(pos):
            if self.cells[n] == EMPTY:
                chain.liberties += 1
        # points emptied by a capture below are credited by _remove_chain
        for n in neighbors(pos):
            other = self.chains.chain_at(n)
            if other is None:
                continue
            other.liberties -= 1
            if other.color == enemy:
                if other.liberties == 0:
                    self._remove_chain(other)
            elif other is not chain:
                chain = self.chains.merge(chain, other)

        if len(self.game.records) - placed == 1:
            self._check_ko(pos, move_number)

        if chain.liberties == 0:
            if len(chain) == 1:
                raise IllegalMove("suicide", move_number)
            raise IllegalMove("mass-suicide", move_number)

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------
    def mark_permanent(self) -> None:
        records = self.game.records
        for i, r in enumerate(records):
            if r & PASS:
                continue
            if self.last_change[r & POSITION_MASK] == i:
                records[i] = r | PERMANENT

    def finish(self) -> PlayedGame:
        self.mark_permanent()
        cycle = find_cycle(self.game.records, self.setup_count)
        if cycle is not None:
            later, earlier = cycle
            self.game.cycles.append(cycle)
            if self.diagnostics is not None:
                self.diagnostics.warn(
                    "cycle: position after move %d equals that after move %d", later, earlier
                )
        return self.game


def find_cycle(records: Sequence[int], setup_count: int = 0) -> Optional[Tuple[int, int]]:
    """Return ``(later, earlier)`` move numbers of the first repeated position.

    For every move the records that follow it are folded into a set of
    ``(position, colour)`` differences; a stone placed and later captured on
    the same point cancels out.  When the set empties at a move boundary the
    position at the start of that move has come back.  A ``PERMANENT`` record
    ends the search for that start, since its point never changes back.
    Single-stone ko is rejected during replay, so what is found here are
    longer cycles (triple ko, sending-two-returning-one and the like).
    """
    numbers: List[int] = []
    count = 0
    for r in records:
        if not r & CAPTURE:
            count += 1
        numbers.append(count - setup_count)

    total = len(records)
    for i in range(total):
        if records[i] & (CAPTURE | PASS):
            continue
        diff: Set[int] = set()
        for j in range(i, total):
            m = records[j]
            if m & PASS:
                continue
            key = m & KEY_MASK
            if key in diff:
                diff.discard(key)
                if diff:
                    continue
                if j + 1 < total and records[j + 1] & CAPTURE:
                    continue
                return numbers[j], numbers[i] - 1
            if m & PERMANENT:
                break
            diff.add(key)
    return None


def replay(
    size: int,
    moves: Sequence[Move],
    setup_count: int = 0,
    diagnostics: Optional[Diagnostics] = None,
) -> PlayedGame:
    """Replay ``moves`` on an empty ``size`` board.

    Parameters
    ----------
    size:
        Board size, 1 to :data:`~core.board.MAX_SIZE`.
    moves:
        Setup stones first, then the played moves.
    setup_count:
        How many leading entries of ``moves`` are setup stones.  They are
        numbered 0 in error messages; played moves count from 1.
    diagnostics:
        Receives the advisory repetition warning.

    Raises
    ------
    IllegalMove
        Occupied point, suicide, ko recapture or off-board coordinates.
    CapacityOverflow
        Unsupported board size or too many moves.
    """
    if len(moves) > MAX_MOVES:
        raise CapacityOverflow(f"too many moves ({len(moves)} > {MAX_MOVES})")
    ctx = ReplayContext(size, setup_count, diagnostics)
    counts: Dict[int, int] = {BLACK: 0, WHITE: 0}
    for i, move in enumerate(moves):
        if i < setup_count:
            counts[move.color] = counts.get(move.color, 0) + 1
        move_number = i - setup_count + 1 if i >= setup_count else 0
        ctx.play(move, move_number)
    ctx.game.black_setup = counts[BLACK]
    ctx.game.white_setup = counts[WHITE]
    return ctx.finish()


__all__ = [
    "PASS",
    "PERMANENT",
    "CAPTURE",
    "POSITION_MASK",
    "COLOR_MASK",
    "COLOR_SHIFT",
    "MAX_MOVES",
    "Move",
    "DecodedRecord",
    "PlayedGame",
    "ReplayContext",
    "decode",
    "find_cycle",
    "replay",
]
