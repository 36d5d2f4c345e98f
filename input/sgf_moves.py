"""Linearise a parsed game into setup stones followed by played moves."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Sequence

from core.board import BLACK, MAX_SIZE, WHITE
from core.errors import CapacityOverflow, SgfError
from core.playgame import CAPTURE, MAX_MOVES, Move, PlayedGame, decode, replay
from input.sgf_tree import GameTree, Node
from monitoring.diagnostics import Diagnostics

DEFAULT_SIZE = 19
SETUP_COLORS = {"AB": BLACK, "AW": WHITE}
MOVE_COLORS = {"B": BLACK, "W": WHITE}
STRIP = " \t\r\n"


@dataclass
class GameRecord:
    """Board size and move array of one game, ready for :func:`replay`."""

    size: int = DEFAULT_SIZE
    moves: List[Move] = field(default_factory=list)
    setup_count: int = 0
    black_setup: int = 0
    white_setup: int = 0

    @property
    def handicap(self) -> int:
        """Black setup stones, when there are no white ones."""
        return 0 if self.white_setup else self.black_setup

    @property
    def played(self) -> List[Move]:
        return self.moves[self.setup_count:]

    def replay(self, diagnostics: Optional[Diagnostics] = None) -> PlayedGame:
        return replay(self.size, self.moves, self.setup_count, diagnostics)


# ----------------------------------------------------------------------
# Coordinates
# ----------------------------------------------------------------------

def coordinate(ch: str) -> int:
    """Map an SGF coordinate letter to 1..52 (``a``-``z`` then ``A``-``Z``)."""
    if "a" <= ch <= "z":
        return ord(ch) - ord("a") + 1
    if "A" <= ch <= "Z":
        return ord(ch) - ord("A") + 27
    raise SgfError(f"bad coordinate character {ch!r}")


def _is_pass(value: str, size: int) -> bool:
    """True for every spelling of a pass, including the point just off the board."""
    if value in ("", "pass"):
        return True
    if len(value) != 2 or value[0] != value[1] or not value.isascii() or not value.isalpha():
        return False
    c = coordinate(value[0])
    return c == size + 1 or (c == 20 and size < 19)



def board_size(root: Node) -> int:
    """Return the board size given by the root ``SZ`` property."""
    prop = root.get("SZ")
    if prop is None:
        return DEFAULT_SIZE
    if len(prop.values) != 1:
        raise SgfError("strange SZ property")
    text = prop.value.strip(STRIP)
    if ":" in text:
        cols, _, rows = text.partition(":")
        if cols.strip() != rows.strip():
            raise SgfError(f"unsupported non-square board SZ[{text}]")
        text = cols.strip()
    try:
        size = int(text)
    except ValueError:
        raise SgfError(f"bad SZ value {text!r}") from None
    if size < 1 or size > MAX_SIZE:
        raise CapacityOverflow(f"SZ[{size}] out of bounds")
    return size


# ----------------------------------------------------------------------
# Setup stones
# ----------------------------------------------------------------------

def expand_points(value: str, color: int) -> List[Move]:
    """Expand a point or a compressed rectangle like ``aa:cc``."""
    text = "".join(ch for ch in value if ch not in STRIP)
    if len(text) == 2:
        return [Move(color, coordinate(text[0]), coordinate(text[1]))]
    if len(text) == 5 and text[2] == ":":
        x1, y1 = coordinate(text[0]), coordinate(text[1])
        x2, y2 = coordinate(text[3]), coordinate(text[4])
        if x1 > x2 or y1 > y2:
            raise SgfError(f"unexpected range {text!r}")
        return [
            Move(color, x, y)
            for x in range(x1, x2 + 1)
            for y in range(y1, y2 + 1)
        ]
    raise SgfError(f"unrecognized setup point {value!r}")


def _node_setup(node: Node) -> List[Move]:
    stones: List[Move] = []
    for prop in node.properties:
        color = SETUP_COLORS.get(prop.ident)
        if color is None:
            continue
        for value in prop.values:
            stones.extend(expand_points(value, color))
    return stones


def setup_stones(tree: GameTree, diagnostics: Optional[Diagnostics] = None) -> List[Move]:
    """Return the setup stones of ``tree`` in canonical order.

    Sorting by colour then coordinates makes two games with the same setup
    produce the same move array however the source listed the stones.
    """
    sequence = tree.sequence
    stones = _node_setup(sequence[0])
    if "AB" not in sequence[0] and len(sequence) > 1:
        # some broken files put the handicap stones in the second node
        extra = _node_setup(sequence[1])
        if extra and diagnostics is not None:
            diagnostics.warn("setup stones in second node")
        stones.extend(extra)
    return sorted(stones)


# ----------------------------------------------------------------------
# Played moves
# ----------------------------------------------------------------------

def parse_move(value: str, color: int, size: int, index: int) -> Move:
    """Turn one ``B``/``W`` value into a :class:`Move`."""
    text = value.strip(STRIP)
    if _is_pass(text, size):
        return Move.pass_move(color)
    if len(text) != 2:
        raise SgfError(f"move {index}: unexpected move {text!r}")
    try:
        return Move(color, coordinate(text[0]), coordinate(text[1]))
    except SgfError as exc:
        raise SgfError(f"move {index}: {exc}") from None


def _check_node(node: Node, diagnostics: Diagnostics) -> None:
    seen = set()
    for ident in node.idents():
        if ident in seen:
            diagnostics.warn("duplicated %s property", ident)
        seen.add(ident)


def played_moves(
    tree: GameTree,
    size: int,
    diagnostics: Optional[Diagnostics] = None,
) -> List[Move]:
    """Return the ``B``/``W`` moves along the main line, in order."""
    moves: List[Move] = []
    last_mn: Optional[str] = None
    second_node_setup = "AB" not in tree.root
    for depth, node in enumerate(tree.mainline()):
        if diagnostics is not None:
            _check_node(node, diagnostics)
            if depth > 0 and ("AB" in node or "AW" in node):
                if not (depth == 1 and second_node_setup):
                    diagnostics.warn("setup properties after the root node ignored")
            mn = node.get("MN")
            if mn is not None:
                if mn.value == last_mn:
                    diagnostics.warn("duplicate move number MN[%s]", mn.value)
                last_mn = mn.value
        for prop in node.properties:
            color = MOVE_COLORS.get(prop.ident)
            if color is None:
                continue
            if len(prop.values) != 1:
                if diagnostics is not None:
                    diagnostics.warn("ignoring multi-valued %s property", prop.ident)
                continue
            if depth == 0 and diagnostics is not None:
                diagnostics.warn("bad style: move property %s in root node", prop.ident)
            moves.append(parse_move(prop.value, color, size, len(moves) + 1))
    return moves


def extract_game(tree: GameTree, diagnostics: Optional[Diagnostics] = None) -> GameRecord:
    """Build the :class:`GameRecord` for one top-level game tree."""
    size = board_size(tree.root)
    setup = setup_stones(tree, diagnostics)
    moves = played_moves(tree, size, diagnostics)
    if len(setup) + len(moves) > MAX_MOVES:
        raise CapacityOverflow("too many moves")
    return GameRecord(
        size=size,
        moves=setup + moves,
        setup_count=len(setup),
        black_setup=sum(1 for m in setup if m.color == BLACK),
        white_setup=sum(1 for m in setup if m.color == WHITE),
    )


def extract_games(
    trees: Iterable[GameTree],
    diagnostics: Optional[Diagnostics] = None,
) -> Iterator[GameRecord]:
    """Yield a :class:`GameRecord` for every top-level tree."""
    for tree in trees:
        yield extract_game(tree, diagnostics)


def moves_from_log(records: Sequence[int]) -> List[Move]:
    """Rebuild the move array from a played-game log, dropping captures."""
    moves: List[Move] = []
    for r in records:
        if r & CAPTURE:
            continue
        d = decode(int(r))
        moves.append(Move.pass_move(d.color) if d.is_pass else Move(d.color, d.x, d.y))
    return moves


__all__ = [
    "DEFAULT_SIZE",
    "GameRecord",
    "board_size",
    "coordinate",
    "expand_points",
    "extract_game",
    "extract_games",
    "moves_from_log",
    "parse_move",
    "played_moves",
    "setup_stones",
]
