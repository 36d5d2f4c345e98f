"""SGF to board/liberty/forbidden/metadata converter."""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

from core.board import BLACK, COLOR_NAMES, EMPTY, Board, neighbors, opponent, pack
from core.liberty import count_liberties, group_and_liberties
from core.playgame import CAPTURE, PASS, POSITION_MASK, PlayedGame, replay
from input.sgf_moves import extract_game
from input.sgf_parser import parse, parse_file
from input.sgf_tree import Node
from monitoring.diagnostics import Diagnostics

DEFAULT_KOMI = 7.5
DEFAULT_RULESET = "chinese"


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def _text(node: Node, ident: str, default: str = "") -> str:
    prop = node.get(ident)
    return prop.value.strip() if prop is not None else default


def _number(node: Node, ident: str, default: float = 0.0) -> float:
    try:
        return float(_text(node, ident))
    except ValueError:
        return default


def _parse_ot(ot: str) -> Tuple[int, int]:
    """Parse byo-yomi description like '5x30' and return (periods, period_time)."""
    if not ot:
        return 0, 0
    m = re.search(r"(\d+)\s*x\s*(\d+)", ot)
    if not m:
        return 0, 0
    return int(m.group(1)), int(m.group(2))


def _ko_point(game: PlayedGame) -> Optional[int]:
    """Return the point the last move made illegal by ko, if any."""
    records = game.records
    if len(records) < 2:
        return None
    place, capture = records[-2], records[-1]
    # a multi-stone capture leaves another CAPTURE record in place of the stone
    if place & (CAPTURE | PASS) or not capture & CAPTURE:
        return None
    group, libs = group_and_liberties(game.final_cells(), place & POSITION_MASK)
    if len(group) == 1 and libs == {capture & POSITION_MASK}:
        return capture & POSITION_MASK
    return None


def _compute_forbidden(game: PlayedGame, next_color: int) -> List[Tuple[int, int]]:
    """Return all illegal move coordinates for ``next_color`` (0-based)."""
    cells = game.final_cells()
    ko = _ko_point(game)
    enemy = opponent(next_color)
    forbidden: List[Tuple[int, int]] = []
    for y in range(1, game.size + 1):
        for x in range(1, game.size + 1):
            pos = pack(x, y)
            if cells[pos] != EMPTY:
                continue
            if pos == ko:
                forbidden.append((y - 1, x - 1))
                continue
            legal = False
            for n in neighbors(pos):
                val = cells[n]
                if val == EMPTY:
                    legal = True
                elif val == enemy:
                    _, libs = group_and_liberties(cells, n)
                    legal = libs == {pos}
                elif val == next_color:
                    _, libs = group_and_liberties(cells, n)
                    legal = libs != {pos}
                if legal:
                    break
            if not legal:
                forbidden.append((y - 1, x - 1))
    return forbidden


# ---------------------------------------------------------------------------
# Core conversion logic
# ---------------------------------------------------------------------------

def parse_sgf(
    source: str,
    step: int | None = None,
    *,
    from_string: bool = False,
    diagnostics: Optional[Diagnostics] = None,
) -> Tuple[Board, Dict[str, Any], PlayedGame]:
    """Replay the first game of ``source`` up to ``step`` played moves.

    Returns the final board matrix, the metadata dictionary and the
    :class:`~core.playgame.PlayedGame`.
    """
    trees = parse(source, diagnostics) if from_string else parse_file(source, diagnostics)
    tree = trees[0]
    record = extract_game(tree, diagnostics)
    moves = record.moves
    if step is not None:
        moves = moves[: record.setup_count + step]
    game = replay(record.size, moves, record.setup_count, diagnostics)

    root = tree.root
    steps: List[Tuple[str, Tuple[int, int] | None]] = []
    next_move = "white" if record.handicap > 1 else "black"
    for move in moves[record.setup_count:]:
        color = COLOR_NAMES[move.color]
        steps.append((color, None if move.is_pass else (move.y - 1, move.x - 1)))
        next_move = COLOR_NAMES[opponent(move.color)]

    move_nodes = [n for n in tree.mainline() if "B" in n or "W" in n]
    last = move_nodes[len(steps) - 1] if steps and len(move_nodes) >= len(steps) else root
    periods, period_time = _parse_ot(_text(root, "OT"))

    metadata = {
        "rules": {
            "ruleset": _text(root, "RU", DEFAULT_RULESET).lower() or DEFAULT_RULESET,
            "komi": _number(root, "KM", DEFAULT_KOMI),
            "board_size": record.size,
            "handicap": record.handicap,
        },
        # stones each colour has taken from the other
        "capture": {"black": game.white_captured, "white": game.black_captured},
        "next_move": next_move,
        "step": steps,
        "time_control": {
            "main_time_seconds": _number(root, "TM"),
            "byo_yomi": {
                "period_time_seconds": period_time,
                "periods": periods,
            },
        },
        "time": [
            {"player": "black", "main_time_seconds": _number(last, "BL"), "periods": int(_number(last, "OB"))},
            {"player": "white", "main_time_seconds": _number(last, "WL"), "periods": int(_number(last, "OW"))},
        ],
    }
    return game.final_position(), metadata, game


def convert(source: str, step: int | None = None, *, from_string: bool = False) -> Dict[str, Any]:
    """High level convenience wrapper returning the structured data."""
    matrix, metadata, game = parse_sgf(source, step, from_string=from_string)

    liberty = [(y - 1, x - 1, v) for x, y, v in count_liberties(game.final_cells(), game.size)]
    next_color = BLACK if metadata["next_move"] == "black" else opponent(BLACK)
    forbidden = _compute_forbidden(game, next_color)

    return {"board": matrix, "liberty": liberty, "forbidden": forbidden, "metadata": metadata}


__all__ = ["parse_sgf", "convert"]
