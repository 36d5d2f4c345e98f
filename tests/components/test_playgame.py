"""Component tests for the replay engine (core/playgame.py).

This module tests the rules applied while replaying a move array:
- Passes, placements and captures in the record log
- Illegal moves: occupied, off-board, suicide, mass suicide, ko recapture
- PERMANENT marking and the repetition scan
- Cross-checks of final positions against sgfmill
"""
from __future__ import annotations

import pytest

from core.board import BLACK, WHITE, neighbors, pack
from core.errors import CapacityOverflow, IllegalMove
from core.liberty import group_and_liberties
from core.playgame import (
    CAPTURE,
    MAX_MOVES,
    PASS,
    PERMANENT,
    Move,
    ReplayContext,
    decode,
    find_cycle,
    replay,
)

KO_SETUP = "B ba W ca B ab W db B bc W cc B ee W bb B cb"


class TestRecords:
    """Tests for the shape of the played-game log."""

    def test_pass(self, make_moves):
        """A pass is logged with its colour and no position."""
        game = replay(19, make_moves("B - W aa"))
        assert game.records[0] == (BLACK << 10) | PASS
        assert decode(game.records[0]).is_pass
        assert game.move_count == 2
        assert game.played_moves == 2

    @pytest.mark.parametrize("size", [9, 13, 19])
    def test_point_past_the_edge_passes(self, size):
        """A move at (size+1, size+1) is logged as a pass."""
        edge = size + 1
        game = replay(size, [Move(BLACK, 3, 3), Move(WHITE, edge, edge), Move(BLACK, 4, 4)])
        assert game.records[1] == (WHITE << 10) | PASS
        assert game.played_moves == 3

    def test_tt_passes_on_small_boards(self):
        """20,20 is the legacy pass on boards below 19."""
        game = replay(13, [Move(BLACK, 20, 20)])
        assert decode(game.records[0]).is_pass

    def test_placements_are_permanent_when_never_touched(self, make_moves):
        """Stones never captured are PERMANENT."""
        game = replay(9, make_moves("B aa W bb"))
        assert all(r & PERMANENT for r in game.records)
        first = decode(game.records[0])
        assert (first.color, first.x, first.y) == (BLACK, 1, 1)

    def test_single_stone_capture(self, make_moves):
        """Surrounding a stone logs one CAPTURE record."""
        moves = make_moves("B ab W bb B ba W dd B cb W de B bc")
        game = replay(5, moves)
        assert len(game.records) == 8
        assert game.records[-1] == pack(2, 2) | (WHITE << 10) | CAPTURE | PERMANENT
        assert not game.records[1] & PERMANENT
        assert game.white_captured == 1
        assert game.black_captured == 0
        assert game.captures() == [(WHITE, 2, 2)]

    def test_multi_stone_capture(self, make_moves):
        """A whole chain is removed at once."""
        moves = make_moves("W aa B ca W ba B ab B bb")
        game = replay(5, moves)
        captured = [(d.x, d.y) for d in map(decode, game.records) if d.is_capture]
        assert sorted(captured) == [(1, 1), (2, 1)]
        assert game.white_captured == 2

    def test_to_array(self, make_moves):
        """The log converts to an int16 array."""
        game = replay(9, make_moves("B aa W bb"))
        arr = game.to_array()
        assert arr.dtype.name == "int16"
        assert list(arr) == game.records

    def test_setup_counts(self, make_moves):
        """Setup stones are counted per colour."""
        moves = make_moves("B aa B bb W cc W dd")
        game = replay(9, moves, setup_count=3)
        assert (game.black_setup, game.white_setup) == (2, 1)
        assert game.played_moves == 1


class TestIllegalMoves:
    """Tests for moves the rules forbid."""

    @pytest.mark.parametrize("text,size,reason,number", [
        ("B aa W aa", 9, "occupied", 2),
        ("B ba W dd B ab W aa", 5, "suicide", 4),
        ("B ca W aa B ab W dd B bb W ba", 5, "mass-suicide", 6),
        (KO_SETUP + " W bb", 5, "ko-recapture", 10),
    ], ids=["occupied", "suicide", "mass_suicide", "ko"])
    def test_rejected(self, make_moves, text, size, reason, number):
        """Each illegal move reports its reason and move number."""
        with pytest.raises(IllegalMove) as info:
            replay(size, make_moves(text))
        assert info.value.reason == reason
        assert info.value.move_number == number

    def test_off_board(self):
        """Coordinates past the board edge are rejected."""
        with pytest.raises(IllegalMove) as info:
            replay(5, [Move(BLACK, 6, 1)])
        assert info.value.reason == "off-board"

    def test_ko_retake_after_threat(self, make_moves):
        """The ko may be retaken after an intervening move."""
        game = replay(5, make_moves(KO_SETUP + " W dd B de W bb"))
        assert decode(game.records[-1]).is_capture
        assert (decode(game.records[-1]).x, decode(game.records[-1]).y) == (3, 2)

    def test_setup_moves_numbered_zero(self, make_moves):
        """Errors in setup stones carry move number 0."""
        with pytest.raises(IllegalMove) as info:
            replay(9, make_moves("B aa B aa"), setup_count=2)
        assert info.value.move_number == 0

    def test_capture_instead_of_suicide(self, make_moves):
        """Filling the last liberty is legal when it captures."""
        game = replay(5, make_moves("B ba W ca B ab W bb B dd W aa"))
        assert game.captures() == [(BLACK, 2, 1)]
        assert game.black_captured == 1

    @pytest.mark.parametrize("size", [0, 32])
    def test_board_size_limits(self, size):
        """Sizes outside 1..31 overflow."""
        with pytest.raises(CapacityOverflow):
            replay(size, [])

    def test_too_many_moves(self):
        """More than MAX_MOVES moves overflow."""
        with pytest.raises(CapacityOverflow):
            replay(19, [Move.pass_move(BLACK)] * (MAX_MOVES + 1))


class TestChains:
    """Liberty bookkeeping stays consistent with a flood fill."""

    MOVES = (
        "B cc W dc B cd W dd B ce W de B bd W ec B cb W db "
        "B ca W da B ed W ee B ef W fd B df W ea"
    )

    def test_duplicate_counted_liberties(self, make_moves):
        """Summed liberties match a recount after a long fight."""
        ctx = ReplayContext(7)
        for i, move in enumerate(make_moves(self.MOVES), 1):
            ctx.play(move, i)
        seen = set()
        for x in range(1, 8):
            for y in range(1, 8):
                pos = pack(x, y)
                chain = ctx.chains.chain_at(pos)
                if chain is None or id(chain) in seen:
                    continue
                seen.add(id(chain))
                group, libs = group_and_liberties(ctx.cells, pos)
                assert set(chain.stones) == group
                expected = sum(1 for s in group for n in neighbors(s) if ctx.cells[n] == 0)
                assert chain.liberties == expected
                assert (chain.liberties > 0) == (len(libs) > 0)

    @pytest.mark.parametrize("joined,built,expected", [
        ("B cc B ec B dc", "B dc B cc B ec", 8),
        ("B cc B dd B dc", "B dc B cc B dd", 8),
    ], ids=["line", "bent"])
    def test_merge_matches_connected_placement(self, make_moves, joined, built, expected):
        """Joining two stones with a third gives the same count as growing one chain."""
        counts = []
        for text in (joined, built):
            ctx = ReplayContext(9)
            for i, move in enumerate(make_moves(text), 1):
                ctx.play(move, i)
            chain = ctx.chains.chain_at(pack(4, 3))
            assert len(chain) == 3
            counts.append(chain.liberties)
        assert counts == [expected, expected]


class TestRepetition:
    """Tests for the superko scan."""

    def test_cycle_reported(self, make_moves, diagnostics):
        """Retaking the ko after two passes repeats a position."""
        game = replay(5, make_moves(KO_SETUP + " W - B - W bb"), diagnostics=diagnostics)
        assert game.cycles == [(12, 8)]
        assert diagnostics.messages("warning") == [
            "cycle: position after move 12 equals that after move 8"
        ]

    def test_no_cycle(self, make_moves, diagnostics):
        """A plain ko capture is not a cycle."""
        game = replay(5, make_moves(KO_SETUP), diagnostics=diagnostics)
        assert game.cycles == []
        assert find_cycle(game.records) is None
        assert diagnostics.warnings == 0


class TestAgainstSgfmill:
    """Final positions agree with an independent implementation."""

    @pytest.mark.parametrize("size,text", [
        (5, "B ab W bb B ba W dd B cb W de B bc"),
        (5, "W aa B ca W ba B ab B bb"),
        (5, KO_SETUP + " W dd B de W bb"),
        (9, "B ee W ef B fe W df B de W ed B dd W fd B ge W ce B eg W gd B fc W cd B ff"),
        (7, TestChains.MOVES),
    ], ids=["single_capture", "double_capture", "ko_fight", "center_fight", "chains"])
    def test_final_position(self, make_moves, oracle, size, text):
        """Our final position equals sgfmill's."""
        moves = make_moves(text)
        game = replay(size, moves)
        assert game.final_position() == oracle(size, moves).matrix()
