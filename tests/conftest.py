"""Root-level pytest configuration and shared fixtures.

This module provides:
- Automatic sys.path configuration for all tests
- Shared fixtures available to all test modules
- Common type definitions
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, List, Tuple

import pytest

# ---------------------------------------------------------------------------
# Path Configuration (automatically applied to all tests)
# ---------------------------------------------------------------------------

# Add project root to sys.path so imports work from any test directory
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.board import BLACK, WHITE  # noqa: E402
from core.playgame import Move  # noqa: E402
from monitoring.diagnostics import Diagnostics, DiagnosticsPolicy  # noqa: E402


# ---------------------------------------------------------------------------
# Type Definitions
# ---------------------------------------------------------------------------

Board = List[List[int]]
"""Type alias for a final position matrix (0=empty, 1=black, -1=white)."""


# ---------------------------------------------------------------------------
# Diagnostics Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def diagnostics() -> Diagnostics:
    """Return a default diagnostics channel (errors propagate, warnings logged)."""
    return Diagnostics(DiagnosticsPolicy())


@pytest.fixture
def lenient() -> Diagnostics:
    """Return a diagnostics channel that skips broken items quietly."""
    return Diagnostics(DiagnosticsPolicy(ignore_errors=True, quiet=True))


@pytest.fixture
def strict() -> Diagnostics:
    """Return a diagnostics channel turning every warning into an error."""
    return Diagnostics(DiagnosticsPolicy(strict=True))


@pytest.fixture(autouse=True)
def _capture_warnings(caplog):
    """Make every diagnostic visible to ``caplog``."""
    caplog.set_level(logging.INFO)
    yield


# ---------------------------------------------------------------------------
# Move Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def make_moves() -> Callable[[str], List[Move]]:
    """Factory fixture turning ``"B aa W bb B -"`` into a move list.

    Colours alternate with points given as SGF letter pairs; ``-`` is a pass.
    """
    def _make_moves(text: str) -> List[Move]:
        tokens = text.split()
        moves: List[Move] = []
        for color_tok, point in zip(tokens[::2], tokens[1::2]):
            color = BLACK if color_tok == "B" else WHITE
            if point == "-":
                moves.append(Move.pass_move(color))
            else:
                moves.append(Move(color, ord(point[0]) - 96, ord(point[1]) - 96))
        return moves
    return _make_moves


@pytest.fixture
def make_board() -> Callable[[int, List[Tuple[int, int, int]]], Board]:
    """Factory fixture building the matrix ``final_position()`` should return.

    Stones are ``(x, y, color)`` with 1-based coordinates and colour 1 or -1.
    """
    def _make_board(size: int, stones: List[Tuple[int, int, int]] = None) -> Board:
        board = [[0] * size for _ in range(size)]
        for x, y, color in stones or []:
            board[y - 1][x - 1] = color
        return board
    return _make_board


# ---------------------------------------------------------------------------
# SGF Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def simple_sgf_content() -> str:
    """Return a simple 9x9 SGF game string."""
    return "(;GM[1]FF[4]SZ[9]KM[7.5]RU[Chinese];B[ee];W[gc];B[cg])"


@pytest.fixture
def sgf_with_handicap() -> str:
    """Return an SGF with handicap stones."""
    return "(;GM[1]FF[4]SZ[9]HA[2]KM[0.5]AB[gc][cg];W[ee])"


@pytest.fixture
def capture_sgf_content() -> str:
    """Return a 5x5 game in which black captures the white stone at bb."""
    return "(;FF[4]SZ[5];B[ab];W[bb];B[ba];W[dd];B[cb];W[de];B[bc])"


@pytest.fixture
def sgf_file(tmp_path: Path) -> Callable[[str, str], str]:
    """Factory fixture writing SGF text to a file and returning its path."""
    def _write(text: str, name: str = "game.sgf") -> str:
        path = tmp_path / name
        path.write_bytes(text.encode("utf-8") if isinstance(text, str) else text)
        return str(path)
    return _write


# ---------------------------------------------------------------------------
# Pytest Configuration
# ---------------------------------------------------------------------------

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
