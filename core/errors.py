"""Exception hierarchy shared by the SGF parser, move extractor and replay engine."""
from __future__ import annotations

from typing import Optional


class SgfError(Exception):
    """Base class for every error raised while reading or replaying a game."""


class SgfSyntaxError(SgfError):
    """Malformed SGF text.

    ``line`` and ``offset`` locate the byte at which the parser gave up
    (``offset`` counts bytes from the start of the input).
    """

    def __init__(self, message: str, line: int = 0, offset: int = 0) -> None:
        self.message = message
        self.line = line
        self.offset = offset
        super().__init__(message)

    def __str__(self) -> str:
        if self.line:
            return f"line {self.line} (byte {self.offset}): {self.message}"
        return self.message


class IllegalMove(SgfError):
    """A move that cannot be played on the current position.

    ``reason`` is one of ``occupied``, ``suicide``, ``mass-suicide``,
    ``ko-recapture`` or ``off-board``.
    """

    REASONS = ("occupied", "suicide", "mass-suicide", "ko-recapture", "off-board")

    def __init__(self, reason: str, move_number: int, detail: Optional[str] = None) -> None:
        self.reason = reason
        self.move_number = move_number
        self.detail = detail
        super().__init__(reason)

    def __str__(self) -> str:
        msg = f"move {self.move_number}: illegal move ({self.reason})"
        if self.detail:
            msg += f": {self.detail}"
        return msg


class CapacityOverflow(SgfError):
    """A fixed capacity (board size, move count, record field) was exceeded."""


class StrictModeError(SgfError):
    """Raised for a warning when warnings are configured to be fatal."""


class DatabaseError(SgfError):
    """A binary game database is missing, foreign or corrupted."""


__all__ = [
    "SgfError",
    "SgfSyntaxError",
    "IllegalMove",
    "CapacityOverflow",
    "StrictModeError",
    "DatabaseError",
]
