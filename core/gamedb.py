"""Flat-file database of played games.

Layout (little endian)::

    header   int32 header length (8), int16 magic 0x6a11, int16 version 2
    record   int16 total size in bytes      int16 game number in its file
             int16 played moves             uint8 board size
             uint8 black setup stones       uint8 white setup stones
             uint8 black stones captured    uint8 white stones captured
             pad byte                       int16 number of log records
             int16 filename length (even, NUL padded)
             int16 log records[...]
             filename bytes

Readers memory-map the file and check every record's declared lengths against
its total size and the end of the file before looking at the payload.
"""
from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, Iterator, List, Optional

import numpy as np

from core.errors import CapacityOverflow, DatabaseError
from core.playgame import PlayedGame

DB_MAGIC = 0x6A11
DB_VERSION = 2
DEFAULT_DATABASE = "out.sgfdb"

HEADER = struct.Struct("<ihh")
RECORD = struct.Struct("<hhhBBBBBxhh")

INT16_MAX = 0x7FFF
UINT8_MAX = 0xFF


@dataclass
class DatabaseEntry:
    """One game read back from a database."""

    game_number: int
    size: int
    played_moves: int
    black_setup: int
    white_setup: int
    black_captured: int
    white_captured: int
    records: np.ndarray
    filename: str

    @property
    def setup_count(self) -> int:
        return self.black_setup + self.white_setup

    def to_played_game(self) -> PlayedGame:
        """Rebuild the :class:`PlayedGame` this entry was written from."""
        return PlayedGame(
            size=self.size,
            records=[int(r) for r in self.records],
            setup_count=self.setup_count,
            black_setup=self.black_setup,
            white_setup=self.white_setup,
            move_count=self.setup_count + self.played_moves,
            black_captured=self.black_captured,
            white_captured=self.white_captured,
        )


def _check(value: int, limit: int, what: str) -> int:
    if value < 0 or value > limit:
        raise CapacityOverflow(f"{what} {value} does not fit in the database record")
    return value


def encode_record(game: PlayedGame, filename: str, game_number: int = 0) -> bytes:
    """Return the binary record for ``game``."""
    name = os.fsencode(filename)
    name_len = (len(name) + 2) & ~1
    moves = np.asarray(game.records, dtype="<i2")
    total = RECORD.size + 2 * len(moves) + name_len
    header = RECORD.pack(
        _check(total, INT16_MAX, "record size"),
        _check(game_number, INT16_MAX, "game number"),
        _check(game.played_moves, INT16_MAX, "move count"),
        _check(game.size, UINT8_MAX, "board size"),
        _check(game.black_setup, UINT8_MAX, "black setup count"),
        _check(game.white_setup, UINT8_MAX, "white setup count"),
        _check(game.black_captured, UINT8_MAX, "black capture count"),
        _check(game.white_captured, UINT8_MAX, "white capture count"),
        _check(len(moves), INT16_MAX, "record count"),
        _check(name_len, INT16_MAX, "filename length"),
    )
    return header + moves.tobytes() + name.ljust(name_len, b"\0")


class GameDatabaseWriter:
    """Append games to a new database file.

    A path that does not end in ``.sgfdb`` is never overwritten, to avoid
    clobbering some unrelated file given by mistake.
    """

    def __init__(self, path: str = DEFAULT_DATABASE) -> None:
        self.path = path
        self.games = 0
        self._fh: Optional[BinaryIO] = None

    def open(self) -> "GameDatabaseWriter":
        mode = "wb" if self.path.endswith(".sgfdb") else "xb"
        try:
            self._fh = open(self.path, mode)
        except FileExistsError:
            raise DatabaseError(f"will not overwrite existing file {self.path}") from None
        except OSError as exc:
            raise DatabaseError(f"could not create output file {self.path}: {exc}") from exc
        self._fh.write(HEADER.pack(HEADER.size, DB_MAGIC, DB_VERSION))
        return self

    def add(self, game: PlayedGame, filename: str, game_number: int = 0) -> None:
        if self._fh is None:
            raise DatabaseError("database is not open")
        self._fh.write(encode_record(game, filename, game_number))
        self.games += 1

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> "GameDatabaseWriter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


def read_database(path: str = DEFAULT_DATABASE) -> Iterator[DatabaseEntry]:
    """Yield every game stored in the database at ``path``."""
    try:
        if os.path.getsize(path) < HEADER.size:
            raise DatabaseError(f"{path}: bad header")
        data = np.memmap(path, dtype=np.uint8, mode="r")
    except OSError as exc:
        raise DatabaseError(f"cannot open {path}: {exc}") from exc

    end = len(data)
    headerlen, magic, version = HEADER.unpack_from(data, 0)
    if magic != DB_MAGIC:
        raise DatabaseError(f"{path}: bad magic")
    if version != DB_VERSION:
        raise DatabaseError(
            f"{path} is an sgfdb version {version}, we only support version {DB_VERSION}"
        )
    if headerlen != HEADER.size:
        raise DatabaseError(f"{path}: bad header")

    offset = HEADER.size
    while offset < end:
        if offset + RECORD.size > end:
            raise DatabaseError(f"{path}: bad database (truncated record at byte {offset})")
        (total, game_number, played, size, abct, awct,
         bcapt, wcapt, count, name_len) = RECORD.unpack_from(data, offset)
        if (
            total < RECORD.size
            or offset + total > end
            or count < 0
            or name_len < 0
            or RECORD.size + 2 * count + name_len > total
        ):
            raise DatabaseError(f"{path}: bad database (record at byte {offset})")

        start = offset + RECORD.size
        if count:
            records = np.frombuffer(data, dtype="<i2", count=count, offset=start).copy()
        else:
            records = np.zeros(0, dtype="<i2")
        name_start = start + 2 * count
        raw_name = bytes(data[name_start:name_start + name_len]).split(b"\0", 1)[0]
        yield DatabaseEntry(
            game_number=game_number,
            size=size,
            played_moves=played,
            black_setup=abct,
            white_setup=awct,
            black_captured=bcapt,
            white_captured=wcapt,
            records=records,
            filename=os.fsdecode(raw_name),
        )
        offset += total


def load_database(path: str = DEFAULT_DATABASE) -> List[DatabaseEntry]:
    """Return all entries of ``path`` as a list."""
    return list(read_database(path))


__all__ = [
    "DB_MAGIC",
    "DB_VERSION",
    "DEFAULT_DATABASE",
    "DatabaseEntry",
    "GameDatabaseWriter",
    "encode_record",
    "load_database",
    "read_database",
]
