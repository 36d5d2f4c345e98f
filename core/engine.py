"""Batch driver tying the parser, move extractor and replay engine together."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from core.gamedb import GameDatabaseWriter, read_database
from core.playgame import PlayedGame, replay
from input.sgf_moves import GameRecord, extract_game, moves_from_log
from input.sgf_parser import parse_file
from input.sgf_tree import GameTree
from input.sgf_writer import write_sgf
from monitoring.diagnostics import Diagnostics, DiagnosticsPolicy

logger = logging.getLogger(__name__)


@dataclass
class EngineOptions:
    """Parser settings applied to every input file."""

    multi: bool = False
    keep_case: bool = False
    encoding: str = "utf-8"

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "EngineOptions":
        return cls(
            multi=bool(data.get("multi", False)),
            keep_case=bool(data.get("keep_case", False)),
            encoding=str(data.get("encoding", "utf-8")),
        )

    def parser_options(self) -> Dict[str, Any]:
        return {"multi": self.multi, "keep_case": self.keep_case, "encoding": self.encoding}


@dataclass
class LoadedGame:
    """One replayed game together with where it came from."""

    filename: str
    game_number: int
    record: GameRecord
    played: PlayedGame


class Engine:
    """Run whole files through parse, extract and replay.

    Every file, and in a file holding several games every game, is processed
    inside :meth:`~monitoring.diagnostics.Diagnostics.item`.  With
    ``ignore_errors`` a broken file or game is reported and skipped; otherwise
    the first error propagates to the caller.
    """

    def __init__(
        self,
        policy: Optional[DiagnosticsPolicy] = None,
        options: Optional[EngineOptions] = None,
        diagnostics: Optional[Diagnostics] = None,
    ) -> None:
        self.options = options or EngineOptions()
        if diagnostics is None:
            diagnostics = Diagnostics(policy or DiagnosticsPolicy())
        self.diagnostics = diagnostics

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _parse(self, path: str) -> List[GameTree]:
        return parse_file(path, self.diagnostics, **self.options.parser_options())

    def _play(self, path: str, trees: List[GameTree]) -> List[LoadedGame]:
        games: List[LoadedGame] = []
        several = len(trees) > 1
        for number, tree in enumerate(trees, 1):
            name = f"{path} game {number}" if several else None
            with self.diagnostics.item(name):
                record = extract_game(tree, self.diagnostics)
                played = record.replay(self.diagnostics)
                games.append(LoadedGame(path, number if several else 0, record, played))
        return games

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def load(self, path: str) -> List[LoadedGame]:
        """Parse and replay every game in ``path`` (``"-"`` is standard input)."""
        games: List[LoadedGame] = []
        with self.diagnostics.item(path):
            games = self._play(path, self._parse(path))
        return games

    def check(self, paths: Iterable[str]) -> List[LoadedGame]:
        """Load each file in turn and return every game that replayed cleanly."""
        games: List[LoadedGame] = []
        for path in paths:
            loaded = self.load(path)
            logger.debug("%s: %d game(s)", path, len(loaded))
            games.extend(loaded)
        return games

    def index(self, paths: Iterable[str], output: str) -> int:
        """Write every game found in ``paths`` to the database ``output``.

        Returns
        -------
        int
            Number of games stored.
        """
        with GameDatabaseWriter(output) as db:
            for path in paths:
                for game in self.load(path):
                    with self.diagnostics.item(path):
                        db.add(game.played, game.filename, game.game_number)
            stored = db.games
        logger.info("Stored %d game(s) in %s", stored, output)
        return stored

    def dump(self, path: str) -> List[Dict[str, Any]]:
        """Read back a database, replaying each game to verify its log."""
        result: List[Dict[str, Any]] = []
        with self.diagnostics.item(path):
            for entry in read_database(path):
                moves = moves_from_log(entry.records)
                game = replay(entry.size, moves, entry.setup_count)
                if game.records != [int(r) for r in entry.records]:
                    self.diagnostics.warn(
                        "%s game %d: stored log differs from replay",
                        entry.filename,
                        entry.game_number,
                    )
                summary = entry.to_played_game().to_dict()
                summary["filename"] = entry.filename
                summary["game_number"] = entry.game_number
                result.append(summary)
        return result

    def rewrite(self, path: str) -> str:
        """Return the straight SGF serialisation of ``path``."""
        text = ""
        with self.diagnostics.item(path):
            text = write_sgf(self._parse(path))
        return text


__all__ = ["Engine", "EngineOptions", "LoadedGame"]
