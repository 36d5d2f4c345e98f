"""FastAPI-based RESTful service replaying SGF games.

This module exposes three routes:
 - ``/replay`` accepts POST requests with JSON ``{"sgf": ..., "multi": ...}``
   and returns the capture-annotated log of every game in the text.
 - ``/convert`` returns the board, liberties, forbidden points and metadata
   of the final position of the first game.
 - ``/health`` is a simple GET route for health checks.

Malformed SGF and illegal moves are answered with HTTP 422.  It also enables
CORS and can be run directly with Uvicorn.
"""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from core.errors import SgfError
from input import sgf_to_input
from input.sgf_moves import extract_game
from input.sgf_parser import parse
from monitoring.diagnostics import Diagnostics, DiagnosticsPolicy


class ReplayRequest(BaseModel):
    """Request model for the ``/replay`` and ``/convert`` endpoints."""

    sgf: str
    multi: bool = False
    strict: bool = False


class GameResult(BaseModel):
    """One replayed game."""

    size: int
    records: List[int]
    setup_count: int
    black_setup: int
    white_setup: int
    move_count: int
    black_captured: int
    white_captured: int
    cycles: List[List[int]]


class ReplayResponse(BaseModel):
    """Response model returned by the ``/replay`` endpoint."""

    games: List[GameResult]
    warnings: List[str]


app = FastAPI(title="SGF replay REST API")

# Configure very permissive CORS by default
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _diagnostics(req: ReplayRequest) -> Diagnostics:
    return Diagnostics(DiagnosticsPolicy(strict=req.strict, quiet=True), program="sgfreplay-api")


@app.post("/replay", response_model=ReplayResponse)
async def replay(req: ReplayRequest) -> ReplayResponse:
    """Parse ``req.sgf`` and replay every top-level game in it.

    Parameters
    ----------
    req:
        Parsed request payload containing the SGF text.

    Returns
    -------
    ReplayResponse
        The games in input order plus every warning issued on the way.
    """

    diagnostics = _diagnostics(req)
    try:
        trees = parse(req.sgf, diagnostics, multi=req.multi)
        games = [
            GameResult(**extract_game(tree, diagnostics).replay(diagnostics).to_dict())
            for tree in trees
        ]
    except SgfError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ReplayResponse(games=games, warnings=diagnostics.messages("warning"))


@app.post("/convert")
async def convert(req: ReplayRequest) -> Dict[str, Any]:
    """Summarise the final position of the first game in ``req.sgf``."""

    try:
        return sgf_to_input.convert(req.sgf, from_string=True)
    except SgfError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.get("/health")
async def health() -> Dict[str, str]:
    """Simple liveness probe."""

    return {"status": "ok"}


if __name__ == "__main__":  # pragma: no cover - manual start
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
