"""
Request and response models for the web API.

Request models are forgiving on purpose: the browser client sends whatever
it has, and anything unusable falls back to a default instead of producing a
validation error. Blank positions become the start position, non-list move
lists become empty, and non-numeric or non-finite numbers are dropped. A body
that is not a JSON object at all is treated as an empty one.

The one exception is text that ends up inside an engine command: a FEN with
a control character or a move token that is not UCI notation is a 422, since
sending it would split the command into several.

Response models use camelCase aliases where the browser client expects them.
"""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from engine.constants import DEFAULT_LEVEL, DEFAULT_MOVETIME_MS, ENGINE_LEVELS, STARTPOS
from engine.protocol import check_fen, check_move
from engine.session import AnalysisRequest, AnalysisResult


def _finite_int(value: Any) -> int | None:
    """Return value as an int if it is a finite JSON number, else None."""
    # bool is an int subclass; true/false are not numbers here.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return int(value)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class AnalyzeRequest(BaseModel):
    """
    Body of POST /api/engine/analyze.

    Fields:
        fen:      FEN string, or omitted/blank for the start position.
        moves:    UCI move tokens applied on top of fen.
        depth:    Fixed search depth; takes precedence over movetime.
        movetime: Search time in milliseconds (default 600).
    """

    fen: str = STARTPOS
    moves: list[str] = Field(default_factory=list)
    depth: int | None = None
    movetime: int = DEFAULT_MOVETIME_MS

    @field_validator("fen", mode="before")
    @classmethod
    def blank_fen_is_startpos(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip():
            return v.strip()
        return STARTPOS

    @field_validator("moves", mode="before")
    @classmethod
    def moves_as_tokens(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(token) for token in v]

    @field_validator("fen")
    @classmethod
    def single_line_fen(cls, v: str) -> str:
        return check_fen(v)

    @field_validator("moves")
    @classmethod
    def uci_moves(cls, v: list[str]) -> list[str]:
        return [check_move(token) for token in v]

    @field_validator("depth", mode="before")
    @classmethod
    def finite_depth(cls, v: Any) -> int | None:
        depth = _finite_int(v)
        return depth if depth and depth > 0 else None

    @field_validator("movetime", mode="before")
    @classmethod
    def finite_movetime(cls, v: Any) -> int:
        movetime = _finite_int(v)
        return DEFAULT_MOVETIME_MS if movetime is None else movetime

    def to_analysis_request(self) -> AnalysisRequest:
        return AnalysisRequest(
            fen=self.fen,
            moves=tuple(self.moves),
            depth=self.depth,
            movetime=self.movetime,
        )


class PlayRequest(BaseModel):
    """
    Body of POST /api/engine/move.

    Fields:
        fen:      Current board as a FEN string.
        level:    Named engine strength (see ENGINE_LEVELS).
        movetime: Explicit search time in ms; overrides level when finite.
    """

    fen: str
    level: str = DEFAULT_LEVEL
    movetime: int | None = None

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        if v not in ENGINE_LEVELS:
            raise ValueError(f"unknown level {v!r}; expected one of {sorted(ENGINE_LEVELS)}")
        return v

    @field_validator("movetime", mode="before")
    @classmethod
    def finite_movetime(cls, v: Any) -> int | None:
        return _finite_int(v)

    def resolved_movetime(self) -> int:
        return self.movetime if self.movetime is not None else ENGINE_LEVELS[self.level]


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class EvaluationModel(BaseModel):
    type: str
    value: int
    display: str


class AnalysisResponse(BaseModel):
    """Analysis Result as returned to the client. Unknown fields are null."""

    bestmove: str | None
    ponder: str | None = None
    evaluation: EvaluationModel | None = None
    depth: int | None = None
    nodes: int | None = None
    pv: str | None = None

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisResponse":
        return cls.model_validate(result.to_dict())


class EngineStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    available: bool
    engine_path: str | None = Field(default=None, alias="enginePath")
    download_url: str = Field(alias="downloadUrl")


class EngineLevel(BaseModel):
    name: str
    movetime: int


class PlayResponse(BaseModel):
    """
    The engine's move applied to the submitted board.

    Fields:
        move:     Move played, in UCI notation (e.g. "e7e8q").
        san:      The same move in SAN (e.g. "e8=Q+").
        fen:      Board after the move.
        gameOver: True if the move ended the game.
        result:   "1-0", "0-1" or "1/2-1/2" when gameOver, else null.
        analysis: Full engine output for the search that chose the move.
    """

    model_config = ConfigDict(populate_by_name=True)

    move: str
    san: str
    fen: str
    game_over: bool = Field(alias="gameOver")
    result: str | None = None
    analysis: AnalysisResponse


class ErrorResponse(BaseModel):
    error: str
