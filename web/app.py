"""
FastAPI web application for playing against and analysing with Stockfish.

Endpoints:
    GET  /api/health          liveness probe
    GET  /api/moves           static sample game for the move list panel
    GET  /api/engine/status   is the engine binary installed? (never spawns it)
    GET  /api/engine/levels   named strengths offered by the client
    POST /api/engine/analyze  run one engine session and return its result
    POST /api/engine/move     let the engine move on the submitted board

Architecture notes:
- Async endpoints: an analysis awaits an engine subprocess through the event
  loop, so a slow search does not pin a worker thread. Each request gets its
  own subprocess; nothing is shared between requests.
- Every EngineError becomes a 503 with {"error": message} via one exception
  handler, so endpoints just let them propagate.
- Admission control is optional: ENGINE_MAX_SESSIONS caps how many engine
  subprocesses run at once. Requests past the cap wait for a slot.
- The built frontend, when present, is registered LAST: its catch-all route
  would otherwise shadow the API.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import chess
from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from engine import locator
from engine.constants import (
    DEFAULT_FRONTEND_DIST,
    ENGINE_LEVELS,
    FRONTEND_DIST_ENV,
    MAX_SESSIONS_ENV,
    SAMPLE_MOVES,
)
from engine.errors import EngineError
from engine.session import AnalysisRequest, AnalysisResult, analyze_position
from web.models import (
    AnalysisResponse,
    AnalyzeRequest,
    EngineLevel,
    EngineStatusResponse,
    ErrorResponse,
    PlayRequest,
    PlayResponse,
)
from web.play import game_result, parse_engine_move

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO)
_log = logging.getLogger(__name__)

_ERROR_RESPONSES = {503: {"model": ErrorResponse}}


def _max_sessions() -> int:
    raw = os.environ.get(MAX_SESSIONS_ENV, "").strip()
    if not raw:
        return 0
    try:
        return max(0, int(raw))
    except ValueError:
        _log.warning("Ignoring %s=%r: not an integer", MAX_SESSIONS_ENV, raw)
        return 0


class SessionGate:
    """
    Caps concurrent engine sessions at ENGINE_MAX_SESSIONS.

    The variable is re-read on every acquire; when its value changes a new
    semaphore replaces the old one. A limit of 0 means unbounded.
    """

    def __init__(self) -> None:
        self._limit = 0
        self._semaphore: asyncio.Semaphore | None = None

    def _current(self) -> asyncio.Semaphore | None:
        limit = _max_sessions()
        if limit != self._limit:
            self._limit = limit
            self._semaphore = asyncio.Semaphore(limit) if limit else None
        return self._semaphore

    @asynccontextmanager
    async def slot(self):
        semaphore = self._current()
        if semaphore is None:
            yield
            return
        async with semaphore:
            yield


async def _analyze(gate: SessionGate, request: AnalysisRequest) -> AnalysisResult:
    async with gate.slot():
        return await analyze_position(request)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(frontend_dist: Path | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        frontend_dist: Directory with a built frontend. Defaults to the
                       FRONTEND_DIST environment variable, then Frontend/dist.
                       Ignored unless it contains index.html.
    """
    app = FastAPI(title="Stockfish Studio", version="1.0.0")
    gate = SessionGate()

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"error": str(exc)})

    @app.get("/api/health")
    def api_health() -> dict:
        return {"status": "ok"}

    @app.get("/api/moves")
    def api_moves() -> dict:
        return {"moves": SAMPLE_MOVES}

    @app.get("/api/engine/status", response_model=EngineStatusResponse)
    def api_engine_status() -> EngineStatusResponse:
        """Report engine availability. The path is reduced to its file name."""
        status = locator.status()
        return EngineStatusResponse(
            available=status.available,
            engine_path=Path(status.path).name if status.available else None,
            download_url=status.download_url,
        )

    @app.get("/api/engine/levels", response_model=list[EngineLevel])
    def api_engine_levels() -> list[EngineLevel]:
        return [EngineLevel(name=name, movetime=ms) for name, ms in ENGINE_LEVELS.items()]

    @app.post(
        "/api/engine/analyze",
        response_model=AnalysisResponse,
        responses=_ERROR_RESPONSES,
    )
    async def api_engine_analyze(payload: Any = Body(default=None)) -> AnalysisResponse:
        """
        Analyse a position with a fresh engine session.

        Args:
            payload: JSON body with fen, moves, depth and movetime. A missing
                     body, or one that is not an object, analyses the start
                     position for the default movetime.

        Returns:
            AnalysisResponse with bestmove, ponder, evaluation, depth, nodes
            and pv from the engine's last report.

        Raises:
            EngineError (503): engine missing, failed to start, wrote to
                               stderr, exited early, or timed out.
            RequestValidationError (422): fen or a move token would not fit
                                          on a single command line.
        """
        try:
            request = AnalyzeRequest.model_validate(payload if isinstance(payload, dict) else {})
        except ValidationError as exc:
            raise RequestValidationError(exc.errors(include_url=False, include_context=False)) from exc
        result = await _analyze(gate, request.to_analysis_request())
        return AnalysisResponse.from_result(result)

    @app.post(
        "/api/engine/move",
        response_model=PlayResponse,
        responses=_ERROR_RESPONSES,
    )
    async def api_engine_move(request: PlayRequest) -> PlayResponse:
        """
        Let the engine choose and play a move on the given board.

        Raises:
            HTTPException 400: Malformed FEN or game already over.
            EngineError (503): Session failure, or IllegalEngineMove when the
                               engine's choice is not legal on the board.
        """
        # --- Parse and validate the FEN ---
        try:
            board = chess.Board(request.fen)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid FEN: {exc}") from exc

        if board.is_game_over():
            raise HTTPException(
                status_code=400,
                detail=f"Game is already over: {board.result()}",
            )

        # --- Run the engine ---
        result = await _analyze(
            gate,
            AnalysisRequest(fen=board.fen(), movetime=request.resolved_movetime()),
        )

        # --- Apply the move and return ---
        move = parse_engine_move(board, result.bestmove)
        san = board.san(move)
        board.push(move)
        _log.info("Engine played %s (%s) fen=%s", move.uci(), san, request.fen[:40])

        return PlayResponse(
            move=move.uci(),
            san=san,
            fen=board.fen(),
            game_over=board.is_game_over(),
            result=game_result(board),
            analysis=AnalysisResponse.from_result(result),
        )

    # Frontend routes MUST be last (catch-all).
    if frontend_dist is None:
        frontend_dist = Path(os.environ.get(FRONTEND_DIST_ENV) or DEFAULT_FRONTEND_DIST)
    mount_frontend(app, frontend_dist)

    return app


def mount_frontend(app: FastAPI, dist: Path) -> bool:
    """
    Serve a built single-page frontend from dist, if it has an index.html.

    Bundled assets under dist/assets are served as static files; any other
    non-API path returns the file of that name when it exists, else
    index.html so client-side routing works.

    Returns:
        True if the frontend was mounted.
    """
    dist = dist.resolve()
    index = dist / "index.html"
    if not index.is_file():
        _log.info("No frontend build at %s; serving API only", dist)
        return False

    if (dist / "assets").is_dir():
        app.mount("/assets", StaticFiles(directory=dist / "assets"), name="assets")

    @app.get("/{full_path:path}", include_in_schema=False)
    def serve_frontend(full_path: str) -> FileResponse:
        if full_path == "api" or full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Not Found")
        candidate = (dist / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(dist):
            return FileResponse(candidate)
        return FileResponse(index)

    return True


app = create_app()
