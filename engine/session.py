"""
UCI session driver: one engine subprocess per analysis request.

A session spawns the engine, runs the handshake, sends the position and the
search command, collects the engine's progress reports, and turns the final
bestmove line into an AnalysisResult. Then the process is killed. Sessions
are never reused and share nothing with each other, so concurrent requests
each get their own subprocess and their own accumulator.

State machine:

    SPAWNING -> AWAITING_UCIOK -> AWAITING_READYOK -> SEARCHING -> RESOLVED
         \\             \\                 \\               \\
          +-------------+-----------------+----------------+-> FAILED

    uciok   (AWAITING_UCIOK)   : send "isready"
    readyok (AWAITING_READYOK) : send "position ..." and "go ..."
    info    (SEARCHING)        : overwrite latest score/depth/nodes/pv
    bestmove (SEARCHING)       : resolve

Four things race to finish a session: the bestmove line, output on stderr
(or stdout closing early), a launch error, and the deadline timer. All of
them go through _settle(), which accepts the first and ignores the rest, and
which is the only place the subprocess gets killed.

Concurrency model:
    Everything runs on the event loop. Two reader tasks pump stdout and
    stderr, a loop timer enforces the deadline, and the caller awaits a
    single future. No worker thread is held while the engine thinks.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from engine import locator
from engine.constants import (
    DEFAULT_MOVETIME_MS,
    ENGINE_PATH_ENV,
    READ_CHUNK_SIZE,
    STARTPOS,
    TIMEOUT_FLOOR_MS,
    TIMEOUT_SLACK_MS,
)
from engine.errors import (
    EngineError,
    EngineLaunchError,
    EngineNotInstalled,
    EngineStreamError,
    EngineTimeout,
)
from engine.protocol import (
    Evaluation,
    LineBuffer,
    check_fen,
    check_move,
    go_command,
    parse_bestmove,
    parse_depth,
    parse_nodes,
    parse_pv,
    parse_score,
    position_command,
)

_log = logging.getLogger(__name__)


class SessionState(Enum):
    SPAWNING = "spawning"
    AWAITING_UCIOK = "awaiting_uciok"
    AWAITING_READYOK = "awaiting_readyok"
    SEARCHING = "searching"
    RESOLVED = "resolved"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.RESOLVED, SessionState.FAILED)


# ---------------------------------------------------------------------------
# Request / result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnalysisRequest:
    """
    What to analyse and for how long.

    Attributes:
        fen:      STARTPOS or a full FEN string.
        moves:    UCI move tokens played on top of fen, in order.
        depth:    Fixed search depth. When set (non-zero) the engine is told
                  "go depth N" and movetime only feeds the deadline.
        movetime: Search time in milliseconds for "go movetime".
    """

    fen: str = STARTPOS
    moves: tuple[str, ...] = ()
    depth: int | None = None
    movetime: int = DEFAULT_MOVETIME_MS

    def __post_init__(self) -> None:
        # Reject unsafe text here, before any process is spawned.
        check_fen(self.fen)
        for token in self.moves:
            check_move(token)

    @property
    def timeout_ms(self) -> int:
        """Session deadline; always derived from movetime, even for depth searches."""
        return max(TIMEOUT_FLOOR_MS, self.movetime + TIMEOUT_SLACK_MS)

    def commands(self) -> tuple[str, str]:
        """The (position, go) pair sent once the engine reports readyok."""
        return (
            position_command(self.fen, self.moves),
            go_command(self.depth, self.movetime),
        )


@dataclass(frozen=True)
class AnalysisResult:
    """
    The engine's answer plus the last progress report before it.

    Every field except bestmove comes from the most recent info line that
    carried it; earlier values are overwritten, not combined.
    """

    bestmove: str | None
    ponder: str | None = None
    evaluation: Evaluation | None = None
    depth: int | None = None
    nodes: int | None = None
    pv: str | None = None

    def to_dict(self) -> dict:
        return {
            "bestmove": self.bestmove,
            "ponder": self.ponder,
            "evaluation": self.evaluation.to_dict() if self.evaluation else None,
            "depth": self.depth,
            "nodes": self.nodes,
            "pv": self.pv,
        }


@dataclass
class _LatestInfo:
    """Per-session accumulator for info lines."""

    evaluation: Evaluation | None = None
    depth: int | None = None
    nodes: int | None = None
    pv: str | None = None

    def update(self, line: str) -> None:
        # Fields are independent: one line may carry any subset of them.
        score = parse_score(line)
        if score is not None:
            self.evaluation = score
        depth = parse_depth(line)
        if depth is not None:
            self.depth = depth
        nodes = parse_nodes(line)
        if nodes is not None:
            self.nodes = nodes
        pv = parse_pv(line)
        if pv is not None:
            self.pv = pv


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class UciSession:
    """
    Drives a single engine subprocess from spawn to kill.

    A session is single-use: call run() once and discard it.

    Attributes:
        request:     The analysis being performed.
        engine_path: Executable to spawn (no arguments are passed).
        state:       Current SessionState.
        sent:        Every command written to the engine, in order.
    """

    def __init__(self, request: AnalysisRequest, engine_path: str) -> None:
        self.request = request
        self.engine_path = engine_path
        self.state = SessionState.SPAWNING
        self.sent: list[str] = []
        self._latest = _LatestInfo()
        self._buffer = LineBuffer()
        self._process: asyncio.subprocess.Process | None = None
        self._outcome: asyncio.Future | None = None

    @property
    def process(self) -> asyncio.subprocess.Process | None:
        return self._process

    async def run(self) -> AnalysisResult:
        """
        Run the session to completion.

        Returns:
            The AnalysisResult built from the bestmove line.

        Raises:
            EngineLaunchError: The process could not be started.
            EngineStreamError: The engine wrote to stderr, or exited early.
            EngineTimeout:     No bestmove within request.timeout_ms.
            asyncio.CancelledError: The caller was cancelled; the subprocess
                                    is killed before this propagates.
        """
        if self._outcome is not None:
            raise RuntimeError("UciSession.run() may only be called once")

        loop = asyncio.get_running_loop()
        self._outcome = loop.create_future()
        started = loop.time()

        try:
            self._process = await asyncio.create_subprocess_exec(
                self.engine_path,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            # Never started, so there is nothing to kill.
            self._fail(EngineLaunchError(f"Could not start engine: {exc}"))
            return await self._outcome

        timer = loop.call_later(self.request.timeout_ms / 1000, self._on_timeout)
        readers = [
            asyncio.create_task(self._pump_stdout()),
            asyncio.create_task(self._pump_stderr()),
        ]
        try:
            self.state = SessionState.AWAITING_UCIOK
            self._send("uci")
            result = await self._outcome
        except asyncio.CancelledError:
            self._fail(EngineError("Analysis cancelled."))
            raise
        finally:
            timer.cancel()
            for task in readers:
                task.cancel()
            await asyncio.gather(*readers, return_exceptions=True)
            await self._process.wait()

        _log.info(
            "bestmove=%s depth=%s nodes=%s elapsed_ms=%d",
            result.bestmove,
            result.depth,
            result.nodes,
            int((loop.time() - started) * 1000),
        )
        return result

    # -----------------------------------------------------------------------
    # Engine output
    # -----------------------------------------------------------------------

    async def _pump_stdout(self) -> None:
        stream = self._process.stdout
        while not self.state.is_terminal:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                self._fail(EngineStreamError("Engine exited before returning a move."))
                return
            for line in self._buffer.feed(chunk):
                if self.state.is_terminal:
                    return
                self._handle_line(line)

    async def _pump_stderr(self) -> None:
        stream = self._process.stderr
        while not self.state.is_terminal:
            chunk = await stream.read(READ_CHUNK_SIZE)
            if not chunk:
                return
            message = chunk.decode(errors="replace").strip()
            if message:
                self._fail(EngineStreamError(message))
                return

    def _handle_line(self, line: str) -> None:
        _log.debug("engine> %s", line)

        if self.state is SessionState.AWAITING_UCIOK:
            if line == "uciok":
                self.state = SessionState.AWAITING_READYOK
                self._send("isready")
            return

        if self.state is SessionState.AWAITING_READYOK:
            if line == "readyok":
                self.state = SessionState.SEARCHING
                for command in self.request.commands():
                    self._send(command)
            return

        if self.state is SessionState.SEARCHING:
            if line.startswith("info"):
                self._latest.update(line)
            elif line.startswith("bestmove"):
                bestmove, ponder = parse_bestmove(line)
                self._resolve(
                    AnalysisResult(
                        bestmove=bestmove,
                        ponder=ponder,
                        evaluation=self._latest.evaluation,
                        depth=self._latest.depth,
                        nodes=self._latest.nodes,
                        pv=self._latest.pv,
                    )
                )

    def _send(self, command: str) -> None:
        if self.state.is_terminal:
            return
        _log.debug("engine< %s", command)
        self.sent.append(command)
        try:
            self._process.stdin.write(f"{command}\n".encode())
        except (BrokenPipeError, ConnectionResetError) as exc:
            self._fail(EngineStreamError(f"Engine closed its input: {exc}"))

    # -----------------------------------------------------------------------
    # Resolution
    # -----------------------------------------------------------------------

    def _on_timeout(self) -> None:
        self._fail(EngineTimeout(f"Engine timed out after {self.request.timeout_ms} ms."))

    def _resolve(self, result: AnalysisResult) -> None:
        self._settle(SessionState.RESOLVED, result=result)

    def _fail(self, error: EngineError) -> None:
        if self._settle(SessionState.FAILED, error=error):
            _log.warning("Engine session failed: %s", error)

    def _settle(
        self,
        state: SessionState,
        result: AnalysisResult | None = None,
        error: EngineError | None = None,
    ) -> bool:
        """
        Move to a terminal state exactly once.

        Returns False (and does nothing) if the session already settled.
        """
        if self.state.is_terminal:
            return False
        self.state = state
        self._kill()
        # A cancelled caller cancels the future along with it.
        if not self._outcome.done():
            if error is not None:
                self._outcome.set_exception(error)
            else:
                self._outcome.set_result(result)
        return True

    def _kill(self) -> None:
        if self._process is None or self._process.returncode is not None:
            return
        try:
            self._process.kill()
        except ProcessLookupError:
            pass


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def analyze_position(request: AnalysisRequest) -> AnalysisResult:
    """
    Analyse a position with the locally installed engine.

    Checks that the engine binary exists before spawning anything, then runs
    a fresh UciSession.

    Args:
        request: Position, moves and search limits.

    Returns:
        The AnalysisResult for the position.

    Raises:
        EngineNotInstalled: No binary at the resolved path; no process started.
        EngineError:        Any session failure (see UciSession.run).
    """
    engine = locator.status()
    if not engine.available:
        raise EngineNotInstalled(
            f"Stockfish engine not found. Download it or set {ENGINE_PATH_ENV}."
        )
    return await UciSession(request, engine.path).run()
