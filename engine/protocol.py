"""
UCI text helpers: framing engine output and reading and writing commands.

The engine speaks a line-oriented protocol. We only need a small slice of it
as a client:

    Client -> Engine: uci, isready, position, go
    Engine -> Client: uciok, readyok, info ..., bestmove <move> [ponder <move>]

Everything here is pure: no process handling, no I/O. The session driver in
engine/session.py owns the subprocess and calls into these helpers, which
keeps the protocol rules testable with plain strings.

Info lines carry many optional fields in any order, for example:

    info depth 18 seldepth 24 multipv 1 score cp 35 nodes 412034 nps 1203112
         time 342 pv e2e4 e7e5 g1f3

Each field we track is matched independently; a line may update any subset.
"""

import codecs
import re
from dataclasses import dataclass

from engine.constants import STARTPOS

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# \b keeps "seldepth" from matching as "depth".
_SCORE_RE = re.compile(r"\bscore\s+(cp|mate)\s+(-?\d+)")
_DEPTH_RE = re.compile(r"\bdepth\s+(\d+)")
_NODES_RE = re.compile(r"\bnodes\s+(\d+)")
_PV_RE = re.compile(r"\bpv\s+(.+)$")
_BESTMOVE_RE = re.compile(r"^bestmove\s+(\S+)(?:\s+ponder\s+(\S+))?")

_NEWLINE_RE = re.compile(r"\r?\n")

# A command is one line; anything interpolated into it must stay on that line.
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_MOVE_RE = re.compile(r"[a-h][1-8][a-h][1-8][qrbn]?|0000")


# ---------------------------------------------------------------------------
# Output framing
# ---------------------------------------------------------------------------


class LineBuffer:
    """
    Reassembles complete lines from arbitrarily split stdout chunks.

    Pipes deliver bytes in whatever sizes the OS chooses, so a single read may
    end halfway through a line (or halfway through a multi-byte character).
    feed() returns only the lines that are complete; the trailing partial line
    is held back until a later chunk finishes it.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> list[str]:
        """
        Add a chunk of raw output and return the lines it completed.

        Lines are split on LF or CRLF and stripped of surrounding whitespace.
        Empty lines are dropped.

        Args:
            chunk: Bytes read from the engine's stdout.

        Returns:
            Complete lines in arrival order (possibly empty).
        """
        self._pending += self._decoder.decode(chunk)
        parts = _NEWLINE_RE.split(self._pending)
        self._pending = parts.pop()
        return [line.strip() for line in parts if line.strip()]

    @property
    def pending(self) -> str:
        """The partial line held back so far."""
        return self._pending


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Evaluation:
    """
    A score reported by the engine.

    Attributes:
        type:    "cp" for centipawns or "mate" for a forced mate.
        value:   Centipawns, or moves to mate. Sign as reported by the engine
                 (side to move's perspective).
        display: Human-readable form: "+0.35", "-1.20", "M3", "M-2".
    """

    type: str
    value: int
    display: str

    def to_dict(self) -> dict:
        return {"type": self.type, "value": self.value, "display": self.display}


def format_score(kind: str, value: int) -> str:
    """Render a score the way the analysis panel shows it."""
    if kind == "mate":
        return f"M{value}"
    return f"{value / 100:+.2f}"


def parse_score(line: str) -> Evaluation | None:
    """Extract the score field of an info line, if it has one."""
    match = _SCORE_RE.search(line)
    if match is None:
        return None
    kind = match.group(1)
    value = int(match.group(2))
    return Evaluation(type=kind, value=value, display=format_score(kind, value))


def parse_depth(line: str) -> int | None:
    match = _DEPTH_RE.search(line)
    return int(match.group(1)) if match else None


def parse_nodes(line: str) -> int | None:
    match = _NODES_RE.search(line)
    return int(match.group(1)) if match else None


def parse_pv(line: str) -> str | None:
    """Return everything after the "pv" marker, as raw move tokens."""
    match = _PV_RE.search(line)
    return match.group(1) if match else None


def parse_bestmove(line: str) -> tuple[str | None, str | None]:
    """
    Split a bestmove line into (best move, ponder move).

    Either element may be None: the ponder clause is optional, and a bare
    "bestmove" with nothing after it yields (None, None).
    """
    match = _BESTMOVE_RE.match(line)
    if match is None:
        return None, None
    return match.group(1), match.group(2)


# ---------------------------------------------------------------------------
# Command composition
# ---------------------------------------------------------------------------


def check_fen(fen: str) -> str:
    """
    Return fen unchanged if it is safe to put in a position command.

    Raises:
        ValueError: fen is empty or contains a control character (a newline
                    would smuggle further commands to the engine).
    """
    if not fen or _CONTROL_RE.search(fen):
        raise ValueError(f"invalid position: {fen!r}")
    return fen


def check_move(token: str) -> str:
    """Return token unchanged if it is a UCI move such as "e2e4" or "e7e8q"."""
    if not _MOVE_RE.fullmatch(token):
        raise ValueError(f"invalid move token: {token!r}")
    return token


def position_command(fen: str, moves: list[str] | tuple[str, ...] = ()) -> str:
    """
    Build the "position" command for a board and the moves played on it.

    Args:
        fen:   STARTPOS for the initial layout, otherwise a full FEN string.
        moves: Move tokens in UCI notation, applied in order. When empty the
               "moves" clause is omitted entirely.

    Returns:
        e.g. "position startpos moves e2e4 e7e5" or "position fen <FEN>".

    Raises:
        ValueError: fen or a move token fails check_fen / check_move.
    """
    check_fen(fen)
    for token in moves:
        check_move(token)
    base = "position startpos" if fen == STARTPOS else f"position fen {fen}"
    if moves:
        return f"{base} moves {' '.join(moves)}"
    return base


def go_command(depth: int | None, movetime: int) -> str:
    """Build the "go" command. A fixed depth takes precedence over movetime."""
    if depth:
        return f"go depth {depth}"
    return f"go movetime {movetime}"
