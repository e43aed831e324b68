"""
Adapter constants: protocol markers, time budgets, and engine locations.

Every number and default the engine adapter and the web layer rely on lives
here so that nothing downstream needs a magic value. Values that an operator
may want to override at deploy time are read from the environment by the
modules that use them (see ENGINE_PATH_ENV and friends); this module only
names the variables and their fallbacks.
"""

import os
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

# Repository root: the directory holding engine/, web/ and tools/.
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Environment variable that overrides the engine binary location.
ENGINE_PATH_ENV = "STOCKFISH_PATH"

_ENGINE_BINARY = "stockfish.exe" if os.name == "nt" else "stockfish"
DEFAULT_ENGINE_PATH = PROJECT_ROOT / "bin" / _ENGINE_BINARY

# Where to get an engine when none is installed. Reported by the status
# endpoint; the adapter never downloads anything itself.
STOCKFISH_WINDOWS_URL = (
    "https://github.com/official-stockfish/Stockfish/releases/download/"
    "sf_17.1/stockfish-windows-x86-64.zip"
)
STOCKFISH_LINUX_URL = (
    "https://github.com/official-stockfish/Stockfish/releases/download/"
    "sf_17.1/stockfish-ubuntu-x86-64-avx2.tar"
)
DOWNLOAD_URL = STOCKFISH_WINDOWS_URL if sys.platform == "win32" else STOCKFISH_LINUX_URL

# Built browser frontend served by the web app when present.
FRONTEND_DIST_ENV = "FRONTEND_DIST"
DEFAULT_FRONTEND_DIST = PROJECT_ROOT / "Frontend" / "dist"

# ---------------------------------------------------------------------------
# Search parameters
# ---------------------------------------------------------------------------

# Position marker meaning "the initial layout". Anything else is a FEN.
STARTPOS = "startpos"

# Search time when the caller gives neither depth nor movetime.
DEFAULT_MOVETIME_MS = 600

# Session deadline = max(TIMEOUT_FLOOR_MS, movetime + TIMEOUT_SLACK_MS).
# Computed from movetime even for depth-bounded searches.
TIMEOUT_FLOOR_MS = 250
TIMEOUT_SLACK_MS = 1500

# Bytes requested from the engine's stdout per read.
READ_CHUNK_SIZE = 4096

# Named engine strengths offered to the browser client, as movetime in ms.
ENGINE_LEVELS: dict[str, int] = {
    "mild": 400,
    "medium": 900,
    "aged": 1400,
}
DEFAULT_LEVEL = "medium"

# ---------------------------------------------------------------------------
# Web layer
# ---------------------------------------------------------------------------

# Optional cap on simultaneous engine subprocesses; unset or 0 = unbounded.
MAX_SESSIONS_ENV = "ENGINE_MAX_SESSIONS"

# Presentation fixture returned by GET /api/moves.
SAMPLE_MOVES = [
    "1. e4 e5",
    "2. Nf3 Nc6",
    "3. Bb5 a6",
    "4. Ba4 Nf6",
    "5. O-O Be7",
    "6. Re1 b5",
    "7. Bb3 d6",
    "8. c3 O-O",
]
