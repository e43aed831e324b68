"""
Engine locator: where the UCI binary lives and whether it is there.

Neither function starts a process. status() touches the filesystem only to
check that the resolved path exists, which makes it safe to call from a
health or status endpoint on every page load.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from engine.constants import DEFAULT_ENGINE_PATH, DOWNLOAD_URL, ENGINE_PATH_ENV


@dataclass(frozen=True)
class EngineStatus:
    """
    Snapshot of engine availability.

    Attributes:
        available:    True if the resolved path exists on disk.
        path:         The resolved path (full, not sanitized).
        download_url: Where to get an engine binary.
    """

    available: bool
    path: str
    download_url: str


def resolve() -> str:
    """
    Return the engine binary path.

    The STOCKFISH_PATH environment variable wins when set and non-empty;
    otherwise the default bin/ location under the project root is used.
    The environment is read on every call, so changes take effect without
    a restart.
    """
    override = os.environ.get(ENGINE_PATH_ENV, "").strip()
    return override or str(DEFAULT_ENGINE_PATH)


def status() -> EngineStatus:
    """Report whether the engine binary is present, without spawning it."""
    path = resolve()
    return EngineStatus(
        available=Path(path).exists(),
        path=path,
        download_url=DOWNLOAD_URL,
    )
