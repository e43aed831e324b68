"""Shared pytest fixtures: scripted fake UCI engines."""

from __future__ import annotations

import itertools
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import pytest

from engine.constants import ENGINE_PATH_ENV

# Minimal UCI responder. Logs every command it receives, answers the
# handshake, and replies to "go" with whatever lines the test scripted.
_ENGINE_SOURCE = """\
#!{python}
import json
import sys
import time

CONFIG = json.loads({config!r})
LOG = {log!r}


def send(text):
    sys.stdout.write(text)
    sys.stdout.flush()


if CONFIG.get("stderr"):
    sys.stderr.write(CONFIG["stderr"])
    sys.stderr.flush()

for raw in sys.stdin:
    command = raw.strip()
    with open(LOG, "a") as log:
        log.write(command + "\\n")
    if command == "uci":
        for chunk in CONFIG.get("uci_chunks", ["id name Fake\\nuciok\\n"]):
            send(chunk)
            time.sleep(0.01)
    elif command == "isready":
        send("readyok\\n")
    elif command.startswith("go"):
        if CONFIG.get("exit_on_go"):
            sys.exit(0)
        for line in CONFIG.get("go", ["bestmove e2e4"]):
            send(line + "\\n")
        if CONFIG.get("stderr_after_go"):
            time.sleep(0.05)
            sys.stderr.write(CONFIG["stderr_after_go"])
            sys.stderr.flush()
"""


@dataclass
class FakeEngine:
    path: Path
    log: Path

    def commands(self) -> list[str]:
        """Commands the engine received, in order."""
        if not self.log.exists():
            return []
        return self.log.read_text().splitlines()


@pytest.fixture
def make_engine(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Callable[..., FakeEngine]:
    """
    Factory for fake engines.

    Keyword arguments configure the script:
        go:         lines printed in reply to "go" (default: a bare bestmove)
        uci_chunks: raw stdout writes in reply to "uci", flushed one by one
        stderr:     text written to stderr at startup
        stderr_after_go: text written to stderr shortly after the go reply
        exit_on_go: exit instead of replying to "go"

    The most recently created engine is also installed as STOCKFISH_PATH.
    """
    counter = itertools.count()

    def make(**config) -> FakeEngine:
        n = next(counter)
        path = tmp_path / f"fake-engine-{n}"
        log = tmp_path / f"fake-engine-{n}.log"
        path.write_text(
            _ENGINE_SOURCE.format(
                python=sys.executable,
                config=json.dumps(config),
                log=str(log),
            )
        )
        path.chmod(0o755)
        monkeypatch.setenv(ENGINE_PATH_ENV, str(path))
        return FakeEngine(path=path, log=log)

    return make


@pytest.fixture
def no_engine(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point STOCKFISH_PATH at a file that does not exist."""
    missing = tmp_path / "missing" / "stockfish"
    monkeypatch.setenv(ENGINE_PATH_ENV, str(missing))
    return missing
