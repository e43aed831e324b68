#!/usr/bin/env python3
"""
Batch analysis: run a fixed set of positions through the engine adapter.

Useful as a smoke test after installing or upgrading the engine binary: every
position goes through the same UciSession the web API uses, so a broken
binary, a missing STOCKFISH_PATH, or a hung engine shows up here first.

Usage: python -m tools.analyze [--movetime MS] [--depth N]
"""
import argparse
import asyncio
import sys

from engine.constants import DEFAULT_MOVETIME_MS, STARTPOS
from engine.errors import EngineError
from engine.session import AnalysisRequest, analyze_position

# Spanning opening, middlegame, and endgame. Same list every run so results
# stay comparable across engine versions.
POSITIONS = [
    ("Start",        STARTPOS, ()),
    ("After 1.e4",   STARTPOS, ("e2e4",)),
    ("Sicilian",     STARTPOS, ("e2e4", "c7c5")),
    ("Italian",      STARTPOS, ("e2e4", "e7e5", "g1f3", "b8c6", "f1c4")),
    ("London",       STARTPOS, ("d2d4", "d7d5", "g1f3", "g8f6", "c1f4")),
    ("Mid-open",     "r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4", ()),
    ("Complex mid",  "r2q1rk1/ppp2ppp/2np1n2/2b1p1B1/2B1P1b1/2NP1N2/PPP2PPP/R2Q1RK1 w - - 0 8", ()),
    ("Queen ending", "6k1/ppp2ppp/8/3p4/3P4/8/PPP2PPP/6K1 w - - 0 1", ()),
    ("Rook ending",  "8/5pk1/6p1/7p/7P/6P1/5PK1/8 w - - 0 1", ()),
    ("Pawn race",    "8/1p4k1/p7/P1K5/8/8/8/8 w - - 0 1", ()),
]


async def run_position(label: str, request: AnalysisRequest) -> dict:
    """Analyse one position and flatten the result into a table row."""
    try:
        result = await analyze_position(request)
    except EngineError as exc:
        return {"label": label, "move": "-", "depth": 0, "score": "-", "nodes": 0, "error": str(exc)}

    return {
        "label": label,
        "move": result.bestmove or "(none)",
        "depth": result.depth or 0,
        "score": result.evaluation.display if result.evaluation else "-",
        "nodes": result.nodes or 0,
        "error": None,
    }


async def run_all(depth: int | None, movetime: int) -> list[dict]:
    # Sequential on purpose: one engine at a time keeps node counts comparable.
    results = []
    for label, fen, moves in POSITIONS:
        request = AnalysisRequest(fen=fen, moves=moves, depth=depth, movetime=movetime)
        results.append(await run_position(label, request))
    return results


def main(argv: list[str] | None = None) -> int:
    """Run all positions and print a summary table. Returns the exit status."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--movetime", type=int, default=DEFAULT_MOVETIME_MS,
                        help="search time per position in ms")
    parser.add_argument("--depth", type=int, default=None,
                        help="fixed search depth (overrides --movetime)")
    args = parser.parse_args(argv)

    print(f"{'Position':<14} {'Move':<7} {'Depth':>5} {'Score':>7} {'Nodes':>10}")
    print("-" * 47)

    results = asyncio.run(run_all(args.depth, args.movetime))
    for r in results:
        print(
            f"{r['label']:<14} {r['move']:<7} {r['depth']:>5} {r['score']:>7} "
            f"{r['nodes']:>10,}"
        )
        if r["error"]:
            print(f"    error: {r['error']}")

    failed = sum(1 for r in results if r["error"])
    print("-" * 47)
    print(f"{len(results) - failed}/{len(results)} positions analysed")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
