"""Tests for the batch analysis command-line tool."""

from engine.errors import EngineTimeout
from engine.protocol import Evaluation
from engine.session import AnalysisResult
from tools import analyze


def test_all_positions_analysed(monkeypatch, capsys):
    seen = []

    async def fake_analyze(request):
        seen.append(request)
        return AnalysisResult(
            bestmove="e2e4",
            evaluation=Evaluation("cp", 12, "+0.12"),
            depth=9,
            nodes=12345,
        )

    monkeypatch.setattr(analyze, "analyze_position", fake_analyze)
    assert analyze.main(["--depth", "9"]) == 0

    assert len(seen) == len(analyze.POSITIONS)
    assert all(request.depth == 9 for request in seen)
    assert seen[1].moves == ("e2e4",)
    out = capsys.readouterr().out
    assert "12,345" in out
    assert "10/10 positions analysed" in out


def test_failures_reported(monkeypatch, capsys):
    async def fake_analyze(request):
        raise EngineTimeout("Engine timed out after 2100 ms.")

    monkeypatch.setattr(analyze, "analyze_position", fake_analyze)
    assert analyze.main([]) == 1
    out = capsys.readouterr().out
    assert "error: Engine timed out after 2100 ms." in out
    assert "0/10 positions analysed" in out
