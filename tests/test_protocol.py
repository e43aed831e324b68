"""
Unit Tests for the UCI protocol helpers

Tests for the pure text layer, focusing on:
    - Line framing: partial lines, CRLF, split multi-byte characters
    - Info parsing: score, depth, nodes, pv extracted independently
    - Bestmove parsing: with and without ponder
    - Command composition: position and go
"""

import pytest

from engine.constants import STARTPOS
from engine.protocol import (
    Evaluation,
    LineBuffer,
    check_fen,
    check_move,
    format_score,
    go_command,
    parse_bestmove,
    parse_depth,
    parse_nodes,
    parse_pv,
    parse_score,
    position_command,
)


class TestLineBuffer:
    """Tests for reassembling lines from stdout chunks."""

    def test_complete_lines(self):
        buffer = LineBuffer()
        assert buffer.feed(b"uciok\nreadyok\n") == ["uciok", "readyok"]
        assert buffer.pending == ""

    def test_partial_line_held_back(self):
        buffer = LineBuffer()
        assert buffer.feed(b"best") == []
        assert buffer.pending == "best"
        assert buffer.feed(b"move e2e4\n") == ["bestmove e2e4"]

    def test_crlf_split_across_chunks(self):
        buffer = LineBuffer()
        assert buffer.feed(b"uciok\r") == []
        assert buffer.feed(b"\nreadyok\r\n") == ["uciok", "readyok"]

    def test_blank_lines_dropped(self):
        buffer = LineBuffer()
        assert buffer.feed(b"\n\n  \nuciok\n") == ["uciok"]

    def test_multibyte_character_split(self):
        buffer = LineBuffer()
        encoded = "id name Stöckfish\n".encode()
        split = encoded.index("ö".encode()) + 1
        assert buffer.feed(encoded[:split]) == []
        assert buffer.feed(encoded[split:]) == ["id name Stöckfish"]


class TestInfoParsing:
    """Tests for extracting fields from info lines."""

    LINE = (
        "info depth 18 seldepth 24 multipv 1 score cp 35 nodes 412034 "
        "nps 1203112 time 342 pv e2e4 e7e5 g1f3"
    )

    @pytest.mark.parametrize(
        "line, expected",
        [
            ("info depth 10 score cp 35", Evaluation("cp", 35, "+0.35")),
            ("info depth 10 score cp -120", Evaluation("cp", -120, "-1.20")),
            ("info depth 10 score cp 0", Evaluation("cp", 0, "+0.00")),
            ("info depth 30 score mate 3", Evaluation("mate", 3, "M3")),
            ("info depth 30 score mate -2", Evaluation("mate", -2, "M-2")),
        ],
    )
    def test_parse_score(self, line, expected):
        assert parse_score(line) == expected

    def test_score_with_bound(self):
        """Lowerbound/upperbound markers come after the value."""
        assert parse_score("info depth 9 score cp 41 lowerbound nodes 10").value == 41

    def test_no_score(self):
        assert parse_score("info depth 5 currmove e2e4 currmovenumber 1") is None

    def test_depth_ignores_seldepth(self):
        assert parse_depth("info seldepth 24 depth 18") == 18
        assert parse_depth("info seldepth 24") is None

    def test_full_line(self):
        assert parse_depth(self.LINE) == 18
        assert parse_nodes(self.LINE) == 412034
        assert parse_pv(self.LINE) == "e2e4 e7e5 g1f3"
        assert parse_score(self.LINE).display == "+0.35"

    def test_string_info_has_no_fields(self):
        line = "info string NNUE evaluation using nn-1111cefa1111.nnue"
        assert parse_score(line) is None
        assert parse_nodes(line) is None

    def test_format_score(self):
        assert format_score("cp", 1234) == "+12.34"
        assert format_score("cp", -5) == "-0.05"
        assert format_score("mate", 1) == "M1"

    def test_evaluation_to_dict(self):
        assert Evaluation("cp", 35, "+0.35").to_dict() == {
            "type": "cp",
            "value": 35,
            "display": "+0.35",
        }


class TestBestmove:
    """Tests for the terminal line."""

    def test_with_ponder(self):
        assert parse_bestmove("bestmove e2e4 ponder e7e5") == ("e2e4", "e7e5")

    def test_without_ponder(self):
        assert parse_bestmove("bestmove g1f3") == ("g1f3", None)

    def test_none_move(self):
        assert parse_bestmove("bestmove (none)") == ("(none)", None)

    def test_bare(self):
        assert parse_bestmove("bestmove") == (None, None)


class TestCommands:
    """Tests for composing position and go commands."""

    def test_startpos_without_moves(self):
        assert position_command(STARTPOS) == "position startpos"

    def test_startpos_with_moves(self):
        assert (
            position_command(STARTPOS, ["e2e4", "e7e5", "g1f3"])
            == "position startpos moves e2e4 e7e5 g1f3"
        )

    def test_fen(self):
        fen = "8/5pk1/6p1/7p/7P/6P1/5PK1/8 w - - 0 1"
        assert position_command(fen) == f"position fen {fen}"
        assert position_command(fen, ("g2f3",)) == f"position fen {fen} moves g2f3"

    def test_go_movetime(self):
        assert go_command(None, 600) == "go movetime 600"

    def test_go_depth_wins(self):
        assert go_command(12, 5000) == "go depth 12"

    def test_go_zero_depth_is_absent(self):
        assert go_command(0, 900) == "go movetime 900"

    @pytest.mark.parametrize(
        "moves",
        [
            ["e2e4\nsetoption name Threads value 1024"],
            ["e2e4", "quit"],
            ["e2e4 e7e5"],
            ["e7e8k"],
            ["e2e4\n"],
        ],
    )
    def test_rejects_unsafe_moves(self, moves):
        with pytest.raises(ValueError, match="invalid move token"):
            position_command(STARTPOS, moves)

    @pytest.mark.parametrize(
        "fen",
        [
            "startpos\nsetoption name Debug Log File value /tmp/x",
            "8/8/8/8/8/8/8/k6K w - - 0 1\r\ngo infinite",
            "8/8/8/8/8/8/8/k6K w - - 0 1\x00",
            "",
        ],
    )
    def test_rejects_unsafe_fen(self, fen):
        with pytest.raises(ValueError, match="invalid position"):
            position_command(fen)

    def test_accepts_promotion_and_null_move(self):
        assert check_move("e7e8q") == "e7e8q"
        assert check_move("0000") == "0000"
        assert check_fen(STARTPOS) == STARTPOS
