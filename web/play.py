"""
Applying the engine's choice to a real board.

The adapter never checks legality; it just relays what the engine said. When
the server plays a move on the client's behalf, python-chess is the judge,
and a move it rejects becomes an IllegalEngineMove.
"""

import chess

from engine.errors import IllegalEngineMove


def parse_engine_move(board: chess.Board, uci: str | None) -> chess.Move:
    """
    Turn the engine's bestmove token into a legal move on board.

    A pawn move to the last rank without a promotion suffix is promoted to a
    queen, matching what the browser client does with a bare "e7e8".

    Args:
        board: Position the engine analysed. Not modified.
        uci:   The bestmove token ("e2e4", "e7e8q", "(none)", or None).

    Returns:
        The legal chess.Move.

    Raises:
        IllegalEngineMove: The token is missing, malformed, or illegal here.
    """
    if not uci:
        raise IllegalEngineMove("Stockfish returned no move.")
    try:
        move = chess.Move.from_uci(uci)
    except ValueError as exc:
        raise IllegalEngineMove(f"Stockfish returned an illegal move: {uci}") from exc

    if move.promotion is None and board.piece_type_at(move.from_square) == chess.PAWN:
        if chess.square_rank(move.to_square) in (0, 7):
            move = chess.Move(move.from_square, move.to_square, promotion=chess.QUEEN)

    if move not in board.legal_moves:
        raise IllegalEngineMove(f"Stockfish returned an illegal move: {uci}")
    return move


def game_result(board: chess.Board) -> str | None:
    return board.result() if board.is_game_over() else None
