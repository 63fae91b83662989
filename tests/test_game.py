from __future__ import annotations

import chess
import pytest

from hpchess import EngineBusy, Game, GameState, HPLedger, IllegalMove, LedgerDesync, NoLegalMoves
from hpchess.ledger import LedgerEntry

PAWN_VS_KNIGHT = "4k3/8/8/3n4/4P3/8/8/4K3 w - - 0 1"


def _fresh_ledger(board: chess.Board) -> dict:
    ledger = HPLedger()
    ledger.initialize_from_position(board)
    return ledger.as_dict()


def test_new_game_snapshot(game: Game):
    snap = game.snapshot()
    assert snap["fen"] == chess.STARTING_FEN
    assert snap["turn"] == "white"
    assert snap["state"] == "awaiting_move"
    assert len(snap["hp"]) == 32
    assert snap["hp"]["d8"] == 3
    assert snap["pending_capture"] is None
    assert snap["status"] == "White to move"


def test_quiet_move_passes_turn(game: Game):
    result = game.push_uci("e2e4")
    assert result.resolved and result.turn_passed and not result.capture
    assert game.board.turn == chess.BLACK
    assert game.hp_at("e4") == 1
    assert game.hp_at("e2") == 0


def test_unfinished_capture_is_taken_back(make_game):
    game = make_game(PAWN_VS_KNIGHT)
    result = game.push_uci("e4d5")

    assert result.capture is True
    assert result.resolved is False
    assert result.turn_passed is True
    assert game.state == GameState.PENDING_CAPTURE
    assert game.board.piece_at(chess.E4) == chess.Piece(chess.PAWN, chess.WHITE)
    assert game.board.piece_at(chess.D5) == chess.Piece(chess.KNIGHT, chess.BLACK)
    assert game.board.turn == chess.BLACK
    assert game.hp_at("d5") == 1
    assert game.pending_description() == {"target": "d5", "piece": "knight", "hp": 1}
    assert "under attack (HP: 1)" in game.snapshot()["status"]
    game.ledger.verify(game.board)


def test_second_hit_finishes_the_capture(make_game):
    game = make_game(PAWN_VS_KNIGHT)
    game.push_uci("e4d5")
    game.push_uci("e8e7")
    assert game.pending is None
    assert game.hp_at("d5") == 1

    result = game.push_uci("e4d5")
    assert result.resolved is True
    assert game.state == GameState.AWAITING_MOVE
    assert game.board.piece_at(chess.D5) == chess.Piece(chess.PAWN, chess.WHITE)
    assert game.ledger.kind_at(chess.D5) == chess.PAWN
    assert game.hp_at("e4") == 0
    game.ledger.verify(game.board)


def test_attacker_in_check_keeps_the_move(make_game):
    game = make_game("4k3/8/8/8/8/3n4/2P5/4K3 w - - 0 1")
    assert game.board.is_check()

    result = game.push_uci("c2d3")
    assert result.resolved is False
    assert result.turn_passed is False
    assert game.board.turn == chess.WHITE
    assert game.hp_at("d3") == 1

    assert game.push_uci("c2d3").resolved is True
    assert game.board.turn == chess.BLACK
    assert not game.board.is_check()


def test_illegal_move_is_rejected(game: Game):
    with pytest.raises(IllegalMove):
        game.push_uci("e2e5")
    with pytest.raises(IllegalMove):
        game.push_uci("zz")
    with pytest.raises(IllegalMove):
        game.play(chess.Move.from_uci("e7e5"))
    assert game.board.fen() == chess.STARTING_FEN
    assert len(game.ledger) == 32


def test_auto_queen_promotion(make_game):
    game = make_game("4k3/P7/8/8/8/8/8/4K3 w - - 0 1")
    game.push_uci("a7a8")
    assert game.board.piece_at(chess.A8) == chess.Piece(chess.QUEEN, chess.WHITE)
    assert game.ledger.kind_at(chess.A8) == chess.QUEEN


def test_undo_two_plies_restores_start(game: Game):
    game.push_uci("e2e4")
    game.push_uci("e7e5")
    assert game.undo() == 2
    assert game.board.fen() == chess.STARTING_FEN
    assert game.ledger.as_dict() == _fresh_ledger(chess.Board())


def test_undo_from_three_plies_leaves_one(game: Game):
    for uci in ("e2e4", "e7e5", "g1f3"):
        game.push_uci(uci)
    assert game.undo() == 2
    assert game.board.move_stack == [chess.Move.from_uci("e2e4")]
    assert game.ledger.as_dict() == _fresh_ledger(game.board)
    game.ledger.verify(game.board)


def test_undo_single_and_empty(game: Game):
    game.push_uci("d2d4")
    assert game.undo() == 1
    assert game.board.fen() == chess.STARTING_FEN
    assert game.undo() == 0


def test_undo_heals_and_clears_pending(make_game):
    game = make_game(PAWN_VS_KNIGHT)
    game.push_uci("e4d5")
    assert game.undo() == 1
    assert game.pending is None
    assert game.state == GameState.AWAITING_MOVE
    assert game.hp_at("d5") == 2
    assert game.board.fen() == PAWN_VS_KNIGHT


def test_reset_rebuilds_everything(make_game):
    game = make_game(PAWN_VS_KNIGHT)
    game.push_uci("e4d5")
    game.reset()
    assert game.pending is None
    assert game.board.fen() == chess.STARTING_FEN
    assert game.ledger.as_dict() == _fresh_ledger(chess.Board())


def test_engine_move_is_settled(game: Game):
    game.push_uci("e2e4")
    result = game.engine_move()
    assert result.turn_passed
    assert game.board.turn == chess.WHITE
    assert game.thinking is False
    game.ledger.verify(game.board)


def test_engine_thinking_flag_blocks_moves(game: Game):
    seen = []

    class Probe:
        def find_best_move(self, board, depth):
            seen.append((game.thinking, depth))
            with pytest.raises(EngineBusy):
                game.play(chess.Move.from_uci("e2e4"))
            return chess.Move.from_uci("d2d4")

    game.ai = Probe()
    game.engine_move()
    assert seen == [(True, 2)]
    assert game.board.piece_at(chess.D4) is not None


def test_engine_without_moves_raises(game: Game):
    for uci in ("f2f3", "e7e5", "g2g4", "d8h4"):
        game.push_uci(uci)
    assert game.state == GameState.GAME_OVER
    snap = game.snapshot()
    assert snap["checkmate"] is True
    assert snap["result"] == "0-1"
    assert snap["status"] == "Game over, White is in checkmate."
    with pytest.raises(NoLegalMoves):
        game.engine_move()


def test_difficulty_is_validated(game: Game):
    game.set_difficulty(3)
    assert game.difficulty == 3
    with pytest.raises(ValueError):
        game.set_difficulty(4)
    assert game.difficulty == 3


def test_desync_rebuilds_and_reports(game: Game):
    game.ledger._entries[chess.E4] = LedgerEntry(chess.PAWN, 1)
    with pytest.raises(LedgerDesync):
        game.push_uci("g1f3")
    game.ledger.verify(game.board)
    assert game.hp_at("e4") == 0


def test_ledger_mirrors_board_through_a_game(game: Game):
    game.set_difficulty(1)
    for uci in ("e2e4", "d7d5", "e4d5", "d8d5", "b1c3", "d5a5"):
        game.push_uci(uci)
        game.ledger.verify(game.board)
    game.engine_move()
    game.ledger.verify(game.board)
    game.undo()
    game.ledger.verify(game.board)


class _HitBack:
    """Engine stand-in that strikes ``uci`` while it is legal."""

    def __init__(self, uci: str) -> None:
        self.move = chess.Move.from_uci(uci)

    def find_best_move(self, board, depth):
        if self.move in board.legal_moves:
            return self.move
        return next(iter(board.legal_moves), None)


def test_engine_in_check_keeps_the_turn_until_its_hit_lands(make_game):
    game = make_game("4k3/6p1/8/3N4/8/8/8/4K3 w - - 0 1")
    game.ai = _HitBack("g7f6")
    game.push_uci("d5f6")
    assert game.board.is_check()

    first = game.engine_move()
    assert first.resolved is False
    assert first.turn_passed is False
    assert game.board.turn == chess.BLACK
    assert game.hp_at("f6") == 1

    second = game.engine_move()
    assert second.resolved is True
    assert second.turn_passed is True
    assert game.board.piece_at(chess.F6) == chess.Piece(chess.PAWN, chess.BLACK)
    game.ledger.verify(game.board)


def test_missing_entry_during_settle_rebuilds_ledger(make_game):
    game = make_game(PAWN_VS_KNIGHT)
    game.push_uci("e4d5")
    assert game.pending is not None
    del game.ledger._entries[chess.E8]

    with pytest.raises(LedgerDesync):
        game.push_uci("e8e7")
    assert game.board.move_stack[-1] == chess.Move.from_uci("e8e7")
    assert game.pending is None
    assert game.hp_at("e7") == 1
    assert game.hp_at("d5") == 2
    game.ledger.verify(game.board)


def test_pgn_records_moves(game: Game):
    game.push_uci("e2e4")
    game.push_uci("e7e5")
    assert game.pgn().split() == ["1.", "e4", "e5", "*"]
    assert game.snapshot()["pgn"] == game.pgn()


def test_pgn_shows_passed_turn(make_game):
    game = make_game(PAWN_VS_KNIGHT)
    game.push_uci("e4d5")
    game.push_uci("d5f6")
    assert game.pgn().split() == ["1.", "--", "Nf6", "*"]
