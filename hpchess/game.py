from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

import chess
import chess.pgn

from .ai import AIPlayer
from .config import Config, validate_difficulty
from .errors import EngineBusy, IllegalMove, LedgerDesync, NoLegalMoves
from .ledger import AppliedMove, HPLedger

logger = logging.getLogger(__name__)


class GameState(str, enum.Enum):
    AWAITING_MOVE = "awaiting_move"
    PENDING_CAPTURE = "pending_capture"
    GAME_OVER = "game_over"


@dataclass
class PendingCapture:
    target: chess.Square
    attacked_kind: chess.PieceType


@dataclass
class MoveResult:
    move: str
    capture: bool
    resolved: bool
    turn_passed: bool
    state: GameState


class Game:
    """Keeps the python-chess board and the HP ledger in lockstep.

    Every applied move is settled against the ledger exactly once. A capture
    that leaves the defender alive is taken back on the board, so the board
    never records an unfinished capture; the ledger keeps the damage.
    """

    def __init__(
        self,
        starting_fen: Optional[str] = None,
        config: Optional[Config] = None,
        ai: Optional[AIPlayer] = None,
    ) -> None:
        self.config = config or Config()
        self.difficulty = validate_difficulty(self.config.difficulty)
        self.ai = ai or AIPlayer(easy_random_probability=self.config.easy_random_probability)
        self.ledger = HPLedger()
        self.thinking: bool = False
        self.reset(starting_fen)

    def reset(self, starting_fen: Optional[str] = None) -> None:
        if self.thinking:
            raise EngineBusy("Engine is thinking")
        self.board = chess.Board(fen=starting_fen) if starting_fen else chess.Board()
        self.pending: Optional[PendingCapture] = None
        self.last_move: Optional[chess.Move] = None
        self.last_move_was_capture: bool = False
        self.ledger.initialize_from_position(self.board)
        self.state = self._settled_state()

    def set_difficulty(self, level: int) -> None:
        self.difficulty = validate_difficulty(level)

    def get_full_fen(self) -> str:
        return self.board.fen()

    def get_turn_color(self) -> str:
        return "white" if self.board.turn == chess.WHITE else "black"

    def get_legal_moves(self) -> List[str]:
        return [move.uci() for move in self.board.legal_moves]

    def is_game_over(self) -> bool:
        return self.board.is_game_over(claim_draw=True)

    def get_result(self) -> Optional[str]:
        if not self.is_game_over():
            return None
        # Returns result like '1-0', '0-1', or '1/2-1/2'
        return self.board.result(claim_draw=True)

    def hp_at(self, square: Union[str, chess.Square]) -> int:
        if isinstance(square, str):
            square = chess.parse_square(square)
        return self.ledger.get_hp(square)

    def push_uci(self, uci: str) -> MoveResult:
        try:
            move = chess.Move.from_uci(uci)
        except ValueError as exc:
            raise IllegalMove(f"Illegal move: {uci}") from exc
        if move in self.board.legal_moves:
            return self.play(move)

        # Auto-queen promotion if user sends e7e8 or similar without suffix
        if len(uci) == 4:
            piece = self.board.piece_at(move.from_square)
            if piece and piece.piece_type == chess.PAWN:
                to_rank = chess.square_rank(move.to_square)
                if (piece.color == chess.WHITE and to_rank == 7) or (
                    piece.color == chess.BLACK and to_rank == 0
                ):
                    promo_move = chess.Move(move.from_square, move.to_square, promotion=chess.QUEEN)
                    if promo_move in self.board.legal_moves:
                        return self.play(promo_move)

        raise IllegalMove(f"Illegal move: {uci}")

    def play(self, move: chess.Move) -> MoveResult:
        """Apply a legal move and settle it against the HP ledger."""
        if self.thinking:
            raise EngineBusy("Engine is thinking")
        return self._apply(move)

    def engine_move(self) -> MoveResult:
        """Let the engine choose and play a move for the side to move."""
        if self.thinking:
            raise EngineBusy("Engine is thinking")
        self.thinking = True
        try:
            move = self.ai.find_best_move(self.board, self.difficulty)
        finally:
            self.thinking = False
        if move is None:
            raise NoLegalMoves(f"{self.get_turn_color().capitalize()} has no legal moves")
        logger.info("Engine (depth %d) plays %s", self.difficulty, move.uci())
        return self._apply(move)

    def undo(self) -> int:
        """Take back the last two plies (one if only one was played).

        Returns the number of plies removed.
        """
        if self.thinking:
            raise EngineBusy("Engine is thinking")
        plies = min(2, len(self.board.move_stack))
        for _ in range(plies):
            self.board.pop()
        self.pending = None
        self.last_move = self.board.move_stack[-1] if self.board.move_stack else None
        self.last_move_was_capture = False
        self.ledger.initialize_from_position(self.board)
        self.state = GameState.AWAITING_MOVE
        return plies

    def _apply(self, move: chess.Move) -> MoveResult:
        if move not in self.board.legal_moves:
            raise IllegalMove(f"Illegal move: {move.uci()}")

        applied = AppliedMove.from_board(self.board, move)
        self.board.push(move)
        try:
            resolved = self.ledger.settle(applied)
        except LedgerDesync:
            self._rebuild_ledger()
            raise
        self.last_move = move
        self.last_move_was_capture = applied.is_capture
        turn_passed = True

        if resolved:
            self.pending = None
            self.state = self._settled_state()
        else:
            # Unfinished capture: the board forgets it, the ledger keeps the damage.
            self.board.pop()
            self.pending = PendingCapture(target=applied.capture_square, attacked_kind=applied.captured)
            if self.board.is_check():
                # Passing would leave the king en prise; the attacker moves again.
                turn_passed = False
            else:
                self.board.push(chess.Move.null())
            self.state = GameState.GAME_OVER if self.is_game_over() else GameState.PENDING_CAPTURE

        self._check_ledger()
        return MoveResult(
            move=move.uci(),
            capture=applied.is_capture,
            resolved=resolved,
            turn_passed=turn_passed,
            state=self.state,
        )

    def _settled_state(self) -> GameState:
        return GameState.GAME_OVER if self.is_game_over() else GameState.AWAITING_MOVE

    def _check_ledger(self) -> None:
        try:
            self.ledger.verify(self.board)
        except LedgerDesync:
            self._rebuild_ledger()
            raise

    def _rebuild_ledger(self) -> None:
        logger.error("HP ledger desynchronised at %s, rebuilding", self.board.fen())
        self.pending = None
        self.ledger.initialize_from_position(self.board)
        self.state = self._settled_state()

    def pending_description(self) -> Optional[Dict[str, object]]:
        if self.pending is None:
            return None
        return {
            "target": chess.square_name(self.pending.target),
            "piece": chess.piece_name(self.pending.attacked_kind),
            "hp": self.ledger.get_hp(self.pending.target),
        }

    def status_text(self) -> str:
        side = self.get_turn_color().capitalize()
        pending = self.pending_description()
        if pending is not None:
            return f"{side} to move, {pending['piece']} on {pending['target']} under attack (HP: {pending['hp']})"
        outcome = self.board.outcome(claim_draw=True)
        if outcome is not None:
            if outcome.termination == chess.Termination.CHECKMATE:
                return f"Game over, {side} is in checkmate."
            if outcome.termination == chess.Termination.STALEMATE:
                return f"Game over, {side} is in stalemate."
            if outcome.termination in (chess.Termination.THREEFOLD_REPETITION, chess.Termination.FIVEFOLD_REPETITION):
                return "Game over, drawn by repetition."
            if outcome.termination == chess.Termination.INSUFFICIENT_MATERIAL:
                return "Game over, drawn due to insufficient material."
            return "Game over, drawn by the 50-move rule."
        status = f"{side} to move"
        if self.board.is_check():
            status += f", {side} is in check"
        return status

    def pgn(self) -> str:
        """Movetext of the game so far; a passed turn shows as '--'."""
        record = chess.pgn.Game.from_board(self.board)
        exporter = chess.pgn.StringExporter(headers=False, variations=False, comments=False)
        return record.accept(exporter)

    def snapshot(self) -> Dict[str, object]:
        last_uci: Optional[str] = self.last_move.uci() if self.last_move else None

        in_check = self.board.is_check()
        check_square: Optional[str] = None
        if in_check:
            king_sq = self.board.king(self.board.turn)
            if king_sq is not None:
                check_square = chess.SQUARE_NAMES[king_sq]

        game_over = self.is_game_over()
        return {
            "fen": self.get_full_fen(),
            "pgn": self.pgn(),
            "turn": self.get_turn_color(),
            "legal_moves": self.get_legal_moves(),
            "state": self.state.value,
            "game_over": game_over,
            "result": self.get_result(),
            "checkmate": self.board.is_checkmate(),
            "stalemate": self.board.is_stalemate(),
            "draw": game_over and not self.board.is_checkmate(),
            "last_move": last_uci,
            "in_check": in_check,
            "check_square": check_square,
            "last_move_capture": self.last_move_was_capture,
            "hp": self.ledger.as_dict(),
            "pending_capture": self.pending_description(),
            "difficulty": self.difficulty,
            "status": self.status_text(),
        }
