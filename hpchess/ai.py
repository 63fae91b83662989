from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

import chess

from .evaluator import MATE_SCORE, Evaluator

logger = logging.getLogger(__name__)

INF = 10**9
EASY_DEPTH = 1


@dataclass
class SearchResult:
    best_move: Optional[chess.Move]
    score: int
    nodes: int


@contextmanager
def _applied(board: chess.Board, move: chess.Move) -> Iterator[None]:
    """Push ``move`` for the duration of the block; always pop on exit."""
    board.push(move)
    try:
        yield
    finally:
        board.pop()


def ordered_moves(board: chess.Board) -> List[chess.Move]:
    """Legal moves with captures first.

    The sort is stable, so each class keeps the generator's order.
    """
    return sorted(board.legal_moves, key=lambda m: not board.is_capture(m))


def is_drawn(board: chess.Board) -> bool:
    return board.is_fifty_moves() or board.is_repetition(3)


class AIPlayer:
    """Depth-limited minimax with alpha-beta pruning and captures-first ordering.

    The search runs on the caller's board and leaves it exactly as it found it.
    """

    def __init__(self, rng: Optional[random.Random] = None, easy_random_probability: float = 0.3) -> None:
        self.rng = rng or random.Random()
        self.easy_random_probability = easy_random_probability
        self.nodes = 0

    def find_best_move(self, board: chess.Board, depth: int) -> Optional[chess.Move]:
        """Pick a move for the side to move, or None if it has no legal move.

        At the easiest depth some moves are picked at random instead of searched.
        """
        if depth == EASY_DEPTH and self.rng.random() < self.easy_random_probability:
            moves = list(board.legal_moves)
            if not moves:
                return None
            move = self.rng.choice(moves)
            logger.debug("Easy mode: random move %s", move.uci())
            return move

        result = self.search(board, depth)
        return result.best_move

    def search(self, board: chess.Board, depth: int) -> SearchResult:
        self.nodes = 0
        perspective = board.turn
        best_score = -INF
        best_move: Optional[chess.Move] = None
        alpha = -INF

        for move in ordered_moves(board):
            with _applied(board, move):
                score = self.minimax(board, depth - 1, alpha, INF, False, perspective)
            self.nodes += 1
            if score > best_score:
                best_score = score
                best_move = move
            alpha = max(alpha, score)

        if best_move is None:
            best_score = 0
        logger.debug(
            "Searched %d positions at depth %d, best %s (%d)",
            self.nodes,
            depth,
            best_move.uci() if best_move else None,
            best_score,
        )
        return SearchResult(best_move=best_move, score=best_score, nodes=self.nodes)

    def minimax(
        self,
        board: chess.Board,
        depth: int,
        alpha: int,
        beta: int,
        maximizing: bool,
        perspective: chess.Color = chess.WHITE,
    ) -> int:
        """Score ``board`` for ``perspective``; ``maximizing`` is True when it is to move."""
        self.nodes += 1

        if depth <= 0:
            score = Evaluator.evaluate(board)
            return score if perspective == chess.WHITE else -score

        outcome = board.outcome()
        if outcome is not None or is_drawn(board):
            if outcome is None or outcome.winner is None:
                return 0
            # The side to move has been mated.
            return -MATE_SCORE if maximizing else MATE_SCORE

        if maximizing:
            value = -INF
            for move in ordered_moves(board):
                with _applied(board, move):
                    value = max(value, self.minimax(board, depth - 1, alpha, beta, False, perspective))
                alpha = max(alpha, value)
                if beta <= alpha:
                    break
            return value

        value = INF
        for move in ordered_moves(board):
            with _applied(board, move):
                value = min(value, self.minimax(board, depth - 1, alpha, beta, True, perspective))
            beta = min(beta, value)
            if beta <= alpha:
                break
        return value
