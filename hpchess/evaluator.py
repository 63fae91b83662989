from __future__ import annotations

from typing import Dict, List

import chess

MATE_SCORE = 20000


class Evaluator:
    """Static evaluation for chess positions.

    Positive scores favor White, negative scores favor Black. Units are centipawns.
    HP plays no part in the evaluation: the search sees ordinary chess.
    """

    # Material values
    MATERIAL_VALUES: Dict[chess.PieceType, int] = {
        chess.PAWN: 100,
        chess.KNIGHT: 320,
        chess.BISHOP: 330,
        chess.ROOK: 500,
        chess.QUEEN: 900,
        chess.KING: 20000,
    }

    # Piece-square tables from White's side of the board: row 0 is rank 8,
    # column 0 is the a-file. Black reads row 7 - r.
    PST_PAWN: List[List[int]] = [
        [0, 0, 0, 0, 0, 0, 0, 0],
        [50, 50, 50, 50, 50, 50, 50, 50],
        [10, 10, 20, 30, 30, 20, 10, 10],
        [5, 5, 10, 25, 25, 10, 5, 5],
        [0, 0, 0, 20, 20, 0, 0, 0],
        [5, -5, -10, 0, 0, -10, -5, 5],
        [5, 10, 10, -20, -20, 10, 10, 5],
        [0, 0, 0, 0, 0, 0, 0, 0],
    ]

    PST_KNIGHT: List[List[int]] = [
        [-50, -40, -30, -30, -30, -30, -40, -50],
        [-40, -20, 0, 0, 0, 0, -20, -40],
        [-30, 0, 10, 15, 15, 10, 0, -30],
        [-30, 5, 15, 20, 20, 15, 5, -30],
        [-30, 0, 15, 20, 20, 15, 0, -30],
        [-30, 5, 10, 15, 15, 10, 5, -30],
        [-40, -20, 0, 5, 5, 0, -20, -40],
        [-50, -40, -30, -30, -30, -30, -40, -50],
    ]

    PST_BISHOP: List[List[int]] = [
        [-20, -10, -10, -10, -10, -10, -10, -20],
        [-10, 0, 0, 0, 0, 0, 0, -10],
        [-10, 10, 10, 10, 10, 10, 10, -10],
        [-10, 0, 10, 10, 10, 10, 0, -10],
        [-10, 5, 5, 10, 10, 5, 5, -10],
        [-10, 0, 5, 10, 10, 5, 0, -10],
        [-10, 0, 0, 0, 0, 0, 0, -10],
        [-20, -10, -10, -10, -10, -10, -10, -20],
    ]

    PST_ROOK: List[List[int]] = [
        [0, 0, 0, 0, 0, 0, 0, 0],
        [5, 10, 10, 10, 10, 10, 10, 5],
        [-5, 0, 0, 0, 0, 0, 0, -5],
        [-5, 0, 0, 0, 0, 0, 0, -5],
        [-5, 0, 0, 0, 0, 0, 0, -5],
        [-5, 0, 0, 0, 0, 0, 0, -5],
        [-5, 0, 0, 0, 0, 0, 0, -5],
        [0, 0, 0, 5, 5, 0, 0, 0],
    ]

    PST_QUEEN: List[List[int]] = [
        [-20, -10, -10, -5, -5, -10, -10, -20],
        [-10, 0, 0, 0, 0, 0, 0, -10],
        [-10, 0, 5, 5, 5, 5, 0, -10],
        [-5, 0, 5, 5, 5, 5, 0, -5],
        [0, 0, 5, 5, 5, 5, 0, -5],
        [-10, 5, 5, 5, 5, 5, 0, -10],
        [-10, 0, 5, 0, 0, 0, 0, -10],
        [-20, -10, -10, -5, -5, -10, -10, -20],
    ]

    PST_KING: List[List[int]] = [
        [-30, -40, -40, -50, -50, -40, -40, -30],
        [-30, -40, -40, -50, -50, -40, -40, -30],
        [-30, -40, -40, -50, -50, -40, -40, -30],
        [-30, -40, -40, -50, -50, -40, -40, -30],
        [-20, -30, -30, -40, -40, -30, -30, -20],
        [-10, -20, -20, -20, -20, -20, -20, -10],
        [20, 20, 0, 0, 0, 0, 20, 20],
        [20, 30, 10, 0, 0, 10, 30, 20],
    ]

    @classmethod
    def evaluate(cls, board: chess.Board) -> int:
        score = 0
        for square, piece in board.piece_map().items():
            value = cls.piece_value(piece.piece_type, piece.color, square)
            score += value if piece.color == chess.WHITE else -value
        return max(-MATE_SCORE, min(MATE_SCORE, score))

    @classmethod
    def piece_value(cls, piece_type: chess.PieceType, color: chess.Color, square: chess.Square) -> int:
        """Material plus positional bonus of one piece, unsigned."""
        return cls.MATERIAL_VALUES[piece_type] + cls.positional_bonus(piece_type, color, square)

    @classmethod
    def positional_bonus(cls, piece_type: chess.PieceType, color: chess.Color, square: chess.Square) -> int:
        rank = chess.square_rank(square)
        row = 7 - rank if color == chess.WHITE else rank
        return cls._pst_for(piece_type)[row][chess.square_file(square)]

    @classmethod
    def _pst_for(cls, piece_type: chess.PieceType) -> List[List[int]]:
        if piece_type == chess.PAWN:
            return cls.PST_PAWN
        if piece_type == chess.KNIGHT:
            return cls.PST_KNIGHT
        if piece_type == chess.BISHOP:
            return cls.PST_BISHOP
        if piece_type == chess.ROOK:
            return cls.PST_ROOK
        if piece_type == chess.QUEEN:
            return cls.PST_QUEEN
        return cls.PST_KING
