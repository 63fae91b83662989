"""Hit-point ledger for the attrition capture rule.

A capture in this variant takes one HP off the defender. The rules oracle only
knows ordinary chess, so the ledger keeps HP per occupied square and decides
whether a capture the oracle just applied is final.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

import chess

from .errors import LedgerDesync

logger = logging.getLogger(__name__)

MAX_HP: Dict[chess.PieceType, int] = {
    chess.PAWN: 1,
    chess.KNIGHT: 2,
    chess.BISHOP: 2,
    chess.ROOK: 2,
    chess.QUEEN: 3,
    chess.KING: 1,
}


@dataclass(frozen=True)
class AppliedMove:
    from_square: chess.Square
    to_square: chess.Square
    piece_type: chess.PieceType
    captured: Optional[chess.PieceType] = None
    capture_square: Optional[chess.Square] = None
    promotion: Optional[chess.PieceType] = None
    rook_from: Optional[chess.Square] = None
    rook_to: Optional[chess.Square] = None

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    @classmethod
    def from_board(cls, board: chess.Board, move: chess.Move) -> "AppliedMove":
        """Describe ``move`` as it will be applied to ``board``.

        Must be called before the move is pushed.
        """
        piece = board.piece_at(move.from_square)
        if piece is None:
            raise LedgerDesync(f"No piece on {chess.square_name(move.from_square)}")

        captured: Optional[chess.PieceType] = None
        capture_square: Optional[chess.Square] = None
        if board.is_en_passant(move):
            capture_square = chess.square(chess.square_file(move.to_square), chess.square_rank(move.from_square))
            captured = chess.PAWN
        elif board.is_capture(move):
            capture_square = move.to_square
            victim = board.piece_at(move.to_square)
            captured = victim.piece_type if victim else None

        rook_from: Optional[chess.Square] = None
        rook_to: Optional[chess.Square] = None
        if board.is_castling(move):
            rank = chess.square_rank(move.from_square)
            if board.is_kingside_castling(move):
                rook_from, rook_to = chess.square(7, rank), chess.square(5, rank)
            else:
                rook_from, rook_to = chess.square(0, rank), chess.square(3, rank)

        return cls(
            from_square=move.from_square,
            to_square=move.to_square,
            piece_type=piece.piece_type,
            captured=captured,
            capture_square=capture_square,
            promotion=move.promotion,
            rook_from=rook_from,
            rook_to=rook_to,
        )


@dataclass
class LedgerEntry:
    piece_type: chess.PieceType
    hp: int


class HPLedger:
    """Maps each occupied square to the HP of the piece standing on it."""

    def __init__(self) -> None:
        self._entries: Dict[chess.Square, LedgerEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, square: chess.Square) -> bool:
        return square in self._entries

    def initialize_from_position(self, snapshot: Union[chess.Board, str, None]) -> None:
        """Rebuild from scratch with every piece at full HP.

        Accepts a board or a FEN string. An unusable snapshot leaves the
        ledger empty and raises LedgerDesync.
        """
        self._entries = {}
        if snapshot is None:
            raise LedgerDesync("No position to rebuild the HP ledger from")
        if isinstance(snapshot, str):
            try:
                snapshot = chess.Board(snapshot)
            except ValueError as exc:
                raise LedgerDesync(f"Corrupted position {snapshot!r}: {exc}") from exc

        self._entries = {
            square: LedgerEntry(piece.piece_type, MAX_HP[piece.piece_type])
            for square, piece in snapshot.piece_map().items()
        }
        logger.debug("HP ledger rebuilt with %d pieces", len(self._entries))

    def settle(self, applied: AppliedMove) -> bool:
        """Apply ``applied`` to the ledger; True if the move is final.

        A capture costs the defender one HP. The attacker only moves onto the
        target when the defender's HP runs out; otherwise it stays put and the
        caller is expected to roll the move back on the oracle.
        """
        if applied.from_square not in self._entries:
            raise LedgerDesync(f"No HP entry for the piece on {chess.square_name(applied.from_square)}")

        if applied.is_capture:
            target = applied.capture_square
            defender = self._entries.get(target)
            if defender is None:
                raise LedgerDesync(f"No HP entry for the captured piece on {chess.square_name(target)}")
            defender.hp -= 1
            if defender.hp > 0:
                logger.info(
                    "%s on %s hit, %d HP left",
                    chess.piece_name(defender.piece_type),
                    chess.square_name(target),
                    defender.hp,
                )
                return False
            del self._entries[target]
            logger.info("%s on %s destroyed", chess.piece_name(defender.piece_type), chess.square_name(target))

        self._relocate(applied.from_square, applied.to_square)
        if applied.rook_from is not None and applied.rook_to is not None:
            self._relocate(applied.rook_from, applied.rook_to)
        if applied.promotion:
            entry = self._entries[applied.to_square]
            entry.piece_type = applied.promotion
            entry.hp = min(entry.hp, MAX_HP[applied.promotion])
        return True

    def get_hp(self, square: chess.Square) -> int:
        entry = self._entries.get(square)
        return entry.hp if entry else 0

    def kind_at(self, square: chess.Square) -> Optional[chess.PieceType]:
        entry = self._entries.get(square)
        return entry.piece_type if entry else None

    def verify(self, board: chess.Board) -> None:
        """Raise LedgerDesync unless the ledger mirrors ``board`` exactly."""
        pieces = board.piece_map()
        if set(pieces) != set(self._entries):
            missing = sorted(chess.square_name(sq) for sq in set(pieces) - set(self._entries))
            extra = sorted(chess.square_name(sq) for sq in set(self._entries) - set(pieces))
            raise LedgerDesync(f"HP ledger out of sync: missing {missing}, extra {extra}")
        for square, piece in pieces.items():
            entry = self._entries[square]
            if entry.piece_type != piece.piece_type:
                raise LedgerDesync(
                    f"HP ledger has a {chess.piece_name(entry.piece_type)} on "
                    f"{chess.square_name(square)}, board has a {chess.piece_name(piece.piece_type)}"
                )
            if not 1 <= entry.hp <= MAX_HP[entry.piece_type]:
                raise LedgerDesync(f"HP {entry.hp} out of range on {chess.square_name(square)}")

    def as_dict(self) -> Dict[str, int]:
        return {chess.square_name(sq): entry.hp for sq, entry in sorted(self._entries.items())}

    def _relocate(self, from_square: chess.Square, to_square: chess.Square) -> None:
        entry = self._entries.pop(from_square, None)
        if entry is None:
            raise LedgerDesync(f"No HP entry to move from {chess.square_name(from_square)}")
        self._entries[to_square] = entry
