from __future__ import annotations


class HPChessError(Exception):
    """Base class for errors raised by the game core."""


class IllegalMove(HPChessError, ValueError):
    """A proposed move was rejected by the rules oracle and never applied."""


class NoLegalMoves(HPChessError):
    """The side to move has no legal move (checkmate or stalemate)."""


class EngineBusy(HPChessError):
    """A move was submitted while the engine is still searching."""


class LedgerDesync(HPChessError):
    """The HP ledger no longer mirrors the oracle's board.

    The only remedy is a full rebuild from the oracle's position.
    """
