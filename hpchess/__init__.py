"""Chess with hit points: pieces survive captures until their HP runs out.

Modules:
- game: Orchestrates the python-chess board and the HP ledger
- ledger: Per-square hit points and capture settlement
- evaluator: Material and piece-square evaluation
- ai: Depth-limited minimax with alpha-beta pruning
- config: Dataclass settings loaded from TOML and the environment
- errors: Exceptions surfaced to callers
"""

from .game import Game, GameState, MoveResult, PendingCapture
from .ai import AIPlayer, SearchResult
from .evaluator import Evaluator
from .ledger import AppliedMove, HPLedger, MAX_HP
from .config import Config
from .errors import EngineBusy, HPChessError, IllegalMove, LedgerDesync, NoLegalMoves

__all__ = [
    "Game",
    "GameState",
    "MoveResult",
    "PendingCapture",
    "AIPlayer",
    "SearchResult",
    "Evaluator",
    "AppliedMove",
    "HPLedger",
    "MAX_HP",
    "Config",
    "EngineBusy",
    "HPChessError",
    "IllegalMove",
    "LedgerDesync",
    "NoLegalMoves",
]
