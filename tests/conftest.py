from __future__ import annotations

import random

import pytest

from hpchess import AIPlayer, Config, Game


@pytest.fixture
def ai() -> AIPlayer:
    """A search-only player: the easy-mode random moves are switched off."""
    return AIPlayer(rng=random.Random(0), easy_random_probability=0.0)


@pytest.fixture
def game(ai: AIPlayer) -> Game:
    return Game(config=Config(thinking_delay_s=0), ai=ai)


@pytest.fixture
def make_game(ai: AIPlayer):
    def _make(fen: str | None = None, difficulty: int = 2) -> Game:
        return Game(starting_fen=fen, config=Config(difficulty=difficulty, thinking_delay_s=0), ai=ai)

    return _make
