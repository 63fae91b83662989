from __future__ import annotations

import chess
import pytest

from hpchess import Config, Game
from web import create_app


@pytest.mark.parametrize("depth", [1, 2, 3])
def test_engine_depths_return_legal_moves(ai, depth):
    g = Game(ai=ai)
    g.push_uci("e2e4")
    move = ai.find_best_move(g.board, depth)
    assert move is not None
    assert move in g.board.legal_moves
    assert len(move.uci()) in (4, 5)


def test_difficulty_maps_to_depth(game):
    depths = []
    search = game.ai.search

    def recording_search(board, depth):
        depths.append(depth)
        return search(board, depth)

    game.ai.search = recording_search
    for level in (1, 2, 3):
        game.set_difficulty(level)
        game.engine_move()
        game.undo()
    assert depths == [1, 2, 3]


def test_api_depth3_returns_ai_move():
    app = create_app(Config(thinking_delay_s=0))
    client = app.test_client()
    r = client.post("/api/new", json={})
    assert r.status_code == 200
    r = client.post("/api/move", json={"move": "e2e4", "difficulty": 3})
    assert r.status_code == 200
    data = r.get_json()
    assert "ai_move" in data and data["ai_move"]
    assert data["difficulty"] == 3
    assert data["turn"] == "white"
