from __future__ import annotations

import functools
import logging
import threading
import time
from typing import List, Optional

import chess
from flask import Flask, jsonify, request

from hpchess import Config, EngineBusy, Game, IllegalMove, LedgerDesync, NoLegalMoves

_log = logging.getLogger(__name__)


def create_app(config: Optional[Config] = None) -> Flask:
    config = config or Config.from_env()
    logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))

    app = Flask(__name__)

    game = Game(config=config)
    lock = threading.Lock()

    def exclusive(view):
        """Serialise access to the game; a concurrent request gets 409."""

        @functools.wraps(view)
        def wrapper(*args, **kwargs):
            if not lock.acquire(blocking=False):
                return jsonify({"error": "Engine is thinking"}), 409
            try:
                return view(*args, **kwargs)
            except EngineBusy as exc:
                return jsonify({"error": str(exc)}), 409
            except LedgerDesync as exc:
                # Game rebuilds its ledger before re-raising; report and carry on.
                _log.error("Ledger desync: %s", exc)
                snap = game.snapshot()
                snap["error"] = str(exc)
                return jsonify(snap), 500
            finally:
                lock.release()

        return wrapper

    def engine_reply() -> List[str]:
        """Play engine moves until its turn passes to the player.

        A hit that leaves a checking piece alive keeps the turn with the
        engine, so it moves again. Every unfinished hit costs HP, so this ends.
        """
        moves: List[str] = []
        if config.thinking_delay_s > 0 and not game.is_game_over():
            time.sleep(config.thinking_delay_s)
        while not game.is_game_over():
            try:
                result = game.engine_move()
            except NoLegalMoves:
                break
            moves.append(result.move)
            if result.turn_passed:
                break
        return moves

    def apply_difficulty(data: dict) -> Optional[tuple]:
        if "difficulty" not in data:
            return None
        try:
            game.set_difficulty(int(data["difficulty"]))
        except (TypeError, ValueError) as exc:
            return jsonify({"error": str(exc)}), 400
        return None

    @app.post("/api/new")
    @exclusive
    def api_new():
        data = request.get_json(silent=True) or {}
        fen = data.get("fen")
        color = (data.get("color") or "white").lower()

        error = apply_difficulty(data)
        if error:
            return error
        try:
            game.reset(fen)
        except ValueError as exc:
            return jsonify({"error": f"Invalid FEN: {exc}"}), 400

        ai_moves: List[str] = []
        pre_fen: str | None = None
        # If player chose black, AI (white) makes the first move immediately
        if color == "black" and game.board.turn == chess.WHITE:
            # Capture starting position to allow frontend to animate the first AI move
            pre_fen = game.get_full_fen()
            ai_moves = engine_reply()

        snap = game.snapshot()
        snap["ai_move"] = ai_moves[-1] if ai_moves else None
        snap["ai_moves"] = ai_moves
        if pre_fen is not None:
            snap["pre_fen"] = pre_fen
        return jsonify(snap)

    @app.post("/api/move")
    @exclusive
    def api_move():
        payload = request.get_json(silent=True) or {}
        uci = payload.get("move")
        if not uci:
            return jsonify({"error": "Missing move"}), 400

        error = apply_difficulty(payload)
        if error:
            return error
        try:
            result = game.push_uci(uci)
        except IllegalMove as exc:
            snap = game.snapshot()
            snap.update({"error": str(exc), "revert": True})
            return jsonify(snap), 400

        snap_player = {"resolved": result.resolved, "turn_passed": result.turn_passed}
        ai_moves = engine_reply() if result.turn_passed else []

        snap = game.snapshot()
        snap["player_move"] = snap_player
        snap["ai_move"] = ai_moves[-1] if ai_moves else None
        snap["ai_moves"] = ai_moves
        return jsonify(snap)

    @app.post("/api/undo")
    @exclusive
    def api_undo():
        plies = game.undo()
        snap = game.snapshot()
        snap["undone"] = plies
        return jsonify(snap)

    @app.post("/api/difficulty")
    @exclusive
    def api_difficulty():
        data = request.get_json(silent=True) or {}
        if "difficulty" not in data:
            return jsonify({"error": "Missing difficulty"}), 400
        error = apply_difficulty(data)
        if error:
            return error
        return jsonify({"difficulty": game.difficulty})

    @app.get("/api/status")
    def api_status():
        # Waits for an in-flight search, which moves pieces on the live board.
        with lock:
            return jsonify(game.snapshot())

    @app.get("/api/hp/<square>")
    def api_hp(square: str):
        square = square.lower()
        try:
            with lock:
                hp = game.hp_at(square)
        except ValueError:
            return jsonify({"error": f"Unknown square: {square}"}), 400
        return jsonify({"square": square, "hp": hp})

    app.config["GAME"] = game
    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
