from __future__ import annotations

import logging
import threading
from typing import Optional

from flask import Flask, jsonify, request

from gambit import Game
from gambit.config import SETTINGS
from gambit.errors import GambitError


def create_app(game: Optional[Game] = None) -> Flask:
    app = Flask(__name__)

    game = game or Game()
    # One transition at a time; the AI reply runs inside the move request
    lock = threading.Lock()

    @app.errorhandler(GambitError)
    @app.errorhandler(ValueError)
    def bad_request(exc: Exception):
        return jsonify({"error": str(exc)}), 400

    @app.get("/api/state")
    def api_state():
        with lock:
            return jsonify(game.snapshot())

    @app.get("/api/boards")
    def api_boards():
        with lock:
            return jsonify(game.snapshot()["boards"])

    @app.post("/api/load")
    def api_load():
        with lock:
            game.finish_loading()
            return jsonify(game.snapshot())

    @app.post("/api/board-select")
    def api_board_select():
        with lock:
            game.open_board_select()
            return jsonify(game.snapshot())

    @app.post("/api/new")
    def api_new():
        data = request.get_json(silent=True) or {}
        board_id = data.get("board") or "classic"
        if not isinstance(board_id, str):
            return jsonify({"error": "Board id must be a string"}), 400
        with lock:
            game.start(board_id)
            return jsonify(game.snapshot())

    @app.post("/api/select")
    def api_select():
        data = request.get_json(silent=True) or {}
        square = data.get("square")
        if not square or not isinstance(square, str):
            return jsonify({"error": "Missing square"}), 400
        with lock:
            moves = game.valid_moves(square)
            return jsonify({"square": square, "moves": [pos.square_name() for pos in moves]})

    @app.post("/api/move")
    def api_move():
        payload = request.get_json(silent=True) or {}
        uci = payload.get("move")
        if not uci or not isinstance(uci, str):
            return jsonify({"error": "Missing move"}), 400
        with lock:
            game.push(uci)
            return jsonify(game.snapshot())

    @app.post("/api/summon")
    def api_summon():
        with lock:
            game.summon()
            return jsonify(game.snapshot())

    @app.post("/api/shop")
    def api_shop():
        with lock:
            game.open_shop()
            return jsonify(game.snapshot())

    @app.post("/api/buy")
    def api_buy():
        payload = request.get_json(silent=True) or {}
        power_id = payload.get("power")
        if not power_id or not isinstance(power_id, str):
            return jsonify({"error": "Missing power"}), 400
        with lock:
            game.buy(power_id)
            return jsonify(game.snapshot())

    @app.post("/api/leave-shop")
    def api_leave_shop():
        with lock:
            game.leave_shop()
            return jsonify(game.snapshot())

    @app.post("/api/next-level")
    def api_next_level():
        with lock:
            game.next_level()
            return jsonify(game.snapshot())

    @app.post("/api/menu")
    def api_menu():
        with lock:
            game.menu()
            return jsonify(game.snapshot())

    return app


if __name__ == "__main__":
    logging.basicConfig(level=SETTINGS.log_level)
    create_app().run(host="127.0.0.1", port=5000, debug=True)
