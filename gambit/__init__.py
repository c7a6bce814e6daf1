"""Pawn's Gambit game core: rules, move application, AI search and session state.

Modules:
- board: immutable board, pieces, positions and the piece value table
- rules: move geometry, check detection and board variants
- moves: pure move application (captures, Sturdy blocks, promotion)
- evaluator / ai: material evaluation and alpha-beta search for Black
- session: the game's state machine as a pure reducer
- game: controller owning the current session for a presentation layer
- abilities: pluggable pawn-ability providers for the shop
"""

from .board import PIECE_VALUES, Board, Color, Move, Piece, PieceType, Position, create_initial_board, find_king
from .rules import BoardRules, get_valid_moves, is_check
from .moves import apply_move
from .ai import AIPlayer, find_best_move
from .game import Game

__all__ = [
    "PIECE_VALUES",
    "Board",
    "Color",
    "Move",
    "Piece",
    "PieceType",
    "Position",
    "BoardRules",
    "create_initial_board",
    "find_king",
    "get_valid_moves",
    "is_check",
    "apply_move",
    "find_best_move",
    "AIPlayer",
    "Game",
]
