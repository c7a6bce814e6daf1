from __future__ import annotations

from typing import Dict

from .board import PIECE_VALUES, Board, Color, PieceType


class Evaluator:
    """Static evaluation for positions.

    Positive scores favor White, negative scores favor Black. Kings carry no
    material here; losing one is scored by the search as a terminal result.
    """

    MATERIAL_VALUES: Dict[PieceType, int] = {
        piece_type: (0 if piece_type is PieceType.KING else value)
        for piece_type, value in PIECE_VALUES.items()
    }

    KING_CAPTURE_SCORE = 10_000

    @classmethod
    def evaluate(cls, board: Board) -> int:
        score = 0
        for _, piece in board.pieces():
            value = cls.MATERIAL_VALUES[piece.type]
            score += value if piece.color is Color.WHITE else -value
        return score

    @classmethod
    def king_capture(cls, captured_color: Color, plies_from_root: int) -> int:
        # Earlier king captures score further from zero
        magnitude = cls.KING_CAPTURE_SCORE - plies_from_root
        return -magnitude if captured_color is Color.WHITE else magnitude
