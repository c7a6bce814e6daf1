"""Move geometry and check detection.

Moves that leave the mover's own king attacked are allowed: this variant
never filters self-check, and "no legal move" means no geometric move at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .board import Board, Color, Move, Piece, PieceType, Position

ORTHOGONAL: Tuple[Tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))
DIAGONAL: Tuple[Tuple[int, int], ...] = ((-1, -1), (-1, 1), (1, -1), (1, 1))
ADJACENT: Tuple[Tuple[int, int], ...] = ORTHOGONAL + DIAGONAL
KNIGHT_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (-2, -1), (-2, 1), (-1, -2), (-1, 2),
    (1, -2), (1, 2), (2, -1), (2, 1),
)

_SLIDES: Dict[PieceType, Tuple[Tuple[int, int], ...]] = {
    PieceType.ROOK: ORTHOGONAL,
    PieceType.BISHOP: DIAGONAL,
    PieceType.QUEEN: ADJACENT,
}

_STEPS: Dict[PieceType, Tuple[Tuple[int, int], ...]] = {
    PieceType.KNIGHT: KNIGHT_OFFSETS,
    PieceType.KING: ADJACENT,
}


@dataclass(frozen=True)
class BoardRules:
    pawn_has_limited_first_move: bool = False


@dataclass(frozen=True)
class BoardInfo:
    id: str
    name: str
    description: str
    rules: BoardRules = field(default_factory=BoardRules)
    is_locked: bool = False
    unlock_level: Optional[int] = None

    def is_available(self, level: int) -> bool:
        if not self.is_locked:
            return True
        return self.unlock_level is not None and level >= self.unlock_level

    def to_dict(self, level: int) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "pawn_has_limited_first_move": self.rules.pawn_has_limited_first_move,
            "locked": not self.is_available(level),
            "unlock_level": self.unlock_level,
        }


AVAILABLE_BOARDS: Tuple[BoardInfo, ...] = (
    BoardInfo("classic", "Classic Kingdom", "The standard rules of the gambit."),
    BoardInfo(
        "pawn_march",
        "The Long March",
        "Pawns can only move one square forward, even on their first turn.",
        rules=BoardRules(pawn_has_limited_first_move=True),
    ),
    BoardInfo(
        "fortress",
        "The Fortress",
        "Survive 10 levels to unlock this board.",
        is_locked=True,
        unlock_level=10,
    ),
)


def board_by_id(board_id: str) -> Optional[BoardInfo]:
    for info in AVAILABLE_BOARDS:
        if info.id == board_id:
            return info
    return None


def pawn_direction(color: Color) -> int:
    return -1 if color is Color.WHITE else 1


def pawn_start_row(color: Color) -> int:
    return 6 if color is Color.WHITE else 1


def promotion_row(color: Color) -> int:
    return 0 if color is Color.WHITE else 7


def _capturable(mover: Piece, target: Optional[Piece]) -> bool:
    # A hidden piece (the unsummoned king) cannot be taken
    return target is not None and target.color is not mover.color and target.is_visible


def _pawn_moves(board: Board, pos: Position, pawn: Piece, rules: BoardRules) -> List[Position]:
    moves: List[Position] = []
    step = pawn_direction(pawn.color)
    one = pos.offset(step, 0)
    if one.on_board() and board.piece_at(one) is None:
        moves.append(one)
        two = pos.offset(2 * step, 0)
        if (
            pos.row == pawn_start_row(pawn.color)
            and not rules.pawn_has_limited_first_move
            and two.on_board()
            and board.piece_at(two) is None
        ):
            moves.append(two)
    for d_col in (-1, 1):
        diag = pos.offset(step, d_col)
        if diag.on_board() and _capturable(pawn, board.piece_at(diag)):
            moves.append(diag)
    return moves


def _slide_moves(board: Board, pos: Position, piece: Piece, directions) -> List[Position]:
    moves: List[Position] = []
    for d_row, d_col in directions:
        cur = pos.offset(d_row, d_col)
        while cur.on_board():
            occupant = board.piece_at(cur)
            if occupant is None:
                moves.append(cur)
            else:
                if _capturable(piece, occupant):
                    moves.append(cur)
                break
            cur = cur.offset(d_row, d_col)
    return moves


def _step_moves(board: Board, pos: Position, piece: Piece, offsets) -> List[Position]:
    moves: List[Position] = []
    for d_row, d_col in offsets:
        dest = pos.offset(d_row, d_col)
        if not dest.on_board():
            continue
        occupant = board.piece_at(dest)
        if occupant is None or _capturable(piece, occupant):
            moves.append(dest)
    return moves


def get_valid_moves(
    board: Board,
    pos: Position,
    rules: BoardRules,
    color: Optional[Color] = None,
) -> List[Position]:
    """Destinations for the piece at ``pos``.

    Returns an empty list for an empty or off-board source, and for a piece
    that does not belong to ``color`` when ``color`` is given.
    """
    piece = board.piece_at(pos)
    if piece is None:
        return []
    if color is not None and piece.color is not color:
        return []
    if piece.type is PieceType.PAWN:
        return _pawn_moves(board, pos, piece, rules)
    if piece.type in _SLIDES:
        return _slide_moves(board, pos, piece, _SLIDES[piece.type])
    return _step_moves(board, pos, piece, _STEPS[piece.type])


def legal_moves(board: Board, color: Color, rules: BoardRules) -> List[Move]:
    """All moves for ``color``, sources in row/column order."""
    moves: List[Move] = []
    for pos, piece in board.pieces():
        if piece.color is not color:
            continue
        for dest in get_valid_moves(board, pos, rules):
            moves.append(Move(pos, dest))
    return moves


def is_check(board: Board, color: Color, rules: BoardRules) -> bool:
    """True iff an opposing piece could move onto ``color``'s visible king."""
    king_pos = board.find_king(color)
    if king_pos is None:
        return False
    king = board.piece_at(king_pos)
    if king is None or not king.is_visible:
        return False
    attacker = color.opponent()
    for pos, piece in board.pieces():
        if piece.color is not attacker:
            continue
        if king_pos in get_valid_moves(board, pos, rules):
            return True
    return False
