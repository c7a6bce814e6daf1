from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .board import Board, Move, Piece, PieceType
from .errors import IllegalMoveError
from .powers import STURDY_PAWN
from .rules import promotion_row


@dataclass(frozen=True)
class MoveResult:
    board: Board
    moved: Piece
    captured: Optional[Piece] = None
    blocked: bool = False
    promoted: bool = False

    @property
    def captured_king(self) -> bool:
        return self.captured is not None and self.captured.type is PieceType.KING


def apply_move(board: Board, move: Move) -> MoveResult:
    """Return the board after ``move``; the input board is left untouched.

    A Sturdy target absorbs the attack: it loses its power and the attacker
    stays where it was. Pawns reaching the far rank become queens.
    """
    mover = board.piece_at(move.from_pos)
    if mover is None:
        raise IllegalMoveError(f"No piece at {move.from_pos.square_name()}")

    target = board.piece_at(move.to_pos)
    if target is not None and target.power_id == STURDY_PAWN.id:
        new_board = board.with_changes({move.to_pos: target.with_power(None)})
        return MoveResult(board=new_board, moved=mover, blocked=True)

    promoted = mover.type is PieceType.PAWN and move.to_pos.row == promotion_row(mover.color)
    landed = mover.promoted() if promoted else mover
    new_board = board.with_changes({move.from_pos: None, move.to_pos: landed})
    return MoveResult(board=new_board, moved=landed, captured=target, promoted=promoted)
