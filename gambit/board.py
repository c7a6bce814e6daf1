from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterator, NamedTuple, Optional, Tuple

import chess

BOARD_SIZE = 8


class Color(str, Enum):
    WHITE = "white"
    BLACK = "black"

    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE


class PieceType(str, Enum):
    PAWN = "pawn"
    ROOK = "rook"
    KNIGHT = "knight"
    BISHOP = "bishop"
    QUEEN = "queen"
    KING = "king"


# Shared by scoring (bank, capture meter) and search evaluation
PIECE_VALUES: Dict[PieceType, int] = {
    PieceType.PAWN: 1,
    PieceType.KNIGHT: 3,
    PieceType.BISHOP: 3,
    PieceType.ROOK: 5,
    PieceType.QUEEN: 9,
    PieceType.KING: 100,
}

_CHESS_PIECE_TYPES: Dict[PieceType, chess.PieceType] = {
    PieceType.PAWN: chess.PAWN,
    PieceType.ROOK: chess.ROOK,
    PieceType.KNIGHT: chess.KNIGHT,
    PieceType.BISHOP: chess.BISHOP,
    PieceType.QUEEN: chess.QUEEN,
    PieceType.KING: chess.KING,
}

_BACK_RANK: Tuple[PieceType, ...] = (
    PieceType.ROOK,
    PieceType.KNIGHT,
    PieceType.BISHOP,
    PieceType.QUEEN,
    PieceType.KING,
    PieceType.BISHOP,
    PieceType.KNIGHT,
    PieceType.ROOK,
)


class Position(NamedTuple):
    """A board cell. Row 0 is Black's back rank, row 7 is White's."""

    row: int
    col: int

    def on_board(self) -> bool:
        return 0 <= self.row < BOARD_SIZE and 0 <= self.col < BOARD_SIZE

    def offset(self, d_row: int, d_col: int) -> "Position":
        return Position(self.row + d_row, self.col + d_col)

    def to_square(self) -> chess.Square:
        return chess.square(self.col, BOARD_SIZE - 1 - self.row)

    def square_name(self) -> str:
        return chess.square_name(self.to_square())

    @classmethod
    def from_square(cls, square: chess.Square) -> "Position":
        return cls(BOARD_SIZE - 1 - chess.square_rank(square), chess.square_file(square))

    @classmethod
    def from_square_name(cls, name: str) -> "Position":
        # chess.parse_square raises ValueError on bad names
        return cls.from_square(chess.parse_square(name.strip().lower()))


class Move(NamedTuple):
    from_pos: Position
    to_pos: Position

    def uci(self) -> str:
        return self.from_pos.square_name() + self.to_pos.square_name()

    @classmethod
    def from_uci(cls, uci: str) -> "Move":
        # Promotion suffixes are accepted; promotion is always to a queen
        parsed = chess.Move.from_uci(uci.strip().lower())
        return cls(Position.from_square(parsed.from_square), Position.from_square(parsed.to_square))


@dataclass(frozen=True)
class Piece:
    id: str
    type: PieceType
    color: Color
    power_id: Optional[str] = None
    is_visible: bool = True

    def symbol(self) -> str:
        return chess.Piece(_CHESS_PIECE_TYPES[self.type], self.color is Color.WHITE).symbol()

    def with_power(self, power_id: Optional[str]) -> "Piece":
        return replace(self, power_id=power_id)

    def revealed(self) -> "Piece":
        return replace(self, is_visible=True)

    def promoted(self) -> "Piece":
        return replace(self, type=PieceType.QUEEN)


Grid = Tuple[Tuple[Optional[Piece], ...], ...]


@dataclass(frozen=True)
class Board:
    """Immutable 8x8 grid. Every update returns a new board."""

    grid: Grid

    @classmethod
    def empty(cls) -> "Board":
        return cls(tuple((None,) * BOARD_SIZE for _ in range(BOARD_SIZE)))

    @classmethod
    def from_pieces(cls, pieces: Dict[Position, Piece]) -> "Board":
        return cls.empty().with_changes(pieces)

    def piece_at(self, pos: Position) -> Optional[Piece]:
        if not pos.on_board():
            return None
        return self.grid[pos.row][pos.col]

    def pieces(self) -> Iterator[Tuple[Position, Piece]]:
        """Yield occupied cells in row, then column order."""
        for r, row in enumerate(self.grid):
            for c, piece in enumerate(row):
                if piece is not None:
                    yield Position(r, c), piece

    def with_changes(self, changes: Dict[Position, Optional[Piece]]) -> "Board":
        rows = [list(row) for row in self.grid]
        for pos, piece in changes.items():
            if not pos.on_board():
                raise ValueError(f"Position off board: {pos}")
            rows[pos.row][pos.col] = piece
        return Board(tuple(tuple(row) for row in rows))

    def find_king(self, color: Color) -> Optional[Position]:
        for pos, piece in self.pieces():
            if piece.type is PieceType.KING and piece.color is color:
                return pos
        return None

    def render(self, reveal: bool = False) -> str:
        lines = []
        for row in self.grid:
            cells = []
            for piece in row:
                if piece is None or (not piece.is_visible and not reveal):
                    cells.append(".")
                else:
                    cells.append(piece.symbol())
            lines.append(" ".join(cells))
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.render()


def piece_at(board: Board, pos: Position) -> Optional[Piece]:
    return board.piece_at(pos)


def find_king(board: Board, color: Color) -> Optional[Position]:
    """First king of ``color`` in row/column order, hidden or not."""
    return board.find_king(color)


def create_initial_board() -> Board:
    """Standard starting arrangement; the black king starts hidden."""
    pieces: Dict[Position, Piece] = {}
    for col, piece_type in enumerate(_BACK_RANK):
        pieces[Position(0, col)] = Piece(
            id=f"black-{piece_type.value}-{col}",
            type=piece_type,
            color=Color.BLACK,
            is_visible=piece_type is not PieceType.KING,
        )
        pieces[Position(7, col)] = Piece(id=f"white-{piece_type.value}-{col}", type=piece_type, color=Color.WHITE)
        pieces[Position(1, col)] = Piece(id=f"black-pawn-{col}", type=PieceType.PAWN, color=Color.BLACK)
        pieces[Position(6, col)] = Piece(id=f"white-pawn-{col}", type=PieceType.PAWN, color=Color.WHITE)
    return Board.from_pieces(pieces)
