"""Game session state machine.

``reduce(state, event)`` is a pure function: it never mutates ``state`` and
raises before producing a new state when the event is not acceptable. The AI
search and the ability provider run outside the reducer; their results come
back in as ``AiTurn`` and ``StockShop`` events.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Tuple, Type

from .board import PIECE_VALUES, Board, Color, Move, PieceType, Position, create_initial_board
from .errors import IllegalMoveError, SessionError
from .moves import apply_move
from .powers import RELENTLESS_PAWN, STURDY_PAWN, PawnPower
from .rules import AVAILABLE_BOARDS, BoardInfo, BoardRules, board_by_id, get_valid_moves, is_check, pawn_start_row


class Phase(Enum):
    LOADING = "loading"
    MENU = "menu"
    BOARD_SELECT = "board_select"
    PLAYING = "playing"
    SHOP = "shop"
    LEVEL_WON = "level_won"
    LEVEL_SELECT = "level_select"
    GAME_OVER = "game_over"


class Feedback(Enum):
    MOVE = "move"
    CAPTURE = "capture"
    SUMMON = "summon"


def king_spawn_threshold(level: int) -> int:
    return 5 + level * 5


@dataclass(frozen=True)
class SessionState:
    phase: Phase = Phase.LOADING
    board: Board = field(default_factory=create_initial_board)
    board_info: BoardInfo = AVAILABLE_BOARDS[0]
    level: int = 1
    bank: int = 0
    capture_progress: int = 0
    king_spawned: bool = False
    owned_powers: Tuple[PawnPower, ...] = ()
    shop_offers: Tuple[PawnPower, ...] = ()
    turn: Color = Color.WHITE
    message: str = ""
    feedback: Tuple[Feedback, ...] = ()

    @property
    def rules(self) -> BoardRules:
        return self.board_info.rules

    @property
    def king_spawn_threshold(self) -> int:
        return king_spawn_threshold(self.level)

    @property
    def can_summon(self) -> bool:
        return (
            self.phase is Phase.PLAYING
            and not self.king_spawned
            and self.capture_progress >= self.king_spawn_threshold
        )


# ---- events ----


@dataclass(frozen=True)
class FinishLoading:
    pass


@dataclass(frozen=True)
class OpenBoardSelect:
    pass


@dataclass(frozen=True)
class StartGame:
    board_id: str
    relentless_col: int = 0
    sturdy_col: int = 0


@dataclass(frozen=True)
class PlayerMove:
    move: Move


@dataclass(frozen=True)
class AiTurn:
    move: Optional[Move]


@dataclass(frozen=True)
class SummonKing:
    pass


@dataclass(frozen=True)
class OpenShop:
    pass


@dataclass(frozen=True)
class StockShop:
    offers: Tuple[PawnPower, ...]


@dataclass(frozen=True)
class BuyPower:
    power_id: str


@dataclass(frozen=True)
class LeaveShop:
    pass


@dataclass(frozen=True)
class NextLevel:
    pass


@dataclass(frozen=True)
class ReturnToMenu:
    pass


# ---- level setup ----


def seed_powers(
    board: Board,
    level: int,
    owned_powers: Sequence[PawnPower],
    relentless_col: int = 0,
    sturdy_col: int = 0,
) -> Board:
    """Place special pawns for a fresh level.

    Level 1 gets one Relentless White pawn and one Sturdy Black pawn at the
    given columns. Later levels put the player's powers on White's pawn rank,
    earliest purchase first, left to right.
    """
    changes: Dict[Position, object] = {}
    if level == 1:
        for color, col, power in (
            (Color.WHITE, relentless_col, RELENTLESS_PAWN),
            (Color.BLACK, sturdy_col, STURDY_PAWN),
        ):
            pos = Position(pawn_start_row(color), col % 8)
            piece = board.piece_at(pos)
            if piece is not None and piece.type is PieceType.PAWN:
                changes[pos] = piece.with_power(power.id)
        return board.with_changes(changes)

    remaining = list(owned_powers)
    row = pawn_start_row(Color.WHITE)
    for col in range(8):
        if not remaining:
            break
        pos = Position(row, col)
        piece = board.piece_at(pos)
        if piece is not None and piece.type is PieceType.PAWN:
            changes[pos] = piece.with_power(remaining.pop(0).id)
    return board.with_changes(changes)


def _reset_level(state: SessionState, level: int, relentless_col: int = 0, sturdy_col: int = 0) -> SessionState:
    board = seed_powers(create_initial_board(), level, state.owned_powers, relentless_col, sturdy_col)
    king_pos = board.find_king(Color.BLACK)
    king = board.piece_at(king_pos) if king_pos is not None else None
    return replace(
        state,
        phase=Phase.PLAYING,
        board=board,
        level=level,
        capture_progress=0,
        king_spawned=bool(king and king.is_visible),
        turn=Color.WHITE,
        message="YOUR TURN",
    )


def _require(state: SessionState, *phases: Phase) -> None:
    if state.phase not in phases:
        expected = ", ".join(p.name for p in phases)
        raise SessionError(f"Not allowed in phase {state.phase.name} (expected {expected})")


# ---- transitions ----


def _finish_loading(state: SessionState, event: FinishLoading) -> SessionState:
    _require(state, Phase.LOADING)
    return replace(state, phase=Phase.MENU)


def _open_board_select(state: SessionState, event: OpenBoardSelect) -> SessionState:
    _require(state, Phase.MENU)
    return replace(state, phase=Phase.BOARD_SELECT)


def _start_game(state: SessionState, event: StartGame) -> SessionState:
    _require(state, Phase.BOARD_SELECT)
    info = board_by_id(event.board_id)
    if info is None:
        raise SessionError(f"Unknown board: {event.board_id}")
    if not info.is_available(state.level):
        raise SessionError(f"Board {info.name} unlocks at level {info.unlock_level}")
    fresh = replace(
        state,
        board_info=info,
        bank=0,
        owned_powers=(RELENTLESS_PAWN,),
        shop_offers=(),
    )
    return _reset_level(fresh, 1, event.relentless_col, event.sturdy_col)


def _player_move(state: SessionState, event: PlayerMove) -> SessionState:
    _require(state, Phase.PLAYING)
    if state.turn is not Color.WHITE:
        raise SessionError("Not White's turn")
    move = event.move
    if move.to_pos not in get_valid_moves(state.board, move.from_pos, state.rules, color=Color.WHITE):
        raise IllegalMoveError(f"Illegal move: {move.uci()}")

    result = apply_move(state.board, move)
    if result.blocked:
        return replace(
            state,
            board=result.board,
            turn=Color.BLACK,
            message="ATTACK BLOCKED BY STURDY PAWN!",
            feedback=(Feedback.CAPTURE,),
        )

    if result.captured is None:
        return replace(
            state,
            board=result.board,
            turn=Color.BLACK,
            message="ENEMY'S TURN...",
            feedback=(Feedback.MOVE,),
        )

    value = PIECE_VALUES[result.captured.type]
    scored = replace(
        state,
        board=result.board,
        bank=state.bank + value,
        capture_progress=state.capture_progress + value,
        feedback=(Feedback.CAPTURE,),
    )
    if result.captured_king:
        return replace(scored, phase=Phase.LEVEL_WON, message="ENEMY KING CAPTURED!")
    if result.moved.power_id == RELENTLESS_PAWN.id:
        return replace(scored, turn=Color.WHITE, message="RELENTLESS! MOVE AGAIN.")
    return replace(scored, turn=Color.BLACK, message="ENEMY'S TURN...")


def _ai_turn(state: SessionState, event: AiTurn) -> SessionState:
    _require(state, Phase.PLAYING)
    if state.turn is not Color.BLACK:
        raise SessionError("Not Black's turn")

    if event.move is None:
        # Checkmate and stalemate both go to the player
        if is_check(state.board, Color.BLACK, state.rules):
            message = "CHECKMATE! YOU WIN!"
        else:
            message = "STALEMATE! YOU WIN!"
        return replace(state, phase=Phase.LEVEL_WON, message=message, feedback=())

    result = apply_move(state.board, event.move)
    if result.blocked:
        return replace(
            state,
            board=result.board,
            turn=Color.WHITE,
            message="STURDY PAWN BLOCKED AI ATTACK!",
            feedback=(Feedback.CAPTURE,),
        )
    feedback = (Feedback.CAPTURE,) if result.captured is not None else (Feedback.MOVE,)
    if result.captured_king:
        return replace(
            state,
            board=result.board,
            phase=Phase.GAME_OVER,
            message="YOUR KING WAS CAPTURED!",
            feedback=feedback,
        )
    in_check = is_check(result.board, Color.WHITE, state.rules)
    return replace(
        state,
        board=result.board,
        turn=Color.WHITE,
        message="CHECK! YOUR TURN" if in_check else "YOUR TURN",
        feedback=feedback,
    )


def _summon_king(state: SessionState, event: SummonKing) -> SessionState:
    _require(state, Phase.PLAYING)
    if state.king_spawned:
        raise SessionError("The enemy king is already on the board")
    if not state.can_summon:
        raise SessionError(
            f"Capture value {state.capture_progress} has not reached {state.king_spawn_threshold}"
        )
    board = state.board
    king_pos = board.find_king(Color.BLACK)
    if king_pos is not None:
        board = board.with_changes({king_pos: board.piece_at(king_pos).revealed()})
    return replace(
        state,
        board=board,
        king_spawned=True,
        message="ENEMY KING HAS APPEARED!",
        feedback=(Feedback.SUMMON,),
    )


def _open_shop(state: SessionState, event: OpenShop) -> SessionState:
    _require(state, Phase.LEVEL_WON)
    return replace(state, phase=Phase.SHOP, shop_offers=(), message="Generating wares...")


def _stock_shop(state: SessionState, event: StockShop) -> SessionState:
    _require(state, Phase.SHOP)
    return replace(state, shop_offers=tuple(event.offers), message="")


def _buy_power(state: SessionState, event: BuyPower) -> SessionState:
    _require(state, Phase.SHOP)
    power = next((p for p in state.shop_offers if p.id == event.power_id), None)
    if power is None:
        raise SessionError(f"Power not offered: {event.power_id}")
    if state.bank < power.cost:
        raise SessionError(f"Cannot afford {power.name}: costs {power.cost}, bank holds {state.bank}")
    return replace(
        state,
        bank=state.bank - power.cost,
        owned_powers=state.owned_powers + (power,),
        shop_offers=tuple(p for p in state.shop_offers if p.id != power.id),
        message=f"BOUGHT {power.name.upper()}",
    )


def _leave_shop(state: SessionState, event: LeaveShop) -> SessionState:
    _require(state, Phase.SHOP)
    return replace(state, phase=Phase.LEVEL_SELECT, shop_offers=())


def _next_level(state: SessionState, event: NextLevel) -> SessionState:
    _require(state, Phase.LEVEL_SELECT)
    return _reset_level(state, state.level + 1)


def _return_to_menu(state: SessionState, event: ReturnToMenu) -> SessionState:
    _require(state, Phase.LEVEL_WON, Phase.GAME_OVER)
    return replace(state, phase=Phase.MENU, message="")


_HANDLERS: Dict[Type, Callable[[SessionState, object], SessionState]] = {
    FinishLoading: _finish_loading,
    OpenBoardSelect: _open_board_select,
    StartGame: _start_game,
    PlayerMove: _player_move,
    AiTurn: _ai_turn,
    SummonKing: _summon_king,
    OpenShop: _open_shop,
    StockShop: _stock_shop,
    BuyPower: _buy_power,
    LeaveShop: _leave_shop,
    NextLevel: _next_level,
    ReturnToMenu: _return_to_menu,
}


def reduce(state: SessionState, event: object) -> SessionState:
    """Apply one event. Feedback from the previous transition is dropped."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise SessionError(f"Unknown event: {event!r}")
    return handler(replace(state, feedback=()), event)
