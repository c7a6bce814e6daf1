from __future__ import annotations

from dataclasses import replace
from typing import Optional

import pytest

from gambit.board import Board, Color, Move, Piece, PieceType, Position, create_initial_board
from gambit.errors import IllegalMoveError, SessionError
from gambit.powers import RELENTLESS_PAWN, STURDY_PAWN, PawnPower
from gambit.session import (
    AiTurn,
    BuyPower,
    Feedback,
    FinishLoading,
    LeaveShop,
    NextLevel,
    OpenBoardSelect,
    OpenShop,
    Phase,
    PlayerMove,
    ReturnToMenu,
    SessionState,
    StartGame,
    StockShop,
    SummonKing,
    reduce,
    seed_powers,
)

SHIELD = PawnPower("shield-pawn-1", "Shield Pawn", "Blocks things.", 5)
LANCE = PawnPower("lance-pawn-2", "Lance Pawn", "Pokes things.", 40)


def piece(kind: PieceType, color: Color, name: str = "", power: Optional[str] = None, visible: bool = True) -> Piece:
    return Piece(f"{color.value}-{kind.value}-{name}", kind, color, power_id=power, is_visible=visible)


def started(board_id: str = "classic") -> SessionState:
    state = SessionState()
    for event in (FinishLoading(), OpenBoardSelect(), StartGame(board_id, relentless_col=0, sturdy_col=7)):
        state = reduce(state, event)
    return state


def playing_on(pieces, **changes) -> SessionState:
    return replace(started(), board=Board.from_pieces(pieces), **changes)


def won_level(bank: int = 20) -> SessionState:
    return replace(started(), phase=Phase.LEVEL_WON, bank=bank)


def test_menu_flow_to_playing():
    state = reduce(SessionState(), FinishLoading())
    assert state.phase is Phase.MENU
    state = reduce(state, OpenBoardSelect())
    assert state.phase is Phase.BOARD_SELECT

    with pytest.raises(SessionError):
        reduce(state, PlayerMove(Move.from_uci("e2e4")))


def test_start_game_seeds_level_one():
    state = started()
    assert state.phase is Phase.PLAYING
    assert state.level == 1
    assert state.bank == 0
    assert state.capture_progress == 0
    assert state.owned_powers == (RELENTLESS_PAWN,)
    assert state.turn is Color.WHITE
    assert not state.king_spawned
    assert state.board.piece_at(Position(6, 0)).power_id == RELENTLESS_PAWN.id
    assert state.board.piece_at(Position(1, 7)).power_id == STURDY_PAWN.id
    assert not state.board.piece_at(Position(0, 4)).is_visible
    powered = [p for _, p in state.board.pieces() if p.power_id]
    assert len(powered) == 2


def test_locked_board_requires_level():
    state = reduce(reduce(SessionState(), FinishLoading()), OpenBoardSelect())
    with pytest.raises(SessionError):
        reduce(state, StartGame("fortress"))
    with pytest.raises(SessionError):
        reduce(state, StartGame("atlantis"))

    veteran = replace(state, level=10)
    assert reduce(veteran, StartGame("fortress")).board_info.id == "fortress"


def test_player_double_step_hands_turn_to_black():
    state = started()
    after = reduce(state, PlayerMove(Move.from_uci("e2e4")))

    assert after.turn is Color.BLACK
    assert after.board.piece_at(Position(6, 4)) is None
    assert after.board.piece_at(Position(4, 4)).type is PieceType.PAWN
    assert after.feedback == (Feedback.MOVE,)
    # reducer leaves its input alone
    assert state.board.piece_at(Position(6, 4)) is not None
    assert state.turn is Color.WHITE


def test_long_march_rejects_double_step():
    state = started("pawn_march")
    with pytest.raises(IllegalMoveError):
        reduce(state, PlayerMove(Move.from_uci("e2e4")))
    assert reduce(state, PlayerMove(Move.from_uci("e2e3"))).turn is Color.BLACK


def test_player_cannot_move_black_or_out_of_turn():
    state = started()
    with pytest.raises(IllegalMoveError):
        reduce(state, PlayerMove(Move.from_uci("e7e5")))
    black_turn = reduce(state, PlayerMove(Move.from_uci("e2e4")))
    with pytest.raises(SessionError):
        reduce(black_turn, PlayerMove(Move.from_uci("d2d4")))


def test_capture_fills_bank_and_meter():
    state = playing_on(
        {
            Position(4, 0): piece(PieceType.ROOK, Color.WHITE),
            Position(2, 0): piece(PieceType.QUEEN, Color.BLACK),
            Position(7, 4): piece(PieceType.KING, Color.WHITE),
            Position(0, 4): piece(PieceType.KING, Color.BLACK, visible=False),
        }
    )
    assert state.king_spawn_threshold == 10

    after = reduce(state, PlayerMove(Move(Position(4, 0), Position(2, 0))))

    assert after.capture_progress == 9
    assert after.bank == 9
    assert after.turn is Color.BLACK
    assert after.feedback == (Feedback.CAPTURE,)
    assert not after.can_summon


def test_summon_unlocks_at_threshold():
    state = playing_on(
        {
            Position(4, 0): piece(PieceType.ROOK, Color.WHITE),
            Position(2, 0): piece(PieceType.KNIGHT, Color.BLACK),
            Position(7, 4): piece(PieceType.KING, Color.WHITE),
            Position(0, 4): piece(PieceType.KING, Color.BLACK, visible=False),
        },
        capture_progress=7,
    )
    with pytest.raises(SessionError):
        reduce(state, SummonKing())

    after = reduce(state, PlayerMove(Move(Position(4, 0), Position(2, 0))))
    assert after.capture_progress == 10
    assert after.can_summon

    summoned = reduce(after, SummonKing())
    assert summoned.king_spawned
    assert summoned.board.piece_at(Position(0, 4)).is_visible
    assert summoned.feedback == (Feedback.SUMMON,)
    assert not summoned.can_summon
    with pytest.raises(SessionError):
        reduce(summoned, SummonKing())


def test_relentless_capture_keeps_the_turn():
    state = playing_on(
        {
            Position(6, 0): piece(PieceType.PAWN, Color.WHITE, "0", power=RELENTLESS_PAWN.id),
            Position(5, 1): piece(PieceType.KNIGHT, Color.BLACK),
            Position(7, 4): piece(PieceType.KING, Color.WHITE),
            Position(0, 4): piece(PieceType.KING, Color.BLACK, visible=False),
        }
    )
    after = reduce(state, PlayerMove(Move(Position(6, 0), Position(5, 1))))

    assert after.turn is Color.WHITE
    assert after.message == "RELENTLESS! MOVE AGAIN."
    again = reduce(after, PlayerMove(Move(Position(7, 4), Position(7, 3))))
    assert again.turn is Color.BLACK


def test_relentless_pawn_without_capture_passes_turn():
    state = started()
    after = reduce(state, PlayerMove(Move.from_uci("a2a3")))
    assert after.turn is Color.BLACK


def test_sturdy_pawn_blocks_player_attack():
    state = playing_on(
        {
            Position(4, 7): piece(PieceType.ROOK, Color.WHITE),
            Position(1, 7): piece(PieceType.PAWN, Color.BLACK, "7", power=STURDY_PAWN.id),
            Position(7, 4): piece(PieceType.KING, Color.WHITE),
            Position(0, 4): piece(PieceType.KING, Color.BLACK, visible=False),
        }
    )
    after = reduce(state, PlayerMove(Move(Position(4, 7), Position(1, 7))))

    assert after.board.piece_at(Position(4, 7)).type is PieceType.ROOK
    assert after.board.piece_at(Position(1, 7)).power_id is None
    assert after.bank == 0
    assert after.turn is Color.BLACK
    assert after.message == "ATTACK BLOCKED BY STURDY PAWN!"


def test_capturing_summoned_king_wins_level():
    state = playing_on(
        {
            Position(1, 4): piece(PieceType.QUEEN, Color.WHITE),
            Position(0, 4): piece(PieceType.KING, Color.BLACK),
            Position(7, 4): piece(PieceType.KING, Color.WHITE),
        },
        king_spawned=True,
    )
    after = reduce(state, PlayerMove(Move(Position(1, 4), Position(0, 4))))
    assert after.phase is Phase.LEVEL_WON
    assert after.bank == 100
    assert after.message == "ENEMY KING CAPTURED!"


def test_ai_reply_returns_turn_and_reports_check():
    state = replace(
        playing_on(
            {
                Position(7, 4): piece(PieceType.KING, Color.WHITE),
                Position(0, 0): piece(PieceType.ROOK, Color.BLACK),
                Position(0, 7): piece(PieceType.KING, Color.BLACK, visible=False),
            }
        ),
        turn=Color.BLACK,
    )
    after = reduce(state, AiTurn(Move(Position(0, 0), Position(0, 4))))
    assert after.turn is Color.WHITE
    assert after.message == "CHECK! YOUR TURN"
    assert after.feedback == (Feedback.MOVE,)

    with pytest.raises(SessionError):
        reduce(after, AiTurn(Move(Position(0, 4), Position(0, 3))))


def test_ai_capturing_white_king_ends_game():
    state = replace(
        playing_on(
            {
                Position(7, 4): piece(PieceType.KING, Color.WHITE),
                Position(0, 4): piece(PieceType.ROOK, Color.BLACK),
            }
        ),
        turn=Color.BLACK,
    )
    after = reduce(state, AiTurn(Move(Position(0, 4), Position(7, 4))))
    assert after.phase is Phase.GAME_OVER
    assert after.message == "YOUR KING WAS CAPTURED!"

    assert reduce(after, ReturnToMenu()).phase is Phase.MENU


def test_ai_without_moves_is_a_player_win():
    base = {
        Position(7, 7): piece(PieceType.KING, Color.BLACK),
        Position(7, 6): piece(PieceType.PAWN, Color.BLACK, "a"),
        Position(6, 7): piece(PieceType.PAWN, Color.BLACK, "b"),
        Position(6, 6): piece(PieceType.PAWN, Color.BLACK, "c"),
        Position(0, 0): piece(PieceType.KING, Color.WHITE),
    }
    stalemate = reduce(replace(playing_on(base), turn=Color.BLACK), AiTurn(None))
    assert stalemate.phase is Phase.LEVEL_WON
    assert stalemate.message == "STALEMATE! YOU WIN!"

    checking = dict(base)
    checking[Position(5, 6)] = piece(PieceType.KNIGHT, Color.WHITE)
    mate = reduce(replace(playing_on(checking), turn=Color.BLACK), AiTurn(None))
    assert mate.phase is Phase.LEVEL_WON
    assert mate.message == "CHECKMATE! YOU WIN!"


def test_sturdy_blocks_ai_attack():
    state = replace(
        playing_on(
            {
                Position(6, 2): piece(PieceType.PAWN, Color.WHITE, "2", power=STURDY_PAWN.id),
                Position(2, 2): piece(PieceType.ROOK, Color.BLACK),
                Position(7, 4): piece(PieceType.KING, Color.WHITE),
            }
        ),
        turn=Color.BLACK,
    )
    after = reduce(state, AiTurn(Move(Position(2, 2), Position(6, 2))))
    assert after.turn is Color.WHITE
    assert after.board.piece_at(Position(2, 2)).type is PieceType.ROOK
    assert after.board.piece_at(Position(6, 2)).power_id is None
    assert after.message == "STURDY PAWN BLOCKED AI ATTACK!"


def test_shop_purchase_rules():
    shop = reduce(won_level(bank=20), OpenShop())
    assert shop.phase is Phase.SHOP
    shop = reduce(shop, StockShop((SHIELD, LANCE)))

    with pytest.raises(SessionError):
        reduce(shop, BuyPower(LANCE.id))
    with pytest.raises(SessionError):
        reduce(shop, BuyPower("no-such-power"))

    bought = reduce(shop, BuyPower(SHIELD.id))
    assert bought.bank == 15
    assert bought.owned_powers == (RELENTLESS_PAWN, SHIELD)
    assert bought.shop_offers == (LANCE,)


def test_next_level_keeps_bank_and_places_owned_powers():
    shop = reduce(reduce(won_level(bank=20), OpenShop()), StockShop((SHIELD,)))
    shop = reduce(shop, BuyPower(SHIELD.id))
    select = reduce(shop, LeaveShop())
    assert select.phase is Phase.LEVEL_SELECT

    level_two = reduce(select, NextLevel())
    assert level_two.phase is Phase.PLAYING
    assert level_two.level == 2
    assert level_two.bank == 15
    assert level_two.capture_progress == 0
    assert level_two.king_spawn_threshold == 15
    assert not level_two.king_spawned
    assert level_two.turn is Color.WHITE
    assert level_two.board.piece_at(Position(6, 0)).power_id == RELENTLESS_PAWN.id
    assert level_two.board.piece_at(Position(6, 1)).power_id == SHIELD.id
    assert level_two.board.piece_at(Position(6, 2)).power_id is None
    assert all(p.power_id is None for _, p in level_two.board.pieces() if p.color is Color.BLACK)


def test_seed_powers_skips_non_pawn_squares():
    board = create_initial_board().with_changes(
        {Position(6, 0): None, Position(6, 1): piece(PieceType.KNIGHT, Color.WHITE)}
    )
    seeded = seed_powers(board, 3, (RELENTLESS_PAWN, SHIELD))
    assert seeded.piece_at(Position(6, 1)).power_id is None
    assert seeded.piece_at(Position(6, 2)).power_id == RELENTLESS_PAWN.id
    assert seeded.piece_at(Position(6, 3)).power_id == SHIELD.id


def test_feedback_is_cleared_between_transitions():
    state = reduce(started(), PlayerMove(Move.from_uci("e2e4")))
    assert state.feedback == (Feedback.MOVE,)
    cleared = reduce(replace(state, phase=Phase.LEVEL_WON), OpenShop())
    assert cleared.feedback == ()
