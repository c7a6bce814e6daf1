from __future__ import annotations

import asyncio
import logging
import random
from typing import Dict, List, Optional, Protocol, Union

from .abilities import AbilityProvider, OpenAIAbilityProvider, load_shop_offers
from .ai import AIPlayer
from .board import Color, Move, Position
from .config import SETTINGS
from .powers import find_power
from .rules import AVAILABLE_BOARDS, get_valid_moves, is_check
from .session import (
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
)

log = logging.getLogger("gambit.game")


class FeedbackHooks(Protocol):
    def on_move(self) -> None: ...

    def on_capture(self) -> None: ...

    def on_summon(self) -> None: ...


class SilentHooks:
    def on_move(self) -> None:
        pass

    def on_capture(self) -> None:
        pass

    def on_summon(self) -> None:
        pass


class Game:
    """Owns the current session state and drives it for the presentation layer.

    Every change goes through ``session.reduce``. After a player move hands
    the turn to Black, the AI reply is computed and applied before returning.
    Feedback hooks are fire-and-forget: their failures are logged and ignored.
    """

    def __init__(
        self,
        ai: Optional[AIPlayer] = None,
        provider: Optional[AbilityProvider] = None,
        hooks: Optional[FeedbackHooks] = None,
        rng: Optional[random.Random] = None,
        shop_size: Optional[int] = None,
    ) -> None:
        self.ai = ai or AIPlayer()
        self.provider: AbilityProvider = provider or OpenAIAbilityProvider()
        self.hooks: FeedbackHooks = hooks or SilentHooks()
        self.rng = rng or random.Random()
        self.shop_size = shop_size if shop_size is not None else SETTINGS.shop_size
        self.state = SessionState()
        self.last_ai_move: Optional[Move] = None

    def dispatch(self, event: object) -> SessionState:
        self.state = reduce(self.state, event)
        log.debug("%s -> %s (%s)", type(event).__name__, self.state.phase.name, self.state.message)
        self._notify(self.state.feedback)
        return self.state

    def _notify(self, feedback) -> None:
        hooks = {
            Feedback.MOVE: self.hooks.on_move,
            Feedback.CAPTURE: self.hooks.on_capture,
            Feedback.SUMMON: self.hooks.on_summon,
        }
        for item in feedback:
            hook = hooks[item]
            try:
                hook()
            except Exception:
                log.exception("Feedback hook %s failed", item.value)

    # ---- menus ----

    def finish_loading(self) -> SessionState:
        return self.dispatch(FinishLoading())

    def open_board_select(self) -> SessionState:
        return self.dispatch(OpenBoardSelect())

    def start(self, board_id: str) -> SessionState:
        self.last_ai_move = None
        return self.dispatch(
            StartGame(board_id, relentless_col=self.rng.randrange(8), sturdy_col=self.rng.randrange(8))
        )

    def menu(self) -> SessionState:
        return self.dispatch(ReturnToMenu())

    # ---- play ----

    def valid_moves(self, square: Union[str, Position]) -> List[Position]:
        """Destinations for one of White's pieces; empty unless it is White's turn."""
        pos = Position.from_square_name(square) if isinstance(square, str) else square
        if self.state.phase is not Phase.PLAYING or self.state.turn is not Color.WHITE:
            return []
        return get_valid_moves(self.state.board, pos, self.state.rules, color=Color.WHITE)

    def push(self, move: Union[str, Move]) -> Optional[Move]:
        """Apply the player's move, then Black's reply if the turn passed.

        Returns the AI move, or None when Black did not (or could not) move.
        """
        if isinstance(move, str):
            move = Move.from_uci(move)
        self.dispatch(PlayerMove(move))
        self.last_ai_move = None
        if self.state.phase is Phase.PLAYING and self.state.turn is Color.BLACK:
            return self.play_ai_turn()
        return None

    def play_ai_turn(self) -> Optional[Move]:
        state = self.state
        ai_move = self.ai.choose_move(state.board, state.rules, state.level)
        self.dispatch(AiTurn(ai_move))
        self.last_ai_move = ai_move
        return ai_move

    def summon(self) -> SessionState:
        return self.dispatch(SummonKing())

    # ---- shop and levels ----

    async def open_shop_async(self) -> SessionState:
        self.dispatch(OpenShop())
        offers = await load_shop_offers(self.provider, self.shop_size)
        return self.dispatch(StockShop(tuple(offers)))

    def open_shop(self) -> SessionState:
        return asyncio.run(self.open_shop_async())

    def buy(self, power_id: str) -> SessionState:
        return self.dispatch(BuyPower(power_id))

    def leave_shop(self) -> SessionState:
        return self.dispatch(LeaveShop())

    def next_level(self) -> SessionState:
        self.last_ai_move = None
        return self.dispatch(NextLevel())

    # ---- views ----

    def snapshot(self) -> Dict[str, object]:
        state = self.state
        known = state.owned_powers + state.shop_offers
        board: List[List[Optional[Dict[str, object]]]] = []
        for row in state.board.grid:
            cells: List[Optional[Dict[str, object]]] = []
            for piece in row:
                if piece is None or not piece.is_visible:
                    cells.append(None)
                    continue
                power = find_power(piece.power_id, known)
                cells.append(
                    {
                        "id": piece.id,
                        "type": piece.type.value,
                        "color": piece.color.value,
                        "power": power.to_dict() if power else None,
                    }
                )
            board.append(cells)

        in_check = state.phase is Phase.PLAYING and is_check(state.board, Color.WHITE, state.rules)
        return {
            "phase": state.phase.value,
            "board": board,
            "board_id": state.board_info.id,
            "boards": [info.to_dict(state.level) for info in AVAILABLE_BOARDS],
            "turn": state.turn.value,
            "level": state.level,
            "bank": state.bank,
            "capture_progress": state.capture_progress,
            "king_spawn_threshold": state.king_spawn_threshold,
            "king_spawned": state.king_spawned,
            "can_summon": state.can_summon,
            "in_check": in_check,
            "owned_powers": [p.to_dict() for p in state.owned_powers],
            "shop_offers": [p.to_dict() for p in state.shop_offers],
            "message": state.message,
            "ai_move": self.last_ai_move.uci() if self.last_ai_move else None,
        }
