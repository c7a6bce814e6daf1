from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .board import Board, Color, Move
from .config import SETTINGS
from .evaluator import Evaluator
from .moves import apply_move
from .rules import BoardRules, legal_moves

log = logging.getLogger("gambit.ai")

INF = 10**9


@dataclass
class SearchResult:
    best_move: Optional[Move]
    score: int
    nodes: int
    depth: int


class AIPlayer:
    """Minimax with alpha-beta pruning playing Black.

    Deterministic: no randomness and no clock, so the same board, rules and
    level always produce the same move. Ties go to the first move in
    row/column enumeration order.
    """

    def __init__(self, max_depth: Optional[int] = None) -> None:
        self.max_depth = max(1, max_depth if max_depth is not None else SETTINGS.max_search_depth)

    def depth_for_level(self, level: int) -> int:
        return max(1, min(self.max_depth, 1 + level // 3))

    def choose_move(self, board: Board, rules: BoardRules, level: int) -> Optional[Move]:
        depth = self.depth_for_level(level)
        result = self.search(board, rules, depth)
        log.debug(
            "level %d depth %d: %s (score %d, %d nodes)",
            level,
            depth,
            result.best_move.uci() if result.best_move else None,
            result.score,
            result.nodes,
        )
        return result.best_move

    def search(self, board: Board, rules: BoardRules, depth: int) -> SearchResult:
        best_score = INF
        best_move: Optional[Move] = None
        nodes = 0

        # Root keeps enumeration order so ties resolve to the first move found
        for move in legal_moves(board, Color.BLACK, rules):
            result = apply_move(board, move)
            if result.captured_king:
                score, sub_nodes = Evaluator.king_capture(result.captured.color, 1), 1
            else:
                score, sub_nodes = self._alphabeta(
                    result.board, rules, depth - 1, -INF, best_score, maximizing=True, ply=1
                )
            nodes += sub_nodes + 1
            if score < best_score:
                best_score = score
                best_move = move

        if best_move is None:
            best_score = Evaluator.evaluate(board)

        return SearchResult(best_move=best_move, score=best_score, nodes=nodes, depth=depth)

    def _alphabeta(
        self,
        board: Board,
        rules: BoardRules,
        depth: int,
        alpha: int,
        beta: int,
        maximizing: bool,
        ply: int,
    ) -> Tuple[int, int]:
        if depth <= 0:
            return Evaluator.evaluate(board), 1

        color = Color.WHITE if maximizing else Color.BLACK
        moves = self._ordered(board, legal_moves(board, color, rules))
        if not moves:
            return Evaluator.evaluate(board), 1

        nodes = 0
        value = -INF if maximizing else INF
        for move in moves:
            result = apply_move(board, move)
            if result.captured_king:
                score, child_nodes = Evaluator.king_capture(result.captured.color, ply + 1), 1
            else:
                score, child_nodes = self._alphabeta(
                    result.board, rules, depth - 1, alpha, beta, not maximizing, ply + 1
                )
            nodes += child_nodes + 1
            if maximizing:
                value = max(value, score)
                alpha = max(alpha, value)
            else:
                value = min(value, score)
                beta = min(beta, value)
            if alpha >= beta:
                break
        return value, nodes

    @staticmethod
    def _ordered(board: Board, moves: List[Move]) -> List[Move]:
        # Captures first; sort is stable so enumeration order breaks ties
        return sorted(moves, key=lambda m: board.piece_at(m.to_pos) is None)


def find_best_move(board: Board, rules: BoardRules, level: int) -> Optional[Move]:
    """Black's move for ``level``, or None when Black cannot move at all."""
    return AIPlayer().choose_move(board, rules, level)
