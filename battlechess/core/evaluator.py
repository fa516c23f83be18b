from typing import Optional

from battlechess.config import CONFIG, EvalConfig
from battlechess.core.board import Board
from battlechess.core.pieces import Color

MATE_VALUE = 1.0
DRAW_VALUE = 0.0


class Evaluator:
    """Material balance seen from one fixed side, scaled into [-1, 1]."""

    def __init__(self, cfg: Optional[EvalConfig] = None):
        self.cfg = cfg or CONFIG.eval

    def evaluate(self, board: Board, perspective: Color) -> float:
        own = board.material(perspective, self.cfg.piece_values)
        opponent = board.material(perspective.opponent, self.cfg.piece_values)
        total = own + opponent
        # bare kings (or kings and zero-valued pieces): nothing to compare
        if total == 0:
            return DRAW_VALUE
        return (own - opponent) / total

    def checkmate(self, mated: Color, perspective: Color) -> float:
        """Value of a position where ``mated`` has been checkmated."""
        return -MATE_VALUE if mated == perspective else MATE_VALUE

    def stalemate(self) -> float:
        return DRAW_VALUE
