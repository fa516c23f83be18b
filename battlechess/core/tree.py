"""Minimax tree nodes.

A node knows how to expand itself into child nodes and how to score itself
as a leaf; the search driver in ``search.py`` does the rest.
"""
from __future__ import annotations

import weakref
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional

from battlechess.core.board import Board
from battlechess.core.evaluator import Evaluator
from battlechess.core.movegen import MoveGenerator
from battlechess.core.pieces import Color


class NodeType(Enum):
    MAX = "max"
    MIN = "min"

    @property
    def flipped(self) -> "NodeType":
        return NodeType.MIN if self == NodeType.MAX else NodeType.MAX


class SearchNode(ABC):
    def __init__(self, depth: int, parent: Optional["SearchNode"], node_type: NodeType):
        self.depth = depth
        self.node_type = node_type
        self.best_children: List["SearchNode"] = []
        self.is_root = parent is None
        # non-owning back link, only used for diagnostics
        self._parent = weakref.ref(parent) if parent is not None else None

    @property
    def parent(self) -> Optional["SearchNode"]:
        return self._parent() if self._parent is not None else None

    def is_terminal(self) -> bool:
        return self.depth <= 0 or self.end_condition()

    @abstractmethod
    def children(self) -> List["SearchNode"]:
        ...

    @abstractmethod
    def static_value(self) -> float:
        ...

    @abstractmethod
    def end_condition(self) -> bool:
        ...

    def release(self) -> None:
        """Drop expanded children that did not make it into best_children."""


class ChessNode(SearchNode):
    """A board position in the search.

    ``fixed_color`` is the side the whole search plays for. MAX nodes move
    that side's pieces, MIN nodes move the opponent's.
    """

    def __init__(self, board: Board, depth: int, parent: Optional["ChessNode"], node_type: NodeType,
                 fixed_color: Color, move_generator: MoveGenerator, evaluator: Evaluator):
        super().__init__(depth, parent, node_type)
        self.board = board
        self.fixed_color = fixed_color
        self.movegen = move_generator
        self.evaluator = evaluator
        self._children: Optional[List[ChessNode]] = None

    @property
    def color_to_move(self) -> Color:
        return self.fixed_color if self.node_type == NodeType.MAX else self.fixed_color.opponent

    def children(self) -> List["ChessNode"]:
        if self._children is None:
            boards = self.movegen.legal_child_boards(self.color_to_move, self.board)
            self._children = [
                ChessNode(child, self.depth - 1, self, self.node_type.flipped,
                          self.fixed_color, self.movegen, self.evaluator)
                for child in boards
            ]
        return self._children

    def end_condition(self) -> bool:
        if self.board.is_draw():
            return True
        # the root is the move we still have to make, never a finished game
        if self.is_root:
            return False
        return not self.children()

    def _mover_stuck(self) -> bool:
        if self._children is not None:
            return not self._children
        # horizon leaves are never expanded
        return not self.movegen.has_legal_moves(self.color_to_move, self.board)

    def static_value(self) -> float:
        if (self.evaluator.cfg.score_terminal_outcomes and not self.is_root
                and not self.board.is_draw() and self._mover_stuck()):
            if self.movegen.is_in_check(self.color_to_move, self.board):
                return self.evaluator.checkmate(self.color_to_move, self.fixed_color)
            return self.evaluator.stalemate()
        return self.evaluator.evaluate(self.board, self.fixed_color)

    def release(self) -> None:
        self._children = None

    def __repr__(self) -> str:
        return f"ChessNode({self.node_type.name}, depth={self.depth}, to_move={self.color_to_move.name})"
