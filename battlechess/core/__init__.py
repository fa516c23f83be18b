"""Core engine components: board, move generation, evaluation, search tree and search job."""

from .pieces import Color, Piece, PieceKind, Tile, code_to_indices, indices_to_code
from .board import Board, Move, diff_boards
from .movegen import MoveGenerator
from .evaluator import Evaluator
from .tree import ChessNode, NodeType, SearchNode
from .search import (
    Aborted,
    Finished,
    JobState,
    NoLegalMoves,
    NoLegalMovesError,
    SearchJob,
    SearchOutcome,
    SearchStats,
    find_best_move,
)
