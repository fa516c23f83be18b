"""Game-facing wrapper: owns the current position and asks the search for moves."""
import logging
from typing import List, Optional

from battlechess.config import CONFIG, Config, configure_logging
from battlechess.core.board import Board, Move, diff_boards
from battlechess.core.evaluator import Evaluator
from battlechess.core.movegen import MoveGenerator
from battlechess.core.pieces import Color, Tile, TileLike, as_tile
from battlechess.core.search import Finished, SearchJob, SearchOutcome, find_best_move

logger = logging.getLogger(__name__)


def is_in_check(color: Color, board: Board, move_generator: Optional[MoveGenerator] = None) -> bool:
    return (move_generator or MoveGenerator()).is_in_check(color, board)


def is_checkmate(color: Color, board: Board, move_generator: Optional[MoveGenerator] = None) -> bool:
    return (move_generator or MoveGenerator()).is_checkmate(color, board)


def is_draw(board: Board) -> bool:
    return board.is_draw()


class Engine:
    def __init__(self, depth: Optional[int] = None, time_budget: Optional[float] = None,
                 board: Optional[Board] = None, turn: Color = Color.WHITE,
                 config: Optional[Config] = None,
                 move_generator: Optional[MoveGenerator] = None,
                 evaluator: Optional[Evaluator] = None):
        self.config = config or CONFIG
        self.depth = depth if depth is not None else self.config.search.depth
        self.time_budget = time_budget if time_budget is not None else self.config.search.time_budget
        self.board = board if board is not None else Board()
        self.turn = turn
        self.movegen = move_generator or MoveGenerator()
        self.evaluator = evaluator or Evaluator(self.config.eval)
        self.move_history: List[Move] = []

    # ── search ─────────────────────────────────────────────────────────────

    def search(self) -> SearchOutcome:
        """Search the current position for the side to move (blocking)."""
        return find_best_move(self.board, self.turn, self.depth, self.time_budget,
                              config=self.config.search, move_generator=self.movegen,
                              evaluator=self.evaluator)

    def start_search(self, **callbacks) -> SearchJob:
        """Start a background search; poll the returned job with ``update()``."""
        job = SearchJob(self.board, self.turn, self.depth, self.time_budget,
                        config=self.config.search, move_generator=self.movegen,
                        evaluator=self.evaluator, **callbacks)
        job.start()
        return job

    def get_best_move(self) -> Optional[Move]:
        """The move the engine would play, or None when the search gave no result."""
        outcome = self.search()
        if isinstance(outcome, Finished):
            return diff_boards(self.board, outcome.board, self.turn)
        logger.info("no move from search: %s", type(outcome).__name__)
        return None

    def apply_outcome(self, outcome: SearchOutcome) -> Optional[Move]:
        """Play the board chosen by a finished search; other outcomes change nothing."""
        if not isinstance(outcome, Finished):
            return None
        move = diff_boards(self.board, outcome.board, self.turn)
        self._push(move, outcome.board)
        return move

    def play_best_move(self) -> Optional[Move]:
        return self.apply_outcome(self.search())

    # ── moves ──────────────────────────────────────────────────────────────

    def legal_moves(self) -> List[Move]:
        return self.movegen.legal_moves(self.turn, self.board)

    def make_move(self, move: Move) -> bool:
        """Play ``move`` for the side to move. Returns True if it was legal."""
        if not self.movegen.is_legal(self.turn, self.board, move):
            return False
        self._push(move, self.board.child(move.origin, move.destination))
        return True

    def make_move_code(self, origin: TileLike, destination: TileLike) -> bool:
        origin, destination = as_tile(origin), as_tile(destination)
        return self.make_move(Move(origin, destination, self.board.piece_at(origin)))

    def _push(self, move: Move, board: Board) -> None:
        self.board = board
        self.move_history.append(move)
        self.turn = self.turn.opponent

    # ── status ─────────────────────────────────────────────────────────────

    def game_status(self) -> str:
        if self.board.king_tile(Color.WHITE) is None or self.board.king_tile(Color.BLACK) is None:
            return "invalid"
        if self.board.is_draw():
            return "draw"
        in_check = self.movegen.is_in_check(self.turn, self.board)
        if not self.movegen.has_legal_moves(self.turn, self.board):
            return "checkmate" if in_check else "stalemate"
        return "check" if in_check else "ongoing"

    def is_game_over(self) -> bool:
        return self.game_status() in ("invalid", "draw", "checkmate", "stalemate")

    def checking_pieces(self) -> List[Tile]:
        return self.movegen.checking_pieces(self.turn, self.board)

    def print_board(self):
        print(self.board)


def self_play(engine: Engine, max_plies: int = 200) -> str:
    """Let the engine play both sides until the game ends; returns the final status."""
    for _ in range(max_plies):
        if engine.is_game_over():
            break
        move = engine.play_best_move()
        if move is None:
            break
        print(f"{len(engine.move_history):3d}. {move}")
    engine.print_board()
    return engine.game_status()


if __name__ == "__main__":
    configure_logging(CONFIG)
    print(f"Result: {self_play(Engine())}")
