"""
Integration test suite for the BattleChess engine.

Tests components working together end-to-end:
- Full game simulations (engine vs engine)
- Legality of every played move against python-chess
- Background search lifecycle (start / update polling / cancel / callbacks)
- Time budget expiry
- Search outcomes (finished, aborted, no legal moves, worker errors)
- Engine facade (move input, game status)
"""

import logging
import random
import time
from datetime import timedelta

import chess
import pytest

from battlechess.config import Config, EvalConfig, SearchConfig
from battlechess.core.board import Board, apply, diff_boards
from battlechess.core.evaluator import Evaluator
from battlechess.core.movegen import MoveGenerator
from battlechess.core.pieces import Color, Piece, Tile
from battlechess.core.search import (
    Aborted, Finished, JobState, NoLegalMoves, NoLegalMovesError, SearchJob, find_best_move,
)
from battlechess.core.utils import format_info
from battlechess.main import Engine, is_checkmate, is_draw, is_in_check, self_play

FOOLS_MATE = [("F2", "F3"), ("E7", "E5"), ("G2", "G4"), ("D8", "H4")]

NO_CLOCK = SearchConfig(time_limit_ms=None, randomize_ties=False)


def fools_mate(plies=4):
    return apply(Board(), FOOLS_MATE[:plies])


def poll(job, timeout=30.0):
    """Drive ``job.update()`` the way a frame loop would."""
    deadline = time.monotonic() + timeout
    while not job.update():
        assert time.monotonic() < deadline, "search did not end in time"
        time.sleep(0.005)


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, job):
        self.calls.append(job)


# ════════════════════════════════════════════════════════════════════════════
#  ENGINE VS ENGINE: FULL GAME SIMULATIONS
# ════════════════════════════════════════════════════════════════════════════


class TestFullGame:
    """The engine can play games against itself without breaking the rules."""

    def _engine(self, seed=7):
        config = Config(search=SearchConfig(depth=1, time_limit_ms=None, seed=seed))
        return Engine(config=config)

    def test_self_play_moves_alternate_colors(self):
        engine = self._engine()
        expected = Color.WHITE
        for _ in range(20):
            if engine.is_game_over():
                break
            move = engine.play_best_move()
            assert move is not None
            assert move.piece.color == expected
            expected = expected.opponent
            assert engine.turn == expected
        assert len(engine.move_history) > 0

    def test_self_play_matches_python_chess_rules(self):
        engine = self._engine(seed=11)
        for _ in range(8):
            reference = engine.board.to_chess(engine.turn)
            ours = {m.uci() for m in engine.legal_moves()}
            assert ours == {m.uci() for m in reference.legal_moves}
            move = engine.play_best_move()
            assert move is not None
            assert chess.Move.from_uci(move.uci()) in reference.legal_moves

    def test_board_indexes_stay_consistent(self):
        engine = self._engine(seed=3)
        for _ in range(10):
            if engine.play_best_move() is None:
                break
            occupied = {tile for tile, piece in engine.board.occupied().items() if piece != Piece.EMPTY}
            assert engine.board.pieces(Color.WHITE) | engine.board.pieces(Color.BLACK) == occupied
            assert engine.board.king_tile(Color.WHITE) is not None
            assert engine.board.king_tile(Color.BLACK) is not None

    def test_same_seed_same_game(self):
        first, second = self._engine(seed=5), self._engine(seed=5)
        for _ in range(6):
            assert first.play_best_move() == second.play_best_move()
        assert first.board == second.board


# ════════════════════════════════════════════════════════════════════════════
#  SEARCH OUTCOMES
# ════════════════════════════════════════════════════════════════════════════


class TestSearchOutcomes:
    def test_mate_in_one(self):
        outcome = find_best_move(fools_mate(3), Color.BLACK, 2, 60, config=NO_CLOCK)
        assert isinstance(outcome, Finished)
        assert outcome.board == fools_mate()
        assert outcome.value == 1.0
        move = diff_boards(fools_mate(3), outcome.board, Color.BLACK)
        assert (move.origin.code, move.destination.code) == ("D8", "H4")

    def test_timedelta_budget(self):
        outcome = find_best_move(Board(), Color.WHITE, 1, timedelta(seconds=60), config=NO_CLOCK)
        assert isinstance(outcome, Finished)

    def test_result_is_a_legal_child(self):
        board = Board()
        outcome = find_best_move(board, Color.BLACK, 2, 60, config=NO_CLOCK)
        assert isinstance(outcome, Finished)
        assert outcome.board in MoveGenerator().legal_child_boards(Color.BLACK, board)

    def test_node_count_depth_one(self):
        job = SearchJob(Board(), Color.WHITE, 1, 60, config=NO_CLOCK)
        job.run()
        # the root plus its twenty children
        assert job.processed_nodes == 21
        assert job.stats.processed_nodes == 21

    def test_no_legal_moves_when_mated(self):
        job = SearchJob(fools_mate(), Color.WHITE, 2, 60, config=NO_CLOCK)
        outcome = job.run()
        assert isinstance(outcome, NoLegalMoves)
        assert job.state == JobState.DONE
        with pytest.raises(NoLegalMovesError):
            job.finished_result()
        with pytest.raises(NoLegalMovesError):
            job.random_finished_result()

    def test_no_legal_moves_when_drawn(self):
        board = Board.from_pieces({"E1": Piece.WHITE_KING, "E8": Piece.BLACK_KING})
        outcome = SearchJob(board, Color.WHITE, 3, 60, config=NO_CLOCK).run()
        assert isinstance(outcome, NoLegalMoves)
        assert outcome.stats.processed_nodes == 1

    def test_random_pick_among_ties(self):
        board = Board.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
        cfg = SearchConfig(time_limit_ms=None, randomize_ties=True, seed=3)
        job = SearchJob(board, Color.WHITE, 1, config=cfg)
        outcome = job.run()
        tied = {child.board for child in job.best_children}
        assert len(tied) == len(MoveGenerator().legal_child_boards(Color.WHITE, board))
        assert outcome.board in tied
        assert outcome.stats.tied_moves == len(tied)

    def test_seeded_pick_is_reproducible(self):
        board = Board.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
        picks = []
        for _ in range(2):
            job = SearchJob(board, Color.WHITE, 1, 60, config=NO_CLOCK, rng=random.Random(42))
            job.run()
            picks.append(job.random_finished_result())
        assert picks[0] == picks[1]

    def test_finished_result_is_first_tie(self):
        board = Board.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
        job = SearchJob(board, Color.WHITE, 1, 60, config=NO_CLOCK)
        outcome = job.run()
        assert outcome.board == job.best_children[0].board == job.finished_result()

    def test_invalid_depth(self):
        with pytest.raises(ValueError):
            SearchJob(Board(), Color.WHITE, 0)

    def test_worker_error_is_reraised(self):
        class BrokenEvaluator(Evaluator):
            def evaluate(self, board, perspective):
                raise RuntimeError("boom")

        aborted = Recorder()
        job = SearchJob(Board(), Color.WHITE, 1, 60, config=NO_CLOCK,
                        evaluator=BrokenEvaluator(EvalConfig()), on_aborted=aborted)
        with pytest.raises(RuntimeError, match="boom"):
            job.run()
        assert job.state == JobState.ABORTED
        assert len(aborted.calls) == 1

    def test_outcome_logged(self, caplog):
        caplog.set_level(logging.INFO, logger="battlechess")
        SearchJob(Board(), Color.WHITE, 1, 60, config=NO_CLOCK).run()
        messages = [r.getMessage() for r in caplog.records if r.name == "battlechess.core.search"]
        assert any(m.startswith("info depth 1") and "state done" in m for m in messages)


# ════════════════════════════════════════════════════════════════════════════
#  BACKGROUND SEARCH LIFECYCLE
# ════════════════════════════════════════════════════════════════════════════


class TestAsyncSearch:
    def test_background_search_finishes(self):
        finished, aborted = Recorder(), Recorder()
        job = SearchJob(Board(), Color.WHITE, 2, 60, config=NO_CLOCK,
                        on_finished=finished, on_aborted=aborted)
        assert job.state == JobState.CREATED
        job.start()
        poll(job)
        assert job.state == JobState.DONE
        assert finished.calls == [job]
        assert aborted.calls == []
        assert isinstance(job.outcome(), Finished)

    def test_callback_fires_once(self):
        finished = Recorder()
        job = SearchJob(Board(), Color.WHITE, 1, 60, config=NO_CLOCK, on_finished=finished)
        job.start()
        poll(job)
        assert job.update()
        assert job.update()
        assert len(finished.calls) == 1

    def test_time_budget_aborts(self):
        finished, aborted = Recorder(), Recorder()
        job = SearchJob(Board(), Color.WHITE, 5, 0.05, config=NO_CLOCK,
                        on_finished=finished, on_aborted=aborted)
        job.start()
        poll(job)
        assert job.state == JobState.ABORTED
        assert len(aborted.calls) == 1
        assert finished.calls == []
        outcome = job.outcome()
        assert isinstance(outcome, Aborted)
        assert outcome.stats.processed_nodes > 0
        assert outcome.stats.best_value is None
        assert job.wait(10)

    def test_time_budget_aborts_blocking_find(self):
        outcome = find_best_move(Board(), Color.WHITE, 5, 0.05, config=NO_CLOCK, poll_interval=0.005)
        assert isinstance(outcome, Aborted)

    def test_cancel(self):
        aborted = Recorder()
        job = SearchJob(Board(), Color.WHITE, 5, config=NO_CLOCK, on_aborted=aborted)
        job.start()
        job.cancel()
        assert job.state == JobState.ABORTED
        assert job.wait(10)
        assert isinstance(job.outcome(), Aborted)
        assert len(aborted.calls) == 1

    def test_cancel_is_final(self):
        job = SearchJob(Board(), Color.WHITE, 5, config=NO_CLOCK)
        job.start()
        job.cancel()
        job.wait(10)
        job.cancel()
        assert job.state == JobState.ABORTED

    def test_outcome_while_running_raises(self):
        job = SearchJob(Board(), Color.WHITE, 5, config=NO_CLOCK)
        job.start()
        try:
            with pytest.raises(RuntimeError):
                job.outcome()
        finally:
            job.cancel()
            job.wait(10)

    def test_start_twice_raises(self):
        job = SearchJob(Board(), Color.WHITE, 5, config=NO_CLOCK)
        job.start()
        try:
            with pytest.raises(RuntimeError):
                job.start()
        finally:
            job.cancel()
            job.wait(10)

    def test_run_twice_raises(self):
        job = SearchJob(Board(), Color.WHITE, 1, 60, config=NO_CLOCK)
        job.run()
        with pytest.raises(RuntimeError):
            job.run()

    def test_elapsed_and_nodes_grow(self):
        job = SearchJob(Board(), Color.WHITE, 2, 60, config=NO_CLOCK)
        job.start()
        poll(job)
        assert job.elapsed > 0
        assert job.processed_nodes > 21

    def test_engine_start_search(self):
        engine = Engine(depth=1, config=Config(search=NO_CLOCK))
        finished = Recorder()
        job = engine.start_search(on_finished=finished)
        poll(job)
        move = engine.apply_outcome(job.outcome())
        assert move is not None
        assert engine.turn == Color.BLACK
        assert len(finished.calls) == 1

    def test_apply_aborted_outcome_changes_nothing(self):
        engine = Engine(depth=5, time_budget=0.05, config=Config(search=NO_CLOCK))
        job = engine.start_search()
        poll(job)
        assert engine.apply_outcome(job.outcome()) is None
        assert engine.board == Board()
        assert engine.turn == Color.WHITE


# ════════════════════════════════════════════════════════════════════════════
#  ENGINE FACADE
# ════════════════════════════════════════════════════════════════════════════


class TestEngineFacade:
    def _engine(self, **kwargs):
        return Engine(config=Config(search=NO_CLOCK), **kwargs)

    def test_make_move_code(self):
        engine = self._engine()
        assert engine.make_move_code("E2", "E4")
        assert engine.turn == Color.BLACK
        assert engine.board.piece_at("E4") == Piece.WHITE_PAWN
        assert str(engine.move_history[0]) == "PE2-E4"

    def test_illegal_moves_rejected(self):
        engine = self._engine()
        assert not engine.make_move_code("E2", "E5")
        assert not engine.make_move_code("E7", "E5")
        assert not engine.make_move_code("E4", "E5")
        assert engine.board == Board()
        assert engine.turn == Color.WHITE

    def test_pinned_piece_rejected(self):
        engine = self._engine(board=Board.from_fen("4r1k1/8/8/8/8/8/4N3/4K3 w - - 0 1"))
        assert not engine.make_move_code("E2", "C3")

    def test_fools_mate_status(self):
        engine = self._engine()
        for origin, destination in FOOLS_MATE:
            assert engine.game_status() == "ongoing"
            assert engine.make_move_code(origin, destination)
        assert engine.game_status() == "checkmate"
        assert engine.is_game_over()
        assert engine.checking_pieces() == [Tile.from_code("H4")]
        assert engine.legal_moves() == []
        assert engine.get_best_move() is None
        assert engine.play_best_move() is None

    def test_check_status(self):
        engine = self._engine(board=Board.from_fen("4k3/8/4R3/8/8/8/8/4K3 b - - 0 1"), turn=Color.BLACK)
        assert engine.game_status() == "check"
        assert not engine.is_game_over()

    def test_stalemate_status(self):
        engine = self._engine(board=Board.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"), turn=Color.BLACK)
        assert engine.game_status() == "stalemate"
        assert engine.is_game_over()

    def test_draw_status(self):
        board = Board.from_pieces({"E1": Piece.WHITE_KING, "E8": Piece.BLACK_KING})
        engine = self._engine(board=board)
        assert engine.game_status() == "draw"
        assert engine.get_best_move() is None

    def test_invalid_status(self):
        engine = self._engine(board=Board.from_pieces({"E1": Piece.WHITE_KING}))
        assert engine.game_status() == "invalid"

    def test_best_move_finds_mate(self):
        engine = self._engine(depth=2, board=fools_mate(3), turn=Color.BLACK)
        move = engine.get_best_move()
        assert (move.origin.code, move.destination.code) == ("D8", "H4")
        assert engine.board == fools_mate(3)

    def test_module_predicates(self):
        mated = fools_mate()
        assert is_in_check(Color.WHITE, mated)
        assert is_checkmate(Color.WHITE, mated)
        assert not is_checkmate(Color.BLACK, mated)
        assert not is_draw(mated)
        assert is_draw(Board.from_pieces({"A1": Piece.WHITE_KING, "H8": Piece.BLACK_KING}))

    def test_module_predicates_take_a_generator(self):
        movegen = MoveGenerator()
        assert is_in_check(Color.WHITE, fools_mate(), movegen)
        assert is_checkmate(Color.WHITE, fools_mate(), move_generator=movegen)

    def test_collaborators_are_injected(self):
        movegen, evaluator = MoveGenerator(), Evaluator(EvalConfig())
        engine = self._engine(move_generator=movegen, evaluator=evaluator)
        assert engine.movegen is movegen
        assert engine.evaluator is evaluator

    def test_construction_leaves_logging_alone(self):
        logger = logging.getLogger("battlechess")
        handlers, level = list(logger.handlers), logger.level
        self._engine()
        assert logger.handlers == handlers
        assert logger.level == level

    def test_self_play_runs_to_limit(self, capsys):
        engine = Engine(depth=1, config=Config(search=SearchConfig(time_limit_ms=None, seed=1)))
        status = self_play(engine, max_plies=4)
        assert len(engine.move_history) == 4
        assert status == engine.game_status()
        assert "4. " in capsys.readouterr().out


# ════════════════════════════════════════════════════════════════════════════
#  INFO LINE
# ════════════════════════════════════════════════════════════════════════════


class TestInfoLine:
    def test_format(self):
        line = format_info(3, 0.25, 1000, 0.5, 2, "done")
        assert line == "info depth 3 value +0.2500 nodes 1000 nps 2000 time 500 ties 2 state done"

    def test_format_without_value(self):
        line = format_info(5, None, 10, 0.0, 0, "aborted")
        assert "value -" in line
        assert "nps 0" in line


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
