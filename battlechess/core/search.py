"""Alpha-beta minimax over ChessNode trees, run on a background thread.

A SearchJob walks CREATED -> RUNNING -> DONE | ABORTED. The caller polls it
with ``update()`` (once per frame, say) instead of blocking on it. Every
recursive call checks the cancellation event and the deadline, so an expired
search unwinds on its own; no thread is ever killed.
"""
from __future__ import annotations

import logging
import math
import random
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Callable, List, Optional, Union

from battlechess.config import CONFIG, SearchConfig
from battlechess.core.board import Board
from battlechess.core.evaluator import Evaluator
from battlechess.core.movegen import MoveGenerator
from battlechess.core.pieces import Color
from battlechess.core.tree import ChessNode, NodeType, SearchNode
from battlechess.core.utils import log_info

logger = logging.getLogger(__name__)

INF = float("inf")


class SearchCancelled(Exception):
    """Raised inside the recursion to unwind a cancelled or expired search."""


class NoLegalMovesError(RuntimeError):
    """A result was requested from a search whose root had no moves."""


class JobState(Enum):
    CREATED = "created"
    RUNNING = "running"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class SearchStats:
    processed_nodes: int
    elapsed: float
    max_depth: int
    best_value: Optional[float] = None
    tied_moves: int = 0


@dataclass
class Finished:
    board: Board
    value: float
    stats: SearchStats


@dataclass
class Aborted:
    stats: SearchStats


@dataclass
class NoLegalMoves:
    stats: SearchStats


SearchOutcome = Union[Finished, Aborted, NoLegalMoves]


def alphabeta(node: SearchNode, alpha: float, beta: float, visit: Callable[[], None]) -> float:
    """Fail-hard alpha-beta keeping every child that ties the running bound.

    Children are searched with the bound widened by one ulp, so a child
    returning exactly the bound holds its true value, not a cutoff.
    """
    visit()
    if node.is_terminal():
        return node.static_value()

    node.best_children.clear()
    if node.node_type == NodeType.MAX:
        for child in node.children():
            value = alphabeta(child, math.nextafter(alpha, -INF), beta, visit)
            if value > alpha:
                node.best_children[:] = [child]
                alpha = value
            elif value == alpha:
                node.best_children.append(child)
            if beta <= alpha:
                break
        result = alpha
    else:
        for child in node.children():
            value = alphabeta(child, alpha, math.nextafter(beta, INF), visit)
            if value < beta:
                node.best_children[:] = [child]
                beta = value
            elif value == beta:
                node.best_children.append(child)
            if beta <= alpha:
                break
        result = beta

    if not node.is_root:
        node.release()
    return result


def minimax(node: SearchNode, visit: Callable[[], None]) -> float:
    """Plain minimax without pruning; same tie handling as alphabeta."""
    visit()
    if node.is_terminal():
        return node.static_value()

    maximizing = node.node_type == NodeType.MAX
    best = -INF if maximizing else INF
    node.best_children.clear()
    for child in node.children():
        value = minimax(child, visit)
        if (value > best) if maximizing else (value < best):
            node.best_children[:] = [child]
            best = value
        elif value == best:
            node.best_children.append(child)

    if not node.is_root:
        node.release()
    return best


def _seconds(budget: Union[float, timedelta, None]) -> Optional[float]:
    if isinstance(budget, timedelta):
        return budget.total_seconds()
    return budget


class SearchJob:
    def __init__(self, board: Board, color: Color, max_depth: Optional[int] = None,
                 time_budget: Union[float, timedelta, None] = None, *,
                 config: Optional[SearchConfig] = None,
                 move_generator: Optional[MoveGenerator] = None,
                 evaluator: Optional[Evaluator] = None,
                 rng: Optional[random.Random] = None,
                 pruning: bool = True,
                 on_finished: Optional[Callable[["SearchJob"], None]] = None,
                 on_aborted: Optional[Callable[["SearchJob"], None]] = None):
        """Prepare a search for ``color`` to move on ``board``.

        ``time_budget`` is in seconds (or a timedelta); None searches to
        ``max_depth`` whatever it takes. Both default to the config values.
        """
        self.cfg = config or CONFIG.search
        self.max_depth = self.cfg.depth if max_depth is None else max_depth
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")
        self.time_budget = _seconds(time_budget) if time_budget is not None else self.cfg.time_budget
        self.color = color
        self.pruning = pruning
        self.root = ChessNode(board, self.max_depth, None, NodeType.MAX, color,
                              move_generator or MoveGenerator(), evaluator or Evaluator())
        self._rng = rng or random.Random(self.cfg.seed)
        self._on_finished = on_finished
        self._on_aborted = on_aborted

        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._state = JobState.CREATED
        self._processed = 0
        self._start_time: Optional[float] = None
        self._elapsed = 0.0
        self._value: Optional[float] = None
        self._error: Optional[BaseException] = None
        self._notified = False

    # ── lifecycle ──────────────────────────────────────────────────────────

    def start(self) -> None:
        """Run the search on a background thread and start the clock."""
        self._begin()
        self._thread = threading.Thread(target=self._search, name="battlechess-search", daemon=True)
        self._thread.start()

    def run(self) -> SearchOutcome:
        """Run the search in the calling thread and return its outcome."""
        self._begin()
        self._search()
        self.update()
        return self.outcome()

    def _begin(self) -> None:
        with self._lock:
            if self._state != JobState.CREATED:
                raise RuntimeError(f"search job already {self._state.value}")
            self._state = JobState.RUNNING
            self._start_time = time.monotonic()
        logger.debug("search started: %s to move, depth %d, budget %s",
                     self.color.name, self.max_depth, self.time_budget)

    def cancel(self) -> None:
        """Ask the search to stop; the job reports ABORTED from now on."""
        self._cancel.set()
        self._finish(JobState.ABORTED)

    def update(self) -> bool:
        """Poll the job. True once it is DONE or ABORTED (callbacks fire once)."""
        if self.state == JobState.RUNNING and self._expired():
            logger.debug("search over budget after %.3fs, cancelling", self.elapsed)
            self.cancel()

        state = self.state
        if state not in (JobState.DONE, JobState.ABORTED):
            return False
        if not self._notified:
            self._notified = True
            callback = self._on_finished if state == JobState.DONE else self._on_aborted
            if callback is not None:
                callback(self)
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker thread exits; True when the job has ended."""
        if self._thread is not None:
            self._thread.join(timeout)
        return self.update()

    # ── worker ─────────────────────────────────────────────────────────────

    def _expired(self) -> bool:
        if self.time_budget is None or self._start_time is None:
            return False
        return time.monotonic() - self._start_time >= self.time_budget

    def _visit(self) -> None:
        with self._lock:
            self._processed += 1
        if self._cancel.is_set() or self._expired():
            raise SearchCancelled()

    def _search(self) -> None:
        try:
            if self.pruning:
                value = alphabeta(self.root, -INF, INF, self._visit)
            else:
                value = minimax(self.root, self._visit)
        except SearchCancelled:
            self._finish(JobState.ABORTED)
            return
        except Exception as exc:  # handed back to the caller by outcome()
            self._error = exc
            self._finish(JobState.ABORTED)
            return
        self._value = value
        self._finish(JobState.DONE)

    def _finish(self, state: JobState) -> None:
        with self._lock:
            if self._state not in (JobState.CREATED, JobState.RUNNING):
                return
            self._state = state
            if self._start_time is not None:
                self._elapsed = time.monotonic() - self._start_time
        log_info(logger, self.stats, state)

    # ── results ────────────────────────────────────────────────────────────

    @property
    def state(self) -> JobState:
        with self._lock:
            return self._state

    @property
    def processed_nodes(self) -> int:
        with self._lock:
            return self._processed

    @property
    def elapsed(self) -> float:
        with self._lock:
            if self._state == JobState.RUNNING and self._start_time is not None:
                return time.monotonic() - self._start_time
            return self._elapsed

    @property
    def stats(self) -> SearchStats:
        done = self.state == JobState.DONE
        return SearchStats(
            processed_nodes=self.processed_nodes,
            elapsed=self.elapsed,
            max_depth=self.max_depth,
            best_value=self._value if done else None,
            tied_moves=len(self.root.best_children) if done else 0,
        )

    @property
    def best_children(self) -> List[ChessNode]:
        return list(self.root.best_children)

    def finished_result(self) -> Board:
        """First of the equally best boards."""
        if not self.root.best_children:
            raise NoLegalMovesError("the searched position has no legal moves")
        return self.root.best_children[0].board

    def random_finished_result(self) -> Board:
        """A uniformly random pick among the equally best boards."""
        if not self.root.best_children:
            raise NoLegalMovesError("the searched position has no legal moves")
        return self._rng.choice(self.root.best_children).board

    def outcome(self) -> SearchOutcome:
        state = self.state
        if state in (JobState.CREATED, JobState.RUNNING):
            raise RuntimeError(f"search job is still {state.value}")
        if self._error is not None:
            raise self._error
        if state == JobState.ABORTED:
            return Aborted(self.stats)
        if not self.root.best_children:
            return NoLegalMoves(self.stats)
        board = self.random_finished_result() if self.cfg.randomize_ties else self.finished_result()
        return Finished(board, self._value, self.stats)


def find_best_move(board: Board, color: Color, max_depth: Optional[int] = None,
                   time_budget: Union[float, timedelta, None] = None, *,
                   config: Optional[SearchConfig] = None,
                   move_generator: Optional[MoveGenerator] = None,
                   evaluator: Optional[Evaluator] = None,
                   rng: Optional[random.Random] = None,
                   poll_interval: Optional[float] = None) -> SearchOutcome:
    """Start a SearchJob and poll it until it ends."""
    job = SearchJob(board, color, max_depth, time_budget, config=config,
                    move_generator=move_generator, evaluator=evaluator, rng=rng)
    interval = poll_interval if poll_interval is not None else job.cfg.poll_interval_ms / 1000.0
    job.start()
    while not job.update():
        time.sleep(interval)
    return job.outcome()
