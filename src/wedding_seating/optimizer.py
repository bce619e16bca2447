"""
Local search optimizer.

Simulated annealing over the moves in ``moves``:

    INITIALIZING -> SEARCHING -> CONVERGED | BUDGET_EXPIRED -> DONE

Acceptance is lexicographic like the cost. A move that lowers the hard
violation count is always taken, one that raises it never is. With the hard
count unchanged, a soft gain or a sideways move is taken, and a soft loss is
taken with probability ``exp(delta / T)``.

All randomness comes from the caller's ``random.Random`` and the temperature
only depends on the iteration number, so a run bounded by iterations is
reproducible bit for bit. A wall-clock deadline can only cut the same
trajectory short.
"""
from __future__ import annotations

import logging
import math
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .config import SolverOptions
from .constraints import ConstraintModel
from .models import Assignment, Budget
from .moves import MoveGenerator, do_move, undo_move
from .scorer import Cost, ScoreState

logger = logging.getLogger(__name__)


class SearchState(str, Enum):
    INITIALIZING = "initializing"
    SEARCHING = "searching"
    CONVERGED = "converged"
    BUDGET_EXPIRED = "budget_expired"
    DONE = "done"


@dataclass
class SearchStats:
    iterations: int = 0
    accepted: int = 0
    improvements: int = 0
    stop_reason: Optional[SearchState] = None
    initial_cost: Optional[Cost] = None
    best_cost: Optional[Cost] = None
    elapsed_seconds: float = 0.0


def _calculate_cooling_rate(steps: int, start_temperature: float, end_temperature: float) -> float:
    """Per-iteration factor taking the temperature from start to end in ``steps``."""
    if steps <= 1:
        return 1.0
    return (end_temperature / start_temperature) ** (1 / (steps - 1))


class LocalSearch:
    """One optimization run. Use ``run()`` once."""

    def __init__(
        self,
        model: ConstraintModel,
        initial: Assignment,
        budget: Budget,
        rng: random.Random,
        options: Optional[SolverOptions] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.model = model
        self.initial = initial
        self.budget = budget
        self.rng = rng
        self.options = options or SolverOptions()
        self.clock = clock
        self.state = SearchState.INITIALIZING
        self.stats = SearchStats()

    def _accept(self, dhard: int, dsoft: int, temperature: float) -> bool:
        if dhard != 0:
            return dhard < 0
        if dsoft >= 0:
            return True
        return self.rng.random() < math.exp(dsoft / temperature)

    def _out_of_budget(self, deadline: Optional[float]) -> bool:
        if self.budget.max_iterations is not None and self.stats.iterations >= self.budget.max_iterations:
            return True
        return deadline is not None and self.clock() >= deadline

    def run(self) -> Assignment:
        """Search from the initial assignment and return the best one found."""
        if self.state is not SearchState.INITIALIZING:
            raise RuntimeError("LocalSearch.run() can only be called once")
        opts = self.options
        started = self.clock()
        deadline = started + self.budget.max_seconds if self.budget.max_seconds is not None else None

        current = self.initial.copy()
        scores = ScoreState(self.model, current)
        generator = MoveGenerator(self.model, scores, self.rng, opts.max_draws)
        best = current.copy()
        best_cost = scores.cost
        self.stats.initial_cost = best_cost

        horizon = self.budget.max_iterations or opts.iteration_horizon
        cooling = _calculate_cooling_rate(horizon, opts.start_temperature, opts.end_temperature)
        temperature = opts.start_temperature
        stall = 0

        logger.info(
            "Local search start: %s, budget %s, move kinds %s",
            best_cost,
            self.budget,
            [k.value for k in generator.kinds],
        )
        self.state = SearchState.SEARCHING
        while True:
            if self._out_of_budget(deadline):
                self.state = SearchState.BUDGET_EXPIRED
                break
            if not generator.kinds or stall >= opts.stall_window:
                self.state = SearchState.CONVERGED
                break

            self.stats.iterations += 1
            move = generator.propose()
            if move is None:
                stall += 1
            else:
                before = scores.cost
                undo = do_move(move, scores)
                dhard = scores.hard - before.hard_violations
                dsoft = scores.soft - before.soft_score
                if self._accept(dhard, dsoft, temperature):
                    self.stats.accepted += 1
                    if dhard < 0 or (dhard == 0 and dsoft > 0):
                        self.stats.improvements += 1
                        stall = 0
                    else:
                        stall += 1
                    if scores.cost.better_than(best_cost):
                        best = current.copy()
                        best_cost = scores.cost
                else:
                    undo_move(undo, scores)
                    stall += 1
            temperature = max(opts.end_temperature, temperature * cooling)

        self.stats.stop_reason = self.state
        self.stats.best_cost = best_cost
        self.stats.elapsed_seconds = self.clock() - started
        logger.info(
            "Local search %s after %d iterations (%d accepted, %d improving): %s -> %s",
            self.state.value,
            self.stats.iterations,
            self.stats.accepted,
            self.stats.improvements,
            self.stats.initial_cost,
            best_cost,
        )
        self.state = SearchState.DONE
        return best


def optimize(
    model: ConstraintModel,
    initial: Assignment,
    budget: Budget,
    rng: random.Random,
    options: Optional[SolverOptions] = None,
) -> Assignment:
    """Improve ``initial`` within ``budget`` and return the best assignment found."""
    return LocalSearch(model, initial, budget, rng, options).run()
