"""Solve a snapshot end to end: model, initial plan, search, report, export."""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from .builder import build_initial
from .config import SolverOptions
from .constraints import ConstraintModel
from .exporter import export
from .models import Assignment, Budget, ConflictReport, SeatAssignmentRecord
from .optimizer import LocalSearch, SearchStats
from .reporter import report
from .scorer import Cost, score
from .snapshot import Snapshot

logger = logging.getLogger(__name__)


@dataclass
class SeatingResult:
    model: ConstraintModel
    assignment: Assignment
    report: ConflictReport
    records: List[SeatAssignmentRecord]
    cost: Cost
    initial_cost: Cost
    stats: SearchStats


def solve(
    snapshot: Snapshot,
    budget: Budget,
    seed: int,
    options: Optional[SolverOptions] = None,
) -> SeatingResult:
    """Compute a seating plan for ``snapshot``.

    The same snapshot, budget, seed and options give the same records when the
    budget is bounded by iterations. Raises ``ValidationError`` for bad input.
    """
    options = options or SolverOptions()
    model = snapshot.build_model()
    initial = build_initial(model)
    search = LocalSearch(model, initial, budget, random.Random(seed), options)
    best = search.run()
    cost = score(model, best)
    conflicts = report(model, best, options.notable_weight)
    logger.info(
        "Solved layout %s: %d guests at %d tables, %s, %d hard and %d soft conflicts",
        snapshot.layout_id or "-",
        len(model.guests),
        len(model.tables),
        cost,
        len(conflicts.hard),
        len(conflicts.soft),
    )
    return SeatingResult(
        model=model,
        assignment=best,
        report=conflicts,
        records=export(best),
        cost=cost,
        initial_cost=search.stats.initial_cost,
        stats=search.stats,
    )
