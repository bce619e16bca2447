"""
Scoring of seating assignments.

Cost is lexicographic, ``(hard_violations, soft_score)``:

    hard_violations  guests over table capacity
                     + must_apart pairs sharing a table
                     + block members away from their block's majority table
    soft_score       weight of every satisfied prefer_together / prefer_apart

Fewer hard violations always wins; soft score only breaks ties. Unmet soft
preferences count zero, never negative.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

from .constraints import ConstraintModel
from .models import Assignment


@dataclass(frozen=True)
class Cost:
    hard_violations: int
    soft_score: int

    @property
    def rank(self) -> Tuple[int, int]:
        """Sort key, smaller is better."""
        return (self.hard_violations, -self.soft_score)

    def better_than(self, other: "Cost") -> bool:
        return self.rank < other.rank

    def no_worse_than(self, other: "Cost") -> bool:
        return self.rank <= other.rank

    def __str__(self) -> str:
        return f"hard={self.hard_violations} soft={self.soft_score}"


def _overflow(count: int, capacity: int) -> int:
    return max(0, count - capacity)


def _separated(table_counts: Mapping[Optional[str], int]) -> int:
    """Members of a block not seated at its most populated table."""
    if not table_counts:
        return 0
    return sum(table_counts.values()) - max(table_counts.values())


def score(model: ConstraintModel, assignment: Assignment) -> Cost:
    """Score an assignment from scratch. Unseated guests count for nothing."""
    hard = 0
    for table_id in model.table_ids:
        hard += _overflow(assignment.count(table_id), model.capacity(table_id))

    for pref in model.apart_pairs:
        ta = assignment.table_of(pref.guest_a)
        if ta is not None and ta == assignment.table_of(pref.guest_b):
            hard += 1

    for block in model.blocks:
        if block.size > 1:
            hard += _separated(Counter(assignment.table_of(g) for g in block.members if g in assignment))

    soft = 0
    for pref in model.soft_preferences:
        ta = assignment.table_of(pref.guest_a)
        tb = assignment.table_of(pref.guest_b)
        if ta is None or tb is None:
            continue
        if (ta == tb) == pref.kind.wants_together:
            soft += pref.weight
    return Cost(hard, soft)


class ScoreState:
    """Running cost of an assignment, updated one guest at a time.

    ``delta`` only looks at the guest's old and new table and at the guest's
    own preference edges, so a move is cheap to evaluate. Moves of several
    guests are sequences of single relocations; undo by relocating back to the
    returned table and index.
    """

    def __init__(self, model: ConstraintModel, assignment: Assignment) -> None:
        self.model = model
        self.assignment = assignment
        self._counts: Dict[str, int] = {t: assignment.count(t) for t in model.table_ids}
        self._block_tables: Dict[int, Counter] = {
            block.id: Counter(assignment.table_of(g) for g in block.members if g in assignment)
            for block in model.blocks
            if block.size > 1
        }
        full = score(model, assignment)
        self.hard = full.hard_violations
        self.soft = full.soft_score

    @property
    def cost(self) -> Cost:
        return Cost(self.hard, self.soft)

    def count(self, table_id: str) -> int:
        return self._counts[table_id]

    def remaining(self, table_id: str) -> int:
        return self.model.capacity(table_id) - self._counts[table_id]

    def worst_overflow(self) -> int:
        return max((_overflow(n, self.model.capacity(t)) for t, n in self._counts.items()), default=0)

    def delta(self, guest_id: str, table_id: str) -> Tuple[int, int]:
        """Change in ``(hard, soft)`` if ``guest_id`` sat at ``table_id``.

        Works for seated guests (a relocation) and unseated ones (a placement).
        """
        model = self.model
        src = self.assignment.table_of(guest_id)
        if src == table_id:
            return 0, 0

        dhard = 0
        if src is not None:
            cap = model.capacity(src)
            dhard += _overflow(self._counts[src] - 1, cap) - _overflow(self._counts[src], cap)
        cap = model.capacity(table_id)
        dhard += _overflow(self._counts[table_id] + 1, cap) - _overflow(self._counts[table_id], cap)

        for other in model.apart_guests[guest_id]:
            t_other = self.assignment.table_of(other)
            if t_other is None:
                continue
            if t_other == src:
                dhard -= 1
            elif t_other == table_id:
                dhard += 1

        counts = self._block_tables.get(model.block_of[guest_id])
        if counts is not None:
            after = Counter(counts)
            if src is not None:
                after[src] -= 1
                if after[src] == 0:
                    del after[src]
            after[table_id] += 1
            dhard += _separated(after) - _separated(counts)

        dsoft = 0
        for edge in model.soft_edges[guest_id]:
            t_other = self.assignment.table_of(edge.other)
            if t_other is None:
                continue
            now_ok = (t_other == table_id) == edge.kind.wants_together
            if src is None:
                # placement: the pair only starts counting now
                dsoft += edge.weight if now_ok else 0
                continue
            was_ok = (t_other == src) == edge.kind.wants_together
            if now_ok != was_ok:
                dsoft += edge.weight if now_ok else -edge.weight
        return dhard, dsoft

    def place(self, guest_id: str, table_id: str) -> Tuple[int, int]:
        """Seat an unseated guest and return the cost delta."""
        dhard, dsoft = self.delta(guest_id, table_id)
        self.assignment.place(guest_id, table_id)
        self._counts[table_id] += 1
        counts = self._block_tables.get(self.model.block_of[guest_id])
        if counts is not None:
            counts[table_id] += 1
        self.hard += dhard
        self.soft += dsoft
        return dhard, dsoft

    def relocate(self, guest_id: str, table_id: str, index: Optional[int] = None) -> Tuple[str, int]:
        """Move a seated guest, keep the cost current, return ``(old_table, old_index)``."""
        src = self.assignment.table_of(guest_id)
        if src == table_id:
            return src, self.assignment.seat_of(guest_id) - 1
        dhard, dsoft = self.delta(guest_id, table_id)
        old = self.assignment.move(guest_id, table_id, index)
        self._counts[src] -= 1
        self._counts[table_id] += 1
        counts = self._block_tables.get(self.model.block_of[guest_id])
        if counts is not None:
            counts[src] -= 1
            if counts[src] == 0:
                del counts[src]
            counts[table_id] += 1
        self.hard += dhard
        self.soft += dsoft
        return old
