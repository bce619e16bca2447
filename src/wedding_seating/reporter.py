"""
Conflict reporting.

Re-derives from a final assignment everything the user may need to fix:

    over_capacity    guests beyond a table's capacity
    contradiction    must_apart pair chained together by must_together
    must_apart       must_apart pair sharing a table
    block_split      must_together block spread over tables
    prefer_*         unmet soft preference at or above the notable weight

Hard items come first. Their penalties add up to the scorer's hard violation
count.

Per-table summaries grade each table A to F on the mean preference score of
the guest pairs seated there:
    together preference (hard or soft): +weight
    apart preference (hard or soft):    -weight
    no preference:                       0
"""
from __future__ import annotations

from collections import Counter
from itertools import combinations
from typing import Dict, List, Tuple

from .constraints import ConstraintModel
from .models import (
    Assignment,
    Conflict,
    ConflictKind,
    ConflictReport,
    PreferenceKind,
    Severity,
    TableSummary,
)


def _grade(mean: float) -> str:
    if mean >= 2.5:
        return "A"
    if mean >= 1.5:
        return "B"
    if mean >= 0.8:
        return "C"
    if mean >= 0.2:
        return "D"
    return "F"


def _names(model: ConstraintModel, guest_ids) -> str:
    return ", ".join(model.guests[g].name or g for g in guest_ids)


def _capacity_conflicts(model: ConstraintModel, assignment: Assignment) -> List[Conflict]:
    out = []
    for table_id, table in model.tables.items():
        seated = assignment.count(table_id)
        if seated > table.capacity:
            out.append(
                Conflict(
                    kind=ConflictKind.OVER_CAPACITY,
                    severity=Severity.HARD,
                    guest_ids=assignment.members(table_id)[table.capacity:],
                    table_ids=(table_id,),
                    message=f"Table {table.label} is over capacity ({seated}/{table.capacity})",
                    penalty=seated - table.capacity,
                )
            )
    return out


def _apart_conflicts(model: ConstraintModel, assignment: Assignment) -> List[Conflict]:
    out = []
    for item in model.contradictions:
        pref = item.preference
        ta = assignment.table_of(pref.guest_a)
        together = ta == assignment.table_of(pref.guest_b)
        out.append(
            Conflict(
                kind=ConflictKind.CONTRADICTION,
                severity=Severity.HARD,
                guest_ids=item.chain,
                table_ids=(ta,) if together else (),
                message=(
                    f"{_names(model, (pref.guest_a,))} and {_names(model, (pref.guest_b,))} must sit apart "
                    f"but are linked by must_together through {' -> '.join(item.chain)}"
                ),
                penalty=1 if together else 0,
                preference=pref,
            )
        )

    contradicted = {item.preference.pair for item in model.contradictions}
    for pref in model.apart_pairs:
        if pref.pair in contradicted:
            continue
        ta = assignment.table_of(pref.guest_a)
        if ta is not None and ta == assignment.table_of(pref.guest_b):
            out.append(
                Conflict(
                    kind=ConflictKind.MUST_APART,
                    severity=Severity.HARD,
                    guest_ids=(pref.guest_a, pref.guest_b),
                    table_ids=(ta,),
                    message=f"{_names(model, pref.pair)} must sit apart but share table {model.tables[ta].label}",
                    penalty=1,
                    preference=pref,
                )
            )
    return out


def _split_conflicts(model: ConstraintModel, assignment: Assignment) -> List[Conflict]:
    order = {t: i for i, t in enumerate(model.table_ids)}
    out = []
    for block in model.blocks:
        if block.size < 2:
            continue
        counts = Counter(assignment.table_of(g) for g in block.members)
        if len(counts) < 2:
            continue
        majority = min(counts, key=lambda t: (-counts[t], order[t]))
        separated = tuple(g for g in block.members if assignment.table_of(g) != majority)
        others = sorted((t for t in counts if t != majority), key=order.__getitem__)
        out.append(
            Conflict(
                kind=ConflictKind.BLOCK_SPLIT,
                severity=Severity.HARD,
                guest_ids=separated,
                table_ids=(majority, *others),
                message=(
                    f"Group {_names(model, block.members)} does not fit one table; "
                    f"{_names(model, separated)} seated away from {model.tables[majority].label}"
                ),
                penalty=len(separated),
            )
        )
    return out


def _soft_conflicts(model: ConstraintModel, assignment: Assignment, notable_weight: int) -> List[Conflict]:
    out = []
    for pref in model.soft_preferences:
        if pref.weight < notable_weight:
            continue
        ta = assignment.table_of(pref.guest_a)
        tb = assignment.table_of(pref.guest_b)
        together = ta == tb
        if together == pref.kind.wants_together:
            continue
        if pref.kind is PreferenceKind.PREFER_TOGETHER:
            kind = ConflictKind.PREFER_TOGETHER
            message = f"{_names(model, pref.pair)} would like to sit together"
            tables: Tuple[str, ...] = (ta, tb)
        else:
            kind = ConflictKind.PREFER_APART
            message = f"{_names(model, pref.pair)} would rather not share table {model.tables[ta].label}"
            tables = (ta,)
        out.append(
            Conflict(
                kind=kind,
                severity=Severity.SOFT,
                guest_ids=(pref.guest_a, pref.guest_b),
                table_ids=tables,
                message=f"{message} (priority {pref.weight})",
                weight=pref.weight,
                preference=pref,
            )
        )
    return out


def table_summaries(model: ConstraintModel, assignment: Assignment) -> Tuple[TableSummary, ...]:
    """Pair score totals, means and grades per table."""
    pair_value: Dict[Tuple[str, str], int] = {}
    for pref in model.preferences:
        sign = 1 if pref.kind.wants_together else -1
        pair_value[pref.pair] = pair_value.get(pref.pair, 0) + sign * pref.weight

    out = []
    for table_id, table in model.tables.items():
        total = pos = neg = pairs = 0
        for a, b in combinations(assignment.members(table_id), 2):
            v = pair_value.get((a, b) if a <= b else (b, a), 0)
            total += v
            pairs += 1
            if v > 0:
                pos += 1
            elif v < 0:
                neg += 1
        mean = total / pairs if pairs else 0.0
        out.append(
            TableSummary(
                table_id=table_id,
                seated=assignment.count(table_id),
                capacity=table.capacity,
                total_score=total,
                mean_score=mean,
                pair_count=pairs,
                pos_pairs=pos,
                neg_pairs=neg,
                grade=_grade(mean),
            )
        )
    return tuple(out)


def report(model: ConstraintModel, assignment: Assignment, notable_weight: int = 3) -> ConflictReport:
    """Build the conflict report for a final assignment. Read-only."""
    conflicts = (
        _capacity_conflicts(model, assignment)
        + _apart_conflicts(model, assignment)
        + _split_conflicts(model, assignment)
        + _soft_conflicts(model, assignment, notable_weight)
    )
    return ConflictReport(conflicts=tuple(conflicts), tables=table_summaries(model, assignment))
