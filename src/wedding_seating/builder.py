"""
Initial assignment builder.

Greedy clustering: pinned guests first, then must_together blocks largest
first, each into the roomiest table that takes the whole block without a
must_apart clash. When that greedy order would leave a block with nowhere to
go, the free blocks are repacked by backtracking over tables. Only a block no
packing can seat whole is force-split. Singletons go last, one at a time,
wherever they add the fewest hard violations.

Always returns a complete assignment. Whatever could not be honoured shows up
in the cost and the conflict report, never as an exception.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

from .constraints import Block, ConstraintModel
from .models import Assignment
from .scorer import ScoreState

logger = logging.getLogger(__name__)

PACK_NODE_LIMIT = 20000


def _apart_clashes(model: ConstraintModel, state: ScoreState, guests: Sequence[str], table_id: str) -> int:
    """must_apart pairs between ``guests`` and other blocks already at ``table_id``."""
    clashes = 0
    for occupant in state.assignment.members(table_id):
        block_id = model.block_of[occupant]
        for g in guests:
            if occupant in model.apart_guests[g] and model.block_of[g] != block_id:
                clashes += 1
    return clashes


def _anchor(model: ConstraintModel, block: Block) -> Optional[str]:
    """Table a block is pinned to, if any of its members are pinned."""
    pinned = Counter(model.pinned[g] for g in block.members if g in model.pinned)
    if not pinned:
        return None
    order = {t: i for i, t in enumerate(model.table_ids)}
    return min(pinned, key=lambda t: (-pinned[t], order[t]))


def _whole_fit(
    model: ConstraintModel, state: ScoreState, pending: List[str], anchor: Optional[str]
) -> Optional[str]:
    candidates = [anchor] if anchor else list(model.table_ids)
    fitting = [
        t
        for t in candidates
        if state.remaining(t) >= len(pending) and _apart_clashes(model, state, pending, t) == 0
    ]
    if not fitting:
        return None
    return max(fitting, key=state.remaining)


def _split_fit(
    model: ConstraintModel, state: ScoreState, pending: List[str], anchor: Optional[str]
) -> Tuple[str, List[str]]:
    """Pick a table and the members of ``pending`` to seat there."""
    with_room = [t for t in model.table_ids if state.remaining(t) > 0]
    if anchor and anchor in with_room:
        with_room = [anchor]

    if not with_room:
        # Out of seats everywhere: keep what is left together where it overflows least.
        table = min(
            model.table_ids,
            key=lambda t: (state.count(t) - model.capacity(t), _apart_clashes(model, state, pending, t)),
        )
        return table, list(pending)

    best: Optional[Tuple[str, List[str]]] = None
    for table in with_room:
        chosen: List[str] = []
        for g in pending:
            if len(chosen) == state.remaining(table):
                break
            if _apart_clashes(model, state, [g], table) == 0:
                chosen.append(g)
        if best is None or (len(chosen), state.remaining(table)) > (len(best[1]), state.remaining(best[0])):
            best = (table, chosen)

    table, chosen = best
    if not chosen:
        # Every table with room clashes with every member; seat them anyway.
        table = max(with_room, key=state.remaining)
        chosen = list(pending[: state.remaining(table)])
    return table, chosen


def _place_block(model: ConstraintModel, state: ScoreState, block: Block) -> None:
    anchor = _anchor(model, block)
    pending = [g for g in block.members if g not in state.assignment]
    while pending:
        table = _whole_fit(model, state, pending, anchor)
        if table is not None:
            for g in pending:
                state.place(g, table)
            return
        table, chosen = _split_fit(model, state, pending, anchor)
        for g in chosen:
            state.place(g, table)
        pending = [g for g in pending if g not in chosen]
        if pending:
            logger.debug(
                "Forced split of block %d: %s at %s, %d member(s) left over",
                block.id,
                ", ".join(chosen),
                table,
                len(pending),
            )
        anchor = None


def _pack_blocks(
    model: ConstraintModel, state: ScoreState, blocks: Sequence[Block], limit: int = PACK_NODE_LIMIT
) -> Optional[Dict[int, str]]:
    """Table for each of ``blocks`` so that all of them sit whole and clash-free.

    Tables are tried roomiest first, so when the plain greedy pass succeeds
    this returns the same plan. Returns None when no packing exists or the
    search gives up after ``limit`` table tries.
    """
    order = {t: i for i, t in enumerate(model.table_ids)}
    room = {t: state.remaining(t) for t in model.table_ids}
    seated = {t: list(state.assignment.members(t)) for t in model.table_ids}
    plan: Dict[int, str] = {}
    tries = 0

    def clashes(block: Block, table_id: str) -> bool:
        return any(o in model.apart_guests[g] for o in seated[table_id] for g in block.members)

    def place(i: int) -> bool:
        nonlocal tries
        if i == len(blocks):
            return True
        block = blocks[i]
        candidates = sorted(
            (t for t in model.table_ids if room[t] >= block.size), key=lambda t: (-room[t], order[t])
        )
        for table_id in candidates:
            tries += 1
            if tries > limit:
                return False
            if clashes(block, table_id):
                continue
            plan[block.id] = table_id
            room[table_id] -= block.size
            seated[table_id].extend(block.members)
            if place(i + 1):
                return True
            del plan[block.id]
            room[table_id] += block.size
            del seated[table_id][-block.size:]
        return False

    if place(0):
        return plan
    logger.debug("No split-free packing for %d block(s) after %d tries", len(blocks), tries)
    return None


def _place_singleton(model: ConstraintModel, state: ScoreState, guest_id: str) -> None:
    order: Dict[str, int] = {t: i for i, t in enumerate(model.table_ids)}

    def key(table_id: str) -> Tuple[int, int, int, int]:
        dhard, dsoft = state.delta(guest_id, table_id)
        return (dhard, -dsoft, -state.remaining(table_id), order[table_id])

    state.place(guest_id, min(model.table_ids, key=key))


def build_initial(model: ConstraintModel) -> Assignment:
    """Build a complete first assignment for ``model``."""
    assignment = Assignment(model.table_ids)
    state = ScoreState(model, assignment)

    for guest_id in model.guest_ids:
        if guest_id in model.pinned:
            state.place(guest_id, model.pinned[guest_id])

    groups = sorted(
        (b for b in model.blocks if b.size > 1),
        key=lambda b: (-b.size, b.id),
    )
    for block in groups:
        if _anchor(model, block) is not None:
            _place_block(model, state, block)

    free = [b for b in groups if _anchor(model, b) is None]
    fitting = [b for b in free if b.size <= model.max_capacity]
    plan = _pack_blocks(model, state, fitting)
    if plan is not None:
        for block in fitting:
            for g in block.members:
                state.place(g, plan[block.id])
    for block in free:
        # Blocks larger than any table, or everything when packing failed.
        _place_block(model, state, block)

    guest_order = {g: i for i, g in enumerate(model.guest_ids)}
    singles = [b.members[0] for b in model.blocks if b.size == 1 and b.members[0] not in assignment]
    singles.sort(key=lambda g: (-model.hard_degree(g), guest_order[g]))
    for guest_id in singles:
        _place_singleton(model, state, guest_id)

    logger.info("Initial assignment for %d guests: %s", len(assignment), state.cost)
    return assignment
