"""Neighbourhood moves for the local search."""
from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .constraints import ConstraintModel
from .scorer import ScoreState


class MoveKind(str, Enum):
    SWAP = "swap"
    BLOCK_RELOCATE = "block_relocate"
    GUEST_RELOCATE = "guest_relocate"
    BLOCK_SWAP = "block_swap"


@dataclass(frozen=True)
class Move:
    """A move as a sequence of ``(guest_id, target_table)`` relocations."""

    kind: MoveKind
    relocations: Tuple[Tuple[str, str], ...]

    def __str__(self) -> str:
        parts = ", ".join(f"{g} -> {t}" for g, t in self.relocations)
        return f"Move({self.kind.value}: {parts})"


UndoLog = List[Tuple[str, str, int]]


def do_move(move: Move, state: ScoreState) -> UndoLog:
    """Apply a move and return what is needed to take it back."""
    undo: UndoLog = []
    for guest_id, table_id in move.relocations:
        old_table, old_index = state.relocate(guest_id, table_id)
        undo.append((guest_id, old_table, old_index))
    return undo


def undo_move(undo: UndoLog, state: ScoreState) -> None:
    """Restore the assignment, seat order included, from an undo log."""
    for guest_id, table_id, index in reversed(undo):
        state.relocate(guest_id, table_id, index)


class MoveGenerator:
    """Draws random candidate moves.

    Only singletons swap or relocate alone, so the search never splits a
    block. Pinned guests, and blocks holding one, never move.
    """

    def __init__(self, model: ConstraintModel, state: ScoreState, rng: random.Random, max_draws: int = 25) -> None:
        self.model = model
        self.state = state
        self.rng = rng
        self.max_draws = max_draws
        self.tables = model.table_ids
        self.singles = tuple(
            g for g in model.guest_ids if model.block(g).size == 1 and not model.is_pinned(g)
        )
        self.blocks = tuple(
            b for b in model.blocks if b.size > 1 and not any(model.is_pinned(g) for g in b.members)
        )
        self._movable_blocks = {b.id for b in self.blocks}
        kinds: List[MoveKind] = []
        if len(self.tables) > 1:
            if len(self.singles) >= 2:
                kinds.append(MoveKind.SWAP)
            if self.blocks:
                kinds.append(MoveKind.BLOCK_RELOCATE)
                kinds.append(MoveKind.BLOCK_SWAP)
            if self.singles:
                kinds.append(MoveKind.GUEST_RELOCATE)
        self.kinds: Tuple[MoveKind, ...] = tuple(kinds)

    def propose(self) -> Optional[Move]:
        """Return a candidate move, or None if no draw produced one."""
        if not self.kinds:
            return None
        tolerance = self.state.worst_overflow()
        for _ in range(self.max_draws):
            kind = self.rng.choice(self.kinds)
            if kind is MoveKind.SWAP:
                move = self._swap()
            elif kind is MoveKind.BLOCK_RELOCATE:
                move = self._block_relocate(tolerance)
            elif kind is MoveKind.BLOCK_SWAP:
                move = self._block_swap(tolerance)
            else:
                move = self._guest_relocate(tolerance)
            if move is not None:
                return move
        return None

    def _fits(self, table_id: str, incoming: int, tolerance: int) -> bool:
        return self.state.count(table_id) + incoming - self.model.capacity(table_id) <= tolerance

    def _swap(self) -> Optional[Move]:
        a, b = self.rng.sample(self.singles, 2)
        ta = self.state.assignment.table_of(a)
        tb = self.state.assignment.table_of(b)
        if ta == tb:
            return None
        return Move(MoveKind.SWAP, ((a, tb), (b, ta)))

    def _guest_relocate(self, tolerance: int) -> Optional[Move]:
        guest_id = self.rng.choice(self.singles)
        table_id = self.rng.choice(self.tables)
        if table_id == self.state.assignment.table_of(guest_id) or not self._fits(table_id, 1, tolerance):
            return None
        return Move(MoveKind.GUEST_RELOCATE, ((guest_id, table_id),))

    def _block_relocate(self, tolerance: int) -> Optional[Move]:
        block = self.rng.choice(self.blocks)
        table_id = self.rng.choice(self.tables)
        movers = [g for g in block.members if self.state.assignment.table_of(g) != table_id]
        if not movers or not self._fits(table_id, len(movers), tolerance):
            return None
        return Move(MoveKind.BLOCK_RELOCATE, tuple((g, table_id) for g in movers))

    def _block_swap(self, tolerance: int) -> Optional[Move]:
        """Trade a whole block for singletons or a smaller block at another table.

        The guests sent back never outnumber the block, so the block's own
        table does not grow.
        """
        block = self.rng.choice(self.blocks)
        homes = {self.state.assignment.table_of(g) for g in block.members}
        if len(homes) != 1:
            return None
        home = homes.pop()
        target = self.rng.choice(self.tables)
        if target == home:
            return None

        units: List[Tuple[str, ...]] = []
        seen = set()
        for g in self.state.assignment.members(target):
            other = self.model.block(g)
            if other.id in seen:
                continue
            seen.add(other.id)
            if other.size == 1 and not self.model.is_pinned(g):
                units.append(other.members)
            elif other.id in self._movable_blocks and other.size <= block.size and all(
                self.state.assignment.table_of(m) == target for m in other.members
            ):
                units.append(other.members)
        self.rng.shuffle(units)

        need = max(1, self.state.count(target) + block.size - self.model.capacity(target) - tolerance)
        outgoing: List[str] = []
        for unit in units:
            if len(outgoing) >= need:
                break
            if len(outgoing) + len(unit) <= block.size:
                outgoing.extend(unit)
        if len(outgoing) < need:
            return None
        return Move(
            MoveKind.BLOCK_SWAP,
            tuple((g, target) for g in block.members) + tuple((g, home) for g in outgoing),
        )
