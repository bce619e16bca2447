"""
Constraint model.

Validates a snapshot of guests, tables and preferences and indexes it for the
solver:

    blocks         guests chained by must_together, found with union-find
    apart_guests   must_apart neighbours per guest
    apart_blocks   the same relation lifted to blocks
    soft_edges     prefer_together / prefer_apart edges per guest

A must_apart pair inside one block cannot be honoured. It is kept as a
``Contradiction`` for the conflict report instead of failing the run.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

import networkx as nx
from networkx.utils import UnionFind

from .errors import ValidationError, ValidationIssue
from .models import Guest, PreferenceKind, SeatingPreference, Table

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Block:
    """Guests that must share a table."""

    id: int
    members: Tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class SoftEdge:
    other: str
    kind: PreferenceKind
    weight: int


@dataclass(frozen=True)
class Contradiction:
    """A must_apart pair whose guests are chained together by must_together."""

    block_id: int
    preference: SeatingPreference
    chain: Tuple[str, ...]


def _partner_preferences(guests: List[Guest]) -> List[SeatingPreference]:
    """Plus-ones sit with the guest who brought them."""
    return [
        SeatingPreference(g.id, g.partner_id, PreferenceKind.MUST_TOGETHER, source=f"plus-one:{g.id}")
        for g in guests
        if g.partner_id
    ]


def _validate(
    guests: List[Guest],
    tables: List[Table],
    preferences: List[SeatingPreference],
    pinned: Mapping[str, str],
) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []

    guest_counts = Counter(g.id for g in guests)
    for gid, n in guest_counts.items():
        if n > 1:
            issues.append(ValidationIssue("duplicate_guest", f"Guest id {gid} appears {n} times", (gid,)))
    table_counts = Counter(t.id for t in tables)
    for tid, n in table_counts.items():
        if n > 1:
            issues.append(ValidationIssue("duplicate_table", f"Table id {tid} appears {n} times", (tid,)))

    if guests and not tables:
        issues.append(ValidationIssue("no_tables", "There are guests to seat but no tables"))
    for t in tables:
        if isinstance(t.capacity, bool) or not isinstance(t.capacity, int) or t.capacity <= 0:
            issues.append(
                ValidationIssue("invalid_capacity", f"Table {t.label} has non-positive capacity {t.capacity!r}", (t.id,))
            )

    for g in guests:
        if g.partner_id and g.partner_id not in guest_counts:
            issues.append(
                ValidationIssue("unknown_partner", f"Plus-one {g.id} references unknown guest {g.partner_id}", (g.id,))
            )

    hard_by_pair: Dict[Tuple[str, str], Dict[PreferenceKind, SeatingPreference]] = {}
    for pref in preferences:
        if not isinstance(pref.kind, PreferenceKind):
            issues.append(ValidationIssue("invalid_kind", f"Unsupported preference kind {pref.kind!r}", (str(pref.kind),)))
            continue
        unknown = [gid for gid in (pref.guest_a, pref.guest_b) if gid not in guest_counts]
        if unknown:
            issues.append(
                ValidationIssue(
                    "unknown_guest",
                    f"Preference {pref.describe()} references unknown guest(s): {', '.join(unknown)}",
                    tuple(unknown),
                )
            )
            continue
        if pref.guest_a == pref.guest_b:
            issues.append(
                ValidationIssue("self_preference", f"Preference {pref.describe()} pairs a guest with themself", (pref.guest_a,))
            )
            continue
        bad_weight = isinstance(pref.weight, bool) or not isinstance(pref.weight, int) or pref.weight <= 0
        if bad_weight and not pref.kind.is_hard:
            issues.append(
                ValidationIssue("invalid_weight", f"Preference {pref.describe()} has non-positive weight {pref.weight!r}", pref.pair)
            )
        if pref.kind.is_hard:
            hard_by_pair.setdefault(pref.pair, {}).setdefault(pref.kind, pref)

    for pair, kinds in hard_by_pair.items():
        if len(kinds) > 1:
            together = kinds[PreferenceKind.MUST_TOGETHER]
            apart = kinds[PreferenceKind.MUST_APART]
            issues.append(
                ValidationIssue(
                    "conflicting_constraints",
                    f"Guests {pair[0]} and {pair[1]} are marked both must_together ({together.describe()}) "
                    f"and must_apart ({apart.describe()})",
                    tuple(ref for ref in (together.source, apart.source) if ref) or pair,
                )
            )

    for gid, tid in pinned.items():
        if gid not in guest_counts:
            issues.append(ValidationIssue("unknown_guest", f"Pinned guest {gid} is not in the guest list", (gid,)))
        if tid not in table_counts:
            issues.append(ValidationIssue("unknown_table", f"Guest {gid} is pinned to unknown table {tid}", (tid,)))
    return issues


class ConstraintModel:
    """Validated, indexed view of one seating snapshot."""

    def __init__(self) -> None:
        self.guests: Dict[str, Guest] = {}
        self.tables: Dict[str, Table] = {}
        self.preferences: Tuple[SeatingPreference, ...] = ()
        self.pinned: Dict[str, str] = {}
        # Blocks
        self.blocks: Tuple[Block, ...] = ()
        self.block_of: Dict[str, int] = {}
        self.together_graph: nx.Graph = nx.Graph()
        # Hard separation
        self.apart_pairs: Tuple[SeatingPreference, ...] = ()
        self.apart_guests: Dict[str, Set[str]] = {}
        self.apart_blocks: Dict[int, Set[int]] = {}
        self.contradictions: Tuple[Contradiction, ...] = ()
        # Soft preferences
        self.soft_preferences: Tuple[SeatingPreference, ...] = ()
        self.soft_edges: Dict[str, Tuple[SoftEdge, ...]] = {}

    @classmethod
    def build(
        cls,
        guests: Iterable[Guest],
        tables: Iterable[Table],
        preferences: Iterable[SeatingPreference],
        pinned: Optional[Mapping[str, str]] = None,
    ) -> "ConstraintModel":
        """Validate the inputs and build the model.

        Raises ``ValidationError`` listing every problem found.
        """
        guests = list(guests)
        tables = list(tables)
        preferences = list(preferences) + _partner_preferences(guests)
        pinned = dict(pinned or {})

        issues = _validate(guests, tables, preferences, pinned)
        if issues:
            logger.info("Rejected seating snapshot with %d issue(s)", len(issues))
            raise ValidationError(issues)

        model = cls()
        model.guests = {g.id: g for g in guests}
        model.tables = {t.id: t for t in tables}
        model.preferences = tuple(preferences)
        model.pinned = pinned
        model._index_blocks()
        model._index_apart()
        model._index_soft()
        logger.debug(
            "Built constraint model: %d guests, %d tables, %d blocks, %d contradictions",
            len(model.guests),
            len(model.tables),
            len(model.blocks),
            len(model.contradictions),
        )
        return model

    # ----------------------------- indexing -----------------------------
    def _index_blocks(self) -> None:
        uf = UnionFind(self.guests)
        graph = nx.Graph()
        graph.add_nodes_from(self.guests)
        for pref in self.preferences:
            if pref.kind is PreferenceKind.MUST_TOGETHER:
                uf.union(pref.guest_a, pref.guest_b)
                graph.add_edge(pref.guest_a, pref.guest_b)

        member_lists = sorted(tuple(sorted(s)) for s in uf.to_sets())
        self.blocks = tuple(Block(i, members) for i, members in enumerate(member_lists))
        self.block_of = {gid: block.id for block in self.blocks for gid in block.members}
        self.together_graph = graph

    def _index_apart(self) -> None:
        seen: Set[Tuple[str, str]] = set()
        pairs: List[SeatingPreference] = []
        contradictions: List[Contradiction] = []
        self.apart_guests = {gid: set() for gid in self.guests}
        self.apart_blocks = {block.id: set() for block in self.blocks}
        for pref in self.preferences:
            if pref.kind is not PreferenceKind.MUST_APART or pref.pair in seen:
                continue
            seen.add(pref.pair)
            pairs.append(pref)
            a, b = pref.guest_a, pref.guest_b
            self.apart_guests[a].add(b)
            self.apart_guests[b].add(a)
            ba, bb = self.block_of[a], self.block_of[b]
            if ba == bb:
                chain = tuple(nx.shortest_path(self.together_graph, a, b))
                contradictions.append(Contradiction(ba, pref, chain))
                logger.warning("must_apart %s contradicts must_together chain %s", pref.describe(), " -> ".join(chain))
            else:
                self.apart_blocks[ba].add(bb)
                self.apart_blocks[bb].add(ba)
        self.apart_pairs = tuple(pairs)
        self.contradictions = tuple(contradictions)

    def _index_soft(self) -> None:
        soft = [p for p in self.preferences if not p.kind.is_hard]
        edges: Dict[str, List[SoftEdge]] = {gid: [] for gid in self.guests}
        for pref in soft:
            edges[pref.guest_a].append(SoftEdge(pref.guest_b, pref.kind, pref.weight))
            edges[pref.guest_b].append(SoftEdge(pref.guest_a, pref.kind, pref.weight))
        self.soft_preferences = tuple(soft)
        self.soft_edges = {gid: tuple(e) for gid, e in edges.items()}

    # ----------------------------- queries -----------------------------
    @property
    def table_ids(self) -> Tuple[str, ...]:
        return tuple(self.tables)

    @property
    def guest_ids(self) -> Tuple[str, ...]:
        return tuple(self.guests)

    @property
    def total_capacity(self) -> int:
        return sum(t.capacity for t in self.tables.values())

    @property
    def max_capacity(self) -> int:
        return max((t.capacity for t in self.tables.values()), default=0)

    def capacity(self, table_id: str) -> int:
        return self.tables[table_id].capacity

    def block(self, guest_id: str) -> Block:
        return self.blocks[self.block_of[guest_id]]

    def is_pinned(self, guest_id: str) -> bool:
        return guest_id in self.pinned

    def hard_degree(self, guest_id: str) -> int:
        """Number of must_apart partners of a guest."""
        return len(self.apart_guests[guest_id])
