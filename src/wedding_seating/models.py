"""Data models for wedding seating."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple


class PreferenceKind(str, Enum):
    """Kinds of pairwise seating preference."""

    MUST_TOGETHER = "must_together"
    MUST_APART = "must_apart"
    PREFER_TOGETHER = "prefer_together"
    PREFER_APART = "prefer_apart"

    @property
    def is_hard(self) -> bool:
        return self in (PreferenceKind.MUST_TOGETHER, PreferenceKind.MUST_APART)

    @property
    def wants_together(self) -> bool:
        return self in (PreferenceKind.MUST_TOGETHER, PreferenceKind.PREFER_TOGETHER)


class TableShape(str, Enum):
    ROUND = "round"
    SQUARE = "square"
    RECTANGULAR = "rectangular"


@dataclass(frozen=True)
class Guest:
    """Representation of a wedding guest.

    ``partner_id`` is set on a plus-one and names the guest who brought them;
    the pair is always seated together.
    """

    id: str
    name: str
    group: Optional[str] = None
    plus_one: bool = False
    partner_id: Optional[str] = None


@dataclass(frozen=True)
class Table:
    """Dinner table definition. Shape and position only matter for display."""

    id: str
    capacity: int
    name: str = ""
    shape: Optional[TableShape] = None
    position: Optional[Tuple[float, float]] = None

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class SeatingPreference:
    """Preference between an unordered pair of guests."""

    guest_a: str
    guest_b: str
    kind: PreferenceKind
    weight: int = 1
    source: Optional[str] = None
    notes: str = ""

    @property
    def pair(self) -> Tuple[str, str]:
        """The guest ids in canonical (sorted) order."""
        return (self.guest_a, self.guest_b) if self.guest_a <= self.guest_b else (self.guest_b, self.guest_a)

    def describe(self) -> str:
        ref = f" [{self.source}]" if self.source else ""
        return f"{self.kind.value}({self.guest_a}, {self.guest_b}){ref}"


@dataclass(frozen=True)
class Budget:
    """Optimization budget; whichever limit is reached first stops the search."""

    max_seconds: Optional[float] = None
    max_iterations: Optional[int] = None

    def __post_init__(self) -> None:
        if self.max_seconds is None and self.max_iterations is None:
            raise ValueError("Budget needs max_seconds, max_iterations or both")
        if self.max_seconds is not None and self.max_seconds < 0:
            raise ValueError(f"max_seconds must not be negative: {self.max_seconds}")
        if self.max_iterations is not None and self.max_iterations < 0:
            raise ValueError(f"max_iterations must not be negative: {self.max_iterations}")


class Assignment:
    """Guest to table mapping that keeps placement order within each table.

    Seat numbers are 1-based positions in that order, so they stay unique per
    table and stable while nobody joins or leaves the table.
    """

    def __init__(self, table_ids: Iterable[str]) -> None:
        self._members: Dict[str, List[str]] = {t: [] for t in table_ids}
        self._table_of: Dict[str, str] = {}

    @property
    def table_ids(self) -> Tuple[str, ...]:
        return tuple(self._members)

    def place(self, guest_id: str, table_id: str) -> None:
        """Seat a guest who has no table yet."""
        if guest_id in self._table_of:
            raise ValueError(f"Guest {guest_id} is already seated at {self._table_of[guest_id]}")
        if table_id not in self._members:
            raise ValueError(f"Unknown table: {table_id}")
        self._members[table_id].append(guest_id)
        self._table_of[guest_id] = table_id

    def move(self, guest_id: str, table_id: str, index: Optional[int] = None) -> Tuple[str, int]:
        """Move a seated guest and return ``(old_table, old_index)``.

        The guest is appended to the new table unless ``index`` is given, which
        lets a caller put a guest back exactly where they were.
        """
        old_table = self._table_of[guest_id]
        old_members = self._members[old_table]
        old_index = old_members.index(guest_id)
        del old_members[old_index]
        target = self._members[table_id]
        if index is None:
            target.append(guest_id)
        else:
            target.insert(index, guest_id)
        self._table_of[guest_id] = table_id
        return old_table, old_index

    def table_of(self, guest_id: str) -> Optional[str]:
        return self._table_of.get(guest_id)

    def members(self, table_id: str) -> Tuple[str, ...]:
        return tuple(self._members[table_id])

    def count(self, table_id: str) -> int:
        return len(self._members[table_id])

    def seat_of(self, guest_id: str) -> int:
        table_id = self._table_of[guest_id]
        return self._members[table_id].index(guest_id) + 1

    def guests(self) -> Iterator[str]:
        for members in self._members.values():
            yield from members

    def as_mapping(self) -> Dict[str, Tuple[str, int]]:
        """Return ``guest_id -> (table_id, seat_number)``."""
        out: Dict[str, Tuple[str, int]] = {}
        for table_id, members in self._members.items():
            for seat, guest_id in enumerate(members, start=1):
                out[guest_id] = (table_id, seat)
        return out

    def copy(self) -> "Assignment":
        clone = Assignment(())
        clone._members = {t: list(m) for t, m in self._members.items()}
        clone._table_of = dict(self._table_of)
        return clone

    def __len__(self) -> int:
        return len(self._table_of)

    def __contains__(self, guest_id: object) -> bool:
        return guest_id in self._table_of

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Assignment):
            return NotImplemented
        return self._members == other._members

    def __repr__(self) -> str:
        tables = ", ".join(f"{t}={m}" for t, m in self._members.items())
        return f"Assignment({tables})"


class Severity(str, Enum):
    HARD = "hard"
    SOFT = "soft"


class ConflictKind(str, Enum):
    """What a reported conflict is about. Declaration order is report order."""

    OVER_CAPACITY = "over_capacity"
    CONTRADICTION = "contradiction"
    MUST_APART = "must_apart"
    BLOCK_SPLIT = "block_split"
    PREFER_TOGETHER = "prefer_together"
    PREFER_APART = "prefer_apart"


@dataclass(frozen=True)
class Conflict:
    """One violated constraint or notable unmet preference.

    ``penalty`` is the amount this item contributes to the hard violation
    count (zero for soft items).
    """

    kind: ConflictKind
    severity: Severity
    guest_ids: Tuple[str, ...]
    table_ids: Tuple[str, ...]
    message: str
    penalty: int = 0
    weight: int = 0
    preference: Optional[SeatingPreference] = None


@dataclass(frozen=True)
class TableSummary:
    table_id: str
    seated: int
    capacity: int
    total_score: int
    mean_score: float
    pair_count: int
    pos_pairs: int
    neg_pairs: int
    grade: str


@dataclass(frozen=True)
class ConflictReport:
    conflicts: Tuple[Conflict, ...] = ()
    tables: Tuple[TableSummary, ...] = ()

    @property
    def hard(self) -> Tuple[Conflict, ...]:
        return tuple(c for c in self.conflicts if c.severity is Severity.HARD)

    @property
    def soft(self) -> Tuple[Conflict, ...]:
        return tuple(c for c in self.conflicts if c.severity is Severity.SOFT)

    @property
    def hard_violations(self) -> int:
        return sum(c.penalty for c in self.conflicts)

    @property
    def is_feasible(self) -> bool:
        return self.hard_violations == 0

    def __len__(self) -> int:
        return len(self.conflicts)

    def __iter__(self) -> Iterator[Conflict]:
        return iter(self.conflicts)


@dataclass(frozen=True)
class SeatAssignmentRecord:
    """Row handed to the storage collaborator."""

    guest_id: str
    table_id: str
    seat_number: int

    def to_dict(self) -> Dict[str, object]:
        return {"guestId": self.guest_id, "tableId": self.table_id, "seatNumber": self.seat_number}
