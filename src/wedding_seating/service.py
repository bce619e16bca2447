"""
Recompute service.

Loads a layout snapshot from a store, solves it and saves the exported seat
records back. Recomputations of the same layout are serialized by a per-layout
lock, different layouts run independently. A save replaces every record the
layout had before.
"""
from __future__ import annotations

import logging
import threading
import weakref
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from .config import SolverOptions
from .csv_loader import load_snapshot, read_records
from .engine import SeatingResult, solve
from .errors import LayoutBusyError
from .exporter import write_records_csv
from .models import Budget, SeatAssignmentRecord
from .snapshot import Snapshot

logger = logging.getLogger(__name__)


class SnapshotStore(Protocol):
    def load_snapshot(self, layout_id: str) -> Snapshot: ...

    def save_assignments(self, layout_id: str, records: Sequence[SeatAssignmentRecord]) -> None: ...


class InMemorySnapshotStore:
    """Dict-backed store, mostly for tests and notebooks."""

    def __init__(self, snapshots: Optional[Dict[str, Snapshot]] = None) -> None:
        self.snapshots: Dict[str, Snapshot] = dict(snapshots or {})
        self.assignments: Dict[str, List[SeatAssignmentRecord]] = {}

    def load_snapshot(self, layout_id: str) -> Snapshot:
        try:
            return self.snapshots[layout_id]
        except KeyError:
            raise KeyError(f"Unknown layout: {layout_id}") from None

    def save_assignments(self, layout_id: str, records: Sequence[SeatAssignmentRecord]) -> None:
        self.assignments[layout_id] = list(records)


class CsvSnapshotStore:
    """One directory per layout under ``root``.

    A layout directory holds ``guests.csv`` and ``tables.csv``, and optionally
    ``preferences.csv`` and ``pinned.csv``. Results go to ``assignments.csv``.
    """

    ASSIGNMENTS = "assignments.csv"

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def layout_dir(self, layout_id: str) -> Path:
        return self.root / layout_id

    def load_snapshot(self, layout_id: str) -> Snapshot:
        folder = self.layout_dir(layout_id)
        if not folder.is_dir():
            raise KeyError(f"Unknown layout: {layout_id}")
        preferences = folder / "preferences.csv"
        pinned = folder / "pinned.csv"
        return load_snapshot(
            folder / "guests.csv",
            folder / "tables.csv",
            preferences if preferences.exists() else None,
            pinned if pinned.exists() else None,
            layout_id=layout_id,
        )

    def save_assignments(self, layout_id: str, records: Sequence[SeatAssignmentRecord]) -> None:
        write_records_csv(records, self.layout_dir(layout_id) / self.ASSIGNMENTS)

    def load_assignments(self, layout_id: str) -> List[SeatAssignmentRecord]:
        path = self.layout_dir(layout_id) / self.ASSIGNMENTS
        if not path.exists():
            return []
        return [
            SeatAssignmentRecord(str(r["guestId"]), str(r["tableId"]), int(r["seatNumber"]))
            for r in read_records(path)
        ]


class SeatingService:
    def __init__(self, store: SnapshotStore, options: Optional[SolverOptions] = None) -> None:
        self.store = store
        self.options = options or SolverOptions()
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def _lock_for(self, layout_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(layout_id)
            if lock is None:
                lock = self._locks[layout_id] = threading.Lock()
            return lock

    def recompute(
        self,
        layout_id: str,
        budget: Budget,
        seed: int,
        options: Optional[SolverOptions] = None,
        wait: bool = True,
    ) -> SeatingResult:
        """Recompute and save the plan of one layout.

        With ``wait=False`` a layout already being recomputed raises
        ``LayoutBusyError`` instead of queueing. Nothing is saved when loading
        or solving fails.
        """
        lock = self._lock_for(layout_id)
        if not lock.acquire(blocking=wait):
            raise LayoutBusyError(layout_id)
        try:
            logger.info("Recomputing layout %s (seed %d, %s)", layout_id, seed, budget)
            snapshot = self.store.load_snapshot(layout_id)
            result = solve(snapshot, budget, seed, options or self.options)
            self.store.save_assignments(layout_id, result.records)
            logger.info("Saved %d seat records for layout %s", len(result.records), layout_id)
            return result
        finally:
            lock.release()
