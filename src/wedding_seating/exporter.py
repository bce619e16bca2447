"""Plan export for the storage collaborator."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

import pandas as pd

from .models import Assignment, SeatAssignmentRecord

RECORD_COLUMNS = ["guestId", "tableId", "seatNumber"]


def export(assignment: Assignment) -> List[SeatAssignmentRecord]:
    """One record per guest, tables in layout order, seats in placement order.

    Exporting an unchanged assignment always yields the same records.
    """
    records: List[SeatAssignmentRecord] = []
    for table_id in assignment.table_ids:
        for seat, guest_id in enumerate(assignment.members(table_id), start=1):
            records.append(SeatAssignmentRecord(guest_id, table_id, seat))
    return records


def records_to_frame(records: Iterable[SeatAssignmentRecord]) -> pd.DataFrame:
    return pd.DataFrame([r.to_dict() for r in records], columns=RECORD_COLUMNS)


def write_records_csv(records: Iterable[SeatAssignmentRecord], path: Path | str) -> Path:
    """Write records as CSV and return the path written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    records_to_frame(records).to_csv(path, index=False)
    return path
