"""CSV loading utilities.

``guests.csv``       id, name, group, plus_one, partner_id
``tables.csv``       id (or name), capacity, name, shape, x, y
``preferences.csv``  guest_a, guest_b, kind, weight, notes
``pinned.csv``       guest_id, table_id

Extra columns are ignored. Rows go through ``snapshot.parse_snapshot`` so a
CSV and an in-memory snapshot are validated the same way.
"""
from __future__ import annotations

from pathlib import Path
from typing import IO, Any, Dict, List, Optional

import pandas as pd

from .snapshot import Snapshot, parse_snapshot


def read_records(path: Path | str | IO[Any]) -> List[Dict[str, Any]]:
    """Read a CSV into a list of row dicts with blank cells as ``None``.

    Every column is read as text; ``snapshot`` does the typing.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=True)
    df.columns = [str(c).strip() for c in df.columns]
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict("records")


def load_snapshot(
    guests_path: Path | str | IO[Any],
    tables_path: Path | str | IO[Any],
    preferences_path: Optional[Path | str | IO[Any]] = None,
    pinned_path: Optional[Path | str | IO[Any]] = None,
    layout_id: Optional[str] = None,
) -> Snapshot:
    """Load the CSV files of one layout into a validated ``Snapshot``."""
    raw: Dict[str, Any] = {
        "guests": read_records(guests_path),
        "tables": read_records(tables_path),
        "layoutId": layout_id,
    }
    if preferences_path is not None:
        raw["preferences"] = read_records(preferences_path)
    if pinned_path is not None:
        raw["pinned"] = read_records(pinned_path)
    return parse_snapshot(raw)
