import pathlib
import sys

import pandas as pd

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from wedding_seating.exporter import RECORD_COLUMNS, export, records_to_frame, write_records_csv
from wedding_seating.models import Assignment, SeatAssignmentRecord


def sample_assignment():
    a = Assignment(["T1", "T2", "T3"])
    a.place("x", "T1")
    a.place("z", "T2")
    a.place("y", "T1")
    return a


def test_records_follow_table_and_seat_order():
    assert export(sample_assignment()) == [
        SeatAssignmentRecord("x", "T1", 1),
        SeatAssignmentRecord("y", "T1", 2),
        SeatAssignmentRecord("z", "T2", 1),
    ]


def test_export_is_repeatable():
    a = sample_assignment()
    assert export(a) == export(a.copy())


def test_write_records_csv(tmp_path):
    path = write_records_csv(export(sample_assignment()), tmp_path / "out" / "assignments.csv")
    df = pd.read_csv(path, dtype={"guestId": str, "tableId": str})
    assert list(df.columns) == RECORD_COLUMNS
    assert df["seatNumber"].tolist() == [1, 2, 1]


def test_empty_frame_keeps_columns():
    assert list(records_to_frame([]).columns) == RECORD_COLUMNS
