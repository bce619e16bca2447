"""Wedding seating optimizer package."""
import logging

from .engine import SeatingResult, solve
from .errors import LayoutBusyError, ValidationError, ValidationIssue
from .models import (
    Assignment,
    Budget,
    Conflict,
    ConflictKind,
    ConflictReport,
    Guest,
    PreferenceKind,
    SeatAssignmentRecord,
    SeatingPreference,
    Table,
    TableShape,
)
from .snapshot import Snapshot, parse_snapshot

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Assignment",
    "Budget",
    "Conflict",
    "ConflictKind",
    "ConflictReport",
    "Guest",
    "LayoutBusyError",
    "PreferenceKind",
    "SeatAssignmentRecord",
    "SeatingPreference",
    "SeatingResult",
    "Snapshot",
    "Table",
    "TableShape",
    "ValidationError",
    "ValidationIssue",
    "parse_snapshot",
    "solve",
]
