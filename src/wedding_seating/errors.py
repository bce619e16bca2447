"""Exceptions raised by the seating engine and its callers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem found in the input.

    ``refs`` names the guests, tables or preference entries involved so a UI
    can point the user at them.
    """

    code: str
    message: str
    refs: Tuple[str, ...] = ()


class ValidationError(ValueError):
    """Malformed or contradictory input; raised before any optimization."""

    def __init__(self, issues: Iterable[ValidationIssue]) -> None:
        self.issues: Tuple[ValidationIssue, ...] = tuple(issues)
        super().__init__("; ".join(issue.message for issue in self.issues) or "invalid input")


class LayoutBusyError(RuntimeError):
    """A recompute is already running for this layout."""

    def __init__(self, layout_id: str) -> None:
        self.layout_id = layout_id
        super().__init__(f"Seating for layout {layout_id} is already being recomputed")
