"""Solver options and logging setup."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

LOG_LEVEL_ENV = "SEATING_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class SolverOptions:
    """Tunable search parameters.

    The temperature falls geometrically from ``start_temperature`` to
    ``end_temperature`` over the iteration cap of the budget, or over
    ``iteration_horizon`` when the budget only has a deadline.
    """

    start_temperature: float = 2.0
    end_temperature: float = 0.05
    iteration_horizon: int = 20000
    stall_window: int = 3000
    max_draws: int = 25
    notable_weight: int = 3

    def __post_init__(self) -> None:
        if not 0 < self.end_temperature <= self.start_temperature:
            raise ValueError("Temperatures must satisfy 0 < end_temperature <= start_temperature")
        for name in ("iteration_horizon", "stall_window", "max_draws", "notable_weight"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")


def configure_logging(level: Optional[str] = None) -> None:
    """Send log records to stderr. Level comes from the argument or ``SEATING_LOG_LEVEL``."""
    level = (level or os.getenv(LOG_LEVEL_ENV, "WARNING")).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
