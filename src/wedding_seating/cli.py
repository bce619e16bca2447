"""Command line interface for wedding seating."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

import pandas as pd

from .config import SolverOptions, configure_logging
from .csv_loader import load_snapshot
from .engine import SeatingResult, solve
from .errors import ValidationError
from .exporter import write_records_csv
from .models import Budget


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Wedding seating optimizer")
    parser.add_argument("--guests", required=True, help="Path to guests.csv")
    parser.add_argument("--tables", required=True, help="Path to tables.csv")
    parser.add_argument("--preferences", help="Path to preferences.csv")
    parser.add_argument("--pinned", help="Path to pinned.csv (guest_id, table_id)")
    parser.add_argument("--seed", type=int, default=0, help="Random seed; same seed, same plan.")
    parser.add_argument("--max-iterations", type=int, default=20000,
                        help="Stop the search after this many iterations.")
    parser.add_argument("--max-seconds", type=float,
                        help="Stop the search after this many seconds.")
    parser.add_argument("--stall-window", type=int, default=SolverOptions.stall_window,
                        help="Stop after this many iterations without improvement.")
    parser.add_argument("--notable-weight", type=int, default=SolverOptions.notable_weight,
                        help="Report unmet soft preferences with at least this weight.")
    parser.add_argument("--out-assignments", type=Path,
                        help="Write assignments CSV: guestId,tableId,seatNumber.")
    parser.add_argument("--out-report", type=Path,
                        help="Write per-table report CSV with scores and grades.")
    parser.add_argument("--log-level", help="Logging level (default from SEATING_LOG_LEVEL or WARNING).")
    return parser


def _table_report_frame(result: SeatingResult) -> pd.DataFrame:
    rows = []
    for s in result.report.tables:
        rows.append({
            "table": s.table_id,
            "grade": s.grade,
            "mean_score": round(s.mean_score, 4),
            "total_score": s.total_score,
            "seated": s.seated,
            "capacity": s.capacity,
            "pair_count": s.pair_count,
            "pos_pairs": s.pos_pairs,
            "neg_pairs": s.neg_pairs,
            "members": "|".join(result.assignment.members(s.table_id)),
        })
    return pd.DataFrame(rows)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by ``python -m wedding_seating.cli``. Returns the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        budget = Budget(max_seconds=args.max_seconds, max_iterations=args.max_iterations)
        options = SolverOptions(stall_window=args.stall_window, notable_weight=args.notable_weight)
    except ValueError as e:
        parser.error(str(e))

    try:
        snapshot = load_snapshot(args.guests, args.tables, args.preferences, args.pinned)
        result = solve(snapshot, budget, args.seed, options)
    except ValidationError as e:
        for issue in e.issues:
            print(f"[INVALID] {issue.code}: {issue.message}", file=sys.stderr)
        return 2

    for record in result.records:
        print(f"{record.guest_id},{record.table_id},{record.seat_number}")

    for s in result.report.tables:
        print(f"[REPORT] {s.table_id} grade={s.grade} mean={s.mean_score:.2f} seated={s.seated}/{s.capacity} "
              f"pairs={s.pair_count} pos={s.pos_pairs} neg={s.neg_pairs}")
    for c in result.report:
        print(f"[CONFLICT] {c.severity.value} {c.kind.value}: {c.message}")
    print(f"[COST] {result.cost} (initial {result.initial_cost}, "
          f"{result.stats.iterations} iterations, {result.stats.stop_reason.value})")

    if args.out_assignments:
        write_records_csv(result.records, args.out_assignments)
    if args.out_report:
        args.out_report.parent.mkdir(parents=True, exist_ok=True)
        _table_report_frame(result).to_csv(args.out_report, index=False)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
