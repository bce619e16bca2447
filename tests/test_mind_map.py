import pathlib
import sys

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from wedding_seating import Budget, parse_snapshot, solve
from wedding_seating.csv_loader import load_snapshot
from wedding_seating.mind_map import (
    _circle_layout,
    _grid_centers,
    _perimeter_layout,
    _scaled_centers,
    _strongest_per_pair,
    generate_assignment_mind_map,
)
from wedding_seating.models import PreferenceKind, SeatingPreference

DATA_DIR = pathlib.Path(__file__).parent / "data"


def test_mind_map_html_contains_guests_and_legend():
    snap = load_snapshot(DATA_DIR / "guests.csv", DATA_DIR / "tables.csv", DATA_DIR / "preferences.csv")
    result = solve(snap, Budget(max_iterations=200), seed=0)
    html = generate_assignment_mind_map(result.model, result.assignment, result.report)
    assert "Alice" in html and "Oscar" in html
    assert "legend-box" in html
    assert "dashed edge: unmet" in html


def test_mind_map_without_positions_or_edges():
    snap = parse_snapshot(
        {
            "guests": [{"id": "a", "name": "Ann"}, {"id": "b", "name": "Ben"}],
            "tables": [{"id": "T1", "capacity": 1}, {"id": "T2", "capacity": 1}],
        }
    )
    result = solve(snap, Budget(max_iterations=10), seed=0)
    html = generate_assignment_mind_map(result.model, result.assignment, show_inter_table_edges=False)
    assert "Ann" in html and "Ben" in html


def test_seat_layouts_place_every_guest():
    assert len(_circle_layout(0, 0, 60, 7)) == 7
    pts = _perimeter_layout(100, 100, 8, 80, 40)
    assert len(pts) == 8
    assert pts[0] == (60, 80)
    assert all(60 <= x <= 140 and 80 <= y <= 120 for x, y in pts)


def test_table_centers():
    grid = _grid_centers(["a", "b", "c"], 1600, 1000)
    assert len(set(grid.values())) == 3
    scaled = _scaled_centers({"a": (0.0, 0.0), "b": (10.0, 10.0)}, 1000, 1000)
    assert scaled["a"] == (120, 120)
    assert scaled["b"] == (880, 880)


def test_hard_preference_wins_the_pair():
    soft = SeatingPreference("a", "b", PreferenceKind.PREFER_TOGETHER, weight=9)
    hard = SeatingPreference("b", "a", PreferenceKind.MUST_APART)
    assert _strongest_per_pair([soft, hard]) == [hard]
