import pathlib
import random
import sys

import pytest

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from wedding_seating import Budget, ValidationError, parse_snapshot, solve
from wedding_seating.csv_loader import load_snapshot
from wedding_seating.models import PreferenceKind
from wedding_seating.optimizer import SearchState

DATA_DIR = pathlib.Path(__file__).parent / "data"


@pytest.fixture
def snapshot():
    return load_snapshot(DATA_DIR / "guests.csv", DATA_DIR / "tables.csv", DATA_DIR / "preferences.csv")


def test_full_flow(snapshot):
    result = solve(snapshot, Budget(max_iterations=3000), seed=7)
    model = result.model

    # all guests assigned, one record each
    assert sorted(r.guest_id for r in result.records) == sorted(model.guest_ids)

    # table capacities respected, seats numbered 1..n
    for table in snapshot.tables:
        seats = [r.seat_number for r in result.records if r.table_id == table.id]
        assert len(seats) <= table.capacity
        assert seats == list(range(1, len(seats) + 1))

    # hard constraints respected
    for pref in model.preferences:
        same = result.assignment.table_of(pref.guest_a) == result.assignment.table_of(pref.guest_b)
        if pref.kind is PreferenceKind.MUST_TOGETHER:
            assert same
        elif pref.kind is PreferenceKind.MUST_APART:
            assert not same

    assert result.cost.hard_violations == 0
    assert result.report.hard == ()
    assert result.cost.no_worse_than(result.initial_cost)
    assert result.stats.stop_reason in (SearchState.CONVERGED, SearchState.BUDGET_EXPIRED)

    # strong preference is honoured
    assert result.assignment.table_of("5") == result.assignment.table_of("6")


def test_same_seed_same_records(snapshot):
    first = solve(snapshot, Budget(max_iterations=2000), seed=3)
    second = solve(snapshot, Budget(max_iterations=2000), seed=3)
    assert [r.to_dict() for r in first.records] == [r.to_dict() for r in second.records]
    assert first.assignment == second.assignment
    assert first.report == second.report


def test_report_matches_cost(snapshot):
    result = solve(snapshot, Budget(max_iterations=500), seed=1)
    assert result.report.hard_violations == result.cost.hard_violations
    assert len(result.report.tables) == 3


def test_overfull_party_is_reported_not_raised():
    snap = parse_snapshot(
        {
            "guests": [{"id": str(i), "name": f"G{i}"} for i in range(5)],
            "tables": [{"id": "T1", "capacity": 2}, {"id": "T2", "capacity": 2}],
        }
    )
    result = solve(snap, Budget(max_iterations=200), seed=0)
    assert len(result.records) == 5
    assert result.cost.hard_violations == 1
    assert result.report.hard[0].kind.value == "over_capacity"


def test_empty_party():
    snap = parse_snapshot({"guests": [], "tables": [{"id": "T1", "capacity": 4}]})
    result = solve(snap, Budget(max_iterations=100), seed=0)
    assert result.records == []
    assert len(result.report) == 0


def test_invalid_snapshot_raises_before_search():
    snap = parse_snapshot(
        {
            "guests": [{"id": "a", "name": "A"}],
            "tables": [{"id": "T1", "capacity": 2}],
            "preferences": [{"guest_a": "a", "guest_b": "ghost", "kind": "prefer_together"}],
        }
    )
    with pytest.raises(ValidationError) as excinfo:
        solve(snap, Budget(max_iterations=10), seed=0)
    assert excinfo.value.issues[0].refs == ("ghost",)


def chain(ids, kind="must_together"):
    return [{"guest_a": a, "guest_b": b, "kind": kind} for a, b in zip(ids, ids[1:])]


def assert_hard_constraints_hold(result):
    model = result.model
    for table_id in model.table_ids:
        assert result.assignment.count(table_id) <= model.capacity(table_id)
    for block in model.blocks:
        assert len({result.assignment.table_of(g) for g in block.members}) == 1
    for pref in model.apart_pairs:
        assert result.assignment.table_of(pref.guest_a) != result.assignment.table_of(pref.guest_b)
    assert result.cost.hard_violations == 0
    assert result.report.hard == ()


def test_groups_that_fit_are_never_split():
    a, b, c = ["a1", "a2", "a3", "a4"], ["b1", "b2", "b3"], ["c1", "c2", "c3"]
    snap = parse_snapshot(
        {
            "guests": [{"id": g, "name": g} for g in a + b + c],
            "tables": [{"id": "T1", "capacity": 6}, {"id": "T2", "capacity": 4}],
            "preferences": chain(a) + chain(b) + chain(c),
        }
    )
    result = solve(snap, Budget(max_iterations=20000), seed=0)
    assert_hard_constraints_hold(result)
    assert result.assignment.table_of("a1") == "T2"


def generated_snapshot(k):
    """Random party built table by table, so a plan with no hard violation exists."""
    rng = random.Random(k)
    tables, guests, prefs, group_heads = [], [], [], []
    n = 0
    for t in range(rng.randint(2, 4)):
        capacity = rng.randint(3, 7)
        tables.append({"id": f"T{t + 1}", "capacity": capacity})
        free = capacity - rng.randint(0, 1)
        while free > 0:
            size = rng.randint(1, min(4, free))
            ids = [f"g{n + i}" for i in range(size)]
            n += size
            free -= size
            guests.extend({"id": g, "name": g.upper()} for g in ids)
            prefs.extend(chain(ids))
            if size > 1:
                group_heads.append((t, ids[0]))
    for _ in range(2):
        if len(group_heads) < 2:
            break
        (ta, a), (tb, b) = rng.sample(group_heads, 2)
        if ta != tb:
            prefs.append({"guest_a": a, "guest_b": b, "kind": "must_apart"})
    ids = [g["id"] for g in guests]
    for _ in range(len(ids)):
        a, b = rng.sample(ids, 2)
        kind = rng.choice(["prefer_together", "prefer_apart"])
        prefs.append({"guest_a": a, "guest_b": b, "kind": kind, "weight": rng.randint(1, 5)})
    rng.shuffle(guests)
    return parse_snapshot({"guests": guests, "tables": tables, "preferences": prefs})


@pytest.mark.parametrize("k", range(12))
def test_generated_parties_are_seated_without_hard_violations(k):
    snap = generated_snapshot(k)
    result = solve(snap, Budget(max_iterations=1500), seed=k)
    assert len(result.records) == len(snap.guests)
    assert_hard_constraints_hold(result)
    assert result.cost.no_worse_than(result.initial_cost)
