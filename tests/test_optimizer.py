import pathlib
import random
import sys
from dataclasses import replace

import pytest

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from wedding_seating.builder import build_initial
from wedding_seating.config import SolverOptions
from wedding_seating.constraints import ConstraintModel
from wedding_seating.csv_loader import load_snapshot
from wedding_seating.models import Assignment, Budget, Guest, PreferenceKind, SeatingPreference, Table
from wedding_seating.moves import MoveGenerator, MoveKind, do_move, undo_move
from wedding_seating.optimizer import LocalSearch, SearchState, _calculate_cooling_rate, optimize
from wedding_seating.scorer import ScoreState, score

DATA_DIR = pathlib.Path(__file__).parent / "data"


@pytest.fixture
def snapshot():
    return load_snapshot(DATA_DIR / "guests.csv", DATA_DIR / "tables.csv", DATA_DIR / "preferences.csv")


@pytest.fixture
def model(snapshot):
    return snapshot.build_model()


def test_cooling_rate_reaches_end_temperature():
    rate = _calculate_cooling_rate(101, 2.0, 0.02)
    assert 2.0 * rate ** 100 == pytest.approx(0.02)
    assert _calculate_cooling_rate(1, 2.0, 0.02) == 1.0


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_result_is_never_worse_than_initial(model, seed):
    initial = build_initial(model)
    best = optimize(model, initial, Budget(max_iterations=2000), random.Random(seed))
    assert score(model, best).no_worse_than(score(model, initial))
    assert len(best) == len(model.guests)


def test_search_keeps_blocks_and_pins(snapshot):
    pinned_model = replace(snapshot, pinned={"11": "T2"}).build_model()
    initial = build_initial(pinned_model)
    best = optimize(pinned_model, initial, Budget(max_iterations=3000), random.Random(5))
    assert best.table_of("11") == "T2"
    for block in pinned_model.blocks:
        assert len({best.table_of(g) for g in block.members}) == 1


def test_same_seed_same_result(model):
    runs = [
        optimize(model, build_initial(model), Budget(max_iterations=1500), random.Random(42))
        for _ in range(2)
    ]
    assert runs[0] == runs[1]


def test_zero_budget_returns_initial(model):
    initial = build_initial(model)
    search = LocalSearch(model, initial, Budget(max_iterations=0), random.Random(0))
    best = search.run()
    assert best == initial
    assert search.stats.iterations == 0
    assert search.stats.stop_reason is SearchState.BUDGET_EXPIRED
    assert search.state is SearchState.DONE


def test_zero_seconds_stops_immediately(model):
    initial = build_initial(model)
    search = LocalSearch(model, initial, Budget(max_seconds=0), random.Random(0))
    assert search.run() == initial
    assert search.stats.stop_reason is SearchState.BUDGET_EXPIRED


def test_converges_when_no_move_is_possible():
    ids = ["P1", "P2", "P3", "P4", "P5"]
    model = ConstraintModel.build(
        [Guest(g, g) for g in ids],
        [Table("T1", 3), Table("T2", 3)],
        [SeatingPreference(a, b, PreferenceKind.MUST_TOGETHER) for a, b in zip(ids, ids[1:])],
    )
    search = LocalSearch(
        model,
        build_initial(model),
        Budget(max_iterations=10000),
        random.Random(0),
        SolverOptions(stall_window=50),
    )
    best = search.run()
    assert search.stats.stop_reason is SearchState.CONVERGED
    assert search.stats.iterations == 50
    assert score(model, best).hard_violations == 2


def test_run_only_once(model):
    search = LocalSearch(model, build_initial(model), Budget(max_iterations=10), random.Random(0))
    search.run()
    with pytest.raises(RuntimeError):
        search.run()


def test_search_finds_a_preferred_swap():
    model = ConstraintModel.build(
        [Guest(g, g) for g in "abcd"],
        [Table("T1", 2), Table("T2", 2)],
        [
            SeatingPreference("a", "d", PreferenceKind.PREFER_TOGETHER, weight=5),
            SeatingPreference("b", "c", PreferenceKind.PREFER_TOGETHER, weight=5),
        ],
    )
    initial = Assignment(model.table_ids)
    for g, t in (("a", "T1"), ("b", "T1"), ("c", "T2"), ("d", "T2")):
        initial.place(g, t)
    assert score(model, initial).soft_score == 0
    best = optimize(model, initial, Budget(max_iterations=5000), random.Random(1))
    assert score(model, best).soft_score == 10
    assert best.table_of("a") == best.table_of("d")


def test_move_generator_skips_pinned_guests(snapshot):
    pinned_model = replace(snapshot, pinned={"5": "T1", "8": "T1"}).build_model()
    state = ScoreState(pinned_model, build_initial(pinned_model))
    generator = MoveGenerator(pinned_model, state, random.Random(0))
    assert "5" not in generator.singles
    assert all("8" not in b.members for b in generator.blocks)
    assert set(generator.kinds) == {
        MoveKind.SWAP,
        MoveKind.BLOCK_RELOCATE,
        MoveKind.BLOCK_SWAP,
        MoveKind.GUEST_RELOCATE,
    }


def test_undo_restores_seat_order(model):
    assignment = build_initial(model)
    original = assignment.copy()
    state = ScoreState(model, assignment)
    generator = MoveGenerator(model, state, random.Random(9))
    for _ in range(100):
        move = generator.propose()
        if move is None:
            continue
        undo = do_move(move, state)
        undo_move(undo, state)
        assert assignment == original
        assert state.cost == score(model, original)


def test_block_swap_trades_a_group_for_singletons():
    model = ConstraintModel.build(
        [Guest(g, g) for g in ("x1", "x2", "s1", "s2")],
        [Table("T1", 2), Table("T2", 2)],
        [SeatingPreference("x1", "x2", PreferenceKind.MUST_TOGETHER)],
    )
    assignment = Assignment(model.table_ids)
    for g, t in (("x1", "T1"), ("x2", "T1"), ("s1", "T2"), ("s2", "T2")):
        assignment.place(g, t)
    original = assignment.copy()
    state = ScoreState(model, assignment)
    generator = MoveGenerator(model, state, random.Random(3))

    # both tables are full, so only a block swap can change anything
    swaps = [m for m in (generator.propose() for _ in range(50)) if m is not None]
    assert swaps
    assert {m.kind for m in swaps} == {MoveKind.BLOCK_SWAP}
    for move in swaps:
        undo = do_move(move, state)
        assert assignment.members("T2") == ("x1", "x2")
        assert assignment.count("T1") == 2
        assert state.cost.hard_violations == 0
        undo_move(undo, state)
        assert assignment == original
