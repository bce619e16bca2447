import itertools
import pathlib
import sys

import pytest

# Ensure src package is on path
sys.path.append(str(pathlib.Path(__file__).resolve().parents[1] / "src"))

from wedding_seating.builder import build_initial
from wedding_seating.constraints import ConstraintModel
from wedding_seating.models import (
    Assignment,
    ConflictKind,
    Guest,
    PreferenceKind,
    SeatingPreference,
    Severity,
    Table,
)
from wedding_seating.reporter import report, table_summaries
from wedding_seating.scorer import score

MT = PreferenceKind.MUST_TOGETHER
MA = PreferenceKind.MUST_APART
PT = PreferenceKind.PREFER_TOGETHER
PA = PreferenceKind.PREFER_APART


@pytest.fixture
def messy():
    model = ConstraintModel.build(
        [Guest(g, g.upper()) for g in "abcdef"],
        [Table("T1", 2, name="Rose"), Table("T2", 4)],
        [
            SeatingPreference("a", "b", MT),
            SeatingPreference("b", "c", MT),
            SeatingPreference("a", "c", MA),
            SeatingPreference("d", "e", MA),
            SeatingPreference("d", "f", PT, weight=4),
            SeatingPreference("e", "f", PA, weight=3),
            SeatingPreference("a", "f", PT, weight=1),
        ],
    )
    assignment = Assignment(model.table_ids)
    for g in "abde":
        assignment.place(g, "T1")
    for g in "cf":
        assignment.place(g, "T2")
    return model, assignment


def test_conflicts_come_hard_first_in_kind_order(messy):
    model, assignment = messy
    result = report(model, assignment)
    assert [c.kind for c in result] == [
        ConflictKind.OVER_CAPACITY,
        ConflictKind.CONTRADICTION,
        ConflictKind.MUST_APART,
        ConflictKind.BLOCK_SPLIT,
        ConflictKind.PREFER_TOGETHER,
    ]
    assert [c.severity for c in result.soft] == [Severity.SOFT]


def test_hard_penalties_add_up_to_the_cost(messy):
    model, assignment = messy
    result = report(model, assignment)
    assert result.hard_violations == score(model, assignment).hard_violations == 4
    assert not result.is_feasible


def test_conflict_details(messy):
    model, assignment = messy
    over, contradiction, apart, split, prefer = report(model, assignment).conflicts
    assert over.guest_ids == ("d", "e")
    assert over.penalty == 2
    assert "Rose" in over.message
    assert contradiction.guest_ids == ("a", "b", "c")
    assert contradiction.penalty == 0
    assert apart.guest_ids == ("d", "e")
    assert split.guest_ids == ("c",)
    assert split.table_ids == ("T1", "T2")
    assert prefer.weight == 4
    assert prefer.preference.guest_b == "f"


def test_notable_weight_filters_soft_items(messy):
    model, assignment = messy
    assert report(model, assignment, notable_weight=5).soft == ()
    assert len(report(model, assignment, notable_weight=1).soft) == 2


def test_clean_plan_has_no_conflicts():
    model = ConstraintModel.build(
        [Guest(g, g) for g in "ab"],
        [Table("T1", 2)],
        [SeatingPreference("a", "b", PT, weight=5)],
    )
    assignment = Assignment(model.table_ids)
    assignment.place("a", "T1")
    assignment.place("b", "T1")
    result = report(model, assignment)
    assert len(result) == 0
    assert result.is_feasible
    (summary,) = result.tables
    assert summary.mean_score == 5
    assert summary.grade == "A"


def test_table_summaries(messy):
    model, assignment = messy
    t1, t2 = table_summaries(model, assignment)
    assert (t1.seated, t1.capacity, t1.pair_count) == (4, 2, 6)
    assert (t1.total_score, t1.pos_pairs, t1.neg_pairs) == (0, 1, 1)
    assert t1.grade == "F"
    assert t2.pair_count == 1


def test_oversized_group_reports_only_the_separated_guests():
    ids = ["P1", "P2", "P3", "P4", "P5"]
    model = ConstraintModel.build(
        [Guest(g, g) for g in ids],
        [Table("T1", 3), Table("T2", 3)],
        [SeatingPreference(a, b, MT) for a, b in itertools.combinations(ids, 2)],
    )
    assignment = build_initial(model)
    assert sorted(assignment.guests()) == ids

    result = report(model, assignment)
    assert len(result.hard) == 1
    (split,) = result.hard
    assert split.kind is ConflictKind.BLOCK_SPLIT
    assert split.guest_ids == ("P4", "P5")
    assert split.table_ids == ("T1", "T2")
    assert split.penalty == 2
    assert result.hard_violations == score(model, assignment).hard_violations == 2


def test_contradicted_group_stays_together():
    model = ConstraintModel.build(
        [Guest(g, g.upper()) for g in "abcd"],
        [Table("T1", 3), Table("T2", 3)],
        [SeatingPreference("a", "b", MT), SeatingPreference("b", "c", MT), SeatingPreference("a", "c", MA)],
    )
    assignment = build_initial(model)
    assert len({assignment.table_of(g) for g in "abc"}) == 1

    result = report(model, assignment)
    assert [c.kind for c in result.hard] == [ConflictKind.CONTRADICTION]
    assert result.hard[0].penalty == 1
    assert result.hard[0].guest_ids == ("a", "b", "c")
