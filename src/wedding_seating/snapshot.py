"""
Snapshot boundary.

The storage layer hands over loosely typed records: dicts with camelCase or
snake_case keys, ids that may be numbers, nullable fields, NaN cells from
pandas. They are turned into typed models here and nothing untyped gets past
``parse_snapshot``. Every problem found is collected into one
``ValidationError``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .constraints import ConstraintModel
from .errors import ValidationError, ValidationIssue
from .models import Guest, PreferenceKind, SeatingPreference, Table, TableShape

_KIND_ALIASES = {
    "must_sit_together": PreferenceKind.MUST_TOGETHER,
    "cannot_sit_together": PreferenceKind.MUST_APART,
    "must_not_sit_together": PreferenceKind.MUST_APART,
}
_SHAPE_ALIASES = {"rectangle": TableShape.RECTANGULAR, "rect": TableShape.RECTANGULAR, "circle": TableShape.ROUND}


@dataclass(frozen=True)
class Snapshot:
    """Everything one optimization run reads."""

    guests: Tuple[Guest, ...]
    tables: Tuple[Table, ...]
    preferences: Tuple[SeatingPreference, ...] = ()
    pinned: Dict[str, str] = field(default_factory=dict)
    layout_id: Optional[str] = None

    def build_model(self) -> ConstraintModel:
        return ConstraintModel.build(self.guests, self.tables, self.preferences, self.pinned)


# ----------------------------- cell helpers -----------------------------
def is_missing(value: object) -> bool:
    """True for None, NaN and blank strings."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str):
        text = value.strip()
        return not text or text.lower() == "nan"
    return False


def parse_bool(value: object) -> bool:
    """Parse common truthy values into bool."""
    if isinstance(value, bool):
        return value
    if is_missing(value):
        return False
    return str(value).strip().lower() in ("true", "yes", "y", "1")


def _text(value: object) -> Optional[str]:
    if is_missing(value):
        return None
    if isinstance(value, float) and value.is_integer():
        # pandas reads integer id columns with gaps as floats
        value = int(value)
    return str(value).strip()


def _as_int(value: object) -> Optional[int]:
    if isinstance(value, bool) or is_missing(value):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


def _first(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if not is_missing(value):
            return value
    return None


def _normalize(value: str) -> str:
    return value.strip().lower().replace("-", "_").replace(" ", "_")


# ----------------------------- records -----------------------------
def parse_guest(record: Mapping[str, Any], ref: str, issues: List[ValidationIssue]) -> Optional[Guest]:
    guest_id = _text(_first(record, "id", "guestId", "guest_id"))
    if guest_id is None:
        issues.append(ValidationIssue("missing_field", f"{ref}: guest has no id", (ref,)))
        return None
    name = _text(_first(record, "name", "fullName", "full_name"))
    if name is None:
        parts = [_text(record.get(k)) for k in ("firstName", "first_name", "lastName", "last_name")]
        name = " ".join(p for p in parts if p) or guest_id
    return Guest(
        id=guest_id,
        name=name,
        group=_text(_first(record, "group", "household", "groupName", "group_name")),
        plus_one=parse_bool(_first(record, "plusOne", "plus_one")),
        partner_id=_text(_first(record, "partnerId", "partner_id", "primaryGuestId", "primary_guest_id")),
    )


def parse_table(record: Mapping[str, Any], ref: str, issues: List[ValidationIssue]) -> Optional[Table]:
    name = _text(record.get("name")) or ""
    table_id = _text(_first(record, "id", "tableId", "table_id")) or name
    if not table_id:
        issues.append(ValidationIssue("missing_field", f"{ref}: table has neither id nor name", (ref,)))
        return None
    raw_capacity = record.get("capacity")
    capacity = _as_int(raw_capacity)
    if capacity is None:
        issues.append(
            ValidationIssue("invalid_capacity", f"Table {name or table_id} has invalid capacity {raw_capacity!r}", (table_id,))
        )
        return None

    shape = None
    raw_shape = _text(record.get("shape"))
    if raw_shape:
        key = _normalize(raw_shape)
        shape = _SHAPE_ALIASES.get(key)
        if shape is None:
            try:
                shape = TableShape(key)
            except ValueError:
                issues.append(ValidationIssue("invalid_shape", f"Table {name or table_id} has unknown shape {raw_shape!r}", (table_id,)))

    position = None
    x, y = record.get("x"), record.get("y")
    if not is_missing(x) and not is_missing(y):
        try:
            position = (float(x), float(y))
        except (TypeError, ValueError):
            issues.append(ValidationIssue("invalid_position", f"Table {name or table_id} has invalid position ({x!r}, {y!r})", (table_id,)))
    return Table(id=table_id, capacity=capacity, name=name, shape=shape, position=position)


def parse_kind(value: object) -> Optional[PreferenceKind]:
    text = _text(value)
    if text is None:
        return None
    key = _normalize(text)
    if key in _KIND_ALIASES:
        return _KIND_ALIASES[key]
    try:
        return PreferenceKind(key)
    except ValueError:
        return None


def parse_preference(
    record: Mapping[str, Any], ref: str, issues: List[ValidationIssue]
) -> Optional[SeatingPreference]:
    source = _text(_first(record, "id", "source")) or ref
    raw_kind = _first(record, "kind", "preferenceType", "preference_type", "type", "relationship")
    kind = parse_kind(raw_kind)
    if kind is None:
        issues.append(ValidationIssue("unsupported_kind", f"{source}: unsupported preference kind {raw_kind!r}", (source,)))
        return None
    guest_a = _text(_first(record, "guestA", "guest_a", "guestId1", "guest_id1", "guest1_id", "guest1"))
    guest_b = _text(_first(record, "guestB", "guest_b", "guestId2", "guest_id2", "guest2_id", "guest2"))
    if guest_a is None or guest_b is None:
        issues.append(ValidationIssue("missing_field", f"{source}: preference needs two guests", (source,)))
        return None
    raw_weight = _first(record, "weight", "priority")
    weight = 1 if raw_weight is None else _as_int(raw_weight)
    if weight is None and kind.is_hard:
        # Hard kinds carry no weight.
        weight = 1
    elif weight is None:
        issues.append(ValidationIssue("invalid_weight", f"{source}: weight {raw_weight!r} is not an integer", (source,)))
        return None
    return SeatingPreference(
        guest_a=guest_a,
        guest_b=guest_b,
        kind=kind,
        weight=weight,
        source=source,
        notes=_text(record.get("notes")) or "",
    )


def _records(raw: Mapping[str, Any], key: str, issues: List[ValidationIssue]) -> Sequence[Mapping[str, Any]]:
    value = raw.get(key)
    if value is None:
        return []
    if not isinstance(value, (list, tuple)) or not all(isinstance(r, Mapping) for r in value):
        issues.append(ValidationIssue("malformed_snapshot", f"'{key}' must be a list of records", (key,)))
        return []
    return value


def _pins(raw: Mapping[str, Any], issues: List[ValidationIssue]) -> Dict[str, str]:
    value = raw.get("pinned")
    if value is None:
        return {}
    if isinstance(value, Mapping):
        items = [(_text(k), _text(v)) for k, v in value.items()]
    elif isinstance(value, (list, tuple)) and all(isinstance(r, Mapping) for r in value):
        items = [
            (_text(_first(r, "guestId", "guest_id")), _text(_first(r, "tableId", "table_id")))
            for r in value
        ]
    else:
        issues.append(ValidationIssue("malformed_snapshot", "'pinned' must be a mapping or a list of records", ("pinned",)))
        return {}
    pins: Dict[str, str] = {}
    for guest_id, table_id in items:
        if guest_id is None or table_id is None:
            issues.append(ValidationIssue("missing_field", "Pinned entry needs a guest and a table", ("pinned",)))
            continue
        pins[guest_id] = table_id
    return pins


def parse_snapshot(raw: Mapping[str, Any]) -> Snapshot:
    """Turn a loosely typed snapshot into a ``Snapshot``.

    Expects ``guests`` and ``tables`` lists, optional ``preferences``, optional
    ``pinned`` (``{guest_id: table_id}`` or a list of records) and an optional
    ``layoutId``.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError([ValidationIssue("malformed_snapshot", "Snapshot must be a mapping")])
    issues: List[ValidationIssue] = []
    guests = [parse_guest(r, f"guests[{i}]", issues) for i, r in enumerate(_records(raw, "guests", issues))]
    tables = [parse_table(r, f"tables[{i}]", issues) for i, r in enumerate(_records(raw, "tables", issues))]
    preferences = [
        parse_preference(r, f"preferences[{i}]", issues) for i, r in enumerate(_records(raw, "preferences", issues))
    ]
    pinned = _pins(raw, issues)
    if issues:
        raise ValidationError(issues)
    return Snapshot(
        guests=tuple(g for g in guests if g is not None),
        tables=tuple(t for t in tables if t is not None),
        preferences=tuple(p for p in preferences if p is not None),
        pinned=pinned,
        layout_id=_text(_first(raw, "layoutId", "layout_id")),
    )
