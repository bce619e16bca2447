"""Interactive seating map rendered with networkx and pyvis.

Guests are drawn at their seats around each table: round tables as a circle,
square and rectangular tables along their outline. Tables sit at their
``position`` when every table has one, on a grid otherwise. Edges are the
seating preferences, coloured by kind and dashed when unmet.
"""
import math
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx
from pyvis.network import Network

from .constraints import ConstraintModel
from .models import Assignment, ConflictReport, PreferenceKind, SeatingPreference, TableShape

SEAT_SPACING = 34
MARGIN = 120

PALETTE = [
    "#FFB347", "#77DD77", "#AEC6CF", "#F49AC2", "#B39EB5", "#779ECB",
    "#966FD6", "#FFD700", "#CB99C9", "#CFCFC4", "#FDFD96", "#84B6F4",
]

EDGE_COLORS = {
    PreferenceKind.MUST_TOGETHER: "#1E8449",
    PreferenceKind.PREFER_TOGETHER: "#58D68D",
    PreferenceKind.PREFER_APART: "#F5B041",
    PreferenceKind.MUST_APART: "#E74C3C",
}


def generate_assignment_mind_map(
    model: ConstraintModel,
    assignment: Assignment,
    report: Optional[ConflictReport] = None,
    show_inter_table_edges: bool = True,
    default_shape: TableShape = TableShape.ROUND,
    canvas_size: Tuple[int, int] = (1600, 1000),
) -> str:
    """
    Build an interactive seating visualization and return it as HTML.

    Parameters:
      model: the constraint model the assignment was computed for.
      assignment: seating to draw; unseated guests are left out.
      report: when given, guests named in hard conflicts get a red border.
      show_inter_table_edges: also draw preferences between different tables.
      default_shape: layout for tables without a shape.
      canvas_size: width, height in pixels.
    """
    width, height = canvas_size
    occupied = [t for t in model.table_ids if assignment.count(t)]
    centers = _table_centers(model, occupied, width, height)
    colors = {t: PALETTE[i % len(PALETTE)] for i, t in enumerate(model.table_ids)}
    flagged = {g for c in report.hard for g in c.guest_ids} if report else set()

    G = nx.Graph()
    for table_id in occupied:
        table = model.tables[table_id]
        members = assignment.members(table_id)
        seats = _seat_positions(table.shape or default_shape, centers[table_id], len(members))
        for seat, (guest_id, (x, y)) in enumerate(zip(members, seats), start=1):
            guest = model.guests[guest_id]
            pinned = model.is_pinned(guest_id)
            G.add_node(
                guest_id,
                label=guest.name,
                title=_node_tooltip(model, guest_id, table.label, seat, pinned),
                color={"background": colors[table_id], "border": "#E74C3C" if guest_id in flagged else "#333333"},
                x=x,
                y=y,
                physics=False,
                borderWidth=4 if guest_id in flagged else 1,
                shape="diamond" if pinned else "dot",
                size=18,
            )

    for pref in _strongest_per_pair(model.preferences):
        a, b = pref.guest_a, pref.guest_b
        if a not in G or b not in G:
            continue
        same_table = assignment.table_of(a) == assignment.table_of(b)
        if not same_table and not show_inter_table_edges:
            continue
        met = same_table == pref.kind.wants_together
        G.add_edge(
            a,
            b,
            color=EDGE_COLORS[pref.kind],
            weight=4 if pref.kind.is_hard else 1 + min(6, pref.weight),
            title=pref.describe(),
            dashes=not met,
            smooth=not same_table,
        )

    net = Network(height="700px", width="100%", bgcolor="#111111", font_color="#EEEEEE")
    net.toggle_physics(False)
    net.from_nx(G)
    html = net.generate_html()
    return html.replace("</body>", _legend_html() + "</body>", 1)


# ---------------------------
# Internals
# ---------------------------

def _strongest_per_pair(preferences: Sequence[SeatingPreference]) -> List[SeatingPreference]:
    """One preference per guest pair: hard beats soft, then the higher weight."""
    best: Dict[Tuple[str, str], SeatingPreference] = {}
    for pref in preferences:
        current = best.get(pref.pair)
        if current is None or (pref.kind.is_hard, pref.weight) > (current.kind.is_hard, current.weight):
            best[pref.pair] = pref
    return list(best.values())


def _table_centers(
    model: ConstraintModel, tables: List[str], width: int, height: int
) -> Dict[str, Tuple[int, int]]:
    positions = [model.tables[t].position for t in tables]
    if tables and all(p is not None for p in positions):
        return _scaled_centers(dict(zip(tables, positions)), width, height)
    return _grid_centers(tables, width, height)


def _scaled_centers(
    positions: Dict[str, Tuple[float, float]], width: int, height: int
) -> Dict[str, Tuple[int, int]]:
    """Map floor-plan coordinates onto the canvas, keeping the aspect ratio."""
    xs = [p[0] for p in positions.values()]
    ys = [p[1] for p in positions.values()]
    span = max(max(xs) - min(xs), max(ys) - min(ys)) or 1.0
    scale = min(width, height) - 2 * MARGIN
    return {
        t: (int(MARGIN + (x - min(xs)) / span * scale), int(MARGIN + (y - min(ys)) / span * scale))
        for t, (x, y) in positions.items()
    }


def _grid_centers(tables: List[str], width: int, height: int) -> Dict[str, Tuple[int, int]]:
    if not tables:
        return {}
    cols = max(1, math.ceil(math.sqrt(len(tables))))
    rows = math.ceil(len(tables) / cols)
    step_x = max(1, width - 2 * MARGIN) // cols
    step_y = max(1, height - 2 * MARGIN) // rows
    return {
        t: (MARGIN + (i % cols) * step_x + step_x // 2, MARGIN + (i // cols) * step_y + step_y // 2)
        for i, t in enumerate(tables)
    }


def _seat_positions(shape: TableShape, center: Tuple[int, int], n: int) -> List[Tuple[int, int]]:
    cx, cy = center
    if shape is TableShape.SQUARE:
        side = max(80, n * SEAT_SPACING / 4)
        return _perimeter_layout(cx, cy, n, side, side)
    if shape is TableShape.RECTANGULAR:
        short = max(60, n * SEAT_SPACING / 6)
        return _perimeter_layout(cx, cy, n, 2 * short, short)
    radius = max(60, n * SEAT_SPACING / (2 * math.pi))
    return _circle_layout(cx, cy, radius, n)


def _circle_layout(cx: int, cy: int, radius: float, n: int) -> List[Tuple[int, int]]:
    return [
        (int(cx + radius * math.cos(2 * math.pi * i / n)), int(cy + radius * math.sin(2 * math.pi * i / n)))
        for i in range(n)
    ]


def _perimeter_layout(cx: int, cy: int, n: int, w: float, h: float) -> List[Tuple[int, int]]:
    """``n`` points evenly spaced clockwise along a w x h outline, from the top-left corner."""
    perimeter = 2 * (w + h)
    pts = []
    for i in range(n):
        d = perimeter * i / max(1, n)
        if d < w:
            x, y = d - w / 2, -h / 2
        elif d < w + h:
            x, y = w / 2, d - w - h / 2
        elif d < 2 * w + h:
            x, y = w / 2 - (d - w - h), h / 2
        else:
            x, y = -w / 2, h / 2 - (d - 2 * w - h)
        pts.append((int(cx + x), int(cy + y)))
    return pts


def _node_tooltip(model: ConstraintModel, guest_id: str, table: str, seat: int, pinned: bool) -> str:
    guest = model.guests[guest_id]
    lines = [f"<b>{guest.name}</b>", f"Table: {table}, seat {seat}"]
    if guest.group:
        lines.append(f"Group: {guest.group}")
    if guest.partner_id:
        lines.append(f"Plus-one of: {model.guests[guest.partner_id].name}")
    if pinned:
        lines.append("Pinned")
    lines.append(f"Must sit apart from: {model.hard_degree(guest_id)}")
    return "<br>".join(lines)


def _legend_html() -> str:
    rows = "".join(
        f'<div><span class="legend-swatch" style="background:{color}"></span>{kind.value}</div>'
        for kind, color in EDGE_COLORS.items()
    )
    return f"""
    <style>
    .legend-box{{
      position:absolute;right:12px;bottom:12px;
      background:#222;color:#eee;border:1px solid #444;border-radius:8px;
      padding:8px 12px;font-family:system-ui, Arial;font-size:12px;z-index:10;
    }}
    .legend-swatch{{display:inline-block;width:12px;height:12px;margin-right:6px;vertical-align:middle;}}
    </style>
    <div class="legend-box">
      {rows}
      <div style="margin-top:6px;">dashed edge: unmet</div>
      <div>node color: table, diamond: pinned</div>
      <div>red border: hard conflict</div>
    </div>
    """
