"""Streamlit UI for wedding seating with CSV previews and validation."""
from __future__ import annotations

# Add src to sys.path so wedding_seating can be found
import sys
import os
import io
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

import pandas as pd
import streamlit as st
import streamlit.components.v1 as components

from wedding_seating.config import SolverOptions, configure_logging
from wedding_seating.csv_loader import load_snapshot
from wedding_seating.engine import solve
from wedding_seating.errors import ValidationError
from wedding_seating.exporter import records_to_frame
from wedding_seating.mind_map import generate_assignment_mind_map
from wedding_seating.models import Budget

configure_logging()

# -----------------------------
# Helpers
# -----------------------------

def uploadedfile_to_buffer(uploaded_file) -> io.StringIO | None:
    """Copy a Streamlit UploadedFile into a fresh text buffer."""
    if uploaded_file is None:
        return None
    uploaded_file.seek(0)
    return io.StringIO(uploaded_file.read().decode("utf-8"))


def preview(uploaded_file, label: str, required: list[str]) -> bool:
    """Show a CSV preview and check that the required columns are present."""
    df = pd.read_csv(uploaded_file)
    uploaded_file.seek(0)
    st.subheader(f"{label} preview")
    st.dataframe(df, use_container_width=True)
    missing = [col for col in required if col not in df.columns]
    if missing:
        st.error(f"Error in {label}: missing columns: {', '.join(missing)}")
        return False
    return True

# -----------------------------
# Sidebar options
# -----------------------------

st.sidebar.header("Seating Options")
seed = st.sidebar.number_input("Random seed", min_value=0, value=0, help="Same seed and inputs give the same plan.")
max_iterations = st.sidebar.number_input(
    "Search iterations", min_value=0, max_value=1_000_000, value=20000, step=1000,
)
max_seconds = st.sidebar.number_input(
    "Time limit (seconds)", min_value=0.0, value=10.0, step=1.0,
    help="The search stops at whichever limit comes first.",
)
notable_weight = st.sidebar.number_input(
    "Report unmet preferences from weight", min_value=1, max_value=100, value=SolverOptions.notable_weight,
)
inter_table_edges = st.sidebar.checkbox("Show preferences between tables", value=True)

# -----------------------------
# Main UI and previews
# -----------------------------

st.title("Wedding Seating")

_guests_file = st.file_uploader("Guests CSV", type="csv")
_tables_file = st.file_uploader("Tables CSV", type="csv")
_preferences_file = st.file_uploader("Preferences CSV (optional)", type="csv")

valid = True
if _guests_file is not None:
    valid &= preview(_guests_file, "guests.csv", ["id", "name"])
if _tables_file is not None:
    valid &= preview(_tables_file, "tables.csv", ["capacity"])
if _preferences_file is not None:
    valid &= preview(_preferences_file, "preferences.csv", ["guest_a", "guest_b", "kind"])

run_disabled = not (_guests_file and _tables_file and valid)
run_clicked = st.button("Run optimizer", disabled=run_disabled, key="run_solver_button")

# -----------------------------
# Solve
# -----------------------------

if run_clicked and not run_disabled:
    try:
        snapshot = load_snapshot(
            uploadedfile_to_buffer(_guests_file),
            uploadedfile_to_buffer(_tables_file),
            uploadedfile_to_buffer(_preferences_file),
        )
        result = solve(
            snapshot,
            Budget(max_seconds=float(max_seconds), max_iterations=int(max_iterations)),
            int(seed),
            SolverOptions(notable_weight=int(notable_weight)),
        )
    except ValidationError as e:
        st.error("Input validation failed:\n" + "\n".join(f"- {i.message}" for i in e.issues))
        st.stop()
    except ValueError as e:
        st.error(f"Input validation error: {e}")
        st.stop()

    st.metric("Hard violations", result.cost.hard_violations)
    st.metric("Preference score", result.cost.soft_score,
              delta=result.cost.soft_score - result.initial_cost.soft_score)

    names = {g.id: g.name for g in result.model.guests.values()}
    result_df = records_to_frame(result.records)
    result_df.insert(1, "name", result_df["guestId"].map(names))
    st.subheader("Assignments")
    st.dataframe(result_df, use_container_width=True)

    st.subheader("Tables")
    st.dataframe(
        pd.DataFrame([
            {
                "table": result.model.tables[s.table_id].label,
                "grade": s.grade,
                "seated": f"{s.seated}/{s.capacity}",
                "mean score": round(s.mean_score, 2),
                "guests": ", ".join(names[g] for g in result.assignment.members(s.table_id)),
            }
            for s in result.report.tables
        ]),
        use_container_width=True,
    )

    if len(result.report):
        st.subheader("Conflicts")
        for c in result.report:
            (st.error if c.severity.value == "hard" else st.warning)(c.message)
    else:
        st.success("Every constraint and notable preference is met.")

    st.download_button(
        "Download assignments as CSV",
        records_to_frame(result.records).to_csv(index=False).encode("utf-8"),
        file_name="assignments.csv",
    )

    st.subheader("Seating Mind Map")
    html = generate_assignment_mind_map(
        result.model, result.assignment, result.report, show_inter_table_edges=inter_table_edges,
    )
    components.html(html, height=720, scrolling=True)
