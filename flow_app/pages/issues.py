"""Per-issue metrics table with CSV download."""

from __future__ import annotations

import streamlit as st

from flow_app.app import register_page
from flow_app.core.config import SETTINGS
from flow_app.pages._shared import page_context
from flow_app.visual.column_metadata import apply_column_metadata
from flow_app.visual.tables import prepare_ticket_table, to_csv_bytes


@register_page("Issues")
def issues_page():
    st.title("Issues")
    ctx = page_context()
    if ctx is None:
        return
    if ctx.issues.empty:
        st.info("No issues match the current filters.")
        return

    detailed = st.toggle("Show all metric columns", value=False)
    server = st.session_state.get("jira_server", "")
    prepared, display_cols, cfg = prepare_ticket_table(
        ctx.issues,
        server,
        set_name="detail" if detailed else "ticket_list",
    )
    st.caption(f"{len(ctx.issues)} issue(s). Durations are in days; blank means the stage was not reached.")
    column_config = apply_column_metadata(display_cols, cfg)
    st.dataframe(
        prepared[display_cols].head(SETTINGS.max_table_rows),
        hide_index=True,
        column_config=column_config,
        width="stretch",
    )
    st.download_button(
        "Download CSV",
        data=to_csv_bytes(prepared[display_cols]),
        file_name="flow_metrics_issues.csv",
        mime="text/csv",
    )
