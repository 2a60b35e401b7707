"""Reusable table helpers for Streamlit rendering."""

from __future__ import annotations

import pandas as pd
import streamlit as st

from flow_app.analytics.metrics.stats import round_series_half_up
from flow_app.core.column_config import get_columns
from flow_app.core.config import SETTINGS


def add_ticket_link(df: pd.DataFrame, server: str, key_col: str = "key", label: str = "Ticket"):
    """Add a link column to Jira when a server is known, else a plain key column."""
    if df.empty or key_col not in df.columns:
        return df, {}
    out = df.copy()
    if not server:
        out[label] = out[key_col].astype(str)
        return out, {label: st.column_config.TextColumn(label, help="Issue key", width="small")}
    base = server.rstrip("/")
    out[label] = out[key_col].astype(str).apply(lambda k: f"{base}/browse/{k}" if k and k != "nan" else "")
    cfg = {
        label: st.column_config.LinkColumn(
            label,
            display_text=r"browse/(.*)$",
            help="Open in Jira",
            width="small",
        )
    }
    return out, cfg


def prepare_ticket_table(
    df: pd.DataFrame,
    server: str,
    *,
    set_name: str = "ticket_list",
    extra_columns: list[str] | None = None,
) -> tuple[pd.DataFrame, list[str], dict[str, object]]:
    if df.empty:
        return df, [], {}

    table, cfg = add_ticket_link(df, server)
    canonical = get_columns(set_name) or []
    display_cols: list[str] = [col for col in canonical if col in table.columns]

    for col in extra_columns or []:
        if col in table.columns and col not in display_cols:
            display_cols.append(col)

    if "Ticket" in table.columns and "Ticket" not in display_cols:
        display_cols.insert(0, "Ticket")

    if not display_cols:
        display_cols = [col for col in table.columns if col != "key"]

    for col in ("lead_time", "cycle_time", "grooming_cycle_time", "dev_cycle_time", "qa_cycle_time"):
        if col in display_cols:
            table[col] = round_series_half_up(pd.to_numeric(table[col], errors="coerce"))

    return table, display_cols, cfg


def to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode(SETTINGS.download_encoding)
