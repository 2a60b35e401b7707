import pandas as pd

from flow_app.core.column_config import get_columns, load_column_sets
from flow_app.visual.column_metadata import apply_column_metadata
from flow_app.visual.tables import add_ticket_link, prepare_ticket_table, to_csv_bytes


def test_column_sets_load():
    sets = load_column_sets(refresh=True)
    assert "detail" in sets and "core" in sets and "metrics" in sets
    assert get_columns("ticket_list")[0] == "Ticket"
    assert get_columns("missing") == []


def test_column_sets_override_from_yaml(tmp_path, fresh_column_sets):
    (tmp_path / "columns.yaml").write_text("sets:\n  ticket_list:\n    - Ticket\n    - lead_time\n")
    sets = fresh_column_sets(tmp_path)
    assert sets["ticket_list"] == ["Ticket", "lead_time"]
    assert "cycle_time" in sets["detail"]


def test_column_sets_ignore_invalid_yaml(tmp_path, fresh_column_sets):
    (tmp_path / "columns.yaml").write_text("sets: [unclosed\n")
    sets = fresh_column_sets(tmp_path)
    assert sets["ticket_list"][0] == "Ticket"


def _ticket_df():
    return pd.DataFrame(
        {
            "key": ["FLOW-1", "FLOW-2"],
            "summary": ["a", "b"],
            "lead_time": [1.234, None],
            "cycle_time": [0.96, 2.0],
        }
    )


def test_prepare_ticket_table_links_and_rounds():
    table, cols, cfg = prepare_ticket_table(_ticket_df(), "https://example.atlassian.net/")
    assert cols[0] == "Ticket"
    assert table["Ticket"].tolist()[0] == "https://example.atlassian.net/browse/FLOW-1"
    assert table["lead_time"].tolist()[0] == 1.2
    assert "Ticket" in cfg


def test_ticket_column_without_server():
    table, cfg = add_ticket_link(_ticket_df(), "")
    assert table["Ticket"].tolist() == ["FLOW-1", "FLOW-2"]
    assert "Ticket" in cfg


def test_csv_bytes_and_metadata():
    data = to_csv_bytes(_ticket_df())
    assert data.decode().splitlines()[0] == "key,summary,lead_time,cycle_time"
    config = apply_column_metadata(["lead_time", "qa_churn", "unknown"])
    assert set(config) == {"lead_time", "qa_churn"}
    kept = apply_column_metadata(["lead_time"], existing={"lead_time": "custom"})
    assert kept["lead_time"] == "custom"
