from datetime import date

import pytest

from pipelines.model import AggregateSnapshot
from storage.db import connect, fetch_score_history, load_snapshot
from storage.exports import export_snapshot


def test_load_and_filter_score_history(scored_snapshot):
    conn = connect()
    try:
        written = load_snapshot(conn, scored_snapshot)
        rows = fetch_score_history(conn, where="sector = ?", params=["Technology"])
    finally:
        conn.close()

    assert written == 6
    assert [row["score"] for row in rows] == [50, 0, 100]
    assert rows[0]["observed_on"] == date(2024, 1, 1)
    assert rows[0]["volume"] == pytest.approx(1000.0)


def test_reloading_replaces_rows(scored_snapshot):
    conn = connect()
    try:
        load_snapshot(conn, scored_snapshot)
        load_snapshot(conn, scored_snapshot)
        rows = fetch_score_history(conn)
    finally:
        conn.close()

    assert len(rows) == 6


def test_empty_snapshot_writes_nothing():
    conn = connect()
    try:
        assert load_snapshot(conn, AggregateSnapshot()) == 0
    finally:
        conn.close()


def test_export_snapshot_csv(tmp_path, scored_snapshot):
    path = export_snapshot(scored_snapshot, tmp_path / "out" / "scores.csv", fmt="csv")

    lines = path.read_text().strip().splitlines()
    assert lines[0] == "entity_id,display_name,sector,observed_on,score,volume"
    assert len(lines) == 7


def test_export_snapshot_rejects_unknown_format(tmp_path, scored_snapshot):
    with pytest.raises(ValueError):
        export_snapshot(scored_snapshot, tmp_path / "scores.xlsx", fmt="xlsx")
