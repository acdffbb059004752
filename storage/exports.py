"""Write snapshot score histories to CSV or Parquet through DuckDB ``COPY``."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

import duckdb

from pipelines.model import AggregateSnapshot
from storage.db import SCORE_HISTORY_TABLE, connect, load_snapshot

EXPORT_FORMATS: Mapping[str, str] = {
    "csv": "(FORMAT CSV, HEADER TRUE)",
    "parquet": "(FORMAT PARQUET)",
}
MEDIA_TYPES: Mapping[str, str] = {
    "csv": "text/csv",
    "parquet": "application/vnd.apache.parquet",
}


def export_score_history(
    conn: duckdb.DuckDBPyConnection,
    destination: str | Path,
    *,
    fmt: str = "csv",
) -> Path:
    """Copy the staged score history to ``destination``."""

    options = EXPORT_FORMATS.get(fmt.lower())
    if options is None:
        raise ValueError(f"Unsupported export format '{fmt}'.")

    dest_path = Path(destination)
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    sql = f"SELECT * FROM {SCORE_HISTORY_TABLE} ORDER BY entity_id, observed_on"
    quoted = str(dest_path).replace("'", "''")
    conn.execute(f"COPY ({sql}) TO '{quoted}' {options}")
    return dest_path


def export_snapshot(
    snapshot: AggregateSnapshot,
    destination: str | Path,
    *,
    fmt: str = "csv",
    sector: str | None = None,
) -> Path:
    """Stage ``snapshot`` in an in-memory database and export its score history."""

    if sector:
        snapshot = snapshot.model_copy(
            update={"entities": tuple(e for e in snapshot.entities if e.sector == sector)}
        )
    conn = connect()
    try:
        load_snapshot(conn, snapshot)
        return export_score_history(conn, destination, fmt=fmt)
    finally:
        conn.close()


__all__ = ["EXPORT_FORMATS", "MEDIA_TYPES", "export_score_history", "export_snapshot"]
