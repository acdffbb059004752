"""DuckDB staging of snapshot score histories for tabular export."""

from __future__ import annotations

import os
from typing import Sequence

import duckdb

from pipelines.model import AggregateSnapshot

SCORE_HISTORY_TABLE = "score_history"

_COLUMNS = ("entity_id", "display_name", "sector", "observed_on", "score", "volume")


def connect(
    path: str | os.PathLike[str] | None = None,
    *,
    ensure: bool = True,
) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection (in-memory unless ``path`` is given)."""

    conn = duckdb.connect(str(path) if path is not None else ":memory:")
    if ensure:
        ensure_score_history_table(conn)
    return conn


def ensure_score_history_table(conn: duckdb.DuckDBPyConnection) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {SCORE_HISTORY_TABLE} (
            entity_id TEXT NOT NULL,
            display_name TEXT NOT NULL,
            sector TEXT NOT NULL,
            observed_on DATE NOT NULL,
            score INTEGER NOT NULL,
            volume DOUBLE,
            PRIMARY KEY (entity_id, observed_on)
        )
        """
    )


def _serialize_snapshot(snapshot: AggregateSnapshot) -> list[tuple]:
    rows: list[tuple] = []
    for entity in snapshot.entities:
        volumes = entity.auxiliary.volumes
        for index, obs in enumerate(entity.observations):
            volume = volumes[index] if index < len(volumes) else None
            rows.append(
                (entity.id, entity.display_name, entity.sector, obs.date, obs.score, volume)
            )
    return rows


def load_snapshot(conn: duckdb.DuckDBPyConnection, snapshot: AggregateSnapshot) -> int:
    """Insert or replace every scored observation of ``snapshot``.

    Returns
    -------
    int
        Number of rows written.
    """

    rows = _serialize_snapshot(snapshot)
    if not rows:
        return 0
    conn.executemany(
        f"""
        INSERT OR REPLACE INTO {SCORE_HISTORY_TABLE} ({", ".join(_COLUMNS)})
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        rows,
    )
    return len(rows)


def fetch_score_history(
    conn: duckdb.DuckDBPyConnection,
    *,
    where: str | None = None,
    params: Sequence[object] | None = None,
    limit: int | None = None,
) -> list[dict[str, object]]:
    sql = f"SELECT {', '.join(_COLUMNS)} FROM {SCORE_HISTORY_TABLE}"
    if where:
        sql += f" WHERE {where}"
    sql += " ORDER BY entity_id, observed_on"
    if limit is not None:
        sql += f" LIMIT {limit}"
    cursor = conn.execute(sql, params or [])
    return [dict(zip(_COLUMNS, row)) for row in cursor.fetchall()]


__all__ = [
    "SCORE_HISTORY_TABLE",
    "connect",
    "ensure_score_history_table",
    "fetch_score_history",
    "load_snapshot",
]
