"""Shared fixtures and payload builders."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Sequence

import pytest

from pipelines import ratelimit
from pipelines.model import (
    AggregateSnapshot,
    DailyObservation,
    Driver,
    DriverShare,
    EntitySeries,
    ScoredObservation,
)
from pipelines.scoring import build_entity_series


@pytest.fixture(autouse=True)
def _no_credentials(monkeypatch):
    for name in ("ALPHA_VANTAGE_API_KEY", "NEWS_API_KEY", "GEMINI_API_KEY"):
        monkeypatch.setenv(name, "")
    monkeypatch.setenv("RISK_MIN_CALL_INTERVAL", "0")
    monkeypatch.setattr(ratelimit, "_SHARED", {})


def make_observations(
    closes: Sequence[float], *, volume: float = 1_000.0, start: date = date(2024, 1, 1)
) -> list[DailyObservation]:
    return [
        DailyObservation(date=start + timedelta(days=index), close_price=close, volume=volume)
        for index, close in enumerate(closes)
    ]


def make_series(
    entity_id: str,
    scores: Sequence[int],
    *,
    sector: str = "Technology",
    start: date = date(2024, 1, 1),
) -> EntitySeries:
    return EntitySeries(
        id=entity_id,
        display_name=entity_id.title(),
        sector=sector,
        observations=tuple(
            ScoredObservation(date=start + timedelta(days=index), score=score)
            for index, score in enumerate(scores)
        ),
    )


def daily_payload(closes: Sequence[float], *, start: date = date(2024, 1, 1)) -> dict:
    series = {
        (start + timedelta(days=index)).isoformat(): {
            "1. open": str(close),
            "4. close": str(close),
            "5. volume": "1000",
        }
        for index, close in enumerate(closes)
    }
    return {"Meta Data": {"2. Symbol": "TEST"}, "Time Series (Daily)": series}


@pytest.fixture()
def scored_snapshot() -> AggregateSnapshot:
    return AggregateSnapshot(
        entities=(
            build_entity_series("aaa", "AAA Corp", "Technology", make_observations([100, 110, 90])),
            make_series("bank", [50, 55, 60], sector="Financials"),
        ),
        drivers=(
            DriverShare(driver_name=Driver.VOLATILITY, percentage=40),
            DriverShare(driver_name=Driver.MACROECONOMIC, percentage=25),
            DriverShare(driver_name=Driver.SENTIMENT, percentage=20),
            DriverShare(driver_name=Driver.LIQUIDITY, percentage=15),
        ),
    )
