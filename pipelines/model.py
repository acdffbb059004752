"""Canonical data model for risk snapshots built from external market data."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Driver(str, Enum):
    VOLATILITY = "Volatility"
    MACROECONOMIC = "Macroeconomic"
    SENTIMENT = "Sentiment"
    LIQUIDITY = "Liquidity"


class AlertTrigger(str, Enum):
    VOLATILITY = "Volatility"
    MACROECONOMIC = "Macroeconomic"
    SENTIMENT = "Sentiment"


class NarrativeFactor(str, Enum):
    LIQUIDITY = "Liquidity"
    MARKET = "Market"
    GEOPOLITICAL = "Geopolitical"
    POLICY = "Policy"
    TECHNOLOGY = "Technology"
    FINANCE = "Finance"
    ECONOMIC = "Economic"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class DailyObservation(_Frozen):
    """A single daily close/volume point returned by a price provider."""

    date: dt.date = Field(..., description="Trading day of the observation.")
    close_price: float = Field(..., description="Closing price for the day.")
    volume: float = Field(0.0, description="Traded volume for the day.")


class ScoredObservation(_Frozen):
    """Risk score derived from a ``DailyObservation``."""

    date: dt.date
    score: int = Field(..., ge=0, le=100, description="Relative risk score (0-100).")


class SeriesAuxiliary(_Frozen):
    volumes: tuple[float, ...] = ()
    daily_percent_changes: tuple[float, ...] = ()


class EntitySeries(_Frozen):
    """Scored history for one tracked company."""

    id: str = Field(..., description="Stable identifier of the tracked entity.")
    display_name: str
    sector: str
    observations: tuple[ScoredObservation, ...] = Field(default=(), max_length=90)
    auxiliary: SeriesAuxiliary = Field(default_factory=SeriesAuxiliary)

    @property
    def latest_score(self) -> int | None:
        return self.observations[-1].score if self.observations else None


class DriverShare(_Frozen):
    driver_name: Driver
    percentage: int


class Alert(_Frozen):
    id: str
    entity_id: str
    score_delta: int
    trigger: AlertTrigger = AlertTrigger.VOLATILITY
    observed_at: str = Field(..., description="Timestamp or display label of the breach.")


class NarrativeItem(_Frozen):
    id: str
    headline: str
    sentiment_score: float = 0.0
    factor: NarrativeFactor = NarrativeFactor.MARKET


class TickerSentiment(_Frozen):
    ticker: str
    relevance_score: float = 0.0
    ticker_sentiment_score: float = 0.0


class NewsArticle(_Frozen):
    """News article as returned by the sentiment feed, trimmed to the fields we use."""

    title: str
    url: str | None = None
    published_at: str | None = None
    topics: tuple[str, ...] = ()
    overall_sentiment_score: float = 0.0
    ticker_sentiment: tuple[TickerSentiment, ...] = ()


class AggregateSnapshot(_Frozen):
    """Response object assembled once per aggregation request."""

    entities: tuple[EntitySeries, ...] = ()
    drivers: tuple[DriverShare, ...] = ()
    alerts: tuple[Alert, ...] = ()
    narratives: tuple[NarrativeItem, ...] = ()


class ShockScenario(_Frozen):
    """Hypothetical macro shocks, each expressed as a percentage."""

    interest_rate: float = Field(0.0, description="Interest-rate shock in percent.")
    fx: float = Field(0.0, description="FX shock in percent.")
    commodity_price: float = Field(0.0, description="Commodity-price shock in percent.")


class InsightsRequest(_Frozen):
    """The numeric fields handed to the text generator."""

    risk_score_change: float = Field(..., ge=-100, le=100)
    volatility_impact: float
    macroeconomic_impact: float
    sentiment_impact: float
    liquidity_impact: float


__all__ = [
    "AggregateSnapshot",
    "Alert",
    "AlertTrigger",
    "DailyObservation",
    "Driver",
    "DriverShare",
    "EntitySeries",
    "InsightsRequest",
    "NarrativeFactor",
    "NarrativeItem",
    "NewsArticle",
    "ScoredObservation",
    "SeriesAuxiliary",
    "ShockScenario",
    "TickerSentiment",
]
