"""Reduce fetched entity series and side signals into a driver breakdown."""

from __future__ import annotations

import logging
import math
import statistics
from typing import Iterable, Mapping, Sequence

from pipelines.model import Driver, DriverShare, EntitySeries, NewsArticle

# Policy-rate level used when the macro indicator cannot be fetched.
MACRO_FALLBACK = 5.33
# Sentiment signal used when no ticker sentiment is available.
SENTIMENT_FALLBACK = 15.0
SENTIMENT_MULTIPLIER = 100.0

DRIVER_ORDER: tuple[Driver, ...] = (
    Driver.VOLATILITY,
    Driver.MACROECONOMIC,
    Driver.SENTIMENT,
    Driver.LIQUIDITY,
)

DEFAULT_DRIVER_DISTRIBUTION: Mapping[Driver, int] = {
    Driver.VOLATILITY: 40,
    Driver.MACROECONOMIC: 25,
    Driver.SENTIMENT: 20,
    Driver.LIQUIDITY: 15,
}

logger = logging.getLogger(__name__)


def volatility_signal(changes: Sequence[float]) -> float:
    """Sample standard deviation (n-1) of pooled daily percent changes."""

    if len(changes) < 2:
        return 0.0
    return statistics.stdev(changes)


def liquidity_signal(volumes: Sequence[float]) -> float:
    """Natural log of the mean pooled volume, floored at 0.

    A mean volume at or below 1 (including no volumes at all) contributes
    nothing rather than a negative share.
    """

    if not volumes:
        return 0.0
    mean_volume = statistics.fmean(volumes)
    if mean_volume <= 1:
        return 0.0
    return math.log(mean_volume)


def sentiment_signal(
    articles: Iterable[NewsArticle],
    tickers: Iterable[str],
    *,
    multiplier: float = SENTIMENT_MULTIPLIER,
) -> float | None:
    """Scaled magnitude of the mean relevance x sentiment for tracked tickers.

    Returns ``None`` when no article carries sentiment for a tracked ticker so
    the caller can apply its fallback.
    """

    tracked = {ticker.upper() for ticker in tickers}
    weighted: list[float] = []
    for article in articles:
        for entry in article.ticker_sentiment:
            if entry.ticker in tracked:
                weighted.append(entry.relevance_score * entry.ticker_sentiment_score)
    if not weighted:
        return None
    return abs(statistics.fmean(weighted)) * multiplier


def default_driver_shares() -> list[DriverShare]:
    return [
        DriverShare(driver_name=driver, percentage=DEFAULT_DRIVER_DISTRIBUTION[driver])
        for driver in DRIVER_ORDER
    ]


def compute_driver_shares(
    *,
    volatility: float,
    macroeconomic: float,
    sentiment: float,
    liquidity: float,
) -> list[DriverShare]:
    """Express each signal as a rounded percentage of the total.

    Shares are rounded independently, so they can sum to 99-101. That drift is
    left as is. A non-positive total yields ``DEFAULT_DRIVER_DISTRIBUTION``.
    """

    signals = {
        Driver.VOLATILITY: volatility,
        Driver.MACROECONOMIC: macroeconomic,
        Driver.SENTIMENT: sentiment,
        Driver.LIQUIDITY: liquidity,
    }
    total = sum(signals.values())
    if not math.isfinite(total) or total <= 0:
        logger.info("Driver signals sum to %s; using default distribution.", total)
        return default_driver_shares()
    return [
        DriverShare(driver_name=driver, percentage=round(signals[driver] / total * 100))
        for driver in DRIVER_ORDER
    ]


def aggregate_drivers(
    entities: Iterable[EntitySeries],
    *,
    macroeconomic: float | None = None,
    sentiment: float | None = None,
) -> list[DriverShare]:
    """Pool every entity's changes and volumes, then renormalize with the side signals."""

    pooled_changes: list[float] = []
    pooled_volumes: list[float] = []
    for entity in entities:
        pooled_changes.extend(entity.auxiliary.daily_percent_changes)
        pooled_volumes.extend(entity.auxiliary.volumes)

    return compute_driver_shares(
        volatility=volatility_signal(pooled_changes),
        macroeconomic=MACRO_FALLBACK if macroeconomic is None else macroeconomic,
        sentiment=SENTIMENT_FALLBACK if sentiment is None else sentiment,
        liquidity=liquidity_signal(pooled_volumes),
    )


__all__ = [
    "DEFAULT_DRIVER_DISTRIBUTION",
    "DRIVER_ORDER",
    "MACRO_FALLBACK",
    "SENTIMENT_FALLBACK",
    "SENTIMENT_MULTIPLIER",
    "aggregate_drivers",
    "compute_driver_shares",
    "default_driver_shares",
    "liquidity_signal",
    "sentiment_signal",
    "volatility_signal",
]
