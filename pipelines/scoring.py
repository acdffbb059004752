"""Turn close-price series into bounded risk-score histories."""

from __future__ import annotations

from typing import Sequence

from pipelines.model import DailyObservation, EntitySeries, ScoredObservation, SeriesAuxiliary

DEGENERATE_SCORE = 50


def normalize_score(price: float, min_price: float, max_price: float) -> int:
    """Score ``price`` by its inverted position inside ``[min_price, max_price]``.

    The lowest price in the window maps to 100 and the highest to 0. A flat
    window (``min_price == max_price``) scores exactly 50. Scores are relative to
    the window and are not comparable across different windows.
    """

    if max_price == min_price:
        return DEGENERATE_SCORE
    position = (price - min_price) / (max_price - min_price)
    score = round((1 - position) * 100)
    return max(0, min(100, score))


def daily_percent_changes(closes: Sequence[float]) -> list[float]:
    changes: list[float] = []
    for previous, current in zip(closes, closes[1:]):
        if previous == 0:
            changes.append(0.0)
            continue
        changes.append((current - previous) / previous * 100)
    return changes


def score_observations(observations: Sequence[DailyObservation]) -> list[ScoredObservation]:
    if not observations:
        return []
    closes = [obs.close_price for obs in observations]
    low, high = min(closes), max(closes)
    return [
        ScoredObservation(date=obs.date, score=normalize_score(obs.close_price, low, high))
        for obs in observations
    ]


def build_entity_series(
    entity_id: str,
    display_name: str,
    sector: str,
    observations: Sequence[DailyObservation],
) -> EntitySeries:
    """Score a chronological series and attach the raw volume/change arrays."""

    ordered = sorted(observations, key=lambda obs: obs.date)
    closes = [obs.close_price for obs in ordered]
    return EntitySeries(
        id=entity_id,
        display_name=display_name,
        sector=sector,
        observations=tuple(score_observations(ordered)),
        auxiliary=SeriesAuxiliary(
            volumes=tuple(obs.volume for obs in ordered),
            daily_percent_changes=tuple(daily_percent_changes(closes)),
        ),
    )


__all__ = [
    "DEGENERATE_SCORE",
    "build_entity_series",
    "daily_percent_changes",
    "normalize_score",
    "score_observations",
]
