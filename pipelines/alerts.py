"""Threshold alerts on the latest day-over-day score move."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from pipelines.model import Alert, AlertTrigger, EntitySeries

DEFAULT_ALERT_THRESHOLD = 8


def generate_alerts(
    entities: Iterable[EntitySeries],
    *,
    threshold: int = DEFAULT_ALERT_THRESHOLD,
    observed_at: str | None = None,
) -> list[Alert]:
    """Emit one alert per entity whose last score moved by more than ``threshold``.

    The trigger is always reported as volatility, whichever driver moved.
    Nothing is remembered between calls.
    """

    stamp = observed_at or datetime.now(timezone.utc).isoformat(timespec="seconds")
    alerts: list[Alert] = []
    for entity in entities:
        if len(entity.observations) < 2:
            continue
        previous, latest = entity.observations[-2], entity.observations[-1]
        delta = latest.score - previous.score
        if abs(delta) <= threshold:
            continue
        alerts.append(
            Alert(
                id=f"{entity.id}-{latest.date.isoformat()}",
                entity_id=entity.id,
                score_delta=delta,
                trigger=AlertTrigger.VOLATILITY,
                observed_at=stamp,
            )
        )
    return alerts


__all__ = ["DEFAULT_ALERT_THRESHOLD", "generate_alerts"]
