"""Bundled static sample series used when no provider credential is configured."""

from __future__ import annotations

import random
import zlib
from datetime import date, timedelta
from typing import Mapping

from pipelines.model import DailyObservation

DEFAULT_SAMPLE_DAYS = 90

# entity id -> (starting close, typical daily volume, daily volatility)
SAMPLE_PROFILES: Mapping[str, tuple[float, float, float]] = {
    "alpha": (412.0, 21_500_000.0, 0.014),
    "beta": (265.0, 2_900_000.0, 0.012),
    "gamma": (168.0, 9_800_000.0, 0.011),
    "delta": (112.0, 16_200_000.0, 0.016),
    "epsilon": (158.0, 6_700_000.0, 0.008),
    "zeta": (152.0, 6_100_000.0, 0.007),
}
_DEFAULT_PROFILE = (100.0, 1_000_000.0, 0.012)


def _seed_for(entity_id: str) -> int:
    return zlib.crc32(entity_id.encode("utf-8"))


def sample_observations(
    entity_id: str,
    *,
    days: int = DEFAULT_SAMPLE_DAYS,
    end: date | None = None,
) -> list[DailyObservation]:
    """Return a deterministic daily series ending on ``end`` (today by default).

    The same ``entity_id`` always yields the same closes and volumes, so
    fallback snapshots are reproducible across requests.
    """

    if days <= 0:
        return []
    end_date = end or date.today()
    start_close, base_volume, daily_vol = SAMPLE_PROFILES.get(entity_id, _DEFAULT_PROFILE)
    rng = random.Random(_seed_for(entity_id))

    close = start_close
    observations: list[DailyObservation] = []
    for offset in range(days - 1, -1, -1):
        close = max(0.01, close * (1.0 + rng.gauss(0.0, daily_vol)))
        volume = base_volume * rng.uniform(0.6, 1.4)
        observations.append(
            DailyObservation(
                date=end_date - timedelta(days=offset),
                close_price=round(close, 2),
                volume=round(volume),
            )
        )
    return observations


__all__ = ["DEFAULT_SAMPLE_DAYS", "SAMPLE_PROFILES", "sample_observations"]
