"""What-if scenario shocks applied to a computed snapshot."""

from __future__ import annotations

from typing import Mapping

from pipelines.model import AggregateSnapshot, EntitySeries, ShockScenario


def sector_multipliers(shocks: ShockScenario) -> Mapping[str, float]:
    """Map each exposed sector to ``1 + shock / 100``; unlisted sectors stay at 1."""

    interest_rate = 1 + shocks.interest_rate / 100
    fx = 1 + shocks.fx / 100
    commodity = 1 + shocks.commodity_price / 100
    return {
        "Financials": interest_rate,
        "Industrials": commodity,
        "Energy": commodity,
        "Consumer Staples": fx,
    }


def _shock_entity(entity: EntitySeries, multiplier: float) -> EntitySeries:
    if multiplier == 1:
        return entity
    observations = tuple(
        obs.model_copy(update={"score": round(min(100.0, max(0.0, obs.score * multiplier)))})
        for obs in entity.observations
    )
    return entity.model_copy(update={"observations": observations})


def apply_shock(snapshot: AggregateSnapshot, shocks: ShockScenario) -> AggregateSnapshot:
    """Scale every score by its entity's sector multiplier, clamped to [0, 100].

    The input snapshot is left untouched; drivers, alerts and narratives are
    carried over unchanged.
    """

    multipliers = sector_multipliers(shocks)
    entities = tuple(
        _shock_entity(entity, multipliers.get(entity.sector, 1.0))
        for entity in snapshot.entities
    )
    return snapshot.model_copy(update={"entities": entities})


__all__ = ["apply_shock", "sector_multipliers"]
