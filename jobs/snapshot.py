"""End-to-end job that fetches all tracked entities and builds a risk snapshot."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Iterable, Sequence

import httpx

from jobs.config import TRACKED_ENTITIES, Settings, TrackedEntity, load_settings
from pipelines.aggregate import aggregate_drivers, sentiment_signal
from pipelines.alerts import generate_alerts
from pipelines.common import ProviderClient, resolve_credential
from pipelines.errors import ProviderError
from pipelines.model import AggregateSnapshot, EntitySeries, NewsArticle
from pipelines.narratives import build_narratives
from pipelines.ratelimit import shared_limiter
from pipelines.scoring import build_entity_series
from pipelines.sources.alpha_vantage import fetch_daily_series, fetch_macro_indicator
from pipelines.sources.news import fetch_news_articles
from pipelines.sources.sample import sample_observations

logger = logging.getLogger(__name__)


def _build_client(
    name: str,
    base_url: str,
    api_key: str | None,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None,
) -> ProviderClient:
    # Clients on the same host and key share one limiter.
    credential = resolve_credential(api_key)
    return ProviderClient(
        name,
        base_url,
        credential,
        rate_limiter=shared_limiter(base_url, credential, settings.min_call_interval),
        timeout=settings.http_timeout,
        transport=transport,
    )


def build_price_client(
    settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
) -> ProviderClient:
    """Client for daily prices and the macro indicator."""

    return _build_client(
        "alpha_vantage",
        settings.alpha_vantage_base_url,
        settings.alpha_vantage_api_key,
        settings,
        transport,
    )


def build_news_client(
    settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
) -> ProviderClient:
    return _build_client(
        "news_sentiment",
        settings.news_base_url,
        settings.news_api_key,
        settings,
        transport,
    )


def _sample_series(entity: TrackedEntity, days: int) -> EntitySeries:
    return build_entity_series(
        entity.id,
        entity.display_name,
        entity.sector,
        sample_observations(entity.id, days=days),
    )


async def _fetch_entity(
    client: ProviderClient, entity: TrackedEntity, days: int
) -> EntitySeries | None:
    if not client.has_credential:
        return _sample_series(entity, days)
    try:
        observations = await fetch_daily_series(client, entity.symbol, limit=days)
    except ProviderError as exc:
        logger.warning(
            "Dropping %s (%s) from snapshot: %s: %s",
            entity.id,
            entity.symbol,
            type(exc).__name__,
            exc,
        )
        return None
    return build_entity_series(entity.id, entity.display_name, entity.sector, observations)


async def _fetch_articles(
    client: ProviderClient, entities: Sequence[TrackedEntity]
) -> list[NewsArticle]:
    if not client.has_credential:
        logger.info("News credential not configured; narratives will be empty.")
        return []
    try:
        return await fetch_news_articles(client, [entity.symbol for entity in entities])
    except ProviderError as exc:
        logger.warning("News fetch failed: %s: %s", type(exc).__name__, exc)
        return []


async def _fetch_macro(client: ProviderClient) -> float | None:
    if not client.has_credential:
        return None
    try:
        return await fetch_macro_indicator(client)
    except ProviderError as exc:
        logger.warning("Macro indicator fetch failed: %s: %s", type(exc).__name__, exc)
        return None


async def fetch_aggregate_snapshot(
    *,
    settings: Settings | None = None,
    entities: Iterable[TrackedEntity] | None = None,
    price_client: ProviderClient | None = None,
    news_client: ProviderClient | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    observed_at: str | None = None,
) -> AggregateSnapshot:
    """Fetch every source concurrently, then reduce into an ``AggregateSnapshot``.

    Provider failures drop only the affected entity (or side signal). When no
    live price fetch succeeds, bundled sample series stand in for all entities.
    """

    settings = settings or load_settings()
    tracked = tuple(entities) if entities is not None else TRACKED_ENTITIES
    price_client = price_client or build_price_client(settings, transport=transport)
    news_client = news_client or build_news_client(settings, transport=transport)

    fetched, articles, macro = await asyncio.gather(
        asyncio.gather(
            *(_fetch_entity(price_client, entity, settings.history_days) for entity in tracked)
        ),
        _fetch_articles(news_client, tracked),
        _fetch_macro(price_client),
    )

    series = [item for item in fetched if item is not None]
    if tracked and not series:
        logger.warning("No live price series available; using bundled sample data.")
        series = [_sample_series(entity, settings.history_days) for entity in tracked]
    elif len(series) < len(tracked):
        logger.info("Snapshot built from %s of %s entities.", len(series), len(tracked))

    sentiment = sentiment_signal(articles, [entity.symbol for entity in tracked])
    return AggregateSnapshot(
        entities=tuple(series),
        drivers=tuple(aggregate_drivers(series, macroeconomic=macro, sentiment=sentiment)),
        alerts=tuple(
            generate_alerts(
                series, threshold=settings.alert_threshold, observed_at=observed_at
            )
        ),
        narratives=tuple(build_narratives(articles)),
    )


def main(entities: Iterable[TrackedEntity] | None = None) -> int:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    snapshot = asyncio.run(fetch_aggregate_snapshot(entities=entities))
    print(snapshot.model_dump_json(indent=2))
    logger.info(
        "Snapshot job finished (entities=%s, alerts=%s, narratives=%s).",
        len(snapshot.entities),
        len(snapshot.alerts),
        len(snapshot.narratives),
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
