"""News-sentiment feed ingestor.

Reads an Alpha Vantage ``NEWS_SENTIMENT``-shaped feed and converts each entry
into a ``NewsArticle`` with its topic tags and per-ticker sentiment pairs.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

from pipelines.common import ProviderClient
from pipelines.errors import MalformedPayload
from pipelines.model import NewsArticle, TickerSentiment
from pipelines.sources.alpha_vantage import check_provider_notices

NEWS_BASE_URL = "https://www.alphavantage.co/query"
PROVIDER_NAME = "news_sentiment"
DEFAULT_ARTICLE_LIMIT = 50

logger = logging.getLogger(__name__)


def _coerce_score(value: Any) -> float | None:
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _iter_topics(raw_topics: Any) -> Iterable[str]:
    if not isinstance(raw_topics, list):
        return
    for entry in raw_topics:
        if isinstance(entry, Mapping):
            topic = entry.get("topic")
        else:
            topic = entry
        if isinstance(topic, str) and topic.strip():
            yield topic.strip()


def _iter_ticker_sentiment(raw: Any) -> Iterable[TickerSentiment]:
    if not isinstance(raw, list):
        return
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        ticker = entry.get("ticker")
        if not isinstance(ticker, str) or not ticker.strip():
            continue
        yield TickerSentiment(
            ticker=ticker.strip().upper(),
            relevance_score=_coerce_score(entry.get("relevance_score")) or 0.0,
            ticker_sentiment_score=_coerce_score(entry.get("ticker_sentiment_score")) or 0.0,
        )


def parse_news_feed(payload: Any, *, limit: int = DEFAULT_ARTICLE_LIMIT) -> list[NewsArticle]:
    """Normalize a news feed payload, skipping entries without a headline."""

    body = check_provider_notices(payload, provider=PROVIDER_NAME)
    feed = body.get("feed")
    if not isinstance(feed, list):
        raise MalformedPayload("Missing 'feed' in news response.", provider=PROVIDER_NAME)

    articles: list[NewsArticle] = []
    for item in feed:
        if not isinstance(item, Mapping):
            continue
        title = item.get("title")
        if not isinstance(title, str) or not title.strip():
            continue
        articles.append(
            NewsArticle(
                title=title,
                url=item.get("url") if isinstance(item.get("url"), str) else None,
                published_at=(
                    item.get("time_published")
                    if isinstance(item.get("time_published"), str)
                    else None
                ),
                topics=tuple(_iter_topics(item.get("topics"))),
                overall_sentiment_score=_coerce_score(item.get("overall_sentiment_score"))
                or 0.0,
                ticker_sentiment=tuple(_iter_ticker_sentiment(item.get("ticker_sentiment"))),
            )
        )
        if len(articles) >= limit:
            break
    return articles


async def fetch_news_articles(
    client: ProviderClient,
    tickers: Sequence[str],
    *,
    limit: int = DEFAULT_ARTICLE_LIMIT,
) -> list[NewsArticle]:
    """Fetch recent articles mentioning any of ``tickers``."""

    params: dict[str, Any] = {"function": "NEWS_SENTIMENT", "limit": limit}
    if tickers:
        params["tickers"] = ",".join(tickers)
    payload = await client.get_json(params)
    articles = parse_news_feed(payload, limit=limit)
    logger.debug("Fetched %s news articles.", len(articles))
    return articles


__all__ = [
    "DEFAULT_ARTICLE_LIMIT",
    "NEWS_BASE_URL",
    "PROVIDER_NAME",
    "fetch_news_articles",
    "parse_news_feed",
]
