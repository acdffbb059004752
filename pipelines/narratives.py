"""Classify news articles into narrative items by topical factor."""

from __future__ import annotations

import zlib
from typing import Iterable

from pipelines.model import NarrativeFactor, NarrativeItem, NewsArticle

DEFAULT_NARRATIVE_LIMIT = 10
DEFAULT_FACTOR = NarrativeFactor.MARKET

# Evaluated top to bottom; the first keyword found wins. Specific phrases must
# stay above the broader keywords they contain ("economy - monetary" before
# "economy").
TOPIC_RULES: tuple[tuple[str, NarrativeFactor], ...] = (
    ("liquidity", NarrativeFactor.LIQUIDITY),
    ("economy - monetary", NarrativeFactor.POLICY),
    ("economy - fiscal", NarrativeFactor.POLICY),
    ("central bank", NarrativeFactor.POLICY),
    ("regulation", NarrativeFactor.POLICY),
    ("policy", NarrativeFactor.POLICY),
    ("geopolitic", NarrativeFactor.GEOPOLITICAL),
    ("sanction", NarrativeFactor.GEOPOLITICAL),
    ("tariff", NarrativeFactor.GEOPOLITICAL),
    ("economy - macro", NarrativeFactor.ECONOMIC),
    ("economy", NarrativeFactor.ECONOMIC),
    ("inflation", NarrativeFactor.ECONOMIC),
    ("technology", NarrativeFactor.TECHNOLOGY),
    ("blockchain", NarrativeFactor.TECHNOLOGY),
    ("financial markets", NarrativeFactor.MARKET),
    ("finance", NarrativeFactor.FINANCE),
    ("earnings", NarrativeFactor.FINANCE),
    ("mergers", NarrativeFactor.FINANCE),
)


def _match(text: str) -> NarrativeFactor | None:
    lowered = text.lower()
    for keyword, factor in TOPIC_RULES:
        if keyword in lowered:
            return factor
    return None


def classify_factor(article: NewsArticle) -> NarrativeFactor:
    """Return the factor of the first rule matching the topics, then the headline."""

    for topic in article.topics:
        factor = _match(topic)
        if factor is not None:
            return factor
    return _match(article.title) or DEFAULT_FACTOR


def _narrative_id(article: NewsArticle) -> str:
    key = article.url or article.title
    return f"news-{zlib.crc32(key.encode('utf-8')):08x}"


def build_narratives(
    articles: Iterable[NewsArticle], *, limit: int = DEFAULT_NARRATIVE_LIMIT
) -> list[NarrativeItem]:
    items: list[NarrativeItem] = []
    seen: set[str] = set()
    for article in articles:
        if len(items) >= limit:
            break
        headline = article.title.strip()
        if headline in seen:
            continue
        seen.add(headline)
        items.append(
            NarrativeItem(
                id=_narrative_id(article),
                headline=headline,
                sentiment_score=article.overall_sentiment_score,
                factor=classify_factor(article),
            )
        )
    return items


__all__ = [
    "DEFAULT_FACTOR",
    "DEFAULT_NARRATIVE_LIMIT",
    "TOPIC_RULES",
    "build_narratives",
    "classify_factor",
]
