"""Plain-English insights from an external text-generation service.

The generator is an opaque collaborator: it receives the five numeric risk
fields and answers with a paragraph. Any failure there yields ``None`` and
leaves the snapshot untouched.
"""

from __future__ import annotations

import logging
import statistics
from typing import Any, Iterable, Mapping, Protocol

import httpx

from pipelines.common import DEFAULT_TIMEOUT_SECONDS, fetch_json, resolve_credential
from pipelines.errors import MalformedPayload, MissingCredential
from pipelines.model import AggregateSnapshot, Driver, EntitySeries, InsightsRequest

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
PROVIDER_NAME = "gemini"

PROMPT_TEMPLATE = """You are an expert financial analyst. Summarize the factors that are influencing risk score changes in a clear and concise plain-English narrative.

Risk Score Change: {risk_score_change}
Volatility Impact: {volatility_impact}%
Macroeconomic Impact: {macroeconomic_impact}%
Sentiment Impact: {sentiment_impact}%
Liquidity Impact: {liquidity_impact}%

Insights:"""

logger = logging.getLogger(__name__)


class Summarizer(Protocol):
    async def summarize(self, request: InsightsRequest) -> str:
        ...


def render_prompt(request: InsightsRequest) -> str:
    return PROMPT_TEMPLATE.format(**request.model_dump())


def risk_index(entities: Iterable[EntitySeries]) -> int:
    """Rounded mean of each entity's latest score; 0 when there are no scores."""

    latest = [entity.observations[-1].score for entity in entities if entity.observations]
    if not latest:
        return 0
    return round(statistics.fmean(latest))


def risk_score_change(entities: Iterable[EntitySeries]) -> int:
    """Today's risk index minus the rounded mean of the previous day's scores."""

    with_history = [entity for entity in entities if len(entity.observations) >= 2]
    if not with_history:
        return 0
    today = round(statistics.fmean(entity.observations[-1].score for entity in with_history))
    yesterday = round(
        statistics.fmean(entity.observations[-2].score for entity in with_history)
    )
    return today - yesterday


def build_insights_request(snapshot: AggregateSnapshot) -> InsightsRequest:
    shares = {share.driver_name: share.percentage for share in snapshot.drivers}
    return InsightsRequest(
        risk_score_change=risk_score_change(snapshot.entities),
        volatility_impact=shares.get(Driver.VOLATILITY, 0),
        macroeconomic_impact=shares.get(Driver.MACROECONOMIC, 0),
        sentiment_impact=shares.get(Driver.SENTIMENT, 0),
        liquidity_impact=shares.get(Driver.LIQUIDITY, 0),
    )


def _extract_text(payload: Any) -> str:
    try:
        parts = payload["candidates"][0]["content"]["parts"]
        text = "".join(part.get("text", "") for part in parts if isinstance(part, Mapping))
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedPayload(
            "Unexpected text-generation response shape.", provider=PROVIDER_NAME
        ) from exc
    if not text.strip():
        raise MalformedPayload("Text-generation response was empty.", provider=PROVIDER_NAME)
    return text.strip()


class GeminiSummarizer:
    """``Summarizer`` backed by the Generative Language ``generateContent`` endpoint."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_GEMINI_MODEL,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = resolve_credential(api_key)
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def summarize(self, request: InsightsRequest) -> str:
        if self.api_key is None:
            raise MissingCredential(PROVIDER_NAME)
        payload = await fetch_json(
            f"{self.base_url}/{self.model}:generateContent",
            method="POST",
            params={"key": self.api_key},
            json={"contents": [{"parts": [{"text": render_prompt(request)}]}]},
            timeout=self.timeout,
            transport=self._transport,
        )
        return _extract_text(payload)


async def generate_insights(
    snapshot: AggregateSnapshot, summarizer: Summarizer
) -> str | None:
    """Summarize the snapshot's drivers, returning ``None`` if the generator fails."""

    request = build_insights_request(snapshot)
    try:
        return await summarizer.summarize(request)
    except MissingCredential as exc:
        logger.warning("Skipping insights: %s", exc)
    except Exception:
        logger.exception("Insights generation failed.")
    return None


__all__ = [
    "DEFAULT_GEMINI_MODEL",
    "GEMINI_BASE_URL",
    "GeminiSummarizer",
    "PROMPT_TEMPLATE",
    "Summarizer",
    "build_insights_request",
    "generate_insights",
    "render_prompt",
    "risk_index",
    "risk_score_change",
]
