import asyncio
import json

import httpx
import pytest

from conftest import make_series
from pipelines.errors import ProviderError
from pipelines.insights import (
    GeminiSummarizer,
    build_insights_request,
    generate_insights,
    render_prompt,
    risk_index,
    risk_score_change,
)
from pipelines.model import InsightsRequest


class RecordingSummarizer:
    def __init__(self, reply="Volatility dominates."):
        self.reply = reply
        self.requests = []

    async def summarize(self, request: InsightsRequest) -> str:
        self.requests.append(request)
        return self.reply


class BrokenSummarizer:
    async def summarize(self, request: InsightsRequest) -> str:
        raise ProviderError("model offline", provider="gemini")


def test_risk_index_and_change():
    entities = [make_series("a", [40, 50]), make_series("b", [60, 71])]

    assert risk_index(entities) == 60
    assert risk_score_change(entities) == 60 - 50


def test_risk_index_of_empty_snapshot():
    assert risk_index([]) == 0
    assert risk_score_change([make_series("a", [10])]) == 0


def test_build_insights_request(scored_snapshot):
    request = build_insights_request(scored_snapshot)

    assert request.volatility_impact == 40
    assert request.macroeconomic_impact == 25
    assert request.sentiment_impact == 20
    assert request.liquidity_impact == 15
    # aaa: 0 -> 100, bank: 55 -> 60
    assert request.risk_score_change == 80 - 28


def test_prompt_includes_every_field(scored_snapshot):
    prompt = render_prompt(build_insights_request(scored_snapshot))

    assert "Volatility Impact: 40" in prompt
    assert "Liquidity Impact: 15" in prompt
    assert prompt.rstrip().endswith("Insights:")


def test_generate_insights_passes_request(scored_snapshot):
    summarizer = RecordingSummarizer()

    text = asyncio.run(generate_insights(scored_snapshot, summarizer))

    assert text == "Volatility dominates."
    assert summarizer.requests[0].sentiment_impact == 20


def test_summarizer_failure_returns_none(scored_snapshot):
    assert asyncio.run(generate_insights(scored_snapshot, BrokenSummarizer())) is None


def test_gemini_without_key_returns_none(scored_snapshot):
    assert asyncio.run(generate_insights(scored_snapshot, GeminiSummarizer(None))) is None


def test_gemini_request_and_reply(scored_snapshot):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": "  Rates drive risk.  "}]}}]},
        )

    summarizer = GeminiSummarizer(
        "gem-key", model="test-model", transport=httpx.MockTransport(handler)
    )

    text = asyncio.run(generate_insights(scored_snapshot, summarizer))

    assert text == "Rates drive risk."
    assert "test-model:generateContent" in captured["url"]
    assert "key=gem-key" in captured["url"]
    assert "Sentiment Impact: 20" in captured["body"]["contents"][0]["parts"][0]["text"]


@pytest.mark.parametrize("payload", [{}, {"candidates": []}, {"candidates": [{"content": {"parts": [{"text": " "}]}}]}])
def test_gemini_bad_reply_returns_none(scored_snapshot, payload):
    summarizer = GeminiSummarizer(
        "gem-key", transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
    )

    assert asyncio.run(generate_insights(scored_snapshot, summarizer)) is None
