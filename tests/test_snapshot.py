import asyncio
import time

import httpx
import pytest

from conftest import daily_payload
from jobs.config import TRACKED_ENTITIES, Settings, load_settings
from jobs.snapshot import build_news_client, build_price_client, fetch_aggregate_snapshot
from pipelines.aggregate import DEFAULT_DRIVER_DISTRIBUTION
from pipelines.model import Driver

LIVE = Settings(alpha_vantage_api_key="live-key", news_api_key="news-key", min_call_interval=0.0)


def _provider(rate_limited=(), failing_news=False, macro=None):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        calls.append(dict(params))
        function = params["function"]
        if function == "TIME_SERIES_DAILY":
            if params["symbol"] in rate_limited:
                return httpx.Response(200, json={"Note": "Our standard API call frequency is 5 calls per minute."})
            return httpx.Response(200, json=daily_payload([100, 104, 101, 111]))
        if function == "NEWS_SENTIMENT":
            if failing_news:
                return httpx.Response(500, text="boom")
            return httpx.Response(
                200,
                json={
                    "feed": [
                        {
                            "title": "Banks brace for tighter liquidity",
                            "topics": [{"topic": "Finance"}],
                            "overall_sentiment_score": -0.2,
                            "ticker_sentiment": [
                                {"ticker": "JPM", "relevance_score": "0.8", "ticker_sentiment_score": "-0.25"}
                            ],
                        }
                    ]
                },
            )
        if function == "FEDERAL_FUNDS_RATE":
            if macro is None:
                return httpx.Response(200, json={"Information": "rate limit"})
            return httpx.Response(200, json={"data": [{"date": "2024-03-01", "value": str(macro)}]})
        return httpx.Response(404)

    return httpx.MockTransport(handler), calls


def test_rate_limited_entity_is_dropped():
    transport, _ = _provider(rate_limited={"XOM"}, macro=5.33)

    snapshot = asyncio.run(fetch_aggregate_snapshot(settings=LIVE, transport=transport))

    assert len(snapshot.entities) == 5
    assert "delta" not in {entity.id for entity in snapshot.entities}
    assert len(snapshot.drivers) == 4


def test_live_snapshot_scores_and_narratives():
    transport, calls = _provider(macro=5.33)

    snapshot = asyncio.run(
        fetch_aggregate_snapshot(settings=LIVE, transport=transport, observed_at="t")
    )

    assert len(snapshot.entities) == len(TRACKED_ENTITIES)
    first = snapshot.entities[0]
    assert [obs.score for obs in first.observations] == [100, 64, 91, 0]
    # 91 -> 0 breaches the threshold for every entity.
    assert {alert.entity_id for alert in snapshot.alerts} == {e.id for e in TRACKED_ENTITIES}
    assert all(alert.score_delta == -91 for alert in snapshot.alerts)
    assert snapshot.narratives[0].factor.value == "Finance"
    assert {call["function"] for call in calls} == {
        "TIME_SERIES_DAILY",
        "NEWS_SENTIMENT",
        "FEDERAL_FUNDS_RATE",
    }


def test_side_signal_failures_use_fallbacks():
    transport, _ = _provider(failing_news=True, macro=None)

    snapshot = asyncio.run(fetch_aggregate_snapshot(settings=LIVE, transport=transport))

    assert len(snapshot.entities) == 6
    assert snapshot.narratives == ()
    assert 99 <= sum(share.percentage for share in snapshot.drivers) <= 101


def test_all_live_fetches_failing_uses_sample_data():
    transport, _ = _provider(rate_limited={entity.symbol for entity in TRACKED_ENTITIES})

    snapshot = asyncio.run(fetch_aggregate_snapshot(settings=LIVE, transport=transport))

    assert [entity.id for entity in snapshot.entities] == [e.id for e in TRACKED_ENTITIES]
    assert all(len(entity.observations) == 90 for entity in snapshot.entities)


def test_missing_credentials_make_no_calls():
    transport, calls = _provider()

    snapshot = asyncio.run(fetch_aggregate_snapshot(settings=Settings(), transport=transport))

    assert calls == []
    assert len(snapshot.entities) == 6
    assert snapshot.narratives == ()
    for entity in snapshot.entities:
        assert all(0 <= obs.score <= 100 for obs in entity.observations)


def test_no_entities_uses_side_signal_fallbacks():
    snapshot = asyncio.run(fetch_aggregate_snapshot(settings=Settings(), entities=[]))

    assert snapshot.entities == ()
    shares = {share.driver_name: share.percentage for share in snapshot.drivers}
    # Only the macro and sentiment fallbacks contribute.
    assert set(shares) == set(DEFAULT_DRIVER_DISTRIBUTION)
    assert shares[Driver.VOLATILITY] == 0
    assert shares[Driver.LIQUIDITY] == 0
    assert shares[Driver.MACROECONOMIC] == 26
    assert shares[Driver.SENTIMENT] == 74


def test_load_settings_treats_placeholders_as_missing(monkeypatch):
    monkeypatch.setenv("ALPHA_VANTAGE_API_KEY", "demo")
    monkeypatch.setenv("NEWS_API_KEY", "real-news-key")
    monkeypatch.setenv("RISK_HISTORY_DAYS", "30")

    settings = load_settings()

    assert settings.alpha_vantage_api_key is None
    assert settings.news_api_key == "real-news-key"
    assert settings.history_days == 30
    assert settings.min_call_interval == 0.0


def test_load_settings_rejects_long_history(monkeypatch):
    monkeypatch.setenv("RISK_HISTORY_DAYS", "365")

    with pytest.raises(ValueError):
        load_settings()


PACED_INTERVAL = 0.2
PACING_SLACK = 0.15


def _timed_provider():
    stamps: list[tuple[str, float]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        function = request.url.params["function"]
        stamps.append((function, time.monotonic()))
        if function == "TIME_SERIES_DAILY":
            return httpx.Response(200, json=daily_payload([100, 104, 101]))
        if function == "FEDERAL_FUNDS_RATE":
            return httpx.Response(200, json={"data": [{"date": "2024-03-01", "value": "5.33"}]})
        return httpx.Response(200, json={"feed": []})

    return httpx.MockTransport(handler), stamps


def _gaps(stamps):
    ordered = sorted(stamp for _, stamp in stamps)
    return [later - earlier for earlier, later in zip(ordered, ordered[1:])]


def test_concurrent_snapshots_share_provider_pacing():
    transport, stamps = _timed_provider()
    settings = Settings(
        alpha_vantage_api_key="live-key",
        news_api_key="news-key",
        min_call_interval=PACED_INTERVAL,
    )

    async def scenario():
        return await asyncio.gather(
            *(
                fetch_aggregate_snapshot(
                    settings=settings, entities=TRACKED_ENTITIES[:2], transport=transport
                )
                for _ in range(2)
            )
        )

    first, second = asyncio.run(scenario())

    assert len(first.entities) == len(second.entities) == 2
    price_calls = [item for item in stamps if item[0] != "NEWS_SENTIMENT"]
    news_calls = [item for item in stamps if item[0] == "NEWS_SENTIMENT"]
    assert len(price_calls) == 6
    assert len(news_calls) == 2
    assert min(_gaps(price_calls)) >= PACED_INTERVAL - PACING_SLACK
    assert min(_gaps(news_calls)) >= PACED_INTERVAL - PACING_SLACK


def test_news_on_same_quota_is_paced_with_prices():
    transport, stamps = _timed_provider()
    settings = Settings(
        alpha_vantage_api_key="shared-key",
        news_api_key="shared-key",
        min_call_interval=PACED_INTERVAL,
    )

    asyncio.run(
        fetch_aggregate_snapshot(settings=settings, entities=TRACKED_ENTITIES[:2], transport=transport)
    )

    assert len(stamps) == 4
    assert min(_gaps(stamps)) >= PACED_INTERVAL - PACING_SLACK


def test_clients_share_a_limiter_only_for_the_same_quota():
    same_key = Settings(alpha_vantage_api_key="k1", news_api_key="k1")
    other_key = Settings(alpha_vantage_api_key="k1", news_api_key="k2")

    assert build_price_client(same_key).rate_limiter is build_news_client(same_key).rate_limiter
    assert build_price_client(same_key).rate_limiter is build_price_client(other_key).rate_limiter
    assert build_news_client(other_key).rate_limiter is not build_price_client(other_key).rate_limiter
