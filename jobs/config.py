"""Static configuration for tracked companies and environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from dotenv import load_dotenv

from pipelines.common import DEFAULT_TIMEOUT_SECONDS, resolve_credential
from pipelines.insights import DEFAULT_GEMINI_MODEL, GEMINI_BASE_URL
from pipelines.ratelimit import DEFAULT_MIN_INTERVAL_SECONDS
from pipelines.sources.alpha_vantage import ALPHA_VANTAGE_BASE_URL
from pipelines.sources.news import NEWS_BASE_URL

MAX_HISTORY_DAYS = 90


@dataclass(frozen=True)
class TrackedEntity:
    """A company whose price history feeds the risk snapshot."""

    id: str
    symbol: str
    display_name: str
    sector: str


TRACKED_ENTITIES: tuple[TrackedEntity, ...] = (
    TrackedEntity(id="alpha", symbol="MSFT", display_name="Alpha Corp", sector="Technology"),
    TrackedEntity(id="beta", symbol="CAT", display_name="Beta Industries", sector="Industrials"),
    TrackedEntity(id="gamma", symbol="JPM", display_name="Gamma Financials", sector="Financials"),
    TrackedEntity(id="delta", symbol="XOM", display_name="Delta Energy", sector="Energy"),
    TrackedEntity(id="epsilon", symbol="JNJ", display_name="Epsilon Health", sector="Healthcare"),
    TrackedEntity(id="zeta", symbol="PG", display_name="Zeta Consumer", sector="Consumer Staples"),
)


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the process environment."""

    alpha_vantage_api_key: str | None = None
    news_api_key: str | None = None
    gemini_api_key: str | None = None
    alpha_vantage_base_url: str = ALPHA_VANTAGE_BASE_URL
    news_base_url: str = NEWS_BASE_URL
    gemini_base_url: str = GEMINI_BASE_URL
    gemini_model: str = DEFAULT_GEMINI_MODEL
    min_call_interval: float = DEFAULT_MIN_INTERVAL_SECONDS
    history_days: int = MAX_HISTORY_DAYS
    alert_threshold: int = 8
    http_timeout: float = DEFAULT_TIMEOUT_SECONDS


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def load_settings() -> Settings:
    """Build ``Settings`` from ``.env`` and the environment.

    Missing or placeholder credentials resolve to ``None``; that is a supported
    configuration which switches the affected source to bundled sample data.
    """

    load_dotenv()
    history_days = _env_int("RISK_HISTORY_DAYS", MAX_HISTORY_DAYS)
    if not 1 <= history_days <= MAX_HISTORY_DAYS:
        raise ValueError(f"RISK_HISTORY_DAYS must be between 1 and {MAX_HISTORY_DAYS}.")
    return Settings(
        alpha_vantage_api_key=resolve_credential(os.getenv("ALPHA_VANTAGE_API_KEY")),
        news_api_key=resolve_credential(os.getenv("NEWS_API_KEY")),
        gemini_api_key=resolve_credential(os.getenv("GEMINI_API_KEY")),
        alpha_vantage_base_url=os.getenv("ALPHA_VANTAGE_BASE_URL", ALPHA_VANTAGE_BASE_URL),
        news_base_url=os.getenv("NEWS_BASE_URL", NEWS_BASE_URL),
        gemini_base_url=os.getenv("GEMINI_BASE_URL", GEMINI_BASE_URL),
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        min_call_interval=_env_float("RISK_MIN_CALL_INTERVAL", DEFAULT_MIN_INTERVAL_SECONDS),
        history_days=history_days,
        alert_threshold=_env_int("RISK_ALERT_THRESHOLD", 8),
        http_timeout=_env_float("RISK_HTTP_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
    )


def get_entity_by_id(entity_id: str) -> TrackedEntity | None:
    for entity in TRACKED_ENTITIES:
        if entity.id == entity_id:
            return entity
    return None


def iter_entities(ids: Iterable[str] | None = None) -> Iterable[TrackedEntity]:
    if ids is None:
        return TRACKED_ENTITIES
    selected = []
    for entity_id in ids:
        entity = get_entity_by_id(entity_id)
        if entity:
            selected.append(entity)
    return tuple(selected)


__all__ = [
    "MAX_HISTORY_DAYS",
    "Settings",
    "TRACKED_ENTITIES",
    "TrackedEntity",
    "get_entity_by_id",
    "iter_entities",
    "load_settings",
]
