"""Alpha Vantage price and macro-indicator ingestor utilities."""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Any, Mapping

from pipelines.common import ProviderClient
from pipelines.errors import InvalidSymbol, MalformedPayload, ProviderRateLimited
from pipelines.model import DailyObservation

ALPHA_VANTAGE_BASE_URL = "https://www.alphavantage.co/query"
PROVIDER_NAME = "alpha_vantage"

DAILY_SERIES_KEY = "Time Series (Daily)"
CLOSE_FIELD = "4. close"
VOLUME_FIELD = "5. volume"
DEFAULT_MACRO_FUNCTION = "FEDERAL_FUNDS_RATE"

_RATE_LIMIT_KEYS = ("Note", "Information")
_ERROR_KEY = "Error Message"
_SENTINEL_VALUES = {".", "NA", "N/A", "", "None"}

logger = logging.getLogger(__name__)


def _parse_observation_date(raw_date: str) -> date | None:
    try:
        return date.fromisoformat(raw_date[:10])
    except ValueError:
        try:
            return datetime.strptime(raw_date, "%Y-%m-%d").date()
        except ValueError:
            return None


def _coerce_float(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if stripped in _SENTINEL_VALUES:
            return None
        try:
            numeric = float(stripped)
        except ValueError:
            return None
    else:
        return None

    if math.isnan(numeric) or math.isinf(numeric):
        return None
    return numeric


def check_provider_notices(
    payload: Any, *, symbol: str | None = None, provider: str = PROVIDER_NAME
) -> Mapping[str, Any]:
    """Raise the matching ``ProviderError`` for notices embedded in a 200 response."""

    if not isinstance(payload, Mapping):
        raise MalformedPayload(
            f"Expected a JSON object from {provider}.", provider=provider, symbol=symbol
        )
    for key in _RATE_LIMIT_KEYS:
        if key in payload:
            raise ProviderRateLimited(
                str(payload[key]), provider=provider, symbol=symbol
            )
    if _ERROR_KEY in payload:
        raise InvalidSymbol(str(payload[_ERROR_KEY]), provider=provider, symbol=symbol)
    return payload


def parse_daily_series(
    payload: Any, *, symbol: str, limit: int = 90
) -> list[DailyObservation]:
    """Turn a TIME_SERIES_DAILY payload into the ``limit`` most recent observations."""

    body = check_provider_notices(payload, symbol=symbol)
    series = body.get(DAILY_SERIES_KEY)
    if not isinstance(series, Mapping):
        raise MalformedPayload(
            f"Missing '{DAILY_SERIES_KEY}' in response.", provider=PROVIDER_NAME, symbol=symbol
        )

    observations: list[DailyObservation] = []
    for raw_date, point in series.items():
        if not isinstance(point, Mapping):
            continue
        observed_on = _parse_observation_date(str(raw_date))
        close = _coerce_float(point.get(CLOSE_FIELD))
        if observed_on is None or close is None:
            continue
        volume = _coerce_float(point.get(VOLUME_FIELD)) or 0.0
        observations.append(
            DailyObservation(date=observed_on, close_price=close, volume=volume)
        )

    if not observations:
        raise MalformedPayload(
            "Daily series contained no usable points.", provider=PROVIDER_NAME, symbol=symbol
        )

    observations.sort(key=lambda obs: obs.date)
    return observations[-limit:] if limit > 0 else []


async def fetch_daily_series(
    client: ProviderClient, symbol: str, *, limit: int = 90
) -> list[DailyObservation]:
    """Fetch up to ``limit`` most recent daily close/volume points for ``symbol``."""

    payload = await client.get_json(
        {"function": "TIME_SERIES_DAILY", "symbol": symbol, "outputsize": "compact"},
        symbol=symbol,
    )
    observations = parse_daily_series(payload, symbol=symbol, limit=limit)
    logger.debug("Fetched %s daily points for %s.", len(observations), symbol)
    return observations


def parse_macro_indicator(payload: Any, *, function: str = DEFAULT_MACRO_FUNCTION) -> float:
    """Return the most recent value of an economic-indicator payload."""

    body = check_provider_notices(payload)
    data = body.get("data")
    if not isinstance(data, list):
        raise MalformedPayload(
            f"Missing 'data' for {function}.", provider=PROVIDER_NAME
        )

    latest: tuple[date, float] | None = None
    for point in data:
        if not isinstance(point, Mapping):
            continue
        observed_on = _parse_observation_date(str(point.get("date", "")))
        value = _coerce_float(point.get("value"))
        if observed_on is None or value is None:
            continue
        if latest is None or observed_on > latest[0]:
            latest = (observed_on, value)

    if latest is None:
        raise MalformedPayload(f"No numeric values for {function}.", provider=PROVIDER_NAME)
    return latest[1]


async def fetch_macro_indicator(
    client: ProviderClient,
    *,
    function: str = DEFAULT_MACRO_FUNCTION,
    interval: str = "monthly",
) -> float:
    """Fetch the latest value of a named economic series (e.g. the policy rate)."""

    payload = await client.get_json({"function": function, "interval": interval})
    return parse_macro_indicator(payload, function=function)


__all__ = [
    "ALPHA_VANTAGE_BASE_URL",
    "DEFAULT_MACRO_FUNCTION",
    "PROVIDER_NAME",
    "check_provider_notices",
    "fetch_daily_series",
    "fetch_macro_indicator",
    "parse_daily_series",
    "parse_macro_indicator",
]
