"""Shared utilities for retrieving and normalizing external API responses."""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pipelines.errors import (
    MalformedPayload,
    MissingCredential,
    ProviderError,
    ProviderRateLimited,
)
from pipelines.ratelimit import RateLimiter

DEFAULT_TIMEOUT_SECONDS = 30.0
_DEFAULT_WAIT = wait_exponential(min=1, max=16)
_DEFAULT_STOP = stop_after_attempt(3)
_TRANSIENT = retry_if_exception_type(httpx.TransportError)

# Values shipped in sample .env files that must be treated as "not configured".
PLACEHOLDER_CREDENTIALS = frozenset(
    {"", "demo", "your_api_key", "your_api_key_here", "changeme", "none", "null"}
)

Headers = Mapping[str, str] | None
Params = Mapping[str, Any] | None
Data = MutableMapping[str, Any] | bytes | str | None
JsonData = Any


def is_placeholder_credential(value: str | None) -> bool:
    if value is None:
        return True
    return value.strip().lower() in PLACEHOLDER_CREDENTIALS


def resolve_credential(value: str | None) -> str | None:
    """Return the stripped credential, or ``None`` when it is absent or a placeholder."""

    if is_placeholder_credential(value):
        return None
    return value.strip()


@retry(wait=_DEFAULT_WAIT, stop=_DEFAULT_STOP, retry=_TRANSIENT, reraise=True)
async def fetch_json(
    url: str,
    *,
    headers: Headers = None,
    params: Params = None,
    method: str = "GET",
    data: Data = None,
    json: JsonData = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Any:
    """Execute an HTTP request and return the decoded JSON payload.

    Retries with exponential backoff only when the connection itself fails;
    an answered request with an error status is raised immediately.
    """

    request_method = method.upper()
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        response = await client.request(
            request_method,
            url,
            headers=headers,
            params=params,
            data=data,
            json=json,
        )

    response.raise_for_status()
    return response.json()


class ProviderClient:
    """HTTP client for one rate-limited provider.

    Provider calls are made exactly once: a failed call surfaces as a
    ``ProviderError`` and the caller decides what to drop.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        api_key: str | None,
        *,
        rate_limiter: RateLimiter | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = name
        self.base_url = base_url
        self.api_key = resolve_credential(api_key)
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self._transport = transport

    @property
    def has_credential(self) -> bool:
        return self.api_key is not None

    def require_api_key(self) -> str:
        if self.api_key is None:
            raise MissingCredential(self.name)
        return self.api_key

    async def get_json(self, params: Mapping[str, Any], *, symbol: str | None = None) -> Any:
        """GET ``base_url`` with ``params`` plus the API key and decode the body."""

        request_params = dict(params)
        request_params["apikey"] = self.require_api_key()

        if self.rate_limiter is not None:
            await self.rate_limiter.acquire()

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(self.base_url, params=request_params)
        except httpx.HTTPError as exc:
            raise ProviderError(
                f"{self.name} request failed: {exc}", provider=self.name, symbol=symbol
            ) from exc

        if response.status_code == 429:
            raise ProviderRateLimited(
                f"{self.name} rate limit reached.",
                provider=self.name,
                symbol=symbol,
                status_code=response.status_code,
            )
        if response.is_error:
            raise ProviderError(
                f"{self.name} responded with HTTP {response.status_code}.",
                provider=self.name,
                symbol=symbol,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedPayload(
                f"{self.name} returned a non-JSON body.",
                provider=self.name,
                symbol=symbol,
                status_code=response.status_code,
            ) from exc


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "PLACEHOLDER_CREDENTIALS",
    "ProviderClient",
    "fetch_json",
    "is_placeholder_credential",
    "resolve_credential",
]
