"""Error taxonomy for upstream data providers."""

from __future__ import annotations


class RiskDataError(Exception):
    """Base class for failures while acquiring risk inputs."""


class MissingCredential(RiskDataError):
    """No usable credential is configured for a provider."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"No credential configured for {provider}.")
        self.provider = provider


class ProviderError(RiskDataError):
    """The provider answered, but not with usable data."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        symbol: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.symbol = symbol
        self.status_code = status_code


class ProviderRateLimited(ProviderError):
    """The provider reported that the call quota was exhausted."""


class InvalidSymbol(ProviderError):
    """The provider does not recognise the requested symbol."""


class MalformedPayload(ProviderError):
    """The response body could not be interpreted."""


__all__ = [
    "InvalidSymbol",
    "MalformedPayload",
    "MissingCredential",
    "ProviderError",
    "ProviderRateLimited",
    "RiskDataError",
]
