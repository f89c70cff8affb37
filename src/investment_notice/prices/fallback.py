"""Sequential provider fallback: the pipeline's only fault-tolerance layer."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from investment_notice.core.config import ProvidersConfig
from investment_notice.core.exceptions import (
    AllSourcesFailedError,
    ConfigError,
    FetchError,
    InsufficientDataError,
    UnavailableError,
)
from investment_notice.core.models import FetchWindow, PriceSeries
from investment_notice.prices.alpha_vantage import AlphaVantageProvider
from investment_notice.prices.csv_adapter import CSVPriceProvider
from investment_notice.prices.provider import DataSourceProvider
from investment_notice.prices.tushare import TuShareProvider
from investment_notice.prices.yahoo import YahooFinanceProvider

logger = logging.getLogger(__name__)


class FallbackFetcher:
    """Tries providers in a fixed order and returns the first success.

    Providers are called one at a time; the next is only tried after the
    previous one has definitively failed. Results are never merged.

    Parameters
    ----------
    providers : Sequence[DataSourceProvider]
        Primary first.
    call_timeout : float | None
        Upper bound, in seconds, on a single provider call.
    max_attempts : int
        Attempts per provider. Only ``UnavailableError`` is retried.
    backoff_seconds : float
        Base delay for exponential backoff between attempts.
    """

    def __init__(
        self,
        providers: Sequence[DataSourceProvider],
        call_timeout: float | None = 30.0,
        max_attempts: int = 1,
        backoff_seconds: float = 2.0,
    ) -> None:
        if not providers:
            raise ConfigError(
                "FallbackFetcher needs at least one provider",
                context={"field": "providers.order"},
            )
        self._providers = list(providers)
        self._timeout = call_timeout
        self._max_attempts = max(1, max_attempts)
        self._backoff = backoff_seconds

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self._providers]

    async def fetch(self, symbol: str, window: FetchWindow) -> PriceSeries:
        """Return the first provider's series that satisfies the window.

        Raises
        ------
        AllSourcesFailedError
            Every provider failed. ``errors`` holds exactly one entry per
            provider, in call order.
        """
        errors: list[tuple[str, FetchError]] = []

        for provider in self._providers:
            try:
                series = await self._fetch_with_retries(provider, symbol, window)
            except FetchError as e:
                logger.warning("Provider '%s' failed for %s: %s", provider.name, symbol, e)
                errors.append((provider.name, e))
                continue

            logger.info(
                "Fetched %d points for %s from '%s'",
                len(series),
                symbol,
                provider.name,
            )
            return series

        summary = "; ".join(f"{name}: {err}" for name, err in errors)
        raise AllSourcesFailedError(
            f"All {len(errors)} price providers failed for {symbol}: {summary}",
            errors=errors,
            context={"symbol": symbol},
        )

    async def _fetch_with_retries(
        self,
        provider: DataSourceProvider,
        symbol: str,
        window: FetchWindow,
    ) -> PriceSeries:
        attempt = 1
        while True:
            try:
                return await self._fetch_once(provider, symbol, window)
            except InsufficientDataError:
                raise
            except UnavailableError as e:
                if attempt >= self._max_attempts:
                    raise
                delay = self._backoff * (2 ** (attempt - 1))
                logger.warning(
                    "Provider '%s' attempt %d/%d failed: %s. Retrying in %.1fs.",
                    provider.name,
                    attempt,
                    self._max_attempts,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)
                attempt += 1

    async def _fetch_once(
        self,
        provider: DataSourceProvider,
        symbol: str,
        window: FetchWindow,
    ) -> PriceSeries:
        try:
            return await asyncio.wait_for(provider.fetch(symbol, window), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise UnavailableError(
                f"{provider.name} timed out after {self._timeout}s",
                context={
                    "provider": provider.name,
                    "symbol": symbol,
                    "reason": "timeout",
                    "timeout": self._timeout,
                },
            ) from e


def create_provider(name: str, config: ProvidersConfig) -> DataSourceProvider:
    """Create a provider by its configured name."""
    if name == "tushare":
        return TuShareProvider(config.tushare)
    elif name == "alpha_vantage":
        return AlphaVantageProvider(config.alpha_vantage)
    elif name == "yahoo":
        return YahooFinanceProvider(config.yahoo)
    elif name == "csv":
        return CSVPriceProvider(config.csv)
    else:
        raise ConfigError(
            f"Unknown price provider: {name}",
            context={"field": "providers.order", "value": name},
        )


def build_fetcher(config: ProvidersConfig) -> FallbackFetcher:
    """Build the fallback chain from ``config.order``, skipping disabled providers."""
    providers = [
        create_provider(name, config)
        for name in config.order
        if getattr(config, name).enabled
    ]
    return FallbackFetcher(
        providers,
        call_timeout=config.call_timeout_seconds,
        max_attempts=config.max_attempts,
        backoff_seconds=config.backoff_seconds,
    )
