"""Alpha Vantage provider: backup source via ``TIME_SERIES_DAILY``.

Requires an API key (``ALPHA_VANTAGE_API_KEY``). The free tier is heavily
rate-limited; throttling is reported in-band as a ``Note`` or
``Information`` message with HTTP 200, which is treated as unavailability.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx
from pydantic import ValidationError

from investment_notice.core.config import AlphaVantageConfig
from investment_notice.core.exceptions import UnavailableError
from investment_notice.core.models import FetchWindow, PricePoint, PriceSeries
from investment_notice.prices.provider import build_series

logger = logging.getLogger(__name__)

_SERIES_KEY = "Time Series (Daily)"
_COMPACT_LIMIT = 100


class AlphaVantageAdapter:
    """Transforms the ``Time Series (Daily)`` mapping into PricePoint records."""

    def adapt(self, raw_data: Any) -> list[PricePoint]:
        points: list[PricePoint] = []
        for date_str, values in raw_data.items():
            try:
                points.append(
                    PricePoint(
                        date=date.fromisoformat(date_str),
                        open=float(values["1. open"]),
                        high=float(values["2. high"]),
                        low=float(values["3. low"]),
                        close=float(values["4. close"]),
                        volume=int(float(values.get("5. volume", 0))),
                    )
                )
            except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as e:
                logger.warning("Skipping malformed Alpha Vantage row %s: %s", date_str, e)

        return sorted(points, key=lambda p: p.date)


class AlphaVantageProvider:
    """Fetches daily bars from Alpha Vantage.

    Parameters
    ----------
    config : AlphaVantageConfig
        API key, endpoint, symbol override and timeout.
    adapter : AlphaVantageAdapter | None
        Custom adapter instance. Uses default if None.
    """

    def __init__(
        self,
        config: AlphaVantageConfig | None = None,
        adapter: AlphaVantageAdapter | None = None,
    ) -> None:
        self._config = config or AlphaVantageConfig()
        self._adapter = adapter or AlphaVantageAdapter()

    @property
    def name(self) -> str:
        return "alpha_vantage"

    def resolve_symbol(self, symbol: str) -> str:
        """Shanghai listings carry the ``.SS`` suffix on Alpha Vantage."""
        if self._config.symbol:
            return self._config.symbol
        return symbol if "." in symbol else f"{symbol}.SS"

    async def fetch(self, symbol: str, window: FetchWindow) -> PriceSeries:
        if not self._config.api_key:
            raise UnavailableError(
                "Alpha Vantage API key not configured (ALPHA_VANTAGE_API_KEY)",
                context={
                    "provider": self.name,
                    "symbol": symbol,
                    "reason": "missing_credentials",
                },
            )

        av_symbol = self.resolve_symbol(symbol)
        params = {
            "function": "TIME_SERIES_DAILY",
            "symbol": av_symbol,
            "outputsize": "compact" if window.count <= _COMPACT_LIMIT else "full",
            "apikey": self._config.api_key,
        }

        data = await self._get(params, symbol)

        if "Error Message" in data:
            raise UnavailableError(
                f"Alpha Vantage API error: {data['Error Message']}",
                context={"provider": self.name, "symbol": symbol, "reason": "api_error"},
            )
        throttle = data.get("Note") or data.get("Information")
        if throttle:
            raise UnavailableError(
                f"Alpha Vantage rate limit: {throttle}",
                context={"provider": self.name, "symbol": symbol, "reason": "rate_limited"},
            )
        series = data.get(_SERIES_KEY)
        if not isinstance(series, dict):
            raise UnavailableError(
                "Alpha Vantage response format error",
                context={"provider": self.name, "symbol": symbol, "reason": "bad_format"},
            )

        points = self._adapter.adapt(series)
        logger.info("Alpha Vantage returned %d points for %s", len(points), av_symbol)
        return build_series(points, symbol, window, self.name)

    async def _get(self, params: dict[str, str], symbol: str) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
                resp = await client.get(self._config.base_url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise UnavailableError(
                f"Alpha Vantage HTTP {e.response.status_code}",
                context={
                    "provider": self.name,
                    "symbol": symbol,
                    "reason": "http_error",
                    "status_code": e.response.status_code,
                },
            ) from e
        except httpx.RequestError as e:
            raise UnavailableError(
                f"Alpha Vantage request error: {e}",
                context={"provider": self.name, "symbol": symbol, "reason": "transport"},
            ) from e
        except ValueError as e:
            raise UnavailableError(
                f"Alpha Vantage returned invalid JSON: {e}",
                context={"provider": self.name, "symbol": symbol, "reason": "bad_format"},
            ) from e

        if not isinstance(data, dict):
            raise UnavailableError(
                "Alpha Vantage response format error",
                context={"provider": self.name, "symbol": symbol, "reason": "bad_format"},
            )
        return data
