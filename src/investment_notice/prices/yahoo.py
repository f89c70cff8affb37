"""Yahoo Finance provider: direct HTTP implementation.

Uses the unauthenticated ``/v8/finance/chart/`` endpoint via httpx.
No credentials needed, which makes it a convenient last network fallback.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from investment_notice.core.config import YahooConfig
from investment_notice.core.exceptions import UnavailableError
from investment_notice.core.models import FetchWindow, PricePoint, PriceSeries
from investment_notice.prices.provider import build_series, date_range_for

logger = logging.getLogger(__name__)

_CHART_PATH = "/v8/finance/chart"
_USER_AGENT = "Mozilla/5.0 (compatible; investment-notice/0.1)"


class YahooFinanceAdapter:
    """Transforms raw Yahoo Finance chart JSON into PricePoint records.

    This adapter understands the ``/v8/finance/chart/`` response format.
    Timestamps are shifted by the exchange's ``gmtoffset`` so that bars
    land on the exchange-local trading date.
    """

    def adapt(self, raw_data: Any) -> list[PricePoint]:
        """Parse the ``chart.result[0]`` object into a sorted PricePoint list.

        Bars with null or non-numeric OHLC values (holidays, missing data)
        are skipped.

        Raises
        ------
        ValueError
            The object does not have the chart result layout.
        """
        if not isinstance(raw_data, dict):
            raise ValueError(f"expected an object, got {type(raw_data).__name__}")
        timestamps = raw_data.get("timestamp") or []
        if not isinstance(timestamps, list):
            raise ValueError("'timestamp' must be a list")
        if not timestamps:
            return []

        try:
            offset = int((raw_data.get("meta") or {}).get("gmtoffset") or 0)
            quotes = (raw_data.get("indicators") or {}).get("quote") or [{}]
            quote = quotes[0]
            opens: list[float | None] = quote.get("open") or []
            highs: list[float | None] = quote.get("high") or []
            lows: list[float | None] = quote.get("low") or []
            closes: list[float | None] = quote.get("close") or []
            volumes: list[int | None] = quote.get("volume") or []
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            raise ValueError(f"unexpected chart layout: {e}") from e

        points: list[PricePoint] = []
        for i, ts in enumerate(timestamps):
            o = opens[i] if i < len(opens) else None
            h = highs[i] if i < len(highs) else None
            lo = lows[i] if i < len(lows) else None
            c = closes[i] if i < len(closes) else None
            v = volumes[i] if i < len(volumes) else None

            if any(x is None for x in (o, h, lo, c)):
                continue

            try:
                bar_date = datetime.fromtimestamp(ts + offset, tz=timezone.utc).date()
                points.append(
                    PricePoint(
                        date=bar_date,
                        open=float(o),
                        high=float(h),
                        low=float(lo),
                        close=float(c),
                        volume=int(v) if v is not None else 0,
                    )
                )
            except (OverflowError, OSError, TypeError, ValueError, ValidationError) as e:
                logger.warning("Skipping malformed Yahoo bar at %s: %s", ts, e)

        return sorted(points, key=lambda p: p.date)


class YahooFinanceProvider:
    """Fetches daily bars from Yahoo Finance's chart API.

    Parameters
    ----------
    config : YahooConfig
        Endpoint, symbol override and timeout.
    adapter : YahooFinanceAdapter | None
        Custom adapter instance. Uses default if None.
    """

    def __init__(
        self,
        config: YahooConfig | None = None,
        adapter: YahooFinanceAdapter | None = None,
    ) -> None:
        self._config = config or YahooConfig()
        self._adapter = adapter or YahooFinanceAdapter()

    @property
    def name(self) -> str:
        return "yahoo"

    def resolve_symbol(self, symbol: str) -> str:
        if self._config.symbol:
            return self._config.symbol
        return symbol if "." in symbol else f"{symbol}.SS"

    async def fetch(self, symbol: str, window: FetchWindow) -> PriceSeries:
        yahoo_symbol = self.resolve_symbol(symbol)
        start, end = date_range_for(window)

        period1 = int(datetime.combine(start, datetime.min.time(), timezone.utc).timestamp())
        # period2 is exclusive; include the end date itself
        period2 = int(datetime.combine(end, datetime.max.time(), timezone.utc).timestamp())

        url = f"{self._config.base_url}{_CHART_PATH}/{yahoo_symbol}"
        params = {
            "interval": "1d",
            "period1": str(period1),
            "period2": str(period2),
        }

        raw = await self._fetch_chart(url, params, symbol)
        try:
            points = self._adapter.adapt(raw)
        except ValueError as e:
            raise UnavailableError(
                f"Yahoo Finance response format error: {e}",
                context={"provider": self.name, "symbol": symbol, "reason": "bad_format"},
            ) from e
        logger.info("Yahoo Finance returned %d points for %s", len(points), yahoo_symbol)
        return build_series(points, symbol, window, self.name)

    async def _fetch_chart(self, url: str, params: dict[str, str], symbol: str) -> dict:
        """Fetch the ``chart.result[0]`` object for one symbol."""
        try:
            async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
                resp = await client.get(
                    url,
                    params=params,
                    headers={"User-Agent": _USER_AGENT},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise UnavailableError(
                f"Yahoo Finance HTTP {e.response.status_code}",
                context={
                    "provider": self.name,
                    "symbol": symbol,
                    "reason": "http_error",
                    "status_code": e.response.status_code,
                },
            ) from e
        except httpx.RequestError as e:
            raise UnavailableError(
                f"Yahoo Finance request error: {e}",
                context={"provider": self.name, "symbol": symbol, "reason": "transport"},
            ) from e
        except ValueError as e:
            raise UnavailableError(
                f"Yahoo Finance returned invalid JSON: {e}",
                context={"provider": self.name, "symbol": symbol, "reason": "bad_format"},
            ) from e

        chart = data.get("chart") if isinstance(data, dict) else None
        if not isinstance(chart, dict):
            raise UnavailableError(
                "Yahoo Finance response format error: missing 'chart' object",
                context={"provider": self.name, "symbol": symbol, "reason": "bad_format"},
            )
        if chart.get("error"):
            err = chart["error"]
            if not isinstance(err, dict):
                err = {"description": err}
            raise UnavailableError(
                f"Yahoo Finance API error: {err.get('code')}: {err.get('description')}",
                context={"provider": self.name, "symbol": symbol, "reason": "api_error"},
            )

        results = chart.get("result")
        if not results or not isinstance(results, list):
            raise UnavailableError(
                f"Yahoo Finance returned no results for {symbol}",
                context={"provider": self.name, "symbol": symbol, "reason": "empty"},
            )

        return results[0]
