"""TuShare Pro provider: the primary source for mainland index data.

Uses the JSON-RPC style ``POST https://api.tushare.pro`` endpoint with the
``index_daily`` API. Requires a token (``TUSHARE_TOKEN``).
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

import httpx
from pydantic import ValidationError

from investment_notice.core.config import TuShareConfig
from investment_notice.core.exceptions import UnavailableError
from investment_notice.core.models import FetchWindow, PricePoint, PriceSeries
from investment_notice.prices.provider import build_series, date_range_for

logger = logging.getLogger(__name__)

_FIELDS = "trade_date,open,high,low,close,vol"


class TuShareAdapter:
    """Transforms a TuShare ``data`` block into PricePoint records.

    TuShare answers with column names in ``fields`` and rows in ``items``,
    newest first. Volume (``vol``) is reported in lots as a float.
    """

    def adapt(self, raw_data: Any) -> list[PricePoint]:
        """Parse the ``data`` block into a date-sorted PricePoint list.

        Rows with null OHLC values or the wrong shape are skipped.

        Raises
        ------
        ValueError
            The block is not a ``fields``/``items`` mapping or lacks a
            required column.
        """
        if not isinstance(raw_data, dict):
            raise ValueError(f"expected an object, got {type(raw_data).__name__}")
        fields = raw_data.get("fields") or []
        items = raw_data.get("items") or []
        if not isinstance(fields, list) or not isinstance(items, list):
            raise ValueError("'fields' and 'items' must be lists")
        if not fields or not items:
            return []

        index = {name: i for i, name in enumerate(fields)}
        missing = [f for f in ("trade_date", "open", "high", "low", "close") if f not in index]
        if missing:
            raise ValueError(f"TuShare response missing fields: {missing}")

        points: list[PricePoint] = []
        for row in items:
            try:
                o = row[index["open"]]
                h = row[index["high"]]
                lo = row[index["low"]]
                c = row[index["close"]]
                if any(x is None for x in (o, h, lo, c)):
                    continue
                v = row[index["vol"]] if "vol" in index else None

                points.append(
                    PricePoint(
                        date=datetime.strptime(str(row[index["trade_date"]]), "%Y%m%d").date(),
                        open=float(o),
                        high=float(h),
                        low=float(lo),
                        close=float(c),
                        volume=int(round(float(v))) if v is not None else 0,
                    )
                )
            except (IndexError, KeyError, TypeError, ValueError, ValidationError) as e:
                logger.warning("Skipping malformed TuShare row %s: %s", row, e)

        return sorted(points, key=lambda p: p.date)


class TuShareProvider:
    """Fetches index daily bars from TuShare Pro.

    Parameters
    ----------
    config : TuShareConfig
        Token, endpoint, symbol override and timeout.
    adapter : TuShareAdapter | None
        Custom adapter instance. Uses default if None.
    """

    def __init__(
        self,
        config: TuShareConfig | None = None,
        adapter: TuShareAdapter | None = None,
    ) -> None:
        self._config = config or TuShareConfig()
        self._adapter = adapter or TuShareAdapter()

    @property
    def name(self) -> str:
        return "tushare"

    def resolve_symbol(self, symbol: str) -> str:
        """Map an exchange-less index code to TuShare's ``ts_code``."""
        if self._config.symbol:
            return self._config.symbol
        return symbol if "." in symbol else f"{symbol}.SH"

    async def fetch(self, symbol: str, window: FetchWindow) -> PriceSeries:
        if not self._config.token:
            raise UnavailableError(
                "TuShare token not configured (TUSHARE_TOKEN)",
                context={
                    "provider": self.name,
                    "symbol": symbol,
                    "reason": "missing_credentials",
                },
            )

        ts_code = self.resolve_symbol(symbol)
        start, end = date_range_for(window)
        payload = {
            "api_name": self._config.api_name,
            "token": self._config.token,
            "params": {
                "ts_code": ts_code,
                "start_date": _fmt(start),
                "end_date": _fmt(end),
            },
            "fields": _FIELDS,
        }
        logger.debug("TuShare request for %s: %s to %s", ts_code, start, end)

        data = await self._post(payload, symbol)

        if data.get("code") != 0:
            raise UnavailableError(
                f"TuShare API error {data.get('code')}: {data.get('msg')}",
                context={
                    "provider": self.name,
                    "symbol": symbol,
                    "reason": "api_error",
                    "api_code": data.get("code"),
                },
            )

        try:
            points = self._adapter.adapt(data.get("data") or {})
        except ValueError as e:
            raise UnavailableError(
                f"TuShare response format error: {e}",
                context={"provider": self.name, "symbol": symbol, "reason": "bad_format"},
            ) from e

        logger.info("TuShare returned %d points for %s", len(points), ts_code)
        return build_series(points, symbol, window, self.name)

    async def _post(self, payload: dict, symbol: str) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self._config.timeout_seconds) as client:
                resp = await client.post(self._config.base_url, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise UnavailableError(
                f"TuShare HTTP {e.response.status_code}",
                context={
                    "provider": self.name,
                    "symbol": symbol,
                    "reason": "http_error",
                    "status_code": e.response.status_code,
                },
            ) from e
        except httpx.RequestError as e:
            raise UnavailableError(
                f"TuShare request error: {e}",
                context={"provider": self.name, "symbol": symbol, "reason": "transport"},
            ) from e
        except ValueError as e:
            raise UnavailableError(
                f"TuShare returned invalid JSON: {e}",
                context={"provider": self.name, "symbol": symbol, "reason": "bad_format"},
            ) from e

        if not isinstance(data, dict):
            raise UnavailableError(
                f"TuShare response format error: expected an object, got {type(data).__name__}",
                context={"provider": self.name, "symbol": symbol, "reason": "bad_format"},
            )
        return data


def _fmt(d: date) -> str:
    return d.strftime("%Y%m%d")
