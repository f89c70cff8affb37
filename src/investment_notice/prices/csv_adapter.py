"""CSV provider: serves price history from a local file.

Useful as the last link of the fallback chain when running offline, and as
a way to replay an exported history through the pipeline.
"""

from __future__ import annotations

import csv
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

from investment_notice.core.config import CSVProviderConfig
from investment_notice.core.exceptions import UnavailableError
from investment_notice.core.models import FetchWindow, PricePoint, PriceSeries
from investment_notice.prices.provider import build_series

logger = logging.getLogger(__name__)

# Common column name mappings for auto-detection
_DATE_ALIASES = {"date", "Date", "DATE", "trade_date", "timestamp", "Timestamp"}
_OPEN_ALIASES = {"open", "Open", "OPEN"}
_HIGH_ALIASES = {"high", "High", "HIGH"}
_LOW_ALIASES = {"low", "Low", "LOW"}
_CLOSE_ALIASES = {"close", "Close", "CLOSE"}
_VOLUME_ALIASES = {"volume", "Volume", "VOLUME", "vol", "Vol"}


def _find_column(headers: list[str], aliases: set[str]) -> str | None:
    """Find the first header that matches any alias."""
    for h in headers:
        if h in aliases:
            return h
    return None


class CSVPriceAdapter:
    """Transforms CSV rows into PricePoint records.

    Column names are auto-detected from common conventions unless given
    explicitly. Dates are parsed as ISO-8601 first, then with
    ``date_format`` (default ``%Y%m%d``, the TuShare export format).
    """

    def __init__(
        self,
        date_col: str | None = None,
        close_col: str | None = None,
        date_format: str = "%Y%m%d",
    ) -> None:
        self._date_col = date_col
        self._close_col = close_col
        self._date_format = date_format

    def _resolve_columns(self, headers: list[str]) -> dict[str, str | None]:
        return {
            "date": self._date_col or _find_column(headers, _DATE_ALIASES),
            "open": _find_column(headers, _OPEN_ALIASES),
            "high": _find_column(headers, _HIGH_ALIASES),
            "low": _find_column(headers, _LOW_ALIASES),
            "close": self._close_col or _find_column(headers, _CLOSE_ALIASES),
            "volume": _find_column(headers, _VOLUME_ALIASES),
        }

    def _parse_date(self, value: str) -> date | None:
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
        try:
            return datetime.strptime(value, self._date_format).date()
        except ValueError:
            return None

    def adapt(self, raw_data: Any) -> list[PricePoint]:
        """Parse rows from csv.DictReader into a date-sorted PricePoint list.

        If only a close column exists, open/high/low default to the close.
        """
        if not raw_data:
            return []

        headers = list(raw_data[0].keys())
        cols = self._resolve_columns(headers)

        if cols["date"] is None:
            raise ValueError(f"Cannot find date column in headers: {headers}")
        if cols["close"] is None:
            raise ValueError(f"Cannot find close column in headers: {headers}")

        def _num(row: dict[str, str], key: str, default: float) -> float:
            col = cols[key]
            return float(row[col]) if col and row.get(col) else default

        points: list[PricePoint] = []
        for row in raw_data:
            point_date = self._parse_date(row.get(cols["date"], ""))
            if point_date is None:
                logger.warning("Skipping row with unparseable date: %s", row.get(cols["date"]))
                continue

            close_val = float(row[cols["close"]])
            points.append(
                PricePoint(
                    date=point_date,
                    open=_num(row, "open", close_val),
                    high=_num(row, "high", close_val),
                    low=_num(row, "low", close_val),
                    close=close_val,
                    volume=int(_num(row, "volume", 0)),
                )
            )

        return sorted(points, key=lambda p: p.date)


def load_csv_rows(filepath: str | Path) -> list[dict[str, str]]:
    """Read a CSV file into a list of row dicts."""
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {filepath}")

    with open(path, newline="") as f:
        return list(csv.DictReader(f))


class CSVPriceProvider:
    """Serves a window of a locally stored history.

    The file is expected to hold a single symbol; the requested symbol is
    only used to label the series.
    """

    def __init__(
        self,
        config: CSVProviderConfig | None = None,
        adapter: CSVPriceAdapter | None = None,
    ) -> None:
        self._config = config or CSVProviderConfig()
        self._adapter = adapter or CSVPriceAdapter()

    @property
    def name(self) -> str:
        return "csv"

    async def fetch(self, symbol: str, window: FetchWindow) -> PriceSeries:
        try:
            rows = load_csv_rows(self._config.path)
            points = self._adapter.adapt(rows)
        except FileNotFoundError as e:
            raise UnavailableError(
                str(e),
                context={"provider": self.name, "symbol": symbol, "reason": "missing_file"},
            ) from e
        except (TypeError, ValueError) as e:
            raise UnavailableError(
                f"CSV file {self._config.path} is malformed: {e}",
                context={"provider": self.name, "symbol": symbol, "reason": "bad_format"},
            ) from e

        return build_series(points, symbol, window, self.name)
