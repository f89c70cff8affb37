"""Source-agnostic price acquisition with ordered fallback.

Architecture
------------

    Provider API → PriceAdapter → list[PricePoint] → build_series
        → PriceSeries → FallbackFetcher → MetricEngine

Built-in providers, in default fallback order:

- ``TuShareProvider``: TuShare Pro ``index_daily`` (primary, token required).
- ``AlphaVantageProvider``: ``TIME_SERIES_DAILY`` (backup, API key required).
- ``YahooFinanceProvider``: chart endpoint (disabled by default).
- ``CSVPriceProvider``: local file (disabled by default).

Adding a new price source:
1. Write an adapter that turns the raw payload into ``PricePoint`` records.
2. Write a provider with ``name`` and ``async fetch(symbol, window)`` that
   ends in ``build_series``.
3. Register it in ``create_provider`` and the config.
"""

from investment_notice.prices.alpha_vantage import AlphaVantageAdapter, AlphaVantageProvider
from investment_notice.prices.csv_adapter import CSVPriceAdapter, CSVPriceProvider
from investment_notice.prices.fallback import FallbackFetcher, build_fetcher, create_provider
from investment_notice.prices.provider import (
    DataSourceProvider,
    PriceAdapter,
    build_series,
    date_range_for,
)
from investment_notice.prices.tushare import TuShareAdapter, TuShareProvider
from investment_notice.prices.yahoo import YahooFinanceAdapter, YahooFinanceProvider

__all__ = [
    # Protocols and helpers
    "DataSourceProvider",
    "PriceAdapter",
    "build_series",
    "date_range_for",
    # Fallback
    "FallbackFetcher",
    "build_fetcher",
    "create_provider",
    # TuShare
    "TuShareAdapter",
    "TuShareProvider",
    # Alpha Vantage
    "AlphaVantageAdapter",
    "AlphaVantageProvider",
    # Yahoo Finance
    "YahooFinanceAdapter",
    "YahooFinanceProvider",
    # CSV
    "CSVPriceAdapter",
    "CSVPriceProvider",
]
