"""Shared pytest fixtures for investment-notice."""

import os
from datetime import date, timedelta

import pytest

from investment_notice.core.config import (
    CSVProviderConfig,
    NoticeConfig,
    NotifyConfig,
    ProvidersConfig,
    SummarizerConfig,
)
from investment_notice.core.models import PricePoint, PriceSeries

_CONVENTIONAL_ENV = (
    "TUSHARE_TOKEN",
    "ALPHA_VANTAGE_API_KEY",
    "GEMINI_API_KEY",
    "SMTP_SERVER",
    "SMTP_PORT",
    "SMTP_USERNAME",
    "SMTP_PASSWORD",
    "FROM_EMAIL",
    "TO_EMAILS",
)


def business_days(start: date, count: int) -> list[date]:
    """``count`` consecutive Monday-Friday dates starting at ``start``."""
    days: list[date] = []
    d = start
    while len(days) < count:
        if d.weekday() < 5:
            days.append(d)
        d += timedelta(days=1)
    return days


def build_test_series(
    closes: list[float],
    start: date = date(2024, 5, 6),
    symbol: str = "000300",
    source: str = "test",
    spread: float = 1.0,
    volumes: list[int] | None = None,
) -> PriceSeries:
    """Series on consecutive weekdays with high/low = close +/- spread."""
    dates = business_days(start, len(closes))
    volumes = volumes or [1000 + 100 * i for i in range(len(closes))]
    points = tuple(
        PricePoint(
            date=d,
            open=c,
            high=c + spread,
            low=c - spread,
            close=c,
            volume=v,
        )
        for d, c, v in zip(dates, closes, volumes)
    )
    return PriceSeries(symbol=symbol, source=source, points=points)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host credentials and overrides out of every test."""
    for name in _CONVENTIONAL_ENV:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("INVESTMENT_NOTICE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_series():
    return build_test_series


@pytest.fixture
def week_series() -> PriceSeries:
    """Five trading days, 2024-05-06 to 2024-05-10."""
    return build_test_series([100.0, 102.0, 101.0, 105.0, 103.0])


@pytest.fixture
def month_closes() -> list[float]:
    """22 closes ending at 100 with support 98 and resistance 104."""
    return [
        95.0, 97.0, 99.0, 103.0, 105.0, 108.0, 96.0, 94.0, 104.0, 106.0, 110.0,
        112.0, 92.0, 93.0, 107.0, 109.0, 111.0, 95.0, 96.0, 108.0, 104.0, 100.0,
    ]


@pytest.fixture
def month_series(month_closes) -> PriceSeries:
    """22 trading days, 2024-05-01 to 2024-05-30."""
    return build_test_series(month_closes, start=date(2024, 5, 1))


@pytest.fixture
def write_price_csv(tmp_path):
    """Write a TuShare-style export of ``count`` weekdays and return its path."""

    def _write(count: int = 30, start: date = date(2024, 4, 15), name: str = "prices.csv"):
        path = tmp_path / name
        lines = ["trade_date,open,high,low,close,vol"]
        for i, d in enumerate(business_days(start, count)):
            close = 3500.0 + 10 * i
            lines.append(
                f"{d:%Y%m%d},{close - 5:.2f},{close + 15:.2f},{close - 15:.2f},{close:.2f},{100000 + i}"
            )
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write


@pytest.fixture
def csv_config(write_price_csv) -> NoticeConfig:
    """Offline config: CSV provider only, no summarizer, two recipients."""
    path = write_price_csv()
    return NoticeConfig(
        providers=ProvidersConfig(
            order=["csv"],
            csv=CSVProviderConfig(enabled=True, path=str(path)),
        ),
        summarizer=SummarizerConfig(enabled=False),
        notify=NotifyConfig(
            username="bot@example.com",
            password="secret",
            to_emails=["alice@example.com", "bob@example.com"],
        ),
    )
