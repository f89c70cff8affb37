"""Period bucketing, metrics and technical indicators."""

from investment_notice.analysis.engine import MetricEngine, pct_change
from investment_notice.analysis.indicators import (
    ema,
    latest_indicators,
    macd,
    moving_average,
    rsi,
)

__all__ = [
    "MetricEngine",
    "pct_change",
    "moving_average",
    "ema",
    "rsi",
    "macd",
    "latest_indicators",
]
