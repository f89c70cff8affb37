"""Classic technical indicators over a close-price sequence.

All functions accept any sequence of floats and return a ``pandas.Series``
aligned with the input; leading positions without enough history are NaN.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
import pandas as pd

from investment_notice.core.models import TechnicalIndicators

logger = logging.getLogger(__name__)


def moving_average(closes: Sequence[float], period: int) -> pd.Series:
    """Simple moving average over ``period`` closes."""
    _check_period(period)
    return pd.Series(closes, dtype=float).rolling(window=period).mean()


def ema(values: Sequence[float], period: int) -> pd.Series:
    """Exponential moving average seeded with the first value.

    Multiplier is ``2 / (period + 1)``.
    """
    _check_period(period)
    return pd.Series(values, dtype=float).ewm(span=period, adjust=False).mean()


def rsi(closes: Sequence[float], period: int = 14) -> pd.Series:
    """Relative Strength Index using simple averages of gains and losses.

    A window with no losses scores 100. Needs ``period + 1`` closes for the
    first value.
    """
    _check_period(period)
    delta = pd.Series(closes, dtype=float).diff()
    avg_gain = delta.clip(lower=0).rolling(window=period).mean()
    avg_loss = (-delta).clip(lower=0).rolling(window=period).mean()

    with np.errstate(divide="ignore", invalid="ignore"):
        rs = avg_gain / avg_loss
        values = 100.0 - 100.0 / (1.0 + rs)
    values = values.where(avg_loss != 0, 100.0)
    return values.where(avg_gain.notna())


def macd(
    closes: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[pd.Series, pd.Series, pd.Series]:
    """MACD line, signal line and histogram."""
    if fast_period >= slow_period:
        raise ValueError(
            f"fast_period ({fast_period}) must be < slow_period ({slow_period})"
        )
    macd_line = ema(closes, fast_period) - ema(closes, slow_period)
    signal_line = macd_line.ewm(span=signal_period, adjust=False).mean()
    return macd_line, signal_line, macd_line - signal_line


def latest_indicators(closes: Sequence[float]) -> TechnicalIndicators:
    """Last value of each indicator, or None where history is too short."""
    n = len(closes)
    values: dict[str, float | None] = {}

    values["ma5"] = _last(moving_average(closes, 5)) if n >= 5 else None
    values["ma20"] = _last(moving_average(closes, 20)) if n >= 20 else None
    values["rsi14"] = _last(rsi(closes, 14)) if n >= 15 else None

    if n >= 26:
        line, signal, hist = macd(closes)
        values["macd"] = _last(line)
        values["macd_signal"] = _last(signal)
        values["macd_histogram"] = _last(hist)

    logger.debug("Indicators over %d closes: %s", n, values)
    return TechnicalIndicators(**values)


def _last(series: pd.Series) -> float | None:
    if series.empty:
        return None
    value = series.iloc[-1]
    return None if pd.isna(value) else float(value)


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")
