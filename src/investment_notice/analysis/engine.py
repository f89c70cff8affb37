"""Metric computation: one pure function per report period."""

from __future__ import annotations

import logging
from datetime import date

from investment_notice.analysis.indicators import latest_indicators
from investment_notice.core.config import AnalysisConfig
from investment_notice.core.exceptions import (
    AnalysisError,
    InsufficientDataError,
    InvalidPriceError,
)
from investment_notice.core.models import (
    AnalysisMode,
    AnalysisReport,
    DailyReport,
    MonthlyReport,
    PricePoint,
    PriceSeries,
    WeeklyReport,
)

logger = logging.getLogger(__name__)


def pct_change(current: float, base: float, *, field: str, on: date) -> float:
    """Percentage change from ``base`` to ``current``.

    Raises
    ------
    InvalidPriceError
        ``base`` is zero.
    """
    if base == 0:
        raise InvalidPriceError(
            f"Zero {field} price on {on.isoformat()}",
            context={"field": field, "date": on.isoformat()},
        )
    return (current - base) / base * 100.0


class MetricEngine:
    """Computes the mode-specific report from a validated series.

    Parameters
    ----------
    config : AnalysisConfig | None
        Week and month bucket sizes, in trading days.
    """

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self._config = config or AnalysisConfig()

    def analyze(self, series: PriceSeries, mode: AnalysisMode) -> AnalysisReport:
        """Dispatch to the computation for ``mode``."""
        if len(series) < mode.minimum_points:
            raise InsufficientDataError(
                f"{mode.value} analysis needs {mode.minimum_points} points, "
                f"got {len(series)}",
                context={
                    "provider": series.source,
                    "symbol": series.symbol,
                    "received": len(series),
                    "required": mode.minimum_points,
                },
            )

        if mode == AnalysisMode.DAILY:
            report = self.analyze_daily(series)
        elif mode == AnalysisMode.WEEKLY:
            report = self.analyze_weekly(series)
        elif mode == AnalysisMode.MONTHLY:
            report = self.analyze_monthly(series)
        else:
            raise AnalysisError(f"Unknown analysis mode: {mode}", context={"mode": str(mode)})
        return report

    def analyze_daily(self, series: PriceSeries) -> DailyReport:
        """Day-over-day change and distance from the lookback high/low."""
        latest = series.last
        previous = series.points[-2]

        historical_high = max(series.highs)
        historical_low = min(series.lows)

        price_change = pct_change(latest.close, previous.close, field="close", on=previous.date)
        rel_high = pct_change(latest.close, historical_high, field="high", on=latest.date)
        rel_low = pct_change(latest.close, historical_low, field="low", on=latest.date)

        spread = historical_high - historical_low
        range_position = (latest.close - historical_low) / spread * 100.0 if spread else None

        report = DailyReport(
            symbol=series.symbol,
            date=latest.date,
            current_price=latest.close,
            previous_price=previous.close,
            price_change_pct=price_change,
            historical_high=historical_high,
            historical_low=historical_low,
            relative_to_high_pct=rel_high,
            relative_to_low_pct=rel_low,
            range_position_pct=range_position,
            volume=latest.volume,
            indicators=latest_indicators(series.closes),
        )

        logger.info(
            "Daily analysis: price %.2f, change %.2f%%, vs high %.2f%%, vs low %.2f%%",
            report.current_price,
            report.price_change_pct,
            report.relative_to_high_pct,
            report.relative_to_low_pct,
        )
        return report

    def analyze_weekly(self, series: PriceSeries) -> WeeklyReport:
        """Change, extremes and volume over the last ``week_days`` points."""
        window = series.tail(self._config.week_days).points
        stats = _period_stats(window)

        report = WeeklyReport(
            symbol=series.symbol,
            weekly_change_pct=stats.pop("change_pct"),
            **stats,
        )

        logger.info(
            "Weekly analysis: change %.2f%%, high %.2f on %s, low %.2f on %s",
            report.weekly_change_pct,
            report.highest_price,
            report.highest_date,
            report.lowest_price,
            report.lowest_date,
        )
        return report

    def analyze_monthly(self, series: PriceSeries) -> MonthlyReport:
        """Weekly-style statistics over a trading month plus nearest levels.

        Support is the highest low strictly below the current close and
        resistance the lowest high strictly above it, among the bars before
        the current one. A side with no candidate is left as None.
        """
        window = series.tail(self._config.month_days).points
        stats = _period_stats(window)

        current = window[-1].close
        earlier = window[:-1]
        lows_below = [p.low for p in earlier if p.low < current]
        highs_above = [p.high for p in earlier if p.high > current]

        report = MonthlyReport(
            symbol=series.symbol,
            year=window[-1].date.year,
            month=window[-1].date.month,
            monthly_change_pct=stats.pop("change_pct"),
            support_level=max(lows_below) if lows_below else None,
            resistance_level=min(highs_above) if highs_above else None,
            **stats,
        )

        logger.info(
            "Monthly analysis: change %.2f%%, high %.2f, low %.2f, support %s, resistance %s",
            report.monthly_change_pct,
            report.highest_price,
            report.lowest_price,
            report.support_level,
            report.resistance_level,
        )
        return report


def _period_stats(window: tuple[PricePoint, ...]) -> dict:
    """Fields shared by the weekly and monthly reports."""
    start, end = window[0], window[-1]

    # max()/min() keep the first occurrence on ties
    highest = max(window, key=lambda p: p.high)
    lowest = min(window, key=lambda p: p.low)
    total_volume = sum(p.volume for p in window)

    return {
        "start_date": start.date,
        "end_date": end.date,
        "start_price": start.close,
        "end_price": end.close,
        "change_pct": pct_change(end.close, start.close, field="close", on=start.date),
        "highest_price": highest.high,
        "highest_date": highest.date,
        "lowest_price": lowest.low,
        "lowest_date": lowest.date,
        "average_volume": total_volume / len(window),
        "total_volume": total_volume,
        "trading_days": len(window),
    }
