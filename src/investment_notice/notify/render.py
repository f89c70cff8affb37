"""Plain-text rendering of reports for the console and email body."""

from __future__ import annotations

from investment_notice.core.models import (
    AnalysisReport,
    DailyReport,
    MonthlyReport,
    WeeklyReport,
)

_NO_NARRATIVE = "(AI analysis unavailable)"


def subject_for(report: AnalysisReport, index_name: str = "CSI 300") -> str:
    """Email subject line for a report."""
    if isinstance(report, DailyReport):
        return f"{index_name} Daily Investment Analysis Report - {report.date:%Y-%m-%d}"
    if isinstance(report, WeeklyReport):
        return (
            f"{index_name} Weekly Investment Analysis Report - "
            f"{report.start_date:%Y-%m-%d} to {report.end_date:%Y-%m-%d}"
        )
    return f"{index_name} Monthly Investment Analysis Report - {report.year}-{report.month:02d}"


def render_report(
    report: AnalysisReport,
    index_name: str = "CSI 300",
    currency: str = "CNY",
) -> str:
    """Render any report variant as plain text."""
    if isinstance(report, DailyReport):
        body = _render_daily(report, index_name, currency)
    elif isinstance(report, WeeklyReport):
        body = _render_weekly(report, index_name, currency)
    elif isinstance(report, MonthlyReport):
        body = _render_monthly(report, index_name, currency)
    else:
        raise TypeError(f"Unsupported report type: {type(report).__name__}")

    narrative = report.narrative or _NO_NARRATIVE
    return f"{body}\nAI Analysis:\n{narrative}\n"


def _render_daily(r: DailyReport, index_name: str, currency: str) -> str:
    lines = [
        f"{index_name} Daily Analysis Report",
        "",
        f"Date: {r.date:%Y-%m-%d}",
        "",
        f"Current Price: {r.current_price:.2f} {currency}",
        f"Previous Close: {r.previous_price:.2f} {currency}",
        f"Price Change: {r.price_change_pct:+.2f}%",
        f"Relative to High ({r.historical_high:.2f}): {r.relative_to_high_pct:+.2f}%",
        f"Relative to Low ({r.historical_low:.2f}): {r.relative_to_low_pct:+.2f}%",
    ]
    if r.range_position_pct is not None:
        lines.append(f"Position in Range: {r.range_position_pct:.1f}%")
    lines.append(f"Volume: {r.volume:,}")

    ind = r.indicators
    extras = [
        ("MA5", ind.ma5),
        ("MA20", ind.ma20),
        ("RSI14", ind.rsi14),
        ("MACD", ind.macd),
        ("MACD Signal", ind.macd_signal),
    ]
    shown = [f"{label}: {value:.2f}" for label, value in extras if value is not None]
    if shown:
        lines += ["", "Indicators: " + ", ".join(shown)]
    return "\n".join(lines) + "\n"


def _render_weekly(r: WeeklyReport, index_name: str, currency: str) -> str:
    lines = [
        f"{index_name} Weekly Analysis Report",
        "",
        f"Period: {r.start_date:%Y-%m-%d} to {r.end_date:%Y-%m-%d} ({r.trading_days} trading days)",
        "",
        f"Start Price: {r.start_price:.2f} {currency}",
        f"End Price: {r.end_price:.2f} {currency}",
        f"Weekly Change: {r.weekly_change_pct:+.2f}%",
        f"Highest: {r.highest_price:.2f} {currency} ({r.highest_date:%Y-%m-%d})",
        f"Lowest: {r.lowest_price:.2f} {currency} ({r.lowest_date:%Y-%m-%d})",
        f"Average Volume: {r.average_volume:,.0f}",
        f"Total Volume: {r.total_volume:,}",
    ]
    return "\n".join(lines) + "\n"


def _render_monthly(r: MonthlyReport, index_name: str, currency: str) -> str:
    def level(value: float | None) -> str:
        return f"{value:.2f} {currency}" if value is not None else "n/a"

    lines = [
        f"{index_name} Monthly Analysis Report",
        "",
        f"Month: {r.year}-{r.month:02d} "
        f"({r.start_date:%Y-%m-%d} to {r.end_date:%Y-%m-%d}, {r.trading_days} trading days)",
        "",
        f"Start Price: {r.start_price:.2f} {currency}",
        f"End Price: {r.end_price:.2f} {currency}",
        f"Monthly Change: {r.monthly_change_pct:+.2f}%",
        f"Highest: {r.highest_price:.2f} {currency} ({r.highest_date:%Y-%m-%d})",
        f"Lowest: {r.lowest_price:.2f} {currency} ({r.lowest_date:%Y-%m-%d})",
        f"Support: {level(r.support_level)}",
        f"Resistance: {level(r.resistance_level)}",
        f"Average Volume: {r.average_volume:,.0f}",
        f"Total Volume: {r.total_volume:,}",
    ]
    return "\n".join(lines) + "\n"
