"""Trading-calendar rules: workdays, mode inference and next run times.

Saturdays, Sundays and the configured holidays are non-workdays. These
rules only decide *which* report to produce; the price windows themselves
are counted in trading rows returned by the provider.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, NamedTuple

from investment_notice.core.config import ScheduleConfig
from investment_notice.core.models import AnalysisMode

_MAX_SCAN_DAYS = 400


class TimeInfo(NamedTuple):
    """Calendar facts about a single day."""

    day: date
    weekday: str
    is_workday: bool
    is_friday: bool
    is_last_workday_of_month: bool


def is_workday(d: date, holidays: Iterable[date] = ()) -> bool:
    """Monday to Friday, excluding holidays."""
    return d.weekday() < 5 and _as_date(d) not in set(holidays)


def is_friday(d: date) -> bool:
    return d.weekday() == 4


def next_workday(d: date, holidays: Iterable[date] = ()) -> date:
    """First workday strictly after ``d``."""
    holidays = set(holidays)
    candidate = _as_date(d) + timedelta(days=1)
    while not is_workday(candidate, holidays):
        candidate += timedelta(days=1)
    return candidate


def is_last_workday_of_month(d: date, holidays: Iterable[date] = ()) -> bool:
    """``d`` is a workday and the next workday falls in another month."""
    holidays = set(holidays)
    if not is_workday(d, holidays):
        return False
    return next_workday(d, holidays).month != d.month


def infer_mode(d: date, config: ScheduleConfig | None = None) -> AnalysisMode:
    """Pick the report for a day.

    Precedence: last workday of the month → monthly; the configured weekly
    weekday (Friday by default), when it is a workday → weekly; anything
    else → daily. A weekly day that falls on a holiday gets no weekly report.
    """
    config = config or ScheduleConfig()
    if is_last_workday_of_month(d, config.holidays):
        return AnalysisMode.MONTHLY
    if d.weekday() == config.weekly_weekday and is_workday(d, config.holidays):
        return AnalysisMode.WEEKLY
    return AnalysisMode.DAILY


def next_execution_time(
    mode: AnalysisMode,
    now: datetime,
    config: ScheduleConfig | None = None,
) -> datetime:
    """Next moment a run for ``mode`` is due, strictly after ``now``.

    Daily runs every workday, weekly on the configured weekday unless it is
    a holiday, monthly on the last workday of each month; all at
    ``run_hour:run_minute``.
    """
    config = config or ScheduleConfig()
    holidays = set(config.holidays)
    candidate = now.replace(
        hour=config.run_hour,
        minute=config.run_minute,
        second=0,
        microsecond=0,
    )

    def due(moment: datetime) -> bool:
        day = moment.date()
        if mode == AnalysisMode.DAILY:
            return is_workday(day, holidays)
        if mode == AnalysisMode.WEEKLY:
            return day.weekday() == config.weekly_weekday and is_workday(day, holidays)
        return is_last_workday_of_month(day, holidays)

    for _ in range(_MAX_SCAN_DAYS):
        if candidate > now and due(candidate):
            return candidate
        candidate += timedelta(days=1)

    raise ValueError(f"No {mode.value} execution time found within {_MAX_SCAN_DAYS} days")


def time_info(d: date, holidays: Iterable[date] = ()) -> TimeInfo:
    holidays = set(holidays)
    return TimeInfo(
        day=_as_date(d),
        weekday=d.strftime("%A"),
        is_workday=is_workday(d, holidays),
        is_friday=is_friday(d),
        is_last_workday_of_month=is_last_workday_of_month(d, holidays),
    )


def format_time_info(d: date, holidays: Iterable[date] = ()) -> str:
    info = time_info(d, holidays)

    def yn(flag: bool) -> str:
        return "Yes" if flag else "No"

    return (
        f"Date: {info.day:%Y-%m-%d}, Weekday: {info.weekday}, "
        f"Workday: {yn(info.is_workday)}, Friday: {yn(info.is_friday)}, "
        f"Last workday of month: {yn(info.is_last_workday_of_month)}"
    )


def _as_date(d: date) -> date:
    return d.date() if isinstance(d, datetime) else d
