"""Calendar rules and the per-invocation pipeline run."""

from investment_notice.scheduler.calendar import (
    TimeInfo,
    format_time_info,
    infer_mode,
    is_friday,
    is_last_workday_of_month,
    is_workday,
    next_execution_time,
    next_workday,
    time_info,
)
from investment_notice.scheduler.dispatcher import ModeDispatcher

__all__ = [
    "ModeDispatcher",
    "TimeInfo",
    "is_workday",
    "is_friday",
    "next_workday",
    "is_last_workday_of_month",
    "infer_mode",
    "next_execution_time",
    "time_info",
    "format_time_info",
]
