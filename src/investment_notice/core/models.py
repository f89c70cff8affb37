"""Pydantic data models: the system's type contracts."""

from __future__ import annotations

from datetime import date
from enum import StrEnum
from typing import Annotated, Literal, Self, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# --- Type Aliases ---

Symbol = str
ProviderName = str

# --- Enumerations ---


class AnalysisMode(StrEnum):
    """Report periods. Each determines lookback, bucketing and metrics."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def minimum_points(self) -> int:
        """Shortest series the mode can be computed on."""
        return _MINIMUM_POINTS[self]


_MINIMUM_POINTS: dict[AnalysisMode, int] = {
    AnalysisMode.DAILY: 2,
    AnalysisMode.WEEKLY: 5,
    AnalysisMode.MONTHLY: 20,
}


class LLMProvider(StrEnum):
    """Supported AI backends for the summarizer."""

    GEMINI = "gemini"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


class StageStatus(StrEnum):
    """Outcome of an optional pipeline stage."""

    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


# --- Price Models ---


class PricePoint(BaseModel):
    """A single daily OHLCV record. Immutable once fetched."""

    model_config = ConfigDict(frozen=True)

    date: date
    open: float
    high: float
    low: float
    close: float
    volume: int

    @field_validator("volume")
    @classmethod
    def volume_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"volume must be >= 0, got {v}")
        return v

    @model_validator(mode="after")
    def high_gte_low(self) -> PricePoint:
        if self.high < self.low:
            raise ValueError(f"high ({self.high}) must be >= low ({self.low})")
        return self


class PriceSeries(BaseModel):
    """Ordered daily records for one symbol, strictly increasing by date."""

    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    source: ProviderName = "unknown"
    points: tuple[PricePoint, ...]

    @field_validator("points")
    @classmethod
    def points_strictly_increasing(
        cls, v: tuple[PricePoint, ...]
    ) -> tuple[PricePoint, ...]:
        if not v:
            raise ValueError("points must not be empty")
        for prev, cur in zip(v, v[1:]):
            if cur.date <= prev.date:
                raise ValueError(
                    f"dates must be strictly increasing: {prev.date} then {cur.date}"
                )
        return v

    def __len__(self) -> int:
        return len(self.points)

    @property
    def first(self) -> PricePoint:
        return self.points[0]

    @property
    def last(self) -> PricePoint:
        return self.points[-1]

    @property
    def closes(self) -> list[float]:
        return [p.close for p in self.points]

    @property
    def highs(self) -> list[float]:
        return [p.high for p in self.points]

    @property
    def lows(self) -> list[float]:
        return [p.low for p in self.points]

    @property
    def volumes(self) -> list[int]:
        return [p.volume for p in self.points]

    def tail(self, n: int) -> PriceSeries:
        """Return a series holding only the last ``n`` points."""
        if n >= len(self.points):
            return self
        return self.model_copy(update={"points": self.points[-n:]})


class FetchWindow(BaseModel):
    """Span of trading days requested from a provider."""

    model_config = ConfigDict(frozen=True)

    count: int
    minimum: int = 1
    end: date | None = None

    @field_validator("count", "minimum")
    @classmethod
    def positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"window sizes must be >= 1, got {v}")
        return v

    @model_validator(mode="after")
    def count_covers_minimum(self) -> FetchWindow:
        if self.count < self.minimum:
            raise ValueError(
                f"count ({self.count}) must be >= minimum ({self.minimum})"
            )
        return self

    @classmethod
    def for_mode(
        cls,
        mode: AnalysisMode,
        lookback: int,
        end: date | None = None,
    ) -> FetchWindow:
        minimum = mode.minimum_points
        return cls(count=max(lookback, minimum), minimum=minimum, end=end)


# --- Report Models ---


class TechnicalIndicators(BaseModel):
    """Latest indicator values; None when the series is too short."""

    model_config = ConfigDict(frozen=True)

    ma5: float | None = None
    ma20: float | None = None
    rsi14: float | None = None
    macd: float | None = None
    macd_signal: float | None = None
    macd_histogram: float | None = None


class _ReportBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: Symbol
    narrative: str | None = None

    def with_narrative(self, text: str) -> Self:
        """Return a copy carrying the AI narrative."""
        return self.model_copy(update={"narrative": text})


class DailyReport(_ReportBase):
    """Day-over-day change and position against the lookback extremes."""

    mode: Literal[AnalysisMode.DAILY] = AnalysisMode.DAILY
    date: date
    current_price: float
    previous_price: float
    price_change_pct: float
    historical_high: float
    historical_low: float
    relative_to_high_pct: float
    relative_to_low_pct: float
    range_position_pct: float | None = None
    volume: int
    indicators: TechnicalIndicators = TechnicalIndicators()


class WeeklyReport(_ReportBase):
    """Change, extremes and volume over the last trading week."""

    mode: Literal[AnalysisMode.WEEKLY] = AnalysisMode.WEEKLY
    start_date: date
    end_date: date
    start_price: float
    end_price: float
    weekly_change_pct: float
    highest_price: float
    highest_date: date
    lowest_price: float
    lowest_date: date
    average_volume: float
    total_volume: int
    trading_days: int


class MonthlyReport(_ReportBase):
    """Change, extremes, volume and nearest support/resistance over a month."""

    mode: Literal[AnalysisMode.MONTHLY] = AnalysisMode.MONTHLY
    year: int
    month: int
    start_date: date
    end_date: date
    start_price: float
    end_price: float
    monthly_change_pct: float
    highest_price: float
    highest_date: date
    lowest_price: float
    lowest_date: date
    average_volume: float
    total_volume: int
    trading_days: int
    support_level: float | None = None
    resistance_level: float | None = None
    outlook: str | None = None

    def with_narrative(self, text: str) -> MonthlyReport:
        return self.model_copy(update={"narrative": text, "outlook": text})


AnalysisReport = Annotated[
    Union[DailyReport, WeeklyReport, MonthlyReport],
    Field(discriminator="mode"),
]


# --- Run Outcome ---


class RunResult(BaseModel):
    """Outcome of one pipeline invocation."""

    model_config = ConfigDict(frozen=True)

    mode: AnalysisMode
    report: AnalysisReport
    subject: str
    rendered: str
    summary_status: StageStatus = StageStatus.SKIPPED
    notify_status: StageStatus = StageStatus.SKIPPED
    notify_error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.notify_status == StageStatus.OK
