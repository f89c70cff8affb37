"""investment_notice.core: Foundation types, config, and exceptions."""

from investment_notice.core.config import (
    AlphaVantageConfig,
    AnalysisConfig,
    CSVProviderConfig,
    NoticeConfig,
    NotifyConfig,
    ProvidersConfig,
    ScheduleConfig,
    SummarizerConfig,
    TuShareConfig,
    YahooConfig,
    load_config,
)
from investment_notice.core.exceptions import (
    AllSourcesFailedError,
    AnalysisError,
    ConfigError,
    FetchError,
    InsufficientDataError,
    InvalidPriceError,
    InvestmentNoticeError,
    NotifyError,
    SummarizerError,
    UnavailableError,
)
from investment_notice.core.models import (
    AnalysisMode,
    AnalysisReport,
    DailyReport,
    FetchWindow,
    LLMProvider,
    MonthlyReport,
    PricePoint,
    PriceSeries,
    ProviderName,
    RunResult,
    StageStatus,
    Symbol,
    TechnicalIndicators,
    WeeklyReport,
)

__all__ = [
    # Type aliases
    "Symbol",
    "ProviderName",
    # Enums
    "AnalysisMode",
    "LLMProvider",
    "StageStatus",
    # Price models
    "PricePoint",
    "PriceSeries",
    "FetchWindow",
    # Report models
    "TechnicalIndicators",
    "DailyReport",
    "WeeklyReport",
    "MonthlyReport",
    "AnalysisReport",
    "RunResult",
    # Config
    "NoticeConfig",
    "AnalysisConfig",
    "ProvidersConfig",
    "TuShareConfig",
    "AlphaVantageConfig",
    "YahooConfig",
    "CSVProviderConfig",
    "SummarizerConfig",
    "NotifyConfig",
    "ScheduleConfig",
    "load_config",
    # Exceptions
    "InvestmentNoticeError",
    "ConfigError",
    "FetchError",
    "UnavailableError",
    "InsufficientDataError",
    "AllSourcesFailedError",
    "AnalysisError",
    "InvalidPriceError",
    "SummarizerError",
    "NotifyError",
]
