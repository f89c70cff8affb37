"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from investment_notice.core.exceptions import ConfigError
from investment_notice.core.models import AnalysisMode, LLMProvider

KNOWN_PROVIDERS = ("tushare", "alpha_vantage", "yahoo", "csv")


class TuShareConfig(BaseModel):
    """TuShare Pro API access (primary provider)."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    token: str | None = None
    base_url: str = "https://api.tushare.pro"
    api_name: str = "index_daily"
    symbol: str | None = None
    timeout_seconds: float = 15.0


class AlphaVantageConfig(BaseModel):
    """Alpha Vantage API access (backup provider)."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    api_key: str | None = None
    base_url: str = "https://www.alphavantage.co/query"
    symbol: str | None = None
    timeout_seconds: float = 15.0


class YahooConfig(BaseModel):
    """Yahoo Finance chart endpoint (unauthenticated backup)."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    base_url: str = "https://query2.finance.yahoo.com"
    symbol: str | None = None
    timeout_seconds: float = 15.0


class CSVProviderConfig(BaseModel):
    """Local CSV file used as an offline source."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    path: str = "./data/prices.csv"


class ProvidersConfig(BaseModel):
    """Ordered provider chain and the fallback policy around it."""

    model_config = ConfigDict(frozen=True)

    order: list[str] = ["tushare", "alpha_vantage", "yahoo", "csv"]
    call_timeout_seconds: float = 30.0
    max_attempts: int = 1
    backoff_seconds: float = 2.0
    tushare: TuShareConfig = TuShareConfig()
    alpha_vantage: AlphaVantageConfig = AlphaVantageConfig()
    yahoo: YahooConfig = YahooConfig()
    csv: CSVProviderConfig = CSVProviderConfig()

    @field_validator("order")
    @classmethod
    def order_known_and_unique(cls, v: list[str]) -> list[str]:
        unknown = [name for name in v if name not in KNOWN_PROVIDERS]
        if unknown:
            raise ValueError(
                f"unknown providers in order: {unknown}. "
                f"Known: {', '.join(KNOWN_PROVIDERS)}"
            )
        if len(set(v)) != len(v):
            raise ValueError("providers must not be listed twice in order")
        return v

    @field_validator("max_attempts")
    @classmethod
    def attempts_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_attempts must be >= 1")
        return v


class AnalysisConfig(BaseModel):
    """Lookback sizes, in trading days, per mode."""

    model_config = ConfigDict(frozen=True)

    symbol: str = "000300"
    index_name: str = "CSI 300"
    currency: str = "CNY"
    daily_lookback: int = 60
    week_days: int = 5
    month_days: int = 22

    @field_validator("week_days")
    @classmethod
    def week_covers_minimum(cls, v: int) -> int:
        if v < AnalysisMode.WEEKLY.minimum_points:
            raise ValueError(
                f"week_days must be >= {AnalysisMode.WEEKLY.minimum_points}"
            )
        return v

    @field_validator("month_days")
    @classmethod
    def month_covers_minimum(cls, v: int) -> int:
        if v < AnalysisMode.MONTHLY.minimum_points:
            raise ValueError(
                f"month_days must be >= {AnalysisMode.MONTHLY.minimum_points}"
            )
        return v

    def lookback(self, mode: AnalysisMode) -> int:
        if mode == AnalysisMode.DAILY:
            return self.daily_lookback
        if mode == AnalysisMode.WEEKLY:
            return self.week_days
        return self.month_days


class SummarizerConfig(BaseModel):
    """Configuration for the optional AI narrative."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    provider: LLMProvider = LLMProvider.GEMINI
    model: str = "gemini-pro"
    api_key: str | None = None
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout_seconds: int = 60
    max_tokens: int = 1024


class NotifyConfig(BaseModel):
    """SMTP delivery settings."""

    model_config = ConfigDict(frozen=True)

    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    use_ssl: bool = False
    username: str | None = None
    password: str | None = None
    from_email: str | None = None
    to_emails: list[str] = []
    timeout_seconds: float = 30.0
    fail_on_error: bool = False

    @field_validator("to_emails", mode="before")
    @classmethod
    def split_comma_list(cls, v):
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator("to_emails")
    @classmethod
    def addresses_look_valid(cls, v: list[str]) -> list[str]:
        bad = [addr for addr in v if "@" not in addr]
        if bad:
            raise ValueError(f"invalid recipient addresses: {bad}")
        return v


class ScheduleConfig(BaseModel):
    """Calendar rules used to infer the mode and the next run time."""

    model_config = ConfigDict(frozen=True)

    run_hour: int = 20
    run_minute: int = 0
    weekly_weekday: int = 4
    holidays: list[date] = []

    @field_validator("run_hour")
    @classmethod
    def hour_in_range(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError("run_hour must be between 0 and 23")
        return v

    @field_validator("run_minute")
    @classmethod
    def minute_in_range(cls, v: int) -> int:
        if not 0 <= v <= 59:
            raise ValueError("run_minute must be between 0 and 59")
        return v

    @field_validator("weekly_weekday")
    @classmethod
    def weekday_is_workday(cls, v: int) -> int:
        if not 0 <= v <= 4:
            raise ValueError("weekly_weekday must be 0 (Monday) to 4 (Friday)")
        return v


class NoticeConfig(BaseModel):
    """Root configuration for the entire investment-notice system."""

    model_config = ConfigDict(frozen=True)

    analysis: AnalysisConfig = AnalysisConfig()
    providers: ProvidersConfig = ProvidersConfig()
    summarizer: SummarizerConfig = SummarizerConfig()
    notify: NotifyConfig = NotifyConfig()
    schedule: ScheduleConfig = ScheduleConfig()

    @model_validator(mode="after")
    def some_provider_enabled(self) -> NoticeConfig:
        enabled = [
            name
            for name in self.providers.order
            if getattr(self.providers, name).enabled
        ]
        if not enabled:
            raise ValueError("at least one provider in providers.order must be enabled")
        return self


# Conventional variable names the deployments already export.
_SECRET_ENV_VARS: dict[str, tuple[str, ...]] = {
    "TUSHARE_TOKEN": ("providers", "tushare", "token"),
    "ALPHA_VANTAGE_API_KEY": ("providers", "alpha_vantage", "api_key"),
    "GEMINI_API_KEY": ("summarizer", "api_key"),
    "SMTP_SERVER": ("notify", "smtp_server"),
    "SMTP_PORT": ("notify", "smtp_port"),
    "SMTP_USERNAME": ("notify", "username"),
    "SMTP_PASSWORD": ("notify", "password"),
    "FROM_EMAIL": ("notify", "from_email"),
    "TO_EMAILS": ("notify", "to_emails"),
}


def load_config(
    config_path: str | None = None,
    env_prefix: str = "INVESTMENT_NOTICE_",
) -> NoticeConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (INVESTMENT_NOTICE_NOTIFY__SMTP_PORT, etc.)
    2. YAML file at config_path
    3. Conventional secret variables (TUSHARE_TOKEN, SMTP_PASSWORD, ...)
       for fields still unset
    4. Built-in defaults

    Nested keys use double-underscore in env vars:
        INVESTMENT_NOTICE_ANALYSIS__MONTH_DAYS=21  ->  analysis.month_days = 21
    """
    try:
        yaml_path = _resolve_config_path(config_path, env_prefix)
        base: dict = {}
        if yaml_path is not None:
            base = _load_yaml(yaml_path)

        merged = _merge_env_vars(base, env_prefix)
        merged = _fill_conventional_env(merged)
        return NoticeConfig.model_validate(merged)
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None, env_prefix: str) -> Path | None:
    """Determine config file path."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise ConfigError(
                f"Config file not found: {explicit}",
                context={"field": "config_path", "value": explicit},
            )
        return p

    env_name = f"{env_prefix}CONFIG"
    env_path = os.environ.get(env_name)
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(
                f"Config file from {env_name} not found: {env_path}",
                context={"field": env_name, "value": env_path},
            )
        return p

    default = Path("investment-notice.yml")
    if default.exists():
        return default

    return None


def _load_yaml(path: Path) -> dict:
    """Load and parse YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"YAML config must be a mapping, got {type(data).__name__}",
                context={"field": "config_file", "value": str(path)},
            )
        return data
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay environment variables onto base config dict.

    Double-underscore separates nesting levels.
    Values are auto-cast: "true"/"false" -> bool, numeric strings -> int.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        parts = [p.lower() for p in remainder.split("__")]

        if parts == ["config"]:
            continue

        cast_value = _auto_cast(value)

        target = result
        for part in parts[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            target = target[part]
        target[parts[-1]] = cast_value

    return result


def _fill_conventional_env(base: dict) -> dict:
    """Fill still-unset fields from the conventional secret variables."""
    result = dict(base)

    for env_name, path in _SECRET_ENV_VARS.items():
        value = os.environ.get(env_name)
        if not value:
            continue

        target = result
        for part in path[:-1]:
            if not isinstance(target.get(part), dict):
                target[part] = {}
            else:
                target[part] = dict(target[part])
            target = target[part]
        if target.get(path[-1]) in (None, "", []):
            target[path[-1]] = _auto_cast(value) if path[-1] == "smtp_port" else value

    return result


def _auto_cast(value: str) -> str | int | float | bool:
    """Auto-cast string values from environment variables."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    # Index codes such as 000300 must stay strings
    if len(value) > 1 and value.startswith("0") and value.isdigit():
        return value
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value
