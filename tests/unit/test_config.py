"""Tests for investment_notice.core.config."""

from datetime import date

import pytest
from pydantic import ValidationError

from investment_notice.core.config import (
    AlphaVantageConfig,
    AnalysisConfig,
    NoticeConfig,
    NotifyConfig,
    ProvidersConfig,
    ScheduleConfig,
    TuShareConfig,
    _auto_cast,
    _merge_env_vars,
    load_config,
)
from investment_notice.core.exceptions import ConfigError
from investment_notice.core.models import AnalysisMode


@pytest.fixture
def in_tmp_dir(tmp_path, monkeypatch):
    """Run with an empty working directory so no stray config is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestAnalysisConfig:
    def test_defaults(self):
        c = AnalysisConfig()
        assert c.symbol == "000300"
        assert c.index_name == "CSI 300"
        assert c.daily_lookback == 60

    def test_lookback_per_mode(self):
        c = AnalysisConfig()
        assert c.lookback(AnalysisMode.DAILY) == 60
        assert c.lookback(AnalysisMode.WEEKLY) == 5
        assert c.lookback(AnalysisMode.MONTHLY) == 22

    def test_month_days_below_minimum_rejected(self):
        with pytest.raises(ValidationError, match="month_days must be >= 20"):
            AnalysisConfig(month_days=10)

    def test_week_days_below_minimum_rejected(self):
        with pytest.raises(ValidationError, match="week_days must be >= 5"):
            AnalysisConfig(week_days=3)


class TestProvidersConfig:
    def test_default_order(self):
        assert ProvidersConfig().order == ["tushare", "alpha_vantage", "yahoo", "csv"]

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError, match="unknown providers"):
            ProvidersConfig(order=["tushare", "bloomberg"])

    def test_duplicate_provider_rejected(self):
        with pytest.raises(ValidationError, match="listed twice"):
            ProvidersConfig(order=["tushare", "tushare"])

    def test_attempts_must_be_positive(self):
        with pytest.raises(ValidationError, match="max_attempts"):
            ProvidersConfig(max_attempts=0)


class TestNotifyConfig:
    def test_comma_separated_recipients(self):
        c = NotifyConfig(to_emails="a@example.com, b@example.com,")
        assert c.to_emails == ["a@example.com", "b@example.com"]

    def test_invalid_recipient_rejected(self):
        with pytest.raises(ValidationError, match="invalid recipient"):
            NotifyConfig(to_emails=["not-an-address"])


class TestScheduleConfig:
    def test_defaults(self):
        c = ScheduleConfig()
        assert (c.run_hour, c.run_minute, c.weekly_weekday) == (20, 0, 4)

    def test_weekend_weekly_day_rejected(self):
        with pytest.raises(ValidationError, match="weekly_weekday"):
            ScheduleConfig(weekly_weekday=5)

    def test_hour_out_of_range(self):
        with pytest.raises(ValidationError, match="run_hour"):
            ScheduleConfig(run_hour=24)


class TestNoticeConfig:
    def test_requires_an_enabled_provider(self):
        with pytest.raises(ValidationError, match="at least one provider"):
            NoticeConfig(
                providers=ProvidersConfig(
                    order=["tushare", "alpha_vantage"],
                    tushare=TuShareConfig(enabled=False),
                    alpha_vantage=AlphaVantageConfig(enabled=False),
                )
            )

    def test_disabled_provider_outside_order_does_not_count(self):
        with pytest.raises(ValidationError, match="at least one provider"):
            NoticeConfig(providers=ProvidersConfig(order=["yahoo"]))


class TestLoadConfig:
    def test_defaults_without_file(self, in_tmp_dir):
        config = load_config()
        assert config.analysis.symbol == "000300"
        assert config.providers.tushare.token is None
        assert config.summarizer.model == "gemini-pro"

    def test_yaml_file(self, in_tmp_dir):
        path = in_tmp_dir / "custom.yml"
        path.write_text(
            "analysis:\n"
            "  month_days: 21\n"
            "providers:\n"
            "  order: [csv]\n"
            "  csv:\n"
            "    enabled: true\n"
            "    path: history.csv\n"
            "schedule:\n"
            "  holidays: [2024-10-01, 2024-10-02]\n"
        )
        config = load_config(str(path))
        assert config.analysis.month_days == 21
        assert config.providers.order == ["csv"]
        assert config.providers.csv.path == "history.csv"
        assert config.schedule.holidays == [date(2024, 10, 1), date(2024, 10, 2)]

    def test_default_file_in_working_directory(self, in_tmp_dir):
        (in_tmp_dir / "investment-notice.yml").write_text("analysis:\n  index_name: CSI 500\n")
        assert load_config().analysis.index_name == "CSI 500"

    def test_config_path_from_env(self, in_tmp_dir, monkeypatch):
        path = in_tmp_dir / "elsewhere.yml"
        path.write_text("analysis:\n  currency: HKD\n")
        monkeypatch.setenv("INVESTMENT_NOTICE_CONFIG", str(path))
        assert load_config().analysis.currency == "HKD"

    def test_env_override(self, in_tmp_dir, monkeypatch):
        monkeypatch.setenv("INVESTMENT_NOTICE_ANALYSIS__MONTH_DAYS", "21")
        monkeypatch.setenv("INVESTMENT_NOTICE_NOTIFY__FAIL_ON_ERROR", "true")
        config = load_config()
        assert config.analysis.month_days == 21
        assert config.notify.fail_on_error is True

    def test_env_override_beats_yaml(self, in_tmp_dir, monkeypatch):
        path = in_tmp_dir / "c.yml"
        path.write_text("analysis:\n  daily_lookback: 30\n")
        monkeypatch.setenv("INVESTMENT_NOTICE_ANALYSIS__DAILY_LOOKBACK", "90")
        assert load_config(str(path)).analysis.daily_lookback == 90

    def test_index_code_stays_string(self, in_tmp_dir, monkeypatch):
        monkeypatch.setenv("INVESTMENT_NOTICE_ANALYSIS__SYMBOL", "000905")
        assert load_config().analysis.symbol == "000905"

    def test_conventional_secret_variables(self, in_tmp_dir, monkeypatch):
        monkeypatch.setenv("TUSHARE_TOKEN", "ts-token")
        monkeypatch.setenv("ALPHA_VANTAGE_API_KEY", "av-key")
        monkeypatch.setenv("GEMINI_API_KEY", "gm-key")
        monkeypatch.setenv("SMTP_PORT", "465")
        monkeypatch.setenv("SMTP_USERNAME", "bot@example.com")
        monkeypatch.setenv("TO_EMAILS", "a@example.com,b@example.com")

        config = load_config()

        assert config.providers.tushare.token == "ts-token"
        assert config.providers.alpha_vantage.api_key == "av-key"
        assert config.summarizer.api_key == "gm-key"
        assert config.notify.smtp_port == 465
        assert config.notify.username == "bot@example.com"
        assert config.notify.to_emails == ["a@example.com", "b@example.com"]

    def test_conventional_variables_do_not_override_file(self, in_tmp_dir, monkeypatch):
        path = in_tmp_dir / "c.yml"
        path.write_text("notify:\n  username: file-user@example.com\n")
        monkeypatch.setenv("SMTP_USERNAME", "env-user@example.com")
        assert load_config(str(path)).notify.username == "file-user@example.com"

    def test_missing_explicit_file(self, in_tmp_dir):
        with pytest.raises(ConfigError, match="not found"):
            load_config("does-not-exist.yml")

    def test_non_mapping_yaml(self, in_tmp_dir):
        path = in_tmp_dir / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config(str(path))

    def test_malformed_yaml(self, in_tmp_dir):
        path = in_tmp_dir / "broken.yml"
        path.write_text("analysis: [unclosed\n")
        with pytest.raises(ConfigError, match="Failed to parse"):
            load_config(str(path))

    def test_validation_error_becomes_config_error(self, in_tmp_dir, monkeypatch):
        monkeypatch.setenv("INVESTMENT_NOTICE_ANALYSIS__MONTH_DAYS", "5")
        with pytest.raises(ConfigError):
            load_config()


class TestEnvHelpers:
    def test_auto_cast(self):
        assert _auto_cast("true") is True
        assert _auto_cast("FALSE") is False
        assert _auto_cast("42") == 42
        assert _auto_cast("2.5") == 2.5
        assert _auto_cast("000300") == "000300"
        assert _auto_cast("0") == 0
        assert _auto_cast("gemini") == "gemini"

    def test_merge_env_vars_nests(self, monkeypatch):
        monkeypatch.setenv("TEST_PREFIX_PROVIDERS__TUSHARE__TIMEOUT_SECONDS", "5")
        merged = _merge_env_vars({"providers": {"max_attempts": 2}}, "TEST_PREFIX_")
        assert merged["providers"]["tushare"]["timeout_seconds"] == 5
        assert merged["providers"]["max_attempts"] == 2
