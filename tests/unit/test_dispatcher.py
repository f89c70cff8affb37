"""Tests for the per-invocation pipeline run."""

from __future__ import annotations

from datetime import date

import httpx
import pytest
import respx

from investment_notice.analysis.engine import MetricEngine
from investment_notice.core.config import NoticeConfig, NotifyConfig, SummarizerConfig
from investment_notice.core.exceptions import (
    AllSourcesFailedError,
    InvalidPriceError,
    NotifyError,
    SummarizerError,
    UnavailableError,
)
from investment_notice.core.models import (
    AnalysisMode,
    DailyReport,
    MonthlyReport,
    StageStatus,
    WeeklyReport,
)
from investment_notice.prices.fallback import FallbackFetcher
from investment_notice.scheduler.dispatcher import ModeDispatcher
from investment_notice.summarizer.llm import GeminiProvider, Summarizer

RECIPIENTS = ["alice@example.com", "bob@example.com"]


class RecordingProvider:
    def __init__(self, series=None, error=None):
        self._series = series
        self._error = error
        self.requests = []

    @property
    def name(self) -> str:
        return "stub"

    async def fetch(self, symbol, window):
        self.requests.append((symbol, window))
        if self._error:
            raise self._error
        return self._series


class CannedBackend:
    def __init__(self, reply="Constructive tone.", error=None):
        self._reply = reply
        self._error = error

    @property
    def name(self) -> str:
        return "canned"

    async def query(self, prompt, max_tokens=1024):
        if self._error:
            raise self._error
        return self._reply


class RecordingNotifier:
    def __init__(self, error=None):
        self._error = error
        self.sent = []

    async def send(self, rendered, recipients, subject):
        self.sent.append((rendered, list(recipients), subject))
        if self._error:
            raise self._error


@pytest.fixture
def config() -> NoticeConfig:
    return NoticeConfig(notify=NotifyConfig(to_emails=RECIPIENTS))


def _dispatcher(config, series, summarizer=None, notifier=None, provider=None):
    provider = provider or RecordingProvider(series)
    return ModeDispatcher(
        fetcher=FallbackFetcher([provider]),
        engine=MetricEngine(config.analysis),
        config=config,
        summarizer=summarizer,
        notifier=notifier,
    )


class TestModeResolution:
    def test_explicit_mode_wins(self, config, week_series):
        d = _dispatcher(config, week_series)
        assert d.resolve_mode(AnalysisMode.DAILY, date(2024, 5, 31)) == AnalysisMode.DAILY

    def test_inferred_from_calendar(self, config, week_series):
        d = _dispatcher(config, week_series)
        assert d.resolve_mode(None, date(2024, 5, 31)) == AnalysisMode.MONTHLY
        assert d.resolve_mode(None, date(2024, 5, 24)) == AnalysisMode.WEEKLY
        assert d.resolve_mode(None, date(2024, 5, 22)) == AnalysisMode.DAILY

    def test_window_for_mode(self, config, week_series):
        d = _dispatcher(config, week_series)
        today = date(2024, 5, 31)

        daily = d.window_for(AnalysisMode.DAILY, today)
        weekly = d.window_for(AnalysisMode.WEEKLY, today)
        monthly = d.window_for(AnalysisMode.MONTHLY, today)

        assert (daily.count, daily.minimum, daily.end) == (60, 2, today)
        assert (weekly.count, weekly.minimum) == (5, 5)
        assert (monthly.count, monthly.minimum) == (22, 20)


class TestRun:
    async def test_inferred_weekly_run(self, config, week_series):
        provider = RecordingProvider(week_series)
        d = _dispatcher(config, week_series, provider=provider)

        result = await d.run(today=date(2024, 5, 24))

        assert result.mode == AnalysisMode.WEEKLY
        assert isinstance(result.report, WeeklyReport)
        symbol, window = provider.requests[0]
        assert symbol == "000300"
        assert window.count == 5
        assert window.end == date(2024, 5, 24)
        assert result.summary_status == StageStatus.SKIPPED
        assert result.notify_status == StageStatus.SKIPPED

    async def test_symbol_override(self, config, week_series):
        provider = RecordingProvider(week_series)
        d = _dispatcher(config, week_series, provider=provider)
        await d.run(mode=AnalysisMode.DAILY, today=date(2024, 5, 10), symbol="000905")
        assert provider.requests[0][0] == "000905"

    async def test_full_run_with_narrative_and_email(self, config, month_series):
        notifier = RecordingNotifier()
        d = _dispatcher(
            config,
            month_series,
            summarizer=Summarizer(CannedBackend("Range-bound.")),
            notifier=notifier,
        )

        result = await d.run(mode=AnalysisMode.MONTHLY, today=date(2024, 5, 30), send=True)

        assert isinstance(result.report, MonthlyReport)
        assert result.report.narrative == "Range-bound."
        assert result.report.outlook == "Range-bound."
        assert result.summary_status == StageStatus.OK
        assert result.notify_status == StageStatus.OK
        assert result.delivered

        rendered, recipients, subject = notifier.sent[0]
        assert recipients == RECIPIENTS
        assert subject == result.subject
        assert rendered == result.rendered
        assert "AI Analysis:\nRange-bound." in rendered

    async def test_summarizer_failure_still_sends(self, config, week_series):
        notifier = RecordingNotifier()
        backend = CannedBackend(error=SummarizerError("quota exceeded"))
        d = _dispatcher(config, week_series, summarizer=Summarizer(backend), notifier=notifier)

        result = await d.run(mode=AnalysisMode.DAILY, today=date(2024, 5, 10), send=True)

        assert result.summary_status == StageStatus.FAILED
        assert result.report.narrative is None
        assert "(AI analysis unavailable)" in result.rendered
        assert len(notifier.sent) == 1

    @respx.mock
    async def test_null_narrative_is_not_fatal(self, config, week_series):
        respx.post(
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"
        ).mock(
            return_value=httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": None}]}}]})
        )
        notifier = RecordingNotifier()
        summarizer = Summarizer(GeminiProvider(api_key="k"))
        d = _dispatcher(config, week_series, summarizer=summarizer, notifier=notifier)

        result = await d.run(mode=AnalysisMode.WEEKLY, today=date(2024, 5, 10), send=True)

        assert result.summary_status == StageStatus.FAILED
        assert result.report.narrative is None
        assert len(notifier.sent) == 1

    async def test_no_send_skips_notifier(self, config, week_series):
        notifier = RecordingNotifier()
        d = _dispatcher(config, week_series, notifier=notifier)

        result = await d.run(mode=AnalysisMode.DAILY, today=date(2024, 5, 10), send=False)

        assert notifier.sent == []
        assert result.notify_status == StageStatus.SKIPPED

    async def test_notify_failure_is_recorded(self, config, week_series):
        notifier = RecordingNotifier(error=NotifyError("SMTP auth failed"))
        d = _dispatcher(config, week_series, notifier=notifier)

        result = await d.run(mode=AnalysisMode.DAILY, today=date(2024, 5, 10), send=True)

        assert result.notify_status == StageStatus.FAILED
        assert result.notify_error == "SMTP auth failed"
        assert isinstance(result.report, DailyReport)

    async def test_fetch_failure_aborts_before_notify(self, config):
        notifier = RecordingNotifier()
        provider = RecordingProvider(error=UnavailableError("down", context={"provider": "stub"}))
        d = _dispatcher(config, None, notifier=notifier, provider=provider)

        with pytest.raises(AllSourcesFailedError):
            await d.run(mode=AnalysisMode.DAILY, today=date(2024, 5, 10), send=True)

        assert notifier.sent == []

    async def test_analysis_failure_aborts_before_notify(self, config, make_series):
        notifier = RecordingNotifier()
        d = _dispatcher(config, make_series([100.0, 0.0, 5.0]), notifier=notifier)

        with pytest.raises(InvalidPriceError):
            await d.run(mode=AnalysisMode.DAILY, today=date(2024, 5, 10), send=True)

        assert notifier.sent == []


class TestFromConfig:
    def test_builds_summarizer_when_enabled(self, config):
        d = ModeDispatcher.from_config(config)
        assert d._summarizer is not None
        assert d._notifier is not None

    def test_without_summary(self, config):
        assert ModeDispatcher.from_config(config, with_summary=False)._summarizer is None

    def test_summarizer_disabled_in_config(self):
        config = NoticeConfig(summarizer=SummarizerConfig(enabled=False))
        assert ModeDispatcher.from_config(config)._summarizer is None
