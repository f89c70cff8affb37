"""One pipeline run: resolve mode → fetch → analyze → summarize → notify."""

from __future__ import annotations

import logging
from datetime import date

from investment_notice.analysis.engine import MetricEngine
from investment_notice.core.config import NoticeConfig
from investment_notice.core.exceptions import NotifyError, SummarizerError
from investment_notice.core.models import (
    AnalysisMode,
    AnalysisReport,
    FetchWindow,
    RunResult,
    StageStatus,
)
from investment_notice.notify.email import EmailNotifier, Notifier
from investment_notice.notify.render import render_report, subject_for
from investment_notice.prices.fallback import FallbackFetcher, build_fetcher
from investment_notice.scheduler.calendar import infer_mode
from investment_notice.summarizer.llm import Summarizer

logger = logging.getLogger(__name__)


class ModeDispatcher:
    """Sequences the stages of a single, stateless report run.

    Fetch and analysis errors propagate to the caller and no report is sent.
    Summarizer and notifier failures are logged and recorded on the
    ``RunResult`` instead.

    Parameters
    ----------
    fetcher : FallbackFetcher
        Ordered provider chain.
    engine : MetricEngine
        Metric computation.
    config : NoticeConfig
        Symbol, lookbacks, schedule and recipients.
    summarizer : Summarizer | None
        Optional AI narrative. None skips the stage.
    notifier : Notifier | None
        Optional delivery. None skips the stage.
    """

    def __init__(
        self,
        fetcher: FallbackFetcher,
        engine: MetricEngine,
        config: NoticeConfig,
        summarizer: Summarizer | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._engine = engine
        self._config = config
        self._summarizer = summarizer
        self._notifier = notifier

    @classmethod
    def from_config(
        cls,
        config: NoticeConfig,
        with_summary: bool = True,
    ) -> ModeDispatcher:
        summarizer = None
        if with_summary and config.summarizer.enabled:
            try:
                summarizer = Summarizer.from_config(
                    config.summarizer,
                    index_name=config.analysis.index_name,
                    currency=config.analysis.currency,
                )
            except SummarizerError as e:
                logger.warning("Summarizer unavailable, continuing without it: %s", e)

        return cls(
            fetcher=build_fetcher(config.providers),
            engine=MetricEngine(config.analysis),
            config=config,
            summarizer=summarizer,
            notifier=EmailNotifier(config.notify),
        )

    def resolve_mode(self, mode: AnalysisMode | None, today: date) -> AnalysisMode:
        """Explicit mode wins; otherwise infer it from the calendar."""
        if mode is not None:
            return mode
        inferred = infer_mode(today, self._config.schedule)
        logger.info("No mode given, inferred '%s' for %s", inferred.value, today)
        return inferred

    def window_for(self, mode: AnalysisMode, today: date) -> FetchWindow:
        return FetchWindow.for_mode(
            mode,
            lookback=self._config.analysis.lookback(mode),
            end=today,
        )

    async def run(
        self,
        mode: AnalysisMode | None = None,
        today: date | None = None,
        send: bool = False,
        symbol: str | None = None,
    ) -> RunResult:
        today = today or date.today()
        symbol = symbol or self._config.analysis.symbol
        mode = self.resolve_mode(mode, today)
        logger.info("Starting %s analysis for %s as of %s", mode.value, symbol, today)

        series = await self._fetcher.fetch(symbol, self.window_for(mode, today))
        report = self._engine.analyze(series, mode)

        report, summary_status = await self._summarize(report)

        index_name = self._config.analysis.index_name
        rendered = render_report(report, index_name, self._config.analysis.currency)
        subject = subject_for(report, index_name)

        notify_status, notify_error = await self._notify(rendered, subject, send)

        logger.info(
            "Run finished: mode=%s summary=%s notify=%s",
            mode.value,
            summary_status.value,
            notify_status.value,
        )
        return RunResult(
            mode=mode,
            report=report,
            subject=subject,
            rendered=rendered,
            summary_status=summary_status,
            notify_status=notify_status,
            notify_error=notify_error,
        )

    async def _summarize(
        self, report: AnalysisReport
    ) -> tuple[AnalysisReport, StageStatus]:
        if self._summarizer is None:
            return report, StageStatus.SKIPPED
        try:
            narrative = await self._summarizer.summarize(report)
        except SummarizerError as e:
            logger.warning("Summarizer '%s' failed, sending numbers only: %s", self._summarizer.name, e)
            return report, StageStatus.FAILED
        logger.info("AI narrative attached (%d characters)", len(narrative))
        return report.with_narrative(narrative), StageStatus.OK

    async def _notify(
        self, rendered: str, subject: str, send: bool
    ) -> tuple[StageStatus, str | None]:
        if not send or self._notifier is None:
            return StageStatus.SKIPPED, None
        recipients = self._config.notify.to_emails
        try:
            await self._notifier.send(rendered, recipients, subject)
        except NotifyError as e:
            logger.error("Report computed but not delivered: %s", e)
            return StageStatus.FAILED, str(e)
        return StageStatus.OK, None
