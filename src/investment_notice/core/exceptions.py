"""Custom exception hierarchy for investment-notice."""

from __future__ import annotations

from typing import Any


class InvestmentNoticeError(Exception):
    """Base exception for all investment-notice errors.

    All exceptions carry an optional `context` dict for structured error
    metadata that can be logged or serialized without parsing the message.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(InvestmentNoticeError):
    """Invalid or missing configuration.

    Raised by load_config() during startup. Should be treated as fatal.

    Context keys:
        field: str - the config field that failed validation
        value: Any - the invalid value (redacted for secrets)
    """


class FetchError(InvestmentNoticeError):
    """A price provider could not deliver a usable series.

    Policy: the fallback fetcher records it and moves on to the next provider.

    Context keys:
        provider: str - the provider that failed
        symbol: str - the symbol that was requested
    """

    @property
    def provider(self) -> str | None:
        return self.context.get("provider")


class UnavailableError(FetchError):
    """Transport failure, rate limit, API-level error or missing credentials.

    Context keys:
        reason: str - short machine-friendly reason
        status_code: int | None - HTTP status if applicable
    """


class InsufficientDataError(FetchError):
    """Provider returned too few points, or dates out of order / duplicated.

    Context keys:
        received: int - number of usable points
        required: int - minimum the mode needs
    """


class AllSourcesFailedError(FetchError):
    """Every configured provider failed.

    Policy: abort the run. Nothing is sent.

    ``errors`` holds one ``(provider_name, FetchError)`` entry per provider,
    in the order the providers were tried.
    """

    def __init__(
        self,
        message: str,
        errors: list[tuple[str, FetchError]],
        context: dict[str, Any] | None = None,
    ):
        ctx = dict(context or {})
        ctx.setdefault("providers", [name for name, _ in errors])
        super().__init__(message, context=ctx)
        self.errors = list(errors)


class AnalysisError(InvestmentNoticeError):
    """Metric computation failed.

    Policy: abort the run. A report built on invalid numbers is never sent.

    Context keys:
        mode: str - the analysis mode being computed
    """


class InvalidPriceError(AnalysisError):
    """A price used as a denominator is zero.

    Context keys:
        field: str - "close", "high" or "low"
        date: str - ISO date of the offending point
    """


class SummarizerError(InvestmentNoticeError):
    """AI backend returned an error, timed out or produced nothing.

    Policy: log and continue with an empty narrative.

    Context keys:
        provider: str - "gemini", "anthropic" or "openai"
        status_code: int | None - HTTP status code if applicable
    """


class NotifyError(InvestmentNoticeError):
    """Report delivery failed.

    Policy: log and record on the run result. Does not change the exit
    status unless notify.fail_on_error is set.

    Context keys:
        recipients: list[str] - addresses the send was attempted for
    """
