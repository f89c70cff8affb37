"""AI narrative for a finished report, with pluggable provider backends."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

import httpx

from investment_notice.core.config import SummarizerConfig
from investment_notice.core.exceptions import SummarizerError
from investment_notice.core.models import (
    AnalysisReport,
    DailyReport,
    LLMProvider,
    MonthlyReport,
    WeeklyReport,
)

logger = logging.getLogger("investment_notice.summarizer.llm")

# --- Prompt Templates ---

_CLOSING = "Please respond in English, maintaining professionalism and objectivity."

DAILY_PROMPT_TEMPLATE = """You are a professional stock analyst. Please analyze the following {index_name} data:

Date: {r.date:%Y-%m-%d}
Current Price: {r.current_price:.2f} {currency}
Price Change: {r.price_change_pct:.2f}%
Relative to High: {r.relative_to_high_pct:.2f}%
Relative to Low: {r.relative_to_low_pct:.2f}%
Period High: {r.historical_high:.2f} {currency}
Period Low: {r.historical_low:.2f} {currency}
Volume: {r.volume}

Please provide professional investment advice including:
1. Market trend analysis
2. Risk assessment
3. Investment recommendations
4. Key points to watch

""" + _CLOSING

WEEKLY_PROMPT_TEMPLATE = """You are a professional stock analyst. Please analyze the following {index_name} weekly data:

Period: {r.start_date:%Y-%m-%d} to {r.end_date:%Y-%m-%d}
Start Price: {r.start_price:.2f} {currency}
End Price: {r.end_price:.2f} {currency}
Weekly Change: {r.weekly_change_pct:.2f}%
Highest: {r.highest_price:.2f} {currency} ({r.highest_date:%Y-%m-%d})
Lowest: {r.lowest_price:.2f} {currency} ({r.lowest_date:%Y-%m-%d})
Average Volume: {r.average_volume:.0f}
Total Volume: {r.total_volume}

Please analyze this week's market performance including:
1. Weekly trend analysis
2. Key price breakouts
3. Volume analysis
4. Next week outlook
5. Investment strategy recommendations

""" + _CLOSING

MONTHLY_PROMPT_TEMPLATE = """You are a professional stock analyst. Please analyze the following {index_name} monthly data:

Month: {r.year}-{r.month:02d}
Start Price: {r.start_price:.2f} {currency}
End Price: {r.end_price:.2f} {currency}
Monthly Change: {r.monthly_change_pct:.2f}%
Highest: {r.highest_price:.2f} {currency} ({r.highest_date:%Y-%m-%d})
Lowest: {r.lowest_price:.2f} {currency} ({r.lowest_date:%Y-%m-%d})
Nearest Support: {support}
Nearest Resistance: {resistance}
Average Volume: {r.average_volume:.0f}
Total Volume: {r.total_volume}

Please analyze this month's market performance including:
1. Overall monthly trend
2. Important support and resistance levels
3. Monthly volume analysis
4. Next month market outlook
5. Long-term investment recommendations

""" + _CLOSING


def build_prompt(
    report: AnalysisReport,
    index_name: str = "CSI 300",
    currency: str = "CNY",
) -> str:
    """Fill the mode-specific template with the report's numbers."""
    if isinstance(report, DailyReport):
        return DAILY_PROMPT_TEMPLATE.format(r=report, index_name=index_name, currency=currency)
    if isinstance(report, WeeklyReport):
        return WEEKLY_PROMPT_TEMPLATE.format(r=report, index_name=index_name, currency=currency)
    if isinstance(report, MonthlyReport):
        return MONTHLY_PROMPT_TEMPLATE.format(
            r=report,
            index_name=index_name,
            currency=currency,
            support=_level(report.support_level, currency),
            resistance=_level(report.resistance_level, currency),
        )
    raise TypeError(f"Unsupported report type: {type(report).__name__}")


def _level(value: float | None, currency: str) -> str:
    return f"{value:.2f} {currency}" if value is not None else "none in range"


# --- Provider Protocol ---


@runtime_checkable
class SummarizerBackend(Protocol):
    """Protocol for text-generation API backends."""

    @property
    def name(self) -> str: ...

    async def query(self, prompt: str, max_tokens: int = 1024) -> str: ...


# --- Provider Implementations ---


class GeminiProvider:
    """Backend using the Google Generative Language ``generateContent`` API.

    Authentication: GEMINI_API_KEY environment variable or explicit key.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gemini-pro",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: int = 60,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds

    @property
    def name(self) -> str:
        return "gemini"

    async def query(self, prompt: str, max_tokens: int = 1024) -> str:
        if not self._api_key:
            raise SummarizerError(
                "Gemini API key not configured (GEMINI_API_KEY)",
                context={"provider": self.name},
            )

        url = f"{self._base_url}/models/{self._model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": max_tokens},
        }
        logger.debug("Sending request to Gemini, prompt length: %d characters", len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, params={"key": self._api_key}, json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            raise SummarizerError(
                f"Gemini API error: {e.response.status_code}",
                context={
                    "provider": self.name,
                    "status_code": e.response.status_code,
                    "response_body": e.response.text[:500],
                },
            ) from e
        except httpx.RequestError as e:
            raise SummarizerError(
                f"Gemini connection error: {e}",
                context={"provider": self.name},
            ) from e
        except ValueError as e:
            raise SummarizerError(
                f"Gemini returned invalid JSON: {e}",
                context={"provider": self.name},
            ) from e

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise SummarizerError(
                "Gemini response format error",
                context={"provider": self.name, "response_body": str(data)[:500]},
            ) from e
        if not isinstance(text, str):
            raise SummarizerError(
                f"Gemini response format error: text is {type(text).__name__}",
                context={"provider": self.name, "response_body": str(data)[:500]},
            )

        logger.info("Gemini response received, length: %d characters", len(text))
        return text


class AnthropicAPIProvider:
    """Backend using the Anthropic Messages API.

    Requires: pip install anthropic
    Authentication: ANTHROPIC_API_KEY environment variable or explicit key.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-6",
        timeout_seconds: int = 60,
    ) -> None:
        try:
            import anthropic
        except ImportError:
            raise SummarizerError(
                "anthropic package not installed. "
                "Install with: pip install investment-notice[anthropic]",
                context={"provider": "anthropic"},
            )
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout_seconds,
        )
        self._model = model

    @property
    def name(self) -> str:
        return "anthropic"

    async def query(self, prompt: str, max_tokens: int = 1024) -> str:
        import anthropic

        try:
            message = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIStatusError as e:
            raise SummarizerError(
                f"Anthropic API error: {e.message}",
                context={"provider": self.name, "status_code": e.status_code},
            ) from e
        except anthropic.APIConnectionError as e:
            raise SummarizerError(
                f"Anthropic connection error: {e}",
                context={"provider": self.name},
            ) from e

        try:
            return message.content[0].text
        except (AttributeError, IndexError, TypeError) as e:
            raise SummarizerError(
                "Anthropic response format error",
                context={"provider": self.name},
            ) from e


class OpenAIAPIProvider:
    """Backend using the OpenAI Chat Completions API.

    Requires: pip install openai
    Authentication: OPENAI_API_KEY environment variable or explicit key.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        timeout_seconds: int = 60,
    ) -> None:
        try:
            import openai
        except ImportError:
            raise SummarizerError(
                "openai package not installed. "
                "Install with: pip install investment-notice[openai]",
                context={"provider": "openai"},
            )
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
        )
        self._model = model

    @property
    def name(self) -> str:
        return "openai"

    async def query(self, prompt: str, max_tokens: int = 1024) -> str:
        import openai

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.APIStatusError as e:
            raise SummarizerError(
                f"OpenAI API error: {e.message}",
                context={"provider": self.name, "status_code": e.status_code},
            ) from e
        except openai.APIConnectionError as e:
            raise SummarizerError(
                f"OpenAI connection error: {e}",
                context={"provider": self.name},
            ) from e

        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as e:
            raise SummarizerError(
                "OpenAI response format error",
                context={"provider": self.name},
            ) from e


# --- Provider Factory ---


def create_backend(config: SummarizerConfig) -> SummarizerBackend:
    """Create a summarizer backend from config."""
    if config.provider == LLMProvider.GEMINI:
        return GeminiProvider(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            timeout_seconds=config.timeout_seconds,
        )
    elif config.provider == LLMProvider.ANTHROPIC:
        return AnthropicAPIProvider(
            api_key=config.api_key,
            model=config.model,
            timeout_seconds=config.timeout_seconds,
        )
    elif config.provider == LLMProvider.OPENAI:
        return OpenAIAPIProvider(
            api_key=config.api_key,
            model=config.model,
            timeout_seconds=config.timeout_seconds,
        )
    else:
        raise SummarizerError(
            f"Unknown summarizer provider: {config.provider}",
            context={"provider": str(config.provider)},
        )


# --- Summarizer ---


class Summarizer:
    """Turns a numeric report into free-text commentary.

    Best effort: every failure, including the overall timeout, surfaces as
    ``SummarizerError`` so the caller can carry on without a narrative.
    """

    def __init__(
        self,
        backend: SummarizerBackend,
        timeout_seconds: float = 60.0,
        max_tokens: int = 1024,
        index_name: str = "CSI 300",
        currency: str = "CNY",
    ) -> None:
        self._backend = backend
        self._timeout = timeout_seconds
        self._max_tokens = max_tokens
        self._index_name = index_name
        self._currency = currency

    @classmethod
    def from_config(
        cls,
        config: SummarizerConfig,
        index_name: str = "CSI 300",
        currency: str = "CNY",
    ) -> Summarizer:
        return cls(
            create_backend(config),
            timeout_seconds=config.timeout_seconds,
            max_tokens=config.max_tokens,
            index_name=index_name,
            currency=currency,
        )

    @property
    def name(self) -> str:
        return self._backend.name

    async def summarize(self, report: AnalysisReport) -> str:
        prompt = build_prompt(report, self._index_name, self._currency)
        try:
            text = await asyncio.wait_for(
                self._backend.query(prompt, max_tokens=self._max_tokens),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise SummarizerError(
                f"{self._backend.name} timed out after {self._timeout}s",
                context={"provider": self._backend.name, "timeout": self._timeout},
            ) from e

        if not isinstance(text, str):
            raise SummarizerError(
                f"{self._backend.name} returned {type(text).__name__} instead of text",
                context={"provider": self._backend.name},
            )
        text = text.strip()
        if not text:
            raise SummarizerError(
                f"{self._backend.name} returned an empty narrative",
                context={"provider": self._backend.name},
            )
        return text
