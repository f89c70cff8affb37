"""Optional AI narrative for finished reports."""

from investment_notice.summarizer.llm import (
    AnthropicAPIProvider,
    GeminiProvider,
    OpenAIAPIProvider,
    Summarizer,
    SummarizerBackend,
    build_prompt,
    create_backend,
)

__all__ = [
    "Summarizer",
    "SummarizerBackend",
    "GeminiProvider",
    "AnthropicAPIProvider",
    "OpenAIAPIProvider",
    "create_backend",
    "build_prompt",
]
