from dataclasses import dataclass


@dataclass(frozen=True)
class ChatCompletion:
    """Text returned by a chat-completion provider."""

    content: str
    total_tokens: int | None = None


@dataclass(frozen=True)
class AnalysisResult:
    """E2B R3 oriented analysis of an extraction."""

    content: str
    tokens_used: int | None = None


@dataclass(frozen=True)
class NarrativeDraft:
    """Generated ICSR case narrative text."""

    content: str
    tokens_used: int | None = None
