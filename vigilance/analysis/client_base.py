from abc import ABC, abstractmethod

from vigilance.analysis.models import ChatCompletion


class BaseChatClient(ABC):
    """Contract for provider-specific chat-completion clients."""

    @abstractmethod
    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str,
        user_prompt: str,
    ) -> ChatCompletion:
        """Return the provider's reply as plain text plus token usage."""
