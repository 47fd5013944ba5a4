from vigilance.analysis.client_base import BaseChatClient
from vigilance.analysis.example_client_adapter import ExampleClientAdapter
from vigilance.analysis.openai_client_adapter import OpenAIClientAdapter
from vigilance.config.settings import Settings

SUPPORTED_PROVIDERS = ("example", "openai", "openai_compatible")


class ChatClientFactory:
    """Creates the configured chat-completion client."""

    @classmethod
    def create(cls, settings: Settings) -> BaseChatClient | None:
        """Return a client, or None when the provider has no API key.

        Raises:
            ValueError: for an unknown provider or a missing compatible base URL.
        """
        provider = settings.analysis_provider.lower()
        if provider == "example":
            return ExampleClientAdapter()
        if provider not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Unknown analysis provider '{provider}'. Choose from: {list(SUPPORTED_PROVIDERS)}"
            )
        if not settings.openai_api_key.strip():
            return None
        return OpenAIClientAdapter(
            api_key=settings.openai_api_key,
            timeout_seconds=settings.openai_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        url = settings.openai_compatible_base_url.strip()
        if not url:
            raise ValueError(
                "openai_compatible_base_url is required for analysis_provider=openai_compatible"
            )
        return url
