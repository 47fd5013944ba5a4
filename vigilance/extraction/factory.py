from vigilance.config.settings import Settings
from vigilance.extraction.base import BaseExtractionClient
from vigilance.extraction.parseur_client_adapter import ParseurClientAdapter


class ExtractionClientFactory:
    """Creates the document-parsing client, if one is configured."""

    @classmethod
    def create(cls, settings: Settings) -> BaseExtractionClient | None:
        """Return a Parseur client, or None when no API key is set."""
        api_key = settings.parseur_api_key.strip()
        if not api_key:
            return None
        return ParseurClientAdapter(
            api_key=api_key,
            base_url=settings.parseur_base_url,
            timeout_seconds=settings.parseur_timeout_seconds,
        )
