from abc import ABC, abstractmethod
from typing import Any


class BaseExtractionClient(ABC):
    """Contract for external AI document-parsing services."""

    @abstractmethod
    def extract(self, file_bytes: bytes, filename: str) -> dict[str, Any]:
        """Upload a document and return the service's extraction as a dict.

        Raises:
            ExtractionError: on any failure.
        """

    def close(self) -> None:
        """Release any open connections."""
