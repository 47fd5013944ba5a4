from abc import ABC, abstractmethod


class BaseStorage(ABC):
    """Contract for the blob store holding uploaded reports."""

    @abstractmethod
    def upload(self, data: bytes, filename: str, user_id: str) -> str:
        """Store *data* and return its storage path."""

    @abstractmethod
    def download(self, path: str) -> bytes:
        """Return the bytes stored at *path*.

        Raises:
            FileNotFoundError: if nothing is stored at *path*.
        """

    @abstractmethod
    def delete(self, path: str) -> None:
        """Remove the blob at *path*; missing blobs are ignored."""

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Return a URL under which *path* is served."""
