from typing import Any

import httpx

from vigilance.extraction.base import BaseExtractionClient
from vigilance.extraction.exceptions import ExtractionError, ExtractionNetworkError


class ParseurClientAdapter(BaseExtractionClient):
    """Extraction client for Parseur's AI extract endpoint."""

    EXTRACT_PATH = "/parser/ai/extract"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.parseur.com",
        timeout_seconds: int = 60,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={"Authorization": f"Token {api_key}"},
            transport=transport,
        )

    def extract(self, file_bytes: bytes, filename: str) -> dict[str, Any]:
        try:
            response = self._client.post(
                self.EXTRACT_PATH,
                files={"file": (filename, file_bytes, "application/pdf")},
            )
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ExtractionNetworkError(f"Parseur network error: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ExtractionNetworkError(f"Parseur transport error: {exc}") from exc

        if response.is_error:
            raise ExtractionError(
                f"Parseur API error: {response.status_code} {response.text}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ExtractionError(f"Parseur returned invalid JSON: {exc}") from exc

        if isinstance(payload, dict):
            return payload
        return {"result": payload}

    def close(self) -> None:
        self._client.close()
