from abc import ABC, abstractmethod

from vigilance.logging.logger import Log
from vigilance.pdf.exceptions import PdfExtractionError


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> str:
        """Extract plain text from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Text of all pages joined with newlines, stripped.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """

    def extract_for_scan(self, pdf_bytes: bytes) -> str:
        """Return text suitable for the PHI scan. Never raises.

        A PDF that cannot be parsed is scanned as its raw bytes decoded
        leniently, so text embedded in uncompressed streams is still seen.
        """
        try:
            return self.extract(pdf_bytes)
        except PdfExtractionError as exc:
            Log.warning(f"PDF text extraction failed, scanning raw bytes: {exc}")
            return pdf_bytes.decode("utf-8", errors="ignore")
