import pytest

from vigilance.pdf.base import BasePdfExtractor
from vigilance.pdf.exceptions import PdfExtractionError
from vigilance.pdf.pdfplumber_adapter import PdfPlumberAdapter
from vigilance.pdf.pymupdf_adapter import PyMuPdfAdapter

ADAPTERS = [PdfPlumberAdapter, PyMuPdfAdapter]


@pytest.mark.parametrize("adapter_cls", ADAPTERS)
class TestPdfAdapters:
    def test_extract_returns_text(
        self, adapter_cls: type[BasePdfExtractor], sample_pdf_bytes: bytes
    ) -> None:
        result = adapter_cls().extract(sample_pdf_bytes)
        assert "Hello PDF World" in result

    def test_extract_multi_page(
        self, adapter_cls: type[BasePdfExtractor], multi_page_pdf_bytes: bytes
    ) -> None:
        result = adapter_cls().extract(multi_page_pdf_bytes)
        assert "Page one content" in result
        assert "Page two content" in result

    def test_extract_empty_pdf_returns_empty_string(
        self, adapter_cls: type[BasePdfExtractor], empty_pdf_bytes: bytes
    ) -> None:
        assert adapter_cls().extract(empty_pdf_bytes) == ""

    def test_extract_raises_on_invalid_bytes(
        self, adapter_cls: type[BasePdfExtractor]
    ) -> None:
        with pytest.raises(PdfExtractionError):
            adapter_cls().extract(b"not a pdf")


class TestExtractForScan:
    def test_returns_extracted_text(self, phi_pdf_bytes: bytes) -> None:
        text = PdfPlumberAdapter().extract_for_scan(phi_pdf_bytes)
        assert "jane.doe@example.com" in text

    def test_falls_back_to_raw_bytes_on_unparseable_input(self) -> None:
        text = PdfPlumberAdapter().extract_for_scan(b"Contact: jane@example.com")
        assert text == "Contact: jane@example.com"
