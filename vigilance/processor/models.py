from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from vigilance.compliance.models import SecurityScanResult

PDF_MIME_TYPE: Final = "application/pdf"


class FileStatus(StrEnum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"


class StageProgress:
    """Fixed per-stage completion percentages reported for a file."""

    STARTED: Final = 10
    UPLOADED: Final = 20
    DOCUMENT_CREATED: Final = 30
    SCANNED: Final = 50
    EXTRACTED: Final = 80
    COMPLETED: Final = 100


@dataclass(frozen=True)
class UploadedFile:
    """A file submitted for intake."""

    filename: str
    content: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME_TYPE


@dataclass
class FileProgress:
    """Per-file processing state surfaced to callers."""

    id: str
    name: str
    size: int
    status: FileStatus = FileStatus.UPLOADING
    progress: int = 0
    session_id: str | None = None
    document_id: int | None = None
    extraction_id: int | None = None
    security_scan: SecurityScanResult | None = None
    error: str | None = None


@dataclass(frozen=True)
class ProcessDocumentResult:
    """Outcome of the server-side extraction and analysis of one document."""

    success: bool
    extraction_id: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class Notice:
    """User-visible notification."""

    title: str
    description: str
    variant: str = "default"

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"
