from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class DocumentRecord:
    """Represents a row from the documents table."""

    id: int
    user_id: str
    filename: str
    file_path: str
    file_size: int
    mime_type: str
    upload_status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ExtractionRecord:
    """Represents a row from the extractions table."""

    id: int
    document_id: int
    user_id: str
    status: str
    raw_data: dict[str, Any] | None = None
    processed_data: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class NarrativeRecord:
    """Represents a row from the narratives table."""

    id: int
    extraction_id: int
    user_id: str
    title: str
    content: str
    template_used: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class ProcessingLogRecord:
    """Represents a row from the processing_logs table."""

    id: int
    user_id: str
    action: str
    details: Any
    document_id: str | None = None
    timestamp: datetime | None = None
