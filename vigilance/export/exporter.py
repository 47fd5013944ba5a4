import json
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Final

from vigilance.compliance.compliance_logger import ComplianceLogger
from vigilance.compliance.identity import static_identity
from vigilance.compliance.models import ComplianceEvent
from vigilance.compliance.phi_scanner import detect_phi, sanitize_for_export
from vigilance.config.settings import Settings
from vigilance.database.repositories.documents_repository import DocumentsRepository
from vigilance.database.repositories.extractions_repository import ExtractionsRepository
from vigilance.database.repositories.narratives_repository import NarrativesRepository
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.export.exceptions import ExportError
from vigilance.export.formats import (
    MIME_TYPES,
    ExportFormat,
    flatten_for_csv,
    to_csv,
    to_json,
    to_xml,
)
from vigilance.logging.logger import Log

DATA_TYPES: Final = ("documents", "extractions", "narratives", "logs")


@dataclass(frozen=True)
class ExportResult:
    filename: str
    content: str
    mime_type: str
    phi_detected: bool
    redacted: bool


def _plain(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def _records(records: list[Any]) -> list[dict[str, Any]]:
    return [_plain(asdict(record)) for record in records]


def enrich_documents(
    documents: list[dict[str, Any]],
    extractions: list[dict[str, Any]],
    narratives: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Attach each document's extractions and their narratives."""
    enriched = []
    for document in documents:
        doc_extractions = [e for e in extractions if e["document_id"] == document["id"]]
        extraction_ids = {e["id"] for e in doc_extractions}
        doc_narratives = [n for n in narratives if n["extraction_id"] in extraction_ids]
        enriched.append(
            {**document, "extractions": doc_extractions, "narratives": doc_narratives}
        )
    return enriched


class DataExporter:
    """Exports stored records as CSV, JSON or XML.

    PHI found in the collected data is redacted unless the caller explicitly
    includes it. Every export is recorded as a ``data_export`` compliance event.
    """

    def __init__(
        self,
        doc_repo: DocumentsRepository,
        extraction_repo: ExtractionsRepository,
        narrative_repo: NarrativesRepository,
        log_repo: ProcessingLogsRepository,
        compliance_logger: ComplianceLogger,
    ) -> None:
        self._doc_repo = doc_repo
        self._extraction_repo = extraction_repo
        self._narrative_repo = narrative_repo
        self._log_repo = log_repo
        self._compliance_logger = compliance_logger

    def export(
        self,
        data_types: list[str],
        export_format: str = ExportFormat.JSON,
        include_phi: bool = False,
        user_id: str | None = None,
    ) -> ExportResult:
        """Collect, scan, optionally redact and serialize the selected data.

        Raises:
            ExportError: on an empty or unknown selection or unknown format.
        """
        if not data_types:
            raise ExportError("Please select at least one data type to export.")
        unknown = [t for t in data_types if t not in DATA_TYPES]
        if unknown:
            raise ExportError(f"Unknown data types: {', '.join(unknown)}")
        try:
            fmt = ExportFormat(export_format)
        except ValueError as exc:
            raise ExportError(f"Unsupported export format: {export_format}") from exc

        data = self._collect(data_types, user_id)
        phi_detected = len(detect_phi(json.dumps(data, default=str))) > 0
        record_count = sum(len(v) for v in data.values() if isinstance(v, list))

        self._compliance_logger.log_event(
            ComplianceEvent(
                action="data_export",
                user_id=user_id,
                details={
                    "data_types": list(data_types),
                    "export_format": fmt.value,
                    "phi_detected": phi_detected,
                    "phi_included": include_phi,
                    "record_count": record_count,
                },
            )
        )

        redacted = phi_detected and not include_phi
        if redacted:
            Log.info("PHI detected in export data, redacting")
            data = sanitize_for_export(data)

        filename = (
            f"export_{'_'.join(data_types)}_{datetime.now().date().isoformat()}.{fmt.value}"
        )
        Log.info(f"Exported {record_count} records", filename=filename, redacted=redacted)
        return ExportResult(
            filename=filename,
            content=self._render(data, fmt),
            mime_type=MIME_TYPES[fmt],
            phi_detected=phi_detected,
            redacted=redacted,
        )

    def _collect(self, data_types: list[str], user_id: str | None) -> dict[str, Any]:
        data: dict[str, Any] = {}
        needs_extractions = "documents" in data_types or "extractions" in data_types
        needs_narratives = "documents" in data_types or "narratives" in data_types
        extractions: list[dict[str, Any]] = []
        narratives: list[dict[str, Any]] = []
        if needs_extractions:
            extractions = _records(self._extraction_repo.list_all(user_id=user_id))
        if needs_narratives:
            narratives = _records(self._narrative_repo.list_all(user_id=user_id))

        if "documents" in data_types:
            documents = _records(self._doc_repo.list_all(user_id=user_id))
            data["documents"] = enrich_documents(documents, extractions, narratives)
        if "extractions" in data_types:
            data["extractions"] = extractions
        if "narratives" in data_types:
            data["narratives"] = narratives
        if "logs" in data_types:
            data["processing_logs"] = _records(self._log_repo.list_all(user_id=user_id))
        return data

    def _render(self, data: dict[str, Any], fmt: ExportFormat) -> str:
        if fmt is ExportFormat.CSV:
            return to_csv(flatten_for_csv(data))
        if fmt is ExportFormat.XML:
            return to_xml([data], root_element="export")
        return to_json(data)


def build_exporter(settings: Settings, user_id: str) -> DataExporter:
    """Build a DataExporter whose audit rows are attributed to *user_id*."""
    log_repo = ProcessingLogsRepository()
    return DataExporter(
        DocumentsRepository(),
        ExtractionsRepository(),
        NarrativesRepository(),
        log_repo,
        ComplianceLogger(
            log_repo,
            identity=static_identity(user_id),
            fallback_user_id=settings.system_user_id,
        ),
    )
