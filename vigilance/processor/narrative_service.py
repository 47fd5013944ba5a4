from vigilance.analysis.narrative_writer import NarrativeWriter
from vigilance.compliance.models import NarrativeGeneratedDetails
from vigilance.database.models import NarrativeRecord
from vigilance.database.repositories.documents_repository import DocumentsRepository
from vigilance.database.repositories.extractions_repository import ExtractionsRepository
from vigilance.database.repositories.narratives_repository import NarrativesRepository
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.logging.logger import Log
from vigilance.processor.audit import record_event
from vigilance.processor.exceptions import DocumentNotFoundError, NarrativeError

DEFAULT_TEMPLATE = "default"


class NarrativeService:
    """Generates and stores ICSR case narratives for extractions."""

    def __init__(
        self,
        *,
        writer: NarrativeWriter | None,
        doc_repo: DocumentsRepository,
        extraction_repo: ExtractionsRepository,
        narrative_repo: NarrativesRepository,
        log_repo: ProcessingLogsRepository,
    ) -> None:
        self._writer = writer
        self._doc_repo = doc_repo
        self._extraction_repo = extraction_repo
        self._narrative_repo = narrative_repo
        self._log_repo = log_repo

    def generate(
        self,
        extraction_id: int,
        user_id: str,
        template: str | None = None,
        custom_instructions: str | None = None,
    ) -> NarrativeRecord:
        """Write a draft narrative from the extraction's data.

        Raises:
            NarrativeError: if no language model is configured or storing fails.
            ExtractionNotFoundError: if the extraction does not exist.
        """
        if self._writer is None:
            raise NarrativeError("OpenAI API key not configured")

        Log.info(f"Generating narrative for extraction: {extraction_id}")
        extraction = self._extraction_repo.find_by_id(extraction_id)
        filename = self._document_filename(extraction.document_id)

        data_context = extraction.processed_data or extraction.raw_data
        try:
            draft = self._writer.write(data_context, custom_instructions)
        except Exception as exc:
            raise NarrativeError(f"Failed to generate narrative: {exc}") from exc

        template_used = template or DEFAULT_TEMPLATE
        try:
            narrative = self._narrative_repo.create(
                extraction_id=extraction_id,
                user_id=user_id,
                title=f"Case Narrative - {filename or 'Unknown'}",
                content=draft.content,
                template_used=template_used,
                status="draft",
            )
        except Exception as exc:
            raise NarrativeError(f"Failed to create narrative: {exc}") from exc

        record_event(
            self._log_repo,
            user_id=user_id,
            document_id=extraction.document_id,
            details=NarrativeGeneratedDetails(
                narrative_id=narrative.id,
                template=template_used,
                tokens_used=draft.tokens_used,
            ),
        )
        return narrative

    def _document_filename(self, document_id: int) -> str | None:
        try:
            return self._doc_repo.find_by_id(document_id).filename
        except DocumentNotFoundError:
            return None
