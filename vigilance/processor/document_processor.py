from vigilance.analysis.analyzer import E2BAnalyzer
from vigilance.compliance.models import (
    AnalysisCompletedDetails,
    ExtractionCompletedDetails,
    ProcessingCompletedDetails,
    ProcessingStartedDetails,
    StageFailedDetails,
)
from vigilance.database.repositories.documents_repository import DocumentsRepository
from vigilance.database.repositories.extractions_repository import ExtractionsRepository
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.extraction.base import BaseExtractionClient
from vigilance.logging.logger import Log
from vigilance.processor.audit import record_event
from vigilance.processor.exceptions import ProcessorError
from vigilance.processor.models import ProcessDocumentResult
from vigilance.storage.base import BaseStorage


class DocumentProcessor:
    """Runs external extraction and analysis for one stored document.

    Pipeline: download -> extract (Parseur) -> analyze (chat model) ->
    persist extraction -> mark document completed.

    An extraction failure is logged and re-raised so the caller can take its
    fallback path. An analysis failure is logged and the extraction is still
    stored without analysis.
    """

    def __init__(
        self,
        *,
        storage: BaseStorage,
        doc_repo: DocumentsRepository,
        extraction_repo: ExtractionsRepository,
        log_repo: ProcessingLogsRepository,
        extraction_client: BaseExtractionClient | None,
        analyzer: E2BAnalyzer | None,
    ) -> None:
        self._storage = storage
        self._doc_repo = doc_repo
        self._extraction_repo = extraction_repo
        self._log_repo = log_repo
        self._extraction_client = extraction_client
        self._analyzer = analyzer

    def process(
        self,
        document_id: int,
        file_path: str,
        filename: str,
        user_id: str,
    ) -> ProcessDocumentResult:
        Log.info(f"Starting document processing for: {filename}", document_id=document_id)
        record_event(
            self._log_repo,
            user_id=user_id,
            document_id=document_id,
            details=ProcessingStartedDetails(filename=filename, file_path=file_path),
        )
        self._set_status(document_id, "processing")

        extracted_data = self._extract(document_id, file_path, filename, user_id)
        analysis = self._analyze(document_id, extracted_data, user_id)

        try:
            extraction = self._extraction_repo.create(
                document_id=document_id,
                user_id=user_id,
                raw_data=extracted_data,
                processed_data={"analysis": analysis} if analysis else None,
                status="completed",
            )
        except Exception as exc:
            raise ProcessorError(f"Failed to create extraction: {exc}") from exc

        self._set_status(document_id, "completed")
        record_event(
            self._log_repo,
            user_id=user_id,
            document_id=document_id,
            details=ProcessingCompletedDetails(
                extraction_id=extraction.id,
                has_raw_data=extracted_data is not None,
                has_analysis=analysis is not None,
            ),
        )
        Log.info(f"Document {document_id} processed, extraction {extraction.id}")
        return ProcessDocumentResult(success=True, extraction_id=extraction.id)

    def close(self) -> None:
        if self._extraction_client is not None:
            self._extraction_client.close()

    def _extract(
        self,
        document_id: int,
        file_path: str,
        filename: str,
        user_id: str,
    ) -> dict[str, object] | None:
        if self._extraction_client is None:
            Log.info("No extraction service configured, skipping extraction")
            return None

        Log.info("Processing with Parseur AI...", document_id=document_id)
        try:
            file_bytes = self._storage.download(file_path)
            extracted = self._extraction_client.extract(file_bytes, filename)
        except Exception as exc:
            Log.error(f"Parseur processing error: {exc}", document_id=document_id)
            record_event(
                self._log_repo,
                user_id=user_id,
                document_id=document_id,
                details=StageFailedDetails(stage="parseur_extraction", error=str(exc)),
            )
            raise

        record_event(
            self._log_repo,
            user_id=user_id,
            document_id=document_id,
            details=ExtractionCompletedDetails(extracted_fields=len(extracted)),
        )
        return extracted

    def _analyze(
        self,
        document_id: int,
        extracted_data: dict[str, object] | None,
        user_id: str,
    ) -> str | None:
        if self._analyzer is None or not extracted_data:
            return None

        Log.info("Analyzing with OpenAI...", document_id=document_id)
        try:
            result = self._analyzer.analyze(extracted_data)
        except Exception as exc:
            Log.error(f"OpenAI processing error: {exc}", document_id=document_id)
            record_event(
                self._log_repo,
                user_id=user_id,
                document_id=document_id,
                details=StageFailedDetails(stage="openai_analysis", error=str(exc)),
            )
            return None

        record_event(
            self._log_repo,
            user_id=user_id,
            document_id=document_id,
            details=AnalysisCompletedDetails(tokens_used=result.tokens_used),
        )
        return result.content

    def _set_status(self, document_id: int, status: str) -> None:
        try:
            self._doc_repo.update_status(document_id, status)
        except Exception as exc:
            Log.warning(f"Failed to set document status '{status}': {exc}", document_id=document_id)
