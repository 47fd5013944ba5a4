"""Per-file intake sequence.

create session -> upload (retried) -> create document (retried) ->
security scan -> extraction and analysis with fallback -> complete.

The progress tracker and the compliance logger only observe; neither can
stop the pipeline.
"""

from collections.abc import Callable
from typing import Any

from vigilance.compliance.compliance_logger import ComplianceLogger
from vigilance.compliance.encryption import FieldEncryptor
from vigilance.compliance.models import (
    ComplianceEvent,
    FallbackProcessingDetails,
    SecurityScanResult,
)
from vigilance.compliance.phi_scanner import validate_document_security
from vigilance.database.models import DocumentRecord
from vigilance.database.repositories.documents_repository import DocumentsRepository
from vigilance.database.repositories.extractions_repository import ExtractionsRepository
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.logging.logger import Log
from vigilance.pdf.base import BasePdfExtractor
from vigilance.processor.audit import record_event
from vigilance.processor.document_processor import DocumentProcessor
from vigilance.processor.exceptions import ProcessingCancelledError, ProcessorError
from vigilance.processor.models import (
    FileStatus,
    Notice,
    ProcessDocumentResult,
    StageProgress,
    UploadedFile,
)
from vigilance.progress.tracker import ProgressTracker
from vigilance.resilience.cancellation import CancellationToken
from vigilance.resilience.error_logger import ErrorLogger
from vigilance.resilience.retry import RetryConfig, create_fallback_handler, with_retry
from vigilance.storage.base import BaseStorage

TOTAL_STEPS = 5

ProgressReporter = Callable[..., None]
Notifier = Callable[[Notice], None]


class IntakePipeline:
    """Drives one uploaded file through storage, scanning and extraction."""

    def __init__(
        self,
        *,
        user_id: str,
        storage: BaseStorage,
        doc_repo: DocumentsRepository,
        extraction_repo: ExtractionsRepository,
        log_repo: ProcessingLogsRepository,
        document_processor: DocumentProcessor,
        pdf_extractor: BasePdfExtractor,
        tracker: ProgressTracker,
        compliance_logger: ComplianceLogger,
        error_logger: ErrorLogger,
        retry_config: RetryConfig,
        notify: Notifier,
        encryptor: FieldEncryptor | None = None,
    ) -> None:
        self._user_id = user_id
        self._storage = storage
        self._doc_repo = doc_repo
        self._extraction_repo = extraction_repo
        self._log_repo = log_repo
        self._document_processor = document_processor
        self._pdf_extractor = pdf_extractor
        self._tracker = tracker
        self._compliance_logger = compliance_logger
        self._error_logger = error_logger
        self._retry_config = retry_config
        self._notify = notify
        self._encryptor = encryptor

    def process_file(
        self,
        file_id: str,
        upload: UploadedFile,
        cancellation: CancellationToken,
        report: ProgressReporter,
    ) -> None:
        """Run the full sequence; failures end up in *report* and a notice."""
        Log.info(f"Starting enhanced processing for file: {upload.filename}", file_id=file_id)
        session_id: str | None = None
        try:
            session_id = self._tracker.create_processing_session(file_id, TOTAL_STEPS)
            report(session_id=session_id, status=FileStatus.PROCESSING, progress=StageProgress.STARTED)

            file_path = self._upload(upload, cancellation)
            report(progress=StageProgress.UPLOADED)
            self._tracker.create_checkpoint(session_id, "file_uploaded", {"file_path": file_path})()

            document = self._create_document(upload, file_path, cancellation)
            report(document_id=document.id, progress=StageProgress.DOCUMENT_CREATED)
            self._tracker.create_checkpoint(
                session_id, "document_created", {"document_id": document.id}
            )()

            cancellation.raise_if_cancelled("security scan")
            security_scan = self._scan(document, upload)
            report(security_scan=security_scan, progress=StageProgress.SCANNED)
            self._tracker.create_checkpoint(
                session_id,
                "security_scan",
                {
                    "risk_level": security_scan.risk_level.value,
                    "phi_fields_count": len(security_scan.phi_fields),
                },
            )()

            cancellation.raise_if_cancelled("document processing")
            result = self._process_with_fallback(document, file_path, upload.filename)
            if not result.success or result.extraction_id is None:
                raise ProcessorError(result.error or "Processing failed")
            report(progress=StageProgress.EXTRACTED)
            self._tracker.create_checkpoint(
                session_id, "processing_completed", {"extraction_id": result.extraction_id}
            )()

            self._tracker.complete_processing(session_id)
            self._tracker.release(session_id)
            report(
                status=FileStatus.COMPLETED,
                progress=StageProgress.COMPLETED,
                extraction_id=result.extraction_id,
            )
            self._compliance_logger.log_event(
                ComplianceEvent(
                    action="document_processed",
                    document_id=document.id,
                    user_id=self._user_id,
                    phi_fields=security_scan.phi_fields,
                    details={
                        "filename": upload.filename,
                        "security_scan": self._scan_details(security_scan),
                        "processing_session": session_id,
                    },
                )
            )
            self._notify(
                Notice(
                    title="Document processed successfully",
                    description=(
                        f"{upload.filename} has been processed with enhanced security scanning."
                    ),
                )
            )
        except Exception as exc:
            self._handle_failure(file_id, upload, session_id, exc, report)

    def close(self) -> None:
        self._document_processor.close()

    def _upload(self, upload: UploadedFile, cancellation: CancellationToken) -> str:
        path = with_retry(
            lambda: self._storage.upload(upload.content, upload.filename, self._user_id),
            self._retry_config,
            f"Upload file {upload.filename}",
            error_logger=self._error_logger,
            cancellation=cancellation,
        )
        Log.info(f"File uploaded to storage: {path}")
        return path

    def _create_document(
        self,
        upload: UploadedFile,
        file_path: str,
        cancellation: CancellationToken,
    ) -> DocumentRecord:
        return with_retry(
            lambda: self._doc_repo.create(
                user_id=self._user_id,
                filename=upload.filename,
                file_path=file_path,
                file_size=upload.size,
                mime_type=upload.mime_type,
                upload_status="pending",
            ),
            self._retry_config,
            f"Create document record for {upload.filename}",
            error_logger=self._error_logger,
            cancellation=cancellation,
        )

    def _scan(self, document: DocumentRecord, upload: UploadedFile) -> SecurityScanResult:
        text = self._pdf_extractor.extract_for_scan(upload.content)
        result = validate_document_security(document.id, text, self._compliance_logger)
        Log.info(
            f"Security scan: {len(result.phi_fields)} PHI fields, risk {result.risk_level}",
            document_id=document.id,
        )
        return result

    def _process_with_fallback(
        self,
        document: DocumentRecord,
        file_path: str,
        filename: str,
    ) -> ProcessDocumentResult:
        process = create_fallback_handler(
            lambda: self._document_processor.process(
                document.id, file_path, filename, self._user_id
            ),
            lambda: self._fallback_processing(document, filename),
            f"Process document {filename}",
            error_logger=self._error_logger,
        )
        return process()

    def _fallback_processing(self, document: DocumentRecord, filename: str) -> ProcessDocumentResult:
        record_event(
            self._log_repo,
            user_id=self._user_id,
            document_id=document.id,
            details=FallbackProcessingDetails(),
        )
        extraction = self._extraction_repo.create(
            document_id=document.id,
            user_id=self._user_id,
            raw_data={"filename": filename, "fallback": True},
            status="completed",
        )
        try:
            self._doc_repo.update_status(document.id, "completed")
        except Exception as exc:
            Log.warning(f"Failed to mark document completed after fallback: {exc}")
        return ProcessDocumentResult(success=True, extraction_id=extraction.id)

    def _scan_details(self, scan: SecurityScanResult) -> dict[str, Any]:
        details = scan.summary()
        if self._encryptor is not None:
            details["phi_fields"] = [
                f.to_dict() for f in self._encryptor.encrypt_fields(scan.phi_fields)
            ]
        return details

    def _handle_failure(
        self,
        file_id: str,
        upload: UploadedFile,
        session_id: str | None,
        exc: Exception,
        report: ProgressReporter,
    ) -> None:
        cancelled = isinstance(exc, ProcessingCancelledError)
        if cancelled:
            Log.warning(f"Processing cancelled for {upload.filename}", file_id=file_id)
        else:
            Log.error(f"Enhanced processing error: {exc}", file_id=file_id)
        if session_id is not None:
            self._tracker.fail_processing(session_id, str(exc))
            self._tracker.release(session_id)
        report(
            status=FileStatus.CANCELLED if cancelled else FileStatus.ERROR,
            error=str(exc) or type(exc).__name__,
        )
        self._notify(
            Notice(
                title="Processing cancelled" if cancelled else "Processing failed",
                description=str(exc) or "Unknown error occurred",
                variant="destructive",
            )
        )
