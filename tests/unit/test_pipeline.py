from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from vigilance.compliance.compliance_logger import ComplianceLogger
from vigilance.compliance.encryption import FieldEncryptor
from vigilance.compliance.identity import static_identity
from vigilance.compliance.models import RiskLevel
from vigilance.database.models import DocumentRecord, ExtractionRecord
from vigilance.database.repositories.documents_repository import DocumentsRepository
from vigilance.database.repositories.extractions_repository import ExtractionsRepository
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.extraction.exceptions import ExtractionError
from vigilance.pdf.pdfplumber_adapter import PdfPlumberAdapter
from vigilance.processor.document_processor import DocumentProcessor
from vigilance.processor.models import (
    FileProgress,
    FileStatus,
    Notice,
    ProcessDocumentResult,
    UploadedFile,
)
from vigilance.processor.pipeline import IntakePipeline
from vigilance.progress.cache import ProgressCache
from vigilance.progress.tracker import ProgressTracker
from vigilance.resilience.cancellation import CancellationToken
from vigilance.resilience.error_logger import ErrorLogger
from vigilance.resilience.retry import RetryConfig
from vigilance.storage.local_storage import LocalStorage

FAST_RETRY = RetryConfig(max_attempts=3, base_delay_ms=0, max_delay_ms=0, jitter_ms=0)


class Harness:
    """An IntakePipeline wired to in-memory collaborators."""

    def __init__(self, tmp_path: Path, encryptor: FieldEncryptor | None = None) -> None:
        self.log_repo = MagicMock(spec=ProcessingLogsRepository)
        self.log_repo.find_latest_progress.return_value = None
        self.doc_repo = MagicMock(spec=DocumentsRepository)
        self.doc_repo.create.return_value = DocumentRecord(
            id=5,
            user_id="u-1",
            filename="report.pdf",
            file_path="u-1/x_report.pdf",
            file_size=10,
            mime_type="application/pdf",
            upload_status="pending",
        )
        self.extraction_repo = MagicMock(spec=ExtractionsRepository)
        self.extraction_repo.create.return_value = ExtractionRecord(
            id=99, document_id=5, user_id="u-1", status="completed"
        )
        self.document_processor = MagicMock(spec=DocumentProcessor)
        self.document_processor.process.return_value = ProcessDocumentResult(
            success=True, extraction_id=11
        )
        self.storage = LocalStorage(files_root=tmp_path)
        identity = static_identity("u-1")
        self.cache = ProgressCache()
        self.tracker = ProgressTracker(self.log_repo, self.cache, identity=identity)
        self.notices: list[Notice] = []
        self.pipeline = IntakePipeline(
            user_id="u-1",
            storage=self.storage,
            doc_repo=self.doc_repo,
            extraction_repo=self.extraction_repo,
            log_repo=self.log_repo,
            document_processor=self.document_processor,
            pdf_extractor=PdfPlumberAdapter(),
            tracker=self.tracker,
            compliance_logger=ComplianceLogger(self.log_repo, identity=identity),
            error_logger=ErrorLogger(self.log_repo, identity=identity),
            retry_config=FAST_RETRY,
            notify=self.notices.append,
            encryptor=encryptor,
        )
        self.progress = FileProgress(id="f1", name="report.pdf", size=10)
        self.percentages: list[int] = []

    def report(self, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(self.progress, name, value)
        if "progress" in changes:
            self.percentages.append(changes["progress"])

    def run(self, upload: UploadedFile, token: CancellationToken | None = None) -> FileProgress:
        self.pipeline.process_file("f1", upload, token or CancellationToken(), self.report)
        return self.progress

    def rows(self, action: str) -> list[dict[str, Any]]:
        return [
            c.kwargs["details"].to_details()
            for c in self.log_repo.append.call_args_list
            if c.kwargs["details"].action == action
        ]


@pytest.fixture()
def upload(phi_pdf_bytes: bytes) -> UploadedFile:
    return UploadedFile(
        filename="report.pdf", content=phi_pdf_bytes, mime_type="application/pdf"
    )


class TestIntakePipelineSuccess:
    def test_email_report_completes_with_medium_risk(
        self, tmp_path: Path, upload: UploadedFile
    ) -> None:
        harness = Harness(tmp_path)
        progress = harness.run(upload)

        assert progress.status is FileStatus.COMPLETED
        assert progress.progress == 100
        assert progress.document_id == 5
        assert progress.extraction_id == 11
        assert progress.security_scan is not None
        assert progress.security_scan.risk_level is RiskLevel.MEDIUM
        assert harness.percentages == [10, 20, 30, 50, 80, 100]

        [scan_row] = harness.rows("compliance_phi_detection")
        assert scan_row["phi_detected"] is True
        [processed] = harness.rows("compliance_document_processed")
        assert processed["filename"] == "report.pdf"
        assert processed["security_scan"]["risk_level"] == "MEDIUM"
        assert processed["processing_session"] == progress.session_id

        assert harness.notices[-1].title == "Document processed successfully"
        assert not harness.notices[-1].is_error

    def test_stored_file_is_passed_to_processor(
        self, tmp_path: Path, upload: UploadedFile
    ) -> None:
        harness = Harness(tmp_path)
        harness.run(upload)
        document_id, file_path, filename, user_id = harness.document_processor.process.call_args.args
        assert document_id == 5
        assert harness.storage.download(file_path) == upload.content
        assert (filename, user_id) == ("report.pdf", "u-1")
        assert harness.doc_repo.create.call_args.kwargs["file_path"] == file_path

    def test_session_checkpoints_and_completes(
        self, tmp_path: Path, upload: UploadedFile
    ) -> None:
        harness = Harness(tmp_path)
        progress = harness.run(upload)
        assert progress.session_id is not None
        session = harness.rows("progress_update")[-1]
        assert session["id"] == progress.session_id
        assert session["status"] == "completed"
        assert session["completed_steps"] == 4
        assert session["last_checkpoint"] == "processing_completed"
        assert session["metadata"]["extraction_id"] == 11
        assert session["metadata"]["risk_level"] == "MEDIUM"
        assert progress.session_id not in harness.cache

    def test_encryptor_hides_phi_values_in_audit_row(
        self, tmp_path: Path, upload: UploadedFile
    ) -> None:
        encryptor = FieldEncryptor(FieldEncryptor.generate_key())
        harness = Harness(tmp_path, encryptor=encryptor)
        harness.run(upload)
        [processed] = harness.rows("compliance_document_processed")
        [field] = processed["security_scan"]["phi_fields"]
        assert field["is_encrypted"] is True
        assert encryptor.decrypt(field["value"]) == "jane.doe@example.com"


class TestIntakePipelineFallback:
    def test_extraction_failure_uses_fallback_record(
        self, tmp_path: Path, upload: UploadedFile
    ) -> None:
        harness = Harness(tmp_path)
        harness.document_processor.process.side_effect = ExtractionError("Parseur down")

        progress = harness.run(upload)

        assert progress.status is FileStatus.COMPLETED
        assert progress.extraction_id == 99
        create_kwargs = harness.extraction_repo.create.call_args.kwargs
        assert create_kwargs["raw_data"] == {"filename": "report.pdf", "fallback": True}
        assert create_kwargs["status"] == "completed"
        assert harness.rows("fallback_processing") == [{"reason": "Primary processing failed"}]
        contexts = [row["context"] for row in harness.rows("error_occurred")]
        assert contexts == ["Process document report.pdf - Primary operation failed, using fallback"]

    def test_fallback_failure_fails_the_file(self, tmp_path: Path, upload: UploadedFile) -> None:
        harness = Harness(tmp_path)
        harness.document_processor.process.side_effect = ExtractionError("Parseur down")
        harness.extraction_repo.create.side_effect = RuntimeError("db down")

        progress = harness.run(upload)

        assert progress.status is FileStatus.ERROR
        assert progress.error == "db down"
        assert harness.notices[-1].title == "Processing failed"
        assert harness.notices[-1].is_error


class TestIntakePipelineRetries:
    def test_transient_document_insert_failure_is_retried(
        self, tmp_path: Path, upload: UploadedFile
    ) -> None:
        harness = Harness(tmp_path)
        record = harness.doc_repo.create.return_value
        harness.doc_repo.create.side_effect = [RuntimeError("timeout"), record]

        progress = harness.run(upload)

        assert progress.status is FileStatus.COMPLETED
        assert harness.doc_repo.create.call_count == 2
        [error_row] = harness.rows("error_occurred")
        assert error_row["attempt"] == 1
        assert error_row["context"] == "Create document record for report.pdf"

    def test_exhausted_retries_fail_the_session(
        self, tmp_path: Path, upload: UploadedFile
    ) -> None:
        harness = Harness(tmp_path)
        harness.doc_repo.create.side_effect = RuntimeError("db unavailable")

        progress = harness.run(upload)

        assert progress.status is FileStatus.ERROR
        assert progress.error == "db unavailable"
        assert harness.doc_repo.create.call_count == 3
        session = harness.rows("progress_update")[-1]
        assert session["status"] == "failed"
        assert session["metadata"]["error"] == "db unavailable"
        assert len(harness.cache) == 0
        harness.document_processor.process.assert_not_called()


class TestIntakePipelineCancellation:
    def test_cancelled_before_start(self, tmp_path: Path, upload: UploadedFile) -> None:
        harness = Harness(tmp_path)
        token = CancellationToken()
        token.cancel()

        progress = harness.run(upload, token)

        assert progress.status is FileStatus.CANCELLED
        assert harness.notices[-1].title == "Processing cancelled"
        harness.doc_repo.create.assert_not_called()

    def test_cancel_between_stages(self, tmp_path: Path, upload: UploadedFile) -> None:
        harness = Harness(tmp_path)
        token = CancellationToken()
        record = harness.doc_repo.create.return_value

        def create_and_cancel(**_: Any) -> DocumentRecord:
            token.cancel()
            return record

        harness.doc_repo.create.side_effect = create_and_cancel

        progress = harness.run(upload, token)

        assert progress.status is FileStatus.CANCELLED
        assert progress.document_id == 5
        assert harness.rows("compliance_phi_detection") == []
        harness.document_processor.process.assert_not_called()
