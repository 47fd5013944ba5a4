import threading
import uuid
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from pathlib import Path
from types import TracebackType

from vigilance.analysis.analyzer import E2BAnalyzer
from vigilance.analysis.factory import ChatClientFactory
from vigilance.analysis.narrative_writer import NarrativeWriter
from vigilance.compliance.compliance_logger import ComplianceLogger
from vigilance.compliance.encryption import FieldEncryptor
from vigilance.compliance.identity import static_identity
from vigilance.config.settings import Settings
from vigilance.database.models import NarrativeRecord
from vigilance.database.repositories.documents_repository import DocumentsRepository
from vigilance.database.repositories.extractions_repository import ExtractionsRepository
from vigilance.database.repositories.narratives_repository import NarrativesRepository
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.extraction.factory import ExtractionClientFactory
from vigilance.logging.logger import Log
from vigilance.pdf.factory import PdfExtractorFactory
from vigilance.processor.document_processor import DocumentProcessor
from vigilance.processor.models import FileProgress, FileStatus, Notice, UploadedFile
from vigilance.processor.narrative_service import NarrativeService
from vigilance.processor.pipeline import IntakePipeline
from vigilance.progress.cache import ProgressCache
from vigilance.progress.tracker import ProgressTracker
from vigilance.resilience.cancellation import CancellationToken
from vigilance.resilience.error_logger import ErrorLogger
from vigilance.resilience.retry import RetryConfig
from vigilance.storage.local_storage import LocalStorage
from vigilance.worker.notices import NoticeBoard

NARRATIVE_TEMPLATE = "e2b_r3"


def new_file_id() -> str:
    return uuid.uuid4().hex[:9]


class IntakeQueue:
    """Accepts PDF uploads and processes each as an independent task.

    Tasks share nothing but the database and storage; there is no ordering
    between files. Each task gets its own cancellation token.
    """

    def __init__(
        self,
        pipeline: IntakePipeline,
        narrative_service: NarrativeService,
        notice_board: NoticeBoard,
        user_id: str,
        max_workers: int = 4,
        id_factory: Callable[[], str] = new_file_id,
    ) -> None:
        self._pipeline = pipeline
        self._narrative_service = narrative_service
        self._notice_board = notice_board
        self._user_id = user_id
        self._id_factory = id_factory
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="intake"
        )
        self._lock = threading.Lock()
        self._files: dict[str, FileProgress] = {}
        self._futures: dict[str, Future[None]] = {}
        self._tokens: dict[str, CancellationToken] = {}

    def submit(self, uploads: list[UploadedFile]) -> list[FileProgress]:
        """Queue every PDF in *uploads*; anything else is rejected with a notice."""
        accepted = [upload for upload in uploads if upload.is_pdf]
        if len(accepted) != len(uploads):
            self._notice_board.post(
                Notice(
                    title="Invalid file format",
                    description="Only PDF files are supported for Canada Vigilance reports.",
                    variant="destructive",
                )
            )

        queued: list[FileProgress] = []
        for upload in accepted:
            file_id = self._id_factory()
            progress = FileProgress(id=file_id, name=upload.filename, size=upload.size)
            token = CancellationToken()
            with self._lock:
                self._files[file_id] = progress
                self._tokens[file_id] = token
            queued.append(replace(progress))
            future = self._executor.submit(self._run, file_id, upload, token)
            with self._lock:
                self._futures[file_id] = future
        return queued

    def progress(self, file_id: str) -> FileProgress | None:
        with self._lock:
            progress = self._files.get(file_id)
            return replace(progress) if progress is not None else None

    def files(self) -> list[FileProgress]:
        with self._lock:
            return [replace(progress) for progress in self._files.values()]

    @property
    def notices(self) -> list[Notice]:
        return self._notice_board.notices

    def cancel(self, file_id: str) -> bool:
        """Signal a file's task to stop at its next stage boundary."""
        with self._lock:
            token = self._tokens.get(file_id)
            future = self._futures.get(file_id)
        if token is None or future is None or future.done():
            return False
        token.cancel()
        return True

    def wait(self, timeout: float | None = None) -> list[FileProgress]:
        """Block until every queued task finished (or *timeout* elapsed)."""
        with self._lock:
            futures = list(self._futures.values())
        wait(futures, timeout=timeout)
        return self.files()

    def generate_narrative(
        self,
        extraction_id: int,
        custom_instructions: str | None = None,
    ) -> NarrativeRecord | None:
        """Generate a case narrative; failures become an error notice."""
        try:
            narrative = self._narrative_service.generate(
                extraction_id,
                self._user_id,
                template=NARRATIVE_TEMPLATE,
                custom_instructions=custom_instructions,
            )
        except Exception as exc:
            Log.error(f"Narrative generation error: {exc}", extraction_id=extraction_id)
            self._notice_board.post(
                Notice(
                    title="Generation failed",
                    description=str(exc) or "Failed to generate narrative",
                    variant="destructive",
                )
            )
            return None
        self._notice_board.post(
            Notice(
                title="Narrative generated",
                description="Case narrative has been generated successfully.",
            )
        )
        return narrative

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        """Stop accepting work and close the pipeline's external clients."""
        self._executor.shutdown(wait=wait_for_tasks)
        self._pipeline.close()

    def __enter__(self) -> "IntakeQueue":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()

    def _run(self, file_id: str, upload: UploadedFile, token: CancellationToken) -> None:
        try:
            self._pipeline.process_file(
                file_id,
                upload,
                token,
                lambda **changes: self._update(file_id, **changes),
            )
        except Exception as exc:
            Log.exception(f"Unhandled error in intake task: {exc}", file_id=file_id)
            self._update(file_id, status=FileStatus.ERROR, error=str(exc))

    def _update(self, file_id: str, **changes: object) -> None:
        with self._lock:
            progress = self._files[file_id]
            for name, value in changes.items():
                setattr(progress, name, value)


def build_intake_queue(
    settings: Settings,
    user_id: str,
    notice_listener: Callable[[Notice], None] | None = None,
) -> IntakeQueue:
    """Build an IntakeQueue with all required adapters for *user_id*."""
    identity = static_identity(user_id)
    storage = LocalStorage(
        files_root=Path(settings.storage_root),
        public_base_url=settings.storage_public_base_url,
    )
    doc_repo = DocumentsRepository()
    extraction_repo = ExtractionsRepository()
    narrative_repo = NarrativesRepository()
    log_repo = ProcessingLogsRepository()

    chat_client = ChatClientFactory.create(settings)
    analyzer = (
        E2BAnalyzer(
            client=chat_client,
            model=settings.openai_model_name,
            temperature=settings.analysis_temperature,
            max_tokens=settings.analysis_max_tokens,
        )
        if chat_client is not None
        else None
    )
    writer = (
        NarrativeWriter(
            client=chat_client,
            model=settings.openai_model_name,
            temperature=settings.narrative_temperature,
            max_tokens=settings.narrative_max_tokens,
        )
        if chat_client is not None
        else None
    )

    notice_board = NoticeBoard(notice_listener)
    compliance_logger = ComplianceLogger(
        log_repo, identity=identity, fallback_user_id=settings.system_user_id
    )
    pipeline = IntakePipeline(
        user_id=user_id,
        storage=storage,
        doc_repo=doc_repo,
        extraction_repo=extraction_repo,
        log_repo=log_repo,
        document_processor=DocumentProcessor(
            storage=storage,
            doc_repo=doc_repo,
            extraction_repo=extraction_repo,
            log_repo=log_repo,
            extraction_client=ExtractionClientFactory.create(settings),
            analyzer=analyzer,
        ),
        pdf_extractor=PdfExtractorFactory.create(settings),
        tracker=ProgressTracker(log_repo, ProgressCache(), identity=identity),
        compliance_logger=compliance_logger,
        error_logger=ErrorLogger(log_repo, identity=identity),
        retry_config=RetryConfig.from_settings(settings),
        notify=notice_board.post,
        encryptor=(
            FieldEncryptor(settings.phi_encryption_key) if settings.phi_encryption_key else None
        ),
    )
    narrative_service = NarrativeService(
        writer=writer,
        doc_repo=doc_repo,
        extraction_repo=extraction_repo,
        narrative_repo=narrative_repo,
        log_repo=log_repo,
    )
    return IntakeQueue(
        pipeline,
        narrative_service,
        notice_board,
        user_id,
        max_workers=settings.max_concurrent_files,
    )
