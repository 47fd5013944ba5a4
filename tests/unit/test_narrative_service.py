from unittest.mock import MagicMock

import pytest

from vigilance.analysis.models import NarrativeDraft
from vigilance.analysis.narrative_writer import NarrativeWriter
from vigilance.database.models import DocumentRecord, ExtractionRecord, NarrativeRecord
from vigilance.database.repositories.documents_repository import DocumentsRepository
from vigilance.database.repositories.extractions_repository import ExtractionsRepository
from vigilance.database.repositories.narratives_repository import NarrativesRepository
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.processor.exceptions import (
    DocumentNotFoundError,
    ExtractionNotFoundError,
    NarrativeError,
)
from vigilance.processor.narrative_service import NarrativeService


def _make_service(
    writer: MagicMock | None = None,
) -> tuple[NarrativeService, dict[str, MagicMock]]:
    mocks = {
        "doc_repo": MagicMock(spec=DocumentsRepository),
        "extraction_repo": MagicMock(spec=ExtractionsRepository),
        "narrative_repo": MagicMock(spec=NarrativesRepository),
        "log_repo": MagicMock(spec=ProcessingLogsRepository),
    }
    mocks["extraction_repo"].find_by_id.return_value = ExtractionRecord(
        id=11,
        document_id=5,
        user_id="u-1",
        status="completed",
        raw_data={"drug": "Aspirin"},
        processed_data={"analysis": "E2B"},
    )
    mocks["doc_repo"].find_by_id.return_value = DocumentRecord(
        id=5,
        user_id="u-1",
        filename="report.pdf",
        file_path="u-1/x_report.pdf",
        file_size=10,
        mime_type="application/pdf",
        upload_status="completed",
    )
    mocks["narrative_repo"].create.return_value = NarrativeRecord(
        id=3,
        extraction_id=11,
        user_id="u-1",
        title="Case Narrative - report.pdf",
        content="Narrative",
        template_used="e2b_r3",
        status="draft",
    )
    service = NarrativeService(
        writer=writer,
        doc_repo=mocks["doc_repo"],
        extraction_repo=mocks["extraction_repo"],
        narrative_repo=mocks["narrative_repo"],
        log_repo=mocks["log_repo"],
    )
    return service, mocks


def _writer(draft: NarrativeDraft | Exception) -> MagicMock:
    writer = MagicMock(spec=NarrativeWriter)
    if isinstance(draft, Exception):
        writer.write.side_effect = draft
    else:
        writer.write.return_value = draft
    return writer


class TestNarrativeService:
    def test_generates_and_stores_draft(self) -> None:
        writer = _writer(NarrativeDraft(content="Narrative", tokens_used=321))
        service, mocks = _make_service(writer)

        narrative = service.generate(11, "u-1", template="e2b_r3", custom_instructions="brief")

        assert narrative.id == 3
        writer.write.assert_called_once_with({"analysis": "E2B"}, "brief")
        assert mocks["narrative_repo"].create.call_args.kwargs == {
            "extraction_id": 11,
            "user_id": "u-1",
            "title": "Case Narrative - report.pdf",
            "content": "Narrative",
            "template_used": "e2b_r3",
            "status": "draft",
        }
        details = mocks["log_repo"].append.call_args.kwargs["details"]
        assert details.action == "narrative_generated"
        assert details.to_details() == {
            "narrative_id": 3,
            "template": "e2b_r3",
            "tokens_used": 321,
        }

    def test_uses_raw_data_without_processed_data(self) -> None:
        writer = _writer(NarrativeDraft(content="N"))
        service, mocks = _make_service(writer)
        extraction = mocks["extraction_repo"].find_by_id.return_value
        extraction.processed_data = None
        service.generate(11, "u-1")
        assert writer.write.call_args.args[0] == {"drug": "Aspirin"}
        assert mocks["narrative_repo"].create.call_args.kwargs["template_used"] == "default"

    def test_missing_document_gives_unknown_title(self) -> None:
        service, mocks = _make_service(_writer(NarrativeDraft(content="N")))
        mocks["doc_repo"].find_by_id.side_effect = DocumentNotFoundError("gone")
        service.generate(11, "u-1")
        assert mocks["narrative_repo"].create.call_args.kwargs["title"] == "Case Narrative - Unknown"

    def test_requires_language_model(self) -> None:
        service, _ = _make_service(None)
        with pytest.raises(NarrativeError, match="not configured"):
            service.generate(11, "u-1")

    def test_unknown_extraction_propagates(self) -> None:
        service, mocks = _make_service(_writer(NarrativeDraft(content="N")))
        mocks["extraction_repo"].find_by_id.side_effect = ExtractionNotFoundError("nope")
        with pytest.raises(ExtractionNotFoundError):
            service.generate(404, "u-1")

    def test_model_failure_is_wrapped(self) -> None:
        service, mocks = _make_service(_writer(RuntimeError("quota exceeded")))
        with pytest.raises(NarrativeError, match="quota exceeded"):
            service.generate(11, "u-1")
        mocks["narrative_repo"].create.assert_not_called()
