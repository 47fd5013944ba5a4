import pytest

from vigilance.compliance.identity import static_identity
from vigilance.compliance.models import GenericDetails, ProgressUpdateDetails
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.progress.cache import ProgressCache
from vigilance.progress.models import SessionStatus
from vigilance.progress.tracker import ProgressTracker


def _progress(session_id: str, step: str, completed: int) -> ProgressUpdateDetails:
    return ProgressUpdateDetails(
        id=session_id,
        current_step=step,
        total_steps=5,
        completed_steps=completed,
        status="running",
        last_checkpoint=step,
    )


@pytest.mark.integration
class TestProcessingLogsRepository:
    def test_append_and_list(self, test_user_id: str) -> None:
        repo = ProcessingLogsRepository()
        repo.append(
            user_id=test_user_id,
            document_id=f"{test_user_id}-file",
            details=GenericDetails(action="custom_event", payload={"k": "v"}),
        )
        [row] = repo.list_all(document_id=f"{test_user_id}-file")
        assert row.action == "custom_event"
        assert row.details == {"k": "v"}
        assert row.user_id == test_user_id

    def test_list_for_owner_is_not_capped(self, test_user_id: str) -> None:
        repo = ProcessingLogsRepository()
        for index in range(3):
            repo.append(
                user_id=test_user_id,
                document_id=f"{test_user_id}-file",
                details=GenericDetails(action="custom_event", payload={"n": index}),
            )
        rows = repo.list_all(user_id=test_user_id)
        assert [row.details["n"] for row in rows] == [2, 1, 0]
        assert len(repo.list_all(user_id=test_user_id, limit=2)) == 2
        assert repo.list_all(user_id=f"{test_user_id}-other") == []

    def test_find_latest_progress_returns_newest(self, test_user_id: str) -> None:
        repo = ProcessingLogsRepository()
        session_id = f"processing_{test_user_id}_1"
        repo.append(user_id=test_user_id, document_id="f", details=_progress(session_id, "a", 1))
        repo.append(user_id=test_user_id, document_id="f", details=_progress(session_id, "b", 2))

        latest = repo.find_latest_progress(session_id)
        assert latest is not None
        assert latest.details["current_step"] == "b"
        assert repo.find_latest_progress(f"{session_id}_other") is None


@pytest.mark.integration
class TestProgressTrackerPersistence:
    def test_session_survives_a_fresh_cache(self, test_user_id: str) -> None:
        repo = ProcessingLogsRepository()
        identity = static_identity(test_user_id)
        tracker = ProgressTracker(repo, ProgressCache(), identity=identity)
        session_id = tracker.create_processing_session(f"{test_user_id}-file", 5)
        tracker.create_checkpoint(session_id, "file_uploaded", {"file_path": "x.pdf"})()
        tracker.pause_processing(session_id)

        restarted = ProgressTracker(repo, ProgressCache(), identity=identity)
        session = restarted.load_progress(session_id)
        assert session is not None
        assert session.status is SessionStatus.PAUSED
        assert session.completed_steps == 1
        assert session.metadata == {"file_path": "x.pdf"}
        assert restarted.resume_processing(session_id) is True
