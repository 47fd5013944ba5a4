"""Resumable progress records for document processing sessions.

Every save appends a full ``progress_update`` snapshot to processing_logs
and refreshes the in-process cache. Tracking is advisory: persistence
failures are logged and swallowed, so a loaded session may lag behind the
real state if writes have been failing.
"""

import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from vigilance.compliance.identity import IdentityProvider, no_identity
from vigilance.compliance.models import ProgressUpdateDetails, utc_now_iso
from vigilance.database.models import ProcessingLogRecord
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.logging.logger import Log
from vigilance.progress.cache import ProgressCache
from vigilance.progress.exceptions import ProgressPersistenceError
from vigilance.progress.models import (
    TERMINAL_STATUSES,
    ProcessingSession,
    SessionStatus,
    can_transition,
)

INITIAL_STEP = "initialized"

_REQUIRED_STR_FIELDS = ("id", "current_step", "status", "last_checkpoint")
_REQUIRED_INT_FIELDS = ("total_steps", "completed_steps")


def session_from_log(record: ProcessingLogRecord) -> ProcessingSession | None:
    """Rebuild a session from a progress_update row; None if malformed."""
    details = record.details
    if not isinstance(details, dict) or not record.document_id:
        return None
    for name in _REQUIRED_STR_FIELDS:
        if not isinstance(details.get(name), str):
            return None
    for name in _REQUIRED_INT_FIELDS:
        value = details.get(name)
        if isinstance(value, bool) or not isinstance(value, int):
            return None
    try:
        status = SessionStatus(details["status"])
    except ValueError:
        return None
    metadata = details.get("metadata")
    if metadata is None:
        metadata = {}
    elif not isinstance(metadata, dict):
        return None

    stamp = record.timestamp.isoformat() if record.timestamp is not None else ""
    return ProcessingSession(
        id=details["id"],
        document_id=record.document_id,
        current_step=details["current_step"],
        total_steps=details["total_steps"],
        completed_steps=details["completed_steps"],
        status=status,
        last_checkpoint=details["last_checkpoint"],
        metadata=metadata,
        created_at=stamp,
        updated_at=stamp,
    )


class ProgressTracker:
    """Saves, loads, checkpoints and resumes processing sessions."""

    def __init__(
        self,
        log_repo: ProcessingLogsRepository,
        cache: ProgressCache,
        identity: IdentityProvider = no_identity,
        clock_ms: Callable[[], int] = lambda: time.time_ns() // 1_000_000,
    ) -> None:
        self._log_repo = log_repo
        self._cache = cache
        self._identity = identity
        self._clock_ms = clock_ms

    def save_progress(self, session: ProcessingSession) -> bool:
        """Append a snapshot and cache it. Returns False if nothing was saved.

        The snapshot is checked against the latest known one (cache first,
        then the log): the status change must be allowed and completed_steps
        may not go down.
        """
        with self._cache.locked(session.id):
            try:
                previous = self.load_progress(session.id)
                if previous is not None and not can_transition(previous.status, session.status):
                    Log.warning(
                        f"Refusing progress transition {previous.status} -> {session.status}",
                        session_id=session.id,
                    )
                    return False
                if previous is not None and session.completed_steps < previous.completed_steps:
                    Log.warning(
                        f"Refusing to move completed steps back from "
                        f"{previous.completed_steps} to {session.completed_steps}",
                        session_id=session.id,
                    )
                    return False

                user_id = self._identity()
                if not user_id:
                    raise ProgressPersistenceError("User not authenticated")

                now = utc_now_iso()
                snapshot = replace(
                    session,
                    metadata=dict(session.metadata),
                    created_at=session.created_at or now,
                    updated_at=now,
                )
                self._log_repo.append(
                    user_id=user_id,
                    document_id=snapshot.document_id,
                    details=ProgressUpdateDetails(
                        id=snapshot.id,
                        current_step=snapshot.current_step,
                        total_steps=snapshot.total_steps,
                        completed_steps=snapshot.completed_steps,
                        status=snapshot.status.value,
                        last_checkpoint=snapshot.last_checkpoint,
                        metadata=snapshot.metadata,
                    ),
                )
                self._cache.put(snapshot)
                return True
            except Exception as exc:
                Log.error(f"Failed to save progress: {exc}", session_id=session.id)
                return False

    def load_progress(self, session_id: str) -> ProcessingSession | None:
        """Return the cached session, else the newest valid persisted snapshot."""
        cached = self._cache.get(session_id)
        if cached is not None:
            return cached

        try:
            record = self._log_repo.find_latest_progress(session_id)
        except Exception as exc:
            Log.error(f"Failed to load progress: {exc}", session_id=session_id)
            return None
        if record is None:
            return None

        session = session_from_log(record)
        if session is None:
            Log.error("Invalid progress details format", session_id=session_id)
            return None
        self._cache.put(session)
        return session

    def resume_processing(self, session_id: str) -> bool:
        """Put a paused (or still running) session back to running."""
        with self._cache.locked(session_id):
            session = self.load_progress(session_id)
            if session is None or session.status in TERMINAL_STATUSES:
                return False
            Log.info(f"Resuming processing from checkpoint: {session.last_checkpoint}")
            return self.save_progress(replace(session, status=SessionStatus.RUNNING))

    def pause_processing(self, session_id: str) -> bool:
        return self._set_status(session_id, SessionStatus.PAUSED)

    def complete_processing(self, session_id: str) -> bool:
        return self._set_status(session_id, SessionStatus.COMPLETED)

    def fail_processing(self, session_id: str, error: str | None = None) -> bool:
        extra = {"error": error} if error else None
        return self._set_status(session_id, SessionStatus.FAILED, extra)

    def release(self, session_id: str) -> None:
        """Drop a finished session from the cache; later loads read the log."""
        self._cache.discard(session_id)

    def create_checkpoint(
        self,
        session_id: str,
        step_name: str,
        metadata: dict[str, Any] | None = None,
    ) -> Callable[[], None]:
        """Return a continuation that records *step_name* when called.

        Calling it advances completed_steps by one, sets current_step and
        last_checkpoint, and shallow-merges *metadata* over the existing
        metadata. An unknown session makes it a no-op.
        """

        def checkpoint() -> None:
            with self._cache.locked(session_id):
                session = self.load_progress(session_id)
                if session is None:
                    Log.warning(
                        f"Checkpoint '{step_name}' skipped: session not found",
                        session_id=session_id,
                    )
                    return
                self.save_progress(
                    replace(
                        session,
                        current_step=step_name,
                        completed_steps=session.completed_steps + 1,
                        last_checkpoint=step_name,
                        metadata={**session.metadata, **(metadata or {})},
                    )
                )

        return checkpoint

    def create_processing_session(self, document_id: int | str, total_steps: int) -> str:
        """Start a running session and return its id.

        The id is derived from the document id and the current time in
        milliseconds; uniqueness is not checked.
        """
        session_id = f"processing_{document_id}_{self._clock_ms()}"
        now = utc_now_iso()
        self.save_progress(
            ProcessingSession(
                id=session_id,
                document_id=str(document_id),
                current_step=INITIAL_STEP,
                total_steps=total_steps,
                completed_steps=0,
                status=SessionStatus.RUNNING,
                last_checkpoint=INITIAL_STEP,
                created_at=now,
                updated_at=now,
            )
        )
        return session_id

    def _set_status(
        self,
        session_id: str,
        status: SessionStatus,
        extra_metadata: dict[str, Any] | None = None,
    ) -> bool:
        with self._cache.locked(session_id):
            session = self.load_progress(session_id)
            if session is None:
                return False
            return self.save_progress(
                replace(
                    session,
                    status=status,
                    metadata={**session.metadata, **(extra_metadata or {})},
                )
            )
