from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class SessionStatus(StrEnum):
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.FAILED})

_ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.RUNNING: frozenset(
        {SessionStatus.COMPLETED, SessionStatus.FAILED, SessionStatus.PAUSED}
    ),
    SessionStatus.PAUSED: frozenset({SessionStatus.RUNNING}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.FAILED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    """Re-saving the same status is always allowed."""
    return current == target or target in _ALLOWED_TRANSITIONS[current]


@dataclass
class ProcessingSession:
    """Resumable execution record for one document's pipeline run."""

    id: str
    document_id: str
    current_step: str
    total_steps: int
    completed_steps: int
    status: SessionStatus
    last_checkpoint: str
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""
