import traceback
from dataclasses import dataclass, field

from vigilance.compliance.identity import IdentityProvider, no_identity, resolve_user_id
from vigilance.compliance.models import ErrorOccurredDetails, utc_now_iso
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.logging.logger import Log

ANONYMOUS_USER_ID = "anonymous"


@dataclass
class ErrorLogEntry:
    """One failed attempt of a guarded operation."""

    error: BaseException
    attempt: int
    max_attempts: int
    context: str
    timestamp: str = field(default_factory=utc_now_iso)
    user_id: str | None = None


class ErrorLogger:
    """Writes ``error_occurred`` rows. Never raises."""

    def __init__(
        self,
        log_repo: ProcessingLogsRepository,
        identity: IdentityProvider = no_identity,
    ) -> None:
        self._log_repo = log_repo
        self._identity = identity

    def log_error(self, entry: ErrorLogEntry) -> None:
        Log.warning(
            f"{entry.context}: attempt {entry.attempt}/{entry.max_attempts} "
            f"failed: {entry.error}"
        )
        try:
            self._log_repo.append(
                user_id=resolve_user_id(entry.user_id, self._identity, ANONYMOUS_USER_ID),
                details=ErrorOccurredDetails(
                    error_message=str(entry.error),
                    error_type=type(entry.error).__name__,
                    error_stack="".join(traceback.format_exception(entry.error)),
                    attempt=entry.attempt,
                    max_attempts=entry.max_attempts,
                    context=entry.context,
                    timestamp=entry.timestamp,
                ),
            )
        except Exception as exc:
            Log.error(f"Failed to log error: {exc}")
            Log.error(f"Original error: {entry.error}")
