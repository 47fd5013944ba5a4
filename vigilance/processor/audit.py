from vigilance.compliance.models import LogDetails
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.logging.logger import Log


def record_event(
    log_repo: ProcessingLogsRepository,
    *,
    user_id: str,
    details: LogDetails,
    document_id: int | str | None = None,
) -> None:
    """Append a processing log row; a failed write is logged and dropped."""
    try:
        log_repo.append(user_id=user_id, details=details, document_id=document_id)
    except Exception as exc:
        Log.error(
            f"Failed to write processing log '{details.action}': {exc}",
            document_id=document_id,
        )
