from vigilance.compliance.identity import IdentityProvider, no_identity, resolve_user_id
from vigilance.compliance.models import ComplianceDetails, ComplianceEvent
from vigilance.database.repositories.processing_logs_repository import (
    ProcessingLogsRepository,
)
from vigilance.logging.logger import Log

SYSTEM_USER_ID = "system"


class ComplianceLogger:
    """Appends ``compliance_*`` audit rows to processing_logs.

    Writing is best effort: a failure is reported on the local log and never
    reaches the caller.
    """

    def __init__(
        self,
        log_repo: ProcessingLogsRepository,
        identity: IdentityProvider = no_identity,
        fallback_user_id: str = SYSTEM_USER_ID,
    ) -> None:
        self._log_repo = log_repo
        self._identity = identity
        self._fallback_user_id = fallback_user_id

    def log_event(self, event: ComplianceEvent) -> None:
        try:
            user_id = resolve_user_id(event.user_id, self._identity, self._fallback_user_id)
            phi_fields = event.phi_fields or []
            details = ComplianceDetails(
                action_name=event.action,
                phi_fields_count=len(phi_fields),
                phi_classifications=[f.classification.value for f in phi_fields],
                compliance_timestamp=event.timestamp,
                extra=dict(event.details),
            )
            self._log_repo.append(
                user_id=user_id,
                details=details,
                document_id=event.document_id,
            )
        except Exception as exc:
            Log.error(
                f"Failed to log compliance event: {exc}",
                action=event.action,
                document_id=event.document_id,
            )
