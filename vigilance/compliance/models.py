"""Audit-log payloads and PHI detection models.

Every row in ``processing_logs`` carries an ``action`` string and a JSON
``details`` object. Known actions have a typed payload below; anything else
goes through ``GenericDetails``.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, ClassVar


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


class PHIFieldType(StrEnum):
    SSN = "SSN"
    PHONE = "PHONE"
    EMAIL = "EMAIL"
    DATE_OF_BIRTH = "DATE_OF_BIRTH"
    MEDICAL_RECORD = "MEDICAL_RECORD"
    HEALTH_CARD = "HEALTH_CARD"


class Classification(StrEnum):
    PII = "PII"
    PHI = "PHI"
    SENSITIVE = "SENSITIVE"
    PUBLIC = "PUBLIC"


class RiskLevel(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class PHIField:
    """Single sensitive-data occurrence found by the scanner."""

    field: PHIFieldType
    value: str
    is_encrypted: bool = False
    classification: Classification = Classification.PHI

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field.value,
            "value": self.value,
            "is_encrypted": self.is_encrypted,
            "classification": self.classification.value,
        }


@dataclass
class SecurityScanResult:
    """Output of a document security validation."""

    has_phi: bool
    phi_fields: list[PHIField] = field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.LOW

    def summary(self) -> dict[str, Any]:
        """Compact, value-free view safe to embed in audit rows."""
        return {
            "has_phi": self.has_phi,
            "risk_level": self.risk_level.value,
            "phi_fields_count": len(self.phi_fields),
            "phi_field_types": sorted({f.field.value for f in self.phi_fields}),
        }


@dataclass
class ComplianceEvent:
    """Append-only audit event written by the compliance logger."""

    action: str
    document_id: int | str | None = None
    user_id: str | None = None
    phi_fields: list[PHIField] | None = None
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=utc_now_iso)


# ----------------------------------------------------------------------
# processing_logs payloads
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class ProgressUpdateDetails:
    action: ClassVar[str] = "progress_update"

    id: str
    current_step: str
    total_steps: int
    completed_steps: int
    status: str
    last_checkpoint: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_details(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "current_step": self.current_step,
            "total_steps": self.total_steps,
            "completed_steps": self.completed_steps,
            "status": self.status,
            "last_checkpoint": self.last_checkpoint,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class ErrorOccurredDetails:
    action: ClassVar[str] = "error_occurred"

    error_message: str
    error_type: str
    attempt: int
    max_attempts: int
    context: str
    timestamp: str
    error_stack: str | None = None

    def to_details(self) -> dict[str, Any]:
        return {
            "error_message": self.error_message,
            "error_type": self.error_type,
            "error_stack": self.error_stack,
            "attempt": self.attempt,
            "max_attempts": self.max_attempts,
            "context": self.context,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ComplianceDetails:
    """Payload of every ``compliance_*`` row."""

    action_name: str
    phi_fields_count: int
    phi_classifications: list[str]
    compliance_timestamp: str
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def action(self) -> str:
        return f"compliance_{self.action_name}"

    def to_details(self) -> dict[str, Any]:
        details: dict[str, Any] = {
            "phi_fields_count": self.phi_fields_count,
            "phi_classifications": list(self.phi_classifications),
            "compliance_timestamp": self.compliance_timestamp,
        }
        details.update(self.extra)
        return details


@dataclass(frozen=True)
class ProcessingStartedDetails:
    action: ClassVar[str] = "processing_started"

    filename: str
    file_path: str

    def to_details(self) -> dict[str, Any]:
        return {"filename": self.filename, "file_path": self.file_path}


@dataclass(frozen=True)
class ExtractionCompletedDetails:
    action: ClassVar[str] = "parseur_extraction_completed"

    extracted_fields: int

    def to_details(self) -> dict[str, Any]:
        return {"extracted_fields": self.extracted_fields}


@dataclass(frozen=True)
class AnalysisCompletedDetails:
    action: ClassVar[str] = "openai_analysis_completed"

    tokens_used: int | None

    def to_details(self) -> dict[str, Any]:
        return {"tokens_used": self.tokens_used}


@dataclass(frozen=True)
class StageFailedDetails:
    """Failure of an optional external stage; ``stage`` selects the action."""

    stage: str
    error: str

    @property
    def action(self) -> str:
        return f"{self.stage}_failed"

    def to_details(self) -> dict[str, Any]:
        return {"error": self.error}


@dataclass(frozen=True)
class ProcessingCompletedDetails:
    action: ClassVar[str] = "processing_completed"

    extraction_id: int
    has_raw_data: bool
    has_analysis: bool

    def to_details(self) -> dict[str, Any]:
        return {
            "extraction_id": self.extraction_id,
            "has_raw_data": self.has_raw_data,
            "has_analysis": self.has_analysis,
        }


@dataclass(frozen=True)
class FallbackProcessingDetails:
    action: ClassVar[str] = "fallback_processing"

    reason: str = "Primary processing failed"

    def to_details(self) -> dict[str, Any]:
        return {"reason": self.reason}


@dataclass(frozen=True)
class NarrativeGeneratedDetails:
    action: ClassVar[str] = "narrative_generated"

    narrative_id: int
    template: str
    tokens_used: int | None

    def to_details(self) -> dict[str, Any]:
        return {
            "narrative_id": self.narrative_id,
            "template": self.template,
            "tokens_used": self.tokens_used,
        }


@dataclass(frozen=True)
class GenericDetails:
    """Open payload for actions without a dedicated schema."""

    action: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_details(self) -> dict[str, Any]:
        return dict(self.payload)


LogDetails = (
    ProgressUpdateDetails
    | ErrorOccurredDetails
    | ComplianceDetails
    | ProcessingStartedDetails
    | ExtractionCompletedDetails
    | AnalysisCompletedDetails
    | StageFailedDetails
    | ProcessingCompletedDetails
    | FallbackProcessingDetails
    | NarrativeGeneratedDetails
    | GenericDetails
)
