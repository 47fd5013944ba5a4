"""Pattern-based PHI/PII detection and redaction.

Detection is binary: a regex match is a finding, there is no confidence
score. Findings are reported in pattern order and are not deduplicated.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Final

from vigilance.compliance.models import (
    Classification,
    ComplianceEvent,
    PHIField,
    PHIFieldType,
    RiskLevel,
    SecurityScanResult,
    utc_now_iso,
)

if TYPE_CHECKING:
    from vigilance.compliance.compliance_logger import ComplianceLogger

PHI_PATTERNS: Final[dict[PHIFieldType, re.Pattern[str]]] = {
    PHIFieldType.SSN: re.compile(r"\b\d{3}-?\d{2}-?\d{4}\b"),
    PHIFieldType.PHONE: re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"),
    PHIFieldType.EMAIL: re.compile(
        r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"
    ),
    PHIFieldType.DATE_OF_BIRTH: re.compile(
        r"\b(?:0[1-9]|1[0-2])[/\-](?:0[1-9]|[12]\d|3[01])[/\-](?:19|20)\d{2}\b"
    ),
    PHIFieldType.MEDICAL_RECORD: re.compile(
        r"\b(?:MR|MRN|MEDICAL[\s\-]?RECORD)[\s\-]?#?[\s\-]?\d{6,}\b",
        re.IGNORECASE,
    ),
    PHIFieldType.HEALTH_CARD: re.compile(
        r"\b(?:HC|HEALTH[\s\-]?CARD)[\s\-]?#?[\s\-]?\d{8,}\b",
        re.IGNORECASE,
    ),
}

# Risk policy: strictly more than this many findings is HIGH.
HIGH_RISK_THRESHOLD: Final = 5

CIRCULAR_REFERENCE_MARKER: Final = "[CIRCULAR_REFERENCE]"


def classification_for(field_type: PHIFieldType) -> Classification:
    if field_type is PHIFieldType.EMAIL:
        return Classification.PII
    return Classification.PHI


def detect_phi(text: str) -> list[PHIField]:
    """Return one PHIField per pattern match in *text*."""
    detected: list[PHIField] = []
    if not text:
        return detected
    for field_type, pattern in PHI_PATTERNS.items():
        for match in pattern.finditer(text):
            detected.append(
                PHIField(
                    field=field_type,
                    value=match.group(0),
                    is_encrypted=False,
                    classification=classification_for(field_type),
                )
            )
    return detected


def redact_text(text: str) -> str:
    """Replace every PHI match with ``[REDACTED_<CATEGORY>]``, pattern by pattern."""
    for field_type, pattern in PHI_PATTERNS.items():
        text = pattern.sub(f"[REDACTED_{field_type.value}]", text)
    return text


def sanitize_for_export(data: Any) -> Any:
    """Return a copy of *data* with every string leaf redacted.

    Lists and tuples map element-wise, dicts map value-wise with keys kept,
    other scalars pass through. A container that appears again inside itself
    is replaced by ``[CIRCULAR_REFERENCE]``.
    """
    return _sanitize(data, set())


def _sanitize(data: Any, active: set[int]) -> Any:
    if isinstance(data, str):
        return redact_text(data)
    if not isinstance(data, (list, tuple, dict)):
        return data

    marker = id(data)
    if marker in active:
        return CIRCULAR_REFERENCE_MARKER
    active.add(marker)
    try:
        if isinstance(data, dict):
            return {key: _sanitize(value, active) for key, value in data.items()}
        items = [_sanitize(item, active) for item in data]
        return tuple(items) if isinstance(data, tuple) else items
    finally:
        active.discard(marker)


def classify_risk(phi_field_count: int) -> RiskLevel:
    if phi_field_count > HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if phi_field_count > 0:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def validate_document_security(
    document_id: int | str,
    content: str,
    compliance_logger: ComplianceLogger,
) -> SecurityScanResult:
    """Scan document text, record one compliance event, and classify risk."""
    phi_fields = detect_phi(content)

    compliance_logger.log_event(
        ComplianceEvent(
            action="phi_detection",
            document_id=document_id,
            phi_fields=phi_fields,
            details={
                "document_scan_timestamp": utc_now_iso(),
                "phi_detected": len(phi_fields) > 0,
            },
        )
    )

    return SecurityScanResult(
        has_phi=len(phi_fields) > 0,
        phi_fields=phi_fields,
        risk_level=classify_risk(len(phi_fields)),
    )
