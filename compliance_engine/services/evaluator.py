"""
Compliance evaluator - the pure decision function.

Given a worker's certification records, the required certification types
and the current time, classify every required type and decide compliance.
No I/O happens here; the AssignmentGate feeds it from the certification store.
"""
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence
from compliance_engine import settings
from compliance_engine.models.compliance import (
    CertificationCheck,
    ComplianceResult,
    EvaluationContext,
    OverrideDetails,
)
from compliance_engine.models.enums import BLOCKING_STATUSES, CertificationStatus

# Required for NDIS compliance when an organisation has not configured its own set
DEFAULT_REQUIRED_CERTIFICATIONS = (
    "police_check",
    "ndis_screening",
    "first_aid",
    "cpr",
    "wwcc",
)

DRIVING_CERTIFICATIONS = ("drivers_license",)

SYSTEM_ERROR_TYPE = "system_error"


def required_certification_types(
    organisation_types: Iterable[str],
    context: Optional[EvaluationContext] = None
) -> List[str]:
    """
    Build the required set for one evaluation.

    Organisation set (or the defaults), plus driving certifications when the
    context requires driving, plus any additional requirements. Duplicates are
    dropped case-insensitively and the first spelling wins.
    """
    context = context or EvaluationContext()
    candidates = list(organisation_types) or list(DEFAULT_REQUIRED_CERTIFICATIONS)
    if context.requires_driving:
        candidates.extend(DRIVING_CERTIFICATIONS)
    candidates.extend(context.additional_requirements)

    required: List[str] = []
    seen = set()
    for cert_type in candidates:
        key = cert_type.strip().lower()
        if key and key not in seen:
            seen.add(key)
            required.append(cert_type.strip())
    return required


def latest_by_type(certifications: Iterable) -> Dict[str, object]:
    """Map lower-cased type to the most recently created record of that type."""
    latest: Dict[str, object] = {}
    for cert in certifications:
        key = cert.type.lower()
        current = latest.get(key)
        if current is None or cert.created_at > current.created_at:
            latest[key] = cert
    return latest


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Unsupported expiry_date value: {value!r}")


def classify_certification(
    cert_type: str,
    record,
    today: date,
    expiring_soon_days: int = settings.EXPIRING_SOON_DAYS
) -> CertificationCheck:
    """
    Classify one required certification.

    - missing: no record
    - rejected / pending / missing: passed through from the record
    - expired: marked expired, or expiry_date today or earlier (a date lapses at its first instant)
    - expiring_soon: expiry_date within the next expiring_soon_days (inclusive)
    - valid: everything else
    """
    if record is None:
        return CertificationCheck(type=cert_type, status=CertificationStatus.MISSING)

    stored = CertificationStatus(record.status)
    expiry = _as_date(record.expiry_date)

    if stored in (CertificationStatus.REJECTED, CertificationStatus.PENDING, CertificationStatus.MISSING):
        return CertificationCheck(type=cert_type, status=stored, expiry_date=expiry)

    if stored == CertificationStatus.EXPIRED or (expiry is not None and expiry <= today):
        return CertificationCheck(type=cert_type, status=CertificationStatus.EXPIRED, expiry_date=expiry)

    if expiry is not None and expiry <= today + timedelta(days=expiring_soon_days):
        return CertificationCheck(
            type=cert_type,
            status=CertificationStatus.EXPIRING_SOON,
            expiry_date=expiry,
            days_until_expiry=(expiry - today).days
        )

    return CertificationCheck(type=cert_type, status=CertificationStatus.VALID, expiry_date=expiry)


def evaluate_certifications(
    employee_id: str,
    certifications: Iterable,
    required_types: Sequence[str],
    now: datetime,
    expiring_soon_days: int = settings.EXPIRING_SOON_DAYS
) -> ComplianceResult:
    """Classify every required type and compute compliance. Overrides are not considered here."""
    records = latest_by_type(certifications)
    today = now.date()

    blocking: List[CertificationCheck] = []
    expiring: List[CertificationCheck] = []
    pending: List[CertificationCheck] = []

    for cert_type in required_types:
        check = classify_certification(
            cert_type, records.get(cert_type.lower()), today, expiring_soon_days
        )
        if check.status in BLOCKING_STATUSES:
            blocking.append(check)
        elif check.status == CertificationStatus.EXPIRING_SOON:
            expiring.append(check)
        elif check.status == CertificationStatus.PENDING:
            pending.append(check)

    return ComplianceResult(
        employee_id=employee_id,
        compliant=not blocking,
        blocking_reasons=blocking,
        expiring_soon=expiring,
        pending=pending,
        evaluated_at=now
    )


def fail_closed_result(employee_id: str, now: Optional[datetime] = None) -> ComplianceResult:
    """
    The result returned whenever evaluation could not be completed.

    Never compliant, never overridden: an evaluation failure must not read
    as "no blocking reasons found".
    """
    return ComplianceResult(
        employee_id=employee_id,
        compliant=False,
        blocking_reasons=[
            CertificationCheck(type=SYSTEM_ERROR_TYPE, status=CertificationStatus.MISSING)
        ],
        evaluated_at=now or datetime.utcnow(),
        failed_closed=True
    )


def apply_override(result: ComplianceResult, override) -> ComplianceResult:
    """Mark a non-compliant result as covered by an active override. Blocking reasons stay listed."""
    if result.failed_closed:
        return result
    return result.model_copy(update={
        "compliant": True,
        "override_active": True,
        "override_details": OverrideDetails(
            id=override.id,
            reason=override.reason,
            expires_at=override.expires_at,
            override_by=override.override_by_name
        ),
    })
