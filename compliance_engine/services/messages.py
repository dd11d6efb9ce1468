"""Human-readable names for certification types and statuses."""
from typing import Union
from compliance_engine.models.compliance import ComplianceResult
from compliance_engine.models.enums import CertificationStatus

CERTIFICATION_DISPLAY_NAMES = {
    "police_check": "Police Check",
    "ndis_screening": "NDIS Worker Screening",
    "first_aid": "First Aid Certificate",
    "cpr": "CPR Certificate",
    "wwcc": "Working With Children Check",
    "drivers_license": "Driver's License",
    "wwcc_vic": "WWCC Victoria",
    "wwcc_nsw": "WWCC NSW",
    "system_error": "Compliance check unavailable",
}

STATUS_LABELS = {
    CertificationStatus.MISSING: "Missing",
    CertificationStatus.EXPIRED: "Expired",
    CertificationStatus.REJECTED: "Rejected",
    CertificationStatus.PENDING: "Pending Approval",
    CertificationStatus.EXPIRING_SOON: "Expiring Soon",
    CertificationStatus.VALID: "Valid",
}


def certification_display_name(cert_type: str) -> str:
    return CERTIFICATION_DISPLAY_NAMES.get(cert_type.lower(), cert_type)


def status_label(status: Union[CertificationStatus, str]) -> str:
    return STATUS_LABELS.get(CertificationStatus(status), "Valid")


def blocking_message(result: ComplianceResult) -> str:
    """
    Explain a blocked assignment, naming each blocking certification and its status.

    Empty when the result allows assignment.
    """
    if result.failed_closed:
        return "Assignment blocked: compliance could not be verified. Try again or contact an administrator."
    if result.compliant:
        return ""
    issues = [
        f"{certification_display_name(r.type)} ({status_label(r.status)})"
        for r in result.blocking_reasons
    ]
    return f"Assignment blocked: {', '.join(issues)}"
