"""
Value objects exchanged with the compliance engine.

None of these are persisted: a ComplianceResult is a point-in-time
computation, recomputed on every call.
"""
from datetime import date, datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from compliance_engine.models.enums import CertificationStatus, ContextType


def to_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; convert aware input to match."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class CertificationCheck(BaseModel):
    """One required certification type and its classified status."""
    model_config = ConfigDict(frozen=True)

    type: str
    status: CertificationStatus
    expiry_date: Optional[date] = None
    days_until_expiry: Optional[int] = None


class OverrideDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    reason: str
    expires_at: datetime
    override_by: str


class EvaluationContext(BaseModel):
    """What the worker is being assigned to. Defaults to a general check."""
    model_config = ConfigDict(frozen=True)

    context_type: ContextType = ContextType.GENERAL
    context_id: Optional[str] = None
    requires_driving: bool = False
    additional_requirements: List[str] = Field(default_factory=list)


class ComplianceResult(BaseModel):
    """
    Outcome of a compliance evaluation.

    Invariant: compliant is True iff blocking_reasons is empty or override_active is True.
    failed_closed marks the synthetic result produced when evaluation itself failed.
    """
    model_config = ConfigDict(frozen=True)

    employee_id: str
    compliant: bool
    blocking_reasons: List[CertificationCheck] = Field(default_factory=list)
    expiring_soon: List[CertificationCheck] = Field(default_factory=list)
    pending: List[CertificationCheck] = Field(default_factory=list)
    override_active: bool = False
    override_details: Optional[OverrideDetails] = None
    evaluated_at: datetime
    failed_closed: bool = False

    @model_validator(mode="after")
    def _check_consistency(self) -> "ComplianceResult":
        if self.compliant != (not self.blocking_reasons or self.override_active):
            raise ValueError("compliant must be true iff there are no blocking reasons or an override is active")
        if self.failed_closed and (self.compliant or self.override_active):
            raise ValueError("a failed-closed result can be neither compliant nor overridden")
        return self

    @property
    def assignable(self) -> bool:
        """Whether this result permits assignment. Derived from the reasons, not the compliant flag."""
        return (not self.blocking_reasons or self.override_active) and not self.failed_closed


class AssignmentDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    result: ComplianceResult


class OverrideRequest(BaseModel):
    """
    Request to grant an override.

    Only shape is checked here; the business rules (reason, 14-day cap)
    are enforced by the OverrideManager so failures keep the outcome shape.
    """
    employee_id: str
    reason: str = ""
    expires_at: datetime
    context_type: ContextType = ContextType.GENERAL
    context_id: Optional[str] = None
    blocked_certifications: List[CertificationCheck] = Field(default_factory=list)
    # Only used to compute the snapshot when blocked_certifications is empty
    requires_driving: bool = False
    additional_requirements: List[str] = Field(default_factory=list)

    @field_validator("expires_at")
    @classmethod
    def _normalise_expiry(cls, value: datetime) -> datetime:
        return to_naive_utc(value)

    def evaluation_context(self) -> EvaluationContext:
        return EvaluationContext(
            context_type=self.context_type,
            context_id=self.context_id,
            requires_driving=self.requires_driving,
            additional_requirements=self.additional_requirements
        )


class OverrideOutcome(BaseModel):
    """Public result of create/revoke. Never replaced by an exception."""
    success: bool
    error: Optional[str] = None
    override_id: Optional[str] = None
    status_code: int = Field(default=200, exclude=True)
