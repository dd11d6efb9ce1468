"""API routes for compliance evaluation and override management."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from compliance_engine.api.auth import get_current_actor, require_override_role
from compliance_engine.database import get_db
from compliance_engine.logging import bind_context
from compliance_engine.models.compliance import (
    ComplianceResult,
    OverrideOutcome,
    OverrideRequest,
)
from compliance_engine.models.domain import UserProfile
from compliance_engine.services.audit import AuditRecorder
from compliance_engine.services.gate import AssignmentGate
from compliance_engine.services.messages import blocking_message
from compliance_engine.services.overrides import OverrideManager
from compliance_engine.api.schemas import (
    AuditLogResponse,
    CanAssignResponse,
    ComplianceOverrideResponse,
    EvaluateRequest,
)

router = APIRouter()


def _outcome_response(outcome: OverrideOutcome) -> JSONResponse:
    return JSONResponse(status_code=outcome.status_code, content=outcome.model_dump(mode="json"))


# Evaluation endpoints
@router.post("/evaluate-compliance", response_model=ComplianceResult)
def evaluate_compliance(
    request: EvaluateRequest,
    db: Session = Depends(get_db),
    actor: Optional[UserProfile] = Depends(get_current_actor)
):
    """
    Evaluate an employee's compliance.

    Always answers with a result body. If evaluation fails the result is
    non-compliant with a system_error blocking reason (failed closed).
    """
    bind_context(actor_id=actor.id if actor else None).info(
        "evaluate_compliance_requested", employee_id=request.employee_id
    )
    gate = AssignmentGate(db)
    return gate.evaluate(request.employee_id, request.context)


@router.post("/can-assign", response_model=CanAssignResponse)
def can_assign(
    request: EvaluateRequest,
    db: Session = Depends(get_db),
    actor: Optional[UserProfile] = Depends(get_current_actor)
):
    """
    Decide whether an employee may be assigned.
    A blocked decision carries a message naming each blocking certification.
    """
    bind_context(actor_id=actor.id if actor else None).info(
        "can_assign_requested", employee_id=request.employee_id
    )
    gate = AssignmentGate(db)
    decision = gate.can_assign(request.employee_id, request.context)
    return CanAssignResponse(
        allowed=decision.allowed,
        result=decision.result,
        message="" if decision.allowed else blocking_message(decision.result)
    )


# Override endpoints
@router.post("/compliance-overrides", response_model=OverrideOutcome, status_code=status.HTTP_201_CREATED, responses={
    400: {"model": OverrideOutcome, "description": "Validation failure, e.g. expiry beyond 14 days"},
    403: {"model": OverrideOutcome, "description": "Actor is not admin or director"},
    404: {"model": OverrideOutcome, "description": "Employee not found"},
})
def create_override(
    request: OverrideRequest,
    db: Session = Depends(get_db),
    actor: Optional[UserProfile] = Depends(get_current_actor)
):
    """Grant a time-limited compliance override (admin/director only, at most 14 days)."""
    manager = OverrideManager(db)
    return _outcome_response(manager.create_override(actor, request))


@router.post("/compliance-overrides/{override_id}/revoke", response_model=OverrideOutcome, responses={
    403: {"model": OverrideOutcome, "description": "Actor is not admin or director"},
    404: {"model": OverrideOutcome, "description": "Override not found"},
})
def revoke_override(
    override_id: str,
    db: Session = Depends(get_db),
    actor: Optional[UserProfile] = Depends(get_current_actor)
):
    """Revoke an override. The record is kept, only deactivated."""
    manager = OverrideManager(db)
    return _outcome_response(manager.revoke_override(actor, override_id))


@router.get("/employees/{employee_id}/compliance-overrides", response_model=List[ComplianceOverrideResponse])
def list_active_overrides(
    employee_id: str,
    db: Session = Depends(get_db),
    actor: UserProfile = Depends(require_override_role)
):
    """Active, non-expired overrides for an employee, most recent first."""
    manager = OverrideManager(db)
    return manager.get_active_overrides(employee_id)


# Audit endpoints
@router.get("/audit-logs", response_model=List[AuditLogResponse])
def list_audit_logs(
    entity_id: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    actor: UserProfile = Depends(require_override_role)
):
    """The append-only audit trail for one entity, oldest first."""
    return AuditRecorder(db).entries_for(entity_id)
