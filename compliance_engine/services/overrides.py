"""
Override manager - grants and revokes time-bounded compliance overrides.

An override is a deliberate, narrow exception to a fail-closed policy:
- Only admin and director roles may create or revoke one
- It can never last more than 14 days from creation
- It is never deleted; revocation is a state change
- Natural expiry is enforced wherever an override is read
"""
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional
import structlog
from sqlalchemy.orm import Session
from compliance_engine.models.audit import AuditAction, AuditEntityType
from compliance_engine.models.compliance import (
    EvaluationContext,
    OverrideOutcome,
    OverrideRequest,
)
from compliance_engine.models.domain import ComplianceOverride, Employee, UserProfile
from compliance_engine.models.enums import ContextType, OVERRIDE_ROLES
from compliance_engine.services.audit import AuditRecorder, default_dead_letter
from compliance_engine.services.certification_store import CertificationStore
from compliance_engine.services.errors import (
    AuthorizationError,
    ComplianceError,
    ComplianceSystemError,
    NotFoundError,
    ValidationError,
)
from compliance_engine.services.evaluator import (
    evaluate_certifications,
    required_certification_types,
)
from compliance_engine.settings import OVERRIDE_MAX_DAYS

logger = structlog.get_logger()


def override_applies(override: ComplianceOverride, context: Optional[EvaluationContext]) -> bool:
    """
    Whether an override covers the context being evaluated.

    - A general override covers every context
    - A general evaluation is covered by any override
    - Otherwise context_type must match, and a context_id on the override
      must match the evaluation's context_id
    """
    context = context or EvaluationContext()
    override_type = ContextType(override.context_type)
    if override_type == ContextType.GENERAL or context.context_type == ContextType.GENERAL:
        return True
    if override_type != context.context_type:
        return False
    return override.context_id is None or override.context_id == context.context_id


def find_matching_override(
    overrides: Iterable[ComplianceOverride],
    context: Optional[EvaluationContext]
) -> Optional[ComplianceOverride]:
    """First applicable override; callers pass them newest first."""
    for override in overrides:
        if override_applies(override, context):
            return override
    return None


class OverrideManager:
    """Creates, revokes and lists overrides. create_override and revoke_override never raise."""

    def __init__(
        self,
        db: Session,
        audit: Optional[AuditRecorder] = None,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.db = db
        self.audit = audit or AuditRecorder(db, dead_letter=default_dead_letter())
        self.clock = clock

    def create_override(self, actor: Optional[UserProfile], request: OverrideRequest) -> OverrideOutcome:
        """Grant an override. Returns success/failure with a human-readable error."""
        try:
            override = self._create(actor, request)
        except ComplianceError as e:
            return self._refused("create", actor, e, employee_id=request.employee_id)
        except Exception:
            self._rollback()
            logger.error("override_create_failed", employee_id=request.employee_id, exc_info=True)
            return self._refused(
                "create", actor, ComplianceSystemError("Failed to create override"),
                employee_id=request.employee_id
            )

        logger.info(
            "override_created",
            override_id=override.id,
            employee_id=override.employee_id,
            actor_id=actor.id,
            expires_at=override.expires_at.isoformat(),
            context_type=override.context_type.value,
        )
        return OverrideOutcome(success=True, override_id=override.id, status_code=201)

    def revoke_override(self, actor: Optional[UserProfile], override_id: str) -> OverrideOutcome:
        """Deactivate an override. The row is kept for the audit history."""
        try:
            override = self._revoke(actor, override_id)
        except ComplianceError as e:
            return self._refused("revoke", actor, e, override_id=override_id)
        except Exception:
            self._rollback()
            logger.error("override_revoke_failed", override_id=override_id, exc_info=True)
            return self._refused(
                "revoke", actor, ComplianceSystemError("Failed to revoke override"),
                override_id=override_id
            )

        logger.info("override_revoked", override_id=override.id, employee_id=override.employee_id, actor_id=actor.id)
        return OverrideOutcome(success=True, override_id=override.id)

    def get_active_overrides(self, employee_id: str, now: Optional[datetime] = None) -> List[ComplianceOverride]:
        """
        Overrides that are flagged active and not yet expired, most recent first.

        Store failures propagate: an empty list always means "none in force".
        """
        now = now or self.clock()
        return self.db.query(ComplianceOverride).filter(
            ComplianceOverride.employee_id == employee_id,
            ComplianceOverride.is_active.is_(True),
            ComplianceOverride.expires_at > now
        ).order_by(ComplianceOverride.created_at.desc()).all()

    def _authorize(self, actor: Optional[UserProfile], verb: str) -> None:
        if actor is None or actor.role not in OVERRIDE_ROLES:
            raise AuthorizationError(f"Not authorized to {verb} compliance overrides")

    def _create(self, actor: Optional[UserProfile], request: OverrideRequest) -> ComplianceOverride:
        # Authorization first: no other input is inspected for an unauthorized actor
        self._authorize(actor, "create")

        reason = (request.reason or "").strip()
        if not reason:
            raise ValidationError("Override reason is required")

        now = self.clock()
        if request.expires_at <= now:
            raise ValidationError("Override expiry must be in the future")
        if request.expires_at > now + timedelta(days=OVERRIDE_MAX_DAYS):
            raise ValidationError(f"Override expiry cannot exceed {OVERRIDE_MAX_DAYS} days")

        # Employee lookup and insert share one transaction
        employee = self.db.query(Employee).filter(Employee.id == request.employee_id).first()
        if employee is None:
            raise NotFoundError("Employee not found")

        snapshot = [check.model_dump(mode="json") for check in request.blocked_certifications]
        if not snapshot:
            snapshot = self._current_blocking(employee, request.evaluation_context(), now)

        override = ComplianceOverride(
            organisation_id=employee.organisation_id,
            employee_id=employee.id,
            override_by=actor.id,
            override_by_name=actor.display_name or actor.email or "Unknown",
            override_by_email=actor.email or "",
            reason=reason,
            blocked_certifications=snapshot,
            context_type=request.context_type,
            context_id=request.context_id,
            created_at=now,
            updated_at=now,
            expires_at=request.expires_at,
            is_active=True
        )
        self.db.add(override)
        self.db.commit()
        self.db.refresh(override)

        self.audit.log(
            action=AuditAction.ADMIN_OVERRIDE,
            entity_type=AuditEntityType.COMPLIANCE_OVERRIDE,
            entity_id=override.id,
            organisation_id=override.organisation_id,
            actor=actor,
            after_values={
                "override_id": override.id,
                "employee_id": override.employee_id,
                "reason": override.reason,
                "expires_at": override.expires_at.isoformat(),
                "blocked_certifications": snapshot,
                "context_type": request.context_type.value,
                "context_id": request.context_id,
            }
        )
        return override

    def _revoke(self, actor: Optional[UserProfile], override_id: str) -> ComplianceOverride:
        self._authorize(actor, "revoke")

        override = self.db.query(ComplianceOverride).filter(ComplianceOverride.id == override_id).first()
        if override is None:
            raise NotFoundError("Override not found")
        if not override.is_active:
            raise ValidationError("Override has already been revoked")

        override.is_active = False
        override.updated_at = self.clock()
        self.db.commit()
        self.db.refresh(override)

        self.audit.log(
            action=AuditAction.ADMIN_OVERRIDE,
            entity_type=AuditEntityType.COMPLIANCE_OVERRIDE,
            entity_id=override.id,
            organisation_id=override.organisation_id,
            actor=actor,
            old_values={"override_active": True},
            after_values={
                "override_active": False,
                "revoked_by": actor.id,
                "employee_id": override.employee_id,
            }
        )
        return override

    def _current_blocking(self, employee: Employee, context: EvaluationContext, now: datetime) -> list:
        """Blocking certifications as they stand right now, for the creation snapshot."""
        store = CertificationStore(self.db)
        result = evaluate_certifications(
            employee.id,
            store.certifications_for(employee.id),
            required_certification_types(store.required_types(employee.organisation_id), context),
            now
        )
        return [check.model_dump(mode="json") for check in result.blocking_reasons]

    def _refused(self, verb: str, actor: Optional[UserProfile], error: ComplianceError, **fields) -> OverrideOutcome:
        logger.warning(
            f"override_{verb}_refused",
            actor_id=actor.id if actor else None,
            error=error.message,
            error_type=type(error).__name__,
            **fields,
        )
        return OverrideOutcome(success=False, error=error.message, status_code=error.status_code)

    def _rollback(self) -> None:
        try:
            self.db.rollback()
        except Exception:
            logger.warning("override_rollback_failed", exc_info=True)
