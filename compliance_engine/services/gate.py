"""
Assignment gate - the single decision point for assignment workflows.

Combines the evaluator's result with any active, matching override.
Neither method raises: every failure resolves to a fail-closed result,
and a fail-closed result is never allowed.
"""
from datetime import datetime
from typing import Callable, Optional
import structlog
from sqlalchemy.orm import Session
from compliance_engine.models.compliance import (
    AssignmentDecision,
    ComplianceResult,
    EvaluationContext,
)
from compliance_engine.services.certification_store import CertificationStore
from compliance_engine.services.errors import NotFoundError
from compliance_engine.services.evaluator import (
    apply_override,
    evaluate_certifications,
    fail_closed_result,
    required_certification_types,
)
from compliance_engine.services.overrides import OverrideManager, find_matching_override

logger = structlog.get_logger()


class AssignmentGate:
    """Evaluates compliance and decides whether an assignment may proceed."""

    def __init__(
        self,
        db: Session,
        store: Optional[CertificationStore] = None,
        overrides: Optional[OverrideManager] = None,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.db = db
        self.store = store or CertificationStore(db)
        self.overrides = overrides or OverrideManager(db, clock=clock)
        self.clock = clock

    def evaluate(self, employee_id: str, context: Optional[EvaluationContext] = None) -> ComplianceResult:
        """Compute a fresh ComplianceResult. Any failure yields the fail-closed result."""
        context = context or EvaluationContext()
        now = self.clock()

        try:
            employee = self.store.get_employee(employee_id)
            if employee is None:
                raise NotFoundError("Employee not found")
            required = required_certification_types(
                self.store.required_types(employee.organisation_id), context
            )
            result = evaluate_certifications(
                employee_id, self.store.certifications_for(employee_id), required, now
            )
            override = None
            if result.blocking_reasons:
                override = find_matching_override(
                    self.overrides.get_active_overrides(employee_id, now=now), context
                )
        except Exception as e:
            logger.error(
                "compliance_evaluation_failed",
                employee_id=employee_id,
                context_type=context.context_type.value,
                error_type=type(e).__name__,
                exc_info=True,
            )
            return fail_closed_result(employee_id, now)

        if override is not None:
            result = apply_override(result, override)
            logger.info(
                "compliance_override_applied",
                employee_id=employee_id,
                override_id=override.id,
                context_type=context.context_type.value,
            )

        return result

    def can_assign(self, employee_id: str, context: Optional[EvaluationContext] = None) -> AssignmentDecision:
        """allowed is True only when nothing blocks or an override is active, and evaluation did not fail closed."""
        try:
            result = self.evaluate(employee_id, context)
        except Exception:
            logger.error("assignment_check_failed", employee_id=employee_id, exc_info=True)
            result = fail_closed_result(employee_id, self.clock())

        allowed = result.assignable
        logger.info(
            "assignment_decision",
            employee_id=employee_id,
            allowed=allowed,
            blocking=[r.type for r in result.blocking_reasons],
            override_active=result.override_active,
            failed_closed=result.failed_closed,
        )
        return AssignmentDecision(allowed=allowed, result=result)
