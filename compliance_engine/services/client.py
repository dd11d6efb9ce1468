"""
HTTP client for a remote evaluate-compliance endpoint.

Every call is bounded by a timeout. Timeouts, transport errors, error
responses and unreadable bodies all resolve to the fail-closed result,
so a caller can never mistake "no answer" for "no blocking reasons".
"""
from typing import Optional
import httpx
import structlog
from compliance_engine import settings
from compliance_engine.models.compliance import (
    AssignmentDecision,
    ComplianceResult,
    EvaluationContext,
)
from compliance_engine.services.evaluator import fail_closed_result

logger = structlog.get_logger()


class RemoteComplianceClient:
    """Calls POST /api/evaluate-compliance on a compliance service."""

    def __init__(
        self,
        base_url: str = settings.SERVICE_URL,
        timeout: float = settings.HTTP_TIMEOUT_SECONDS,
        actor_id: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        headers = {"X-User-Id": actor_id} if actor_id else {}
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    def evaluate(self, employee_id: str, context: Optional[EvaluationContext] = None) -> ComplianceResult:
        payload = {
            "employee_id": employee_id,
            "context": context.model_dump(mode="json") if context else None,
        }
        try:
            response = self._client.post("/api/evaluate-compliance", json=payload)
            response.raise_for_status()
            body = response.json()
            if body.get("failed_closed"):
                logger.error("remote_evaluation_failed_closed", employee_id=employee_id)
                return fail_closed_result(employee_id)
            return ComplianceResult.model_validate(body)
        except httpx.TimeoutException:
            logger.error("remote_evaluation_timeout", employee_id=employee_id, timeout=str(self._client.timeout))
            return fail_closed_result(employee_id)
        except Exception:
            logger.error("remote_evaluation_failed", employee_id=employee_id, exc_info=True)
            return fail_closed_result(employee_id)

    def can_assign(self, employee_id: str, context: Optional[EvaluationContext] = None) -> AssignmentDecision:
        result = self.evaluate(employee_id, context)
        allowed = result.assignable
        return AssignmentDecision(allowed=allowed, result=result)

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
