"""Pydantic schemas for request/response validation."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict
from compliance_engine.models.compliance import ComplianceResult, EvaluationContext
from compliance_engine.models.enums import ContextType


# Evaluation schemas
class EvaluateRequest(BaseModel):
    employee_id: str
    context: Optional[EvaluationContext] = None


class CanAssignResponse(BaseModel):
    allowed: bool
    result: ComplianceResult
    message: str = ""


# Override schemas
class ComplianceOverrideResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organisation_id: str
    employee_id: str
    override_by: str
    override_by_name: str
    reason: str
    blocked_certifications: List[Dict[str, Any]]
    context_type: ContextType
    context_id: Optional[str]
    created_at: datetime
    expires_at: datetime
    is_active: bool


# Audit schemas
class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    action: str
    entity_type: str
    entity_id: str
    organisation_id: Optional[str]
    user_id: Optional[str]
    user_email: Optional[str]
    user_name: Optional[str]
    old_values: Optional[Dict[str, Any]]
    after_values: Optional[Dict[str, Any]]
    created_at: datetime
