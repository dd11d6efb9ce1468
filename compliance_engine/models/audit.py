"""
Audit log model - the append-only trail of compliance-relevant actions.

Rows are inserted by the AuditRecorder and never updated or deleted,
so that every override decision can be reconstructed later.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON
from compliance_engine.database import Base


class AuditLog(Base):
    """
    Immutable audit entry.

    Invariants:
    - Once written, never edited or deleted
    - Append-only
    - One entry per state-changing call
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    action = Column(String, nullable=False, index=True)  # e.g., "admin.override"
    entity_type = Column(String, nullable=False)  # e.g., "compliance_override"
    entity_id = Column(String, nullable=False, index=True)
    organisation_id = Column(String, nullable=True)

    # Nullable for system events
    user_id = Column(String, nullable=True)
    user_email = Column(String, nullable=True)
    user_name = Column(String, nullable=True)

    old_values = Column(JSON, nullable=True)
    after_values = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)


class AuditAction:
    """Audit action names."""
    ADMIN_OVERRIDE = "admin.override"


class AuditEntityType:
    """Audit entity type names."""
    COMPLIANCE_OVERRIDE = "compliance_override"
