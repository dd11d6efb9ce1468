"""Domain models - employees, their certifications, and compliance overrides."""
import uuid
from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from compliance_engine.database import Base
from compliance_engine.models.enums import (
    CertificationStatus,
    ContextType,
    EmployeeStatus,
    UserRole,
)


def _new_id() -> str:
    return str(uuid.uuid4())


class Employee(Base):
    """A worker who can be assigned to shifts, clients or services."""
    __tablename__ = "employees"

    id = Column(String, primary_key=True, default=_new_id)
    organisation_id = Column(String, nullable=False, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    status = Column(SQLEnum(EmployeeStatus), nullable=False, default=EmployeeStatus.ACTIVE)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    certifications = relationship("EmployeeCertification", back_populates="employee")


class UserProfile(Base):
    """
    An application user. The server-side source of truth for role and display name.

    Roles are never accepted from the client.
    """
    __tablename__ = "user_profiles"

    id = Column(String, primary_key=True, default=_new_id)
    organisation_id = Column(String, nullable=True)
    email = Column(String, nullable=False)
    display_name = Column(String, nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.EMPLOYEE)


class EmployeeCertification(Base):
    """
    A certification record, owned by the upload/approval workflows.

    Read-only to the compliance engine.
    """
    __tablename__ = "employee_certifications"

    id = Column(String, primary_key=True, default=_new_id)
    organisation_id = Column(String, nullable=False)
    employee_id = Column(String, ForeignKey("employees.id"), nullable=False, index=True)
    name = Column(String, nullable=True)
    type = Column(String, nullable=False)  # police_check, ndis_screening, first_aid, ...
    issue_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True)
    status = Column(SQLEnum(CertificationStatus), nullable=False, default=CertificationStatus.PENDING)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee = relationship("Employee", back_populates="certifications")


class OrganisationRequirement(Base):
    """One certification type an organisation requires of every worker."""
    __tablename__ = "organisation_requirements"
    __table_args__ = (
        UniqueConstraint("organisation_id", "certification_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    organisation_id = Column(String, nullable=False, index=True)
    certification_type = Column(String, nullable=False)


class ComplianceOverride(Base):
    """
    A time-bounded exception permitting assignment despite non-compliance.

    Invariants:
    - expires_at <= created_at + 14 days (checked when written, never re-checked)
    - Never deleted; revocation flips is_active to False
    - blocked_certifications is a snapshot taken at creation time
    - Natural expiry is evaluated when read, there is no sweep
    """
    __tablename__ = "compliance_overrides"
    __table_args__ = (
        Index("ix_compliance_overrides_employee_active", "employee_id", "is_active"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    organisation_id = Column(String, nullable=False)
    employee_id = Column(String, ForeignKey("employees.id"), nullable=False)

    override_by = Column(String, nullable=False)
    override_by_name = Column(String, nullable=False)
    override_by_email = Column(String, nullable=False, default="")
    reason = Column(String, nullable=False)
    blocked_certifications = Column(JSON, nullable=False, default=list)

    context_type = Column(SQLEnum(ContextType), nullable=False, default=ContextType.GENERAL)
    context_id = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
