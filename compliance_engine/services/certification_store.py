"""Read-only access to employees, their certifications and organisation requirements."""
from typing import List, Optional
from sqlalchemy.orm import Session
from compliance_engine.models.domain import (
    Employee,
    EmployeeCertification,
    OrganisationRequirement,
)


class CertificationStore:
    """Queries only. Certification records are written by upload/approval workflows elsewhere."""

    def __init__(self, db: Session):
        self.db = db

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        return self.db.query(Employee).filter(Employee.id == employee_id).first()

    def required_types(self, organisation_id: str) -> List[str]:
        """The organisation's configured set; empty means the defaults apply."""
        rows = self.db.query(OrganisationRequirement.certification_type).filter(
            OrganisationRequirement.organisation_id == organisation_id
        ).order_by(OrganisationRequirement.id).all()
        return [row[0] for row in rows]

    def certifications_for(self, employee_id: str) -> List[EmployeeCertification]:
        """All records for an employee, most recent first."""
        return self.db.query(EmployeeCertification).filter(
            EmployeeCertification.employee_id == employee_id
        ).order_by(EmployeeCertification.created_at.desc()).all()
