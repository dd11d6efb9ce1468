"""Pytest configuration and shared fixtures."""
import os

# Keep the app module from creating a database file on import
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from compliance_engine.database import Base
from compliance_engine.models.audit import AuditLog  # noqa: F401
from compliance_engine.models.domain import Employee, EmployeeCertification, UserProfile
from compliance_engine.models.enums import CertificationStatus, UserRole
from compliance_engine.services.evaluator import DEFAULT_REQUIRED_CERTIFICATIONS


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    # StaticPool so the API tests' worker threads share the one in-memory database
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def sample_employee(db_session):
    """An employee with no certifications at all."""
    employee = Employee(
        id="emp-1",
        organisation_id="org-1",
        first_name="Sam",
        last_name="Taylor",
        email="sam.taylor@example.org"
    )
    db_session.add(employee)
    db_session.commit()
    db_session.refresh(employee)
    return employee


def _user(db_session, user_id, role, name):
    user = UserProfile(
        id=user_id,
        organisation_id="org-1",
        email=f"{user_id}@example.org",
        display_name=name,
        role=role
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    return _user(db_session, "user-admin", UserRole.ADMIN, "Alex Admin")


@pytest.fixture
def director_user(db_session):
    return _user(db_session, "user-director", UserRole.DIRECTOR, "Dana Director")


@pytest.fixture
def manager_user(db_session):
    return _user(db_session, "user-manager", UserRole.MANAGER, "Morgan Manager")


@pytest.fixture
def staff_user(db_session):
    return _user(db_session, "user-staff", UserRole.EMPLOYEE, "Eli Employee")


@pytest.fixture
def add_certification(db_session):
    """Factory adding one certification record for an employee."""
    def _add(employee, cert_type, status=CertificationStatus.VALID, expiry_date=None, created_at=None):
        cert = EmployeeCertification(
            organisation_id=employee.organisation_id,
            employee_id=employee.id,
            name=cert_type.replace("_", " ").title(),
            type=cert_type,
            status=status,
            expiry_date=expiry_date,
            created_at=created_at or datetime.utcnow()
        )
        db_session.add(cert)
        db_session.commit()
        db_session.refresh(cert)
        return cert
    return _add


@pytest.fixture
def compliant_employee(sample_employee, add_certification):
    """An employee holding every default required certification, valid for a year."""
    for cert_type in DEFAULT_REQUIRED_CERTIFICATIONS:
        add_certification(sample_employee, cert_type, expiry_date=datetime.utcnow().date() + timedelta(days=365))
    return sample_employee
