"""Enums for the compliance engine - these define the valid values for statuses, contexts and roles."""
from enum import Enum


class CertificationStatus(str, Enum):
    """Status of a certification, either as stored or as classified by the evaluator."""
    MISSING = "missing"
    PENDING = "pending"
    VALID = "valid"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"
    REJECTED = "rejected"


# A single one of these is enough to make a worker non-compliant
BLOCKING_STATUSES = frozenset({
    CertificationStatus.MISSING,
    CertificationStatus.EXPIRED,
    CertificationStatus.REJECTED,
})


class ContextType(str, Enum):
    """What an assignment (and therefore an override) is scoped to."""
    SHIFT = "shift"
    CLIENT = "client"
    SERVICE = "service"
    GENERAL = "general"


class UserRole(str, Enum):
    """Application roles. Only ADMIN and DIRECTOR may manage overrides."""
    ADMIN = "admin"
    DIRECTOR = "director"
    MANAGER = "manager"
    EMPLOYEE = "employee"


OVERRIDE_ROLES = frozenset({UserRole.ADMIN, UserRole.DIRECTOR})


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    TERMINATED = "terminated"
