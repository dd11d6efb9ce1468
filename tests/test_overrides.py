"""
Tests for the override manager.

These tests prove:
- Only admin and director can create or revoke overrides, whatever else the request says
- Override expiry is capped at 14 days, server-side
- Overrides are never deleted, and expiry is enforced when read
- Failures come back as outcomes, never as exceptions
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from compliance_engine.models.compliance import (
    CertificationCheck,
    EvaluationContext,
    OverrideRequest,
)
from compliance_engine.models.domain import ComplianceOverride
from compliance_engine.models.enums import CertificationStatus, ContextType
from compliance_engine.services.overrides import (
    OverrideManager,
    find_matching_override,
    override_applies,
)


def make_request(employee_id="emp-1", days=10, reason="urgent roster gap", **kwargs):
    return OverrideRequest(
        employee_id=employee_id,
        reason=reason,
        expires_at=datetime.utcnow() + timedelta(days=days),
        **kwargs
    )


class TestOverrideAuthorization:
    """Only admin and director roles may manage overrides."""

    @pytest.mark.parametrize("user_fixture", ["admin_user", "director_user"])
    def test_admin_and_director_can_create(self, request, db_session, sample_employee, user_fixture):
        actor = request.getfixturevalue(user_fixture)
        outcome = OverrideManager(db_session).create_override(actor, make_request())

        assert outcome.success is True
        assert outcome.error is None
        assert outcome.override_id is not None

    @pytest.mark.parametrize("user_fixture", ["manager_user", "staff_user"])
    def test_other_roles_cannot_create(self, request, db_session, sample_employee, user_fixture):
        """Scenario: non-admin attempts createOverride and is refused."""
        actor = request.getfixturevalue(user_fixture)
        outcome = OverrideManager(db_session).create_override(actor, make_request())

        assert outcome.success is False
        assert "authorized" in outcome.error.lower()
        assert outcome.status_code == 403
        assert db_session.query(ComplianceOverride).count() == 0

    def test_unauthenticated_cannot_create(self, db_session, sample_employee):
        outcome = OverrideManager(db_session).create_override(None, make_request())

        assert outcome.success is False
        assert "authorized" in outcome.error.lower()

    def test_authorization_checked_before_other_input(self, db_session, staff_user):
        """An invalid request from an unauthorized actor still reports authorization."""
        bad = make_request(employee_id="nobody", days=30, reason="  ")
        outcome = OverrideManager(db_session).create_override(staff_user, bad)

        assert outcome.success is False
        assert outcome.status_code == 403
        assert "authorized" in outcome.error.lower()

    def test_other_roles_cannot_revoke(self, db_session, sample_employee, admin_user, manager_user):
        manager = OverrideManager(db_session)
        created = manager.create_override(admin_user, make_request())

        outcome = manager.revoke_override(manager_user, created.override_id)

        assert outcome.success is False
        assert "authorized" in outcome.error.lower()
        override = db_session.query(ComplianceOverride).filter_by(id=created.override_id).one()
        assert override.is_active is True


class TestOverrideBounds:
    """The 14-day cap and other input rules."""

    def test_expiry_beyond_14_days_refused(self, db_session, sample_employee, admin_user):
        """Scenario: admin asks for 20 days and is refused, citing the cap."""
        outcome = OverrideManager(db_session).create_override(admin_user, make_request(days=20))

        assert outcome.success is False
        assert "14 days" in outcome.error
        assert outcome.status_code == 400
        assert db_session.query(ComplianceOverride).count() == 0

    def test_expiry_at_exactly_14_days_allowed(self, db_session, sample_employee, admin_user):
        now = datetime(2026, 5, 4, 12, 0)
        manager = OverrideManager(db_session, clock=lambda: now)
        request = OverrideRequest(
            employee_id=sample_employee.id,
            reason="agency cover",
            expires_at=now + timedelta(days=14)
        )

        outcome = manager.create_override(admin_user, request)

        assert outcome.success is True
        override = db_session.query(ComplianceOverride).one()
        assert override.expires_at <= override.created_at + timedelta(days=14)

    def test_one_second_past_14_days_refused(self, db_session, sample_employee, admin_user):
        now = datetime(2026, 5, 4, 12, 0)
        manager = OverrideManager(db_session, clock=lambda: now)
        request = OverrideRequest(
            employee_id=sample_employee.id,
            reason="agency cover",
            expires_at=now + timedelta(days=14, seconds=1)
        )

        outcome = manager.create_override(admin_user, request)

        assert outcome.success is False
        assert "14 days" in outcome.error

    def test_expiry_in_the_past_refused(self, db_session, sample_employee, admin_user):
        outcome = OverrideManager(db_session).create_override(admin_user, make_request(days=-1))

        assert outcome.success is False
        assert "future" in outcome.error

    def test_blank_reason_refused(self, db_session, sample_employee, admin_user):
        outcome = OverrideManager(db_session).create_override(admin_user, make_request(reason="   "))

        assert outcome.success is False
        assert "reason" in outcome.error.lower()

    def test_unknown_employee_not_found(self, db_session, admin_user):
        outcome = OverrideManager(db_session).create_override(admin_user, make_request(employee_id="ghost"))

        assert outcome.success is False
        assert outcome.error == "Employee not found"
        assert outcome.status_code == 404

    def test_timezone_aware_expiry_accepted(self, db_session, sample_employee, admin_user):
        request = OverrideRequest(
            employee_id=sample_employee.id,
            reason="agency cover",
            expires_at=datetime.now(timezone.utc) + timedelta(days=3)
        )
        assert request.expires_at.tzinfo is None

        outcome = OverrideManager(db_session).create_override(admin_user, request)
        assert outcome.success is True


class TestOverrideRecord:
    """What a created override looks like."""

    def test_override_resolves_organisation_and_actor(self, db_session, sample_employee, admin_user):
        outcome = OverrideManager(db_session).create_override(
            admin_user, make_request(context_type=ContextType.SHIFT, context_id="shift-42")
        )

        override = db_session.query(ComplianceOverride).filter_by(id=outcome.override_id).one()
        assert override.organisation_id == sample_employee.organisation_id
        assert override.override_by == admin_user.id
        assert override.override_by_name == "Alex Admin"
        assert override.reason == "urgent roster gap"
        assert override.context_type == ContextType.SHIFT
        assert override.context_id == "shift-42"
        assert override.is_active is True

    def test_supplied_blocked_certifications_snapshotted(self, db_session, sample_employee, admin_user):
        blocked = [CertificationCheck(type="cpr", status=CertificationStatus.EXPIRED)]
        outcome = OverrideManager(db_session).create_override(
            admin_user, make_request(blocked_certifications=blocked)
        )

        override = db_session.query(ComplianceOverride).filter_by(id=outcome.override_id).one()
        assert override.blocked_certifications == [
            {"type": "cpr", "status": "expired", "expiry_date": None, "days_until_expiry": None}
        ]

    def test_snapshot_taken_from_store_when_not_supplied(
        self, db_session, sample_employee, admin_user, add_certification
    ):
        outcome = OverrideManager(db_session).create_override(admin_user, make_request())

        override = db_session.query(ComplianceOverride).filter_by(id=outcome.override_id).one()
        snapshot_types = [c["type"] for c in override.blocked_certifications]
        assert snapshot_types == ["police_check", "ndis_screening", "first_aid", "cpr", "wwcc"]

        # Later certification changes do not alter what was granted
        add_certification(sample_employee, "cpr")
        db_session.refresh(override)
        assert len(override.blocked_certifications) == 5

    def test_snapshot_uses_the_override_context(self, db_session, compliant_employee, admin_user):
        """A driving shift snapshots the licence and any extra requirements."""
        outcome = OverrideManager(db_session).create_override(
            admin_user,
            make_request(
                context_type=ContextType.SHIFT,
                context_id="shift-7",
                requires_driving=True,
                additional_requirements=["wwcc_vic"]
            )
        )

        override = db_session.query(ComplianceOverride).filter_by(id=outcome.override_id).one()
        assert [(c["type"], c["status"]) for c in override.blocked_certifications] == [
            ("drivers_license", "missing"),
            ("wwcc_vic", "missing"),
        ]


class TestOverrideRevocation:
    """Revocation is a state transition, never a delete."""

    def test_revoke_deactivates_but_keeps_row(self, db_session, sample_employee, admin_user, director_user):
        manager = OverrideManager(db_session)
        created = manager.create_override(admin_user, make_request())

        outcome = manager.revoke_override(director_user, created.override_id)

        assert outcome.success is True
        override = db_session.query(ComplianceOverride).filter_by(id=created.override_id).one()
        assert override.is_active is False

    def test_revoke_unknown_override_not_found(self, db_session, admin_user):
        outcome = OverrideManager(db_session).revoke_override(admin_user, "missing-id")

        assert outcome.success is False
        assert outcome.error == "Override not found"
        assert outcome.status_code == 404

    def test_revoke_twice_refused(self, db_session, sample_employee, admin_user):
        manager = OverrideManager(db_session)
        created = manager.create_override(admin_user, make_request())
        manager.revoke_override(admin_user, created.override_id)

        outcome = manager.revoke_override(admin_user, created.override_id)

        assert outcome.success is False
        assert "already been revoked" in outcome.error


class TestActiveOverrides:
    """Active means flagged active and not yet expired."""

    def test_active_overrides_newest_first(self, db_session, sample_employee, admin_user):
        start = datetime(2026, 5, 4, 12, 0)
        first = OverrideManager(db_session, clock=lambda: start).create_override(
            admin_user, OverrideRequest(employee_id="emp-1", reason="first", expires_at=start + timedelta(days=5))
        )
        second = OverrideManager(db_session, clock=lambda: start + timedelta(hours=1)).create_override(
            admin_user, OverrideRequest(employee_id="emp-1", reason="second", expires_at=start + timedelta(days=5))
        )

        active = OverrideManager(db_session).get_active_overrides("emp-1", now=start + timedelta(hours=2))

        assert [o.id for o in active] == [second.override_id, first.override_id]

    def test_naturally_expired_override_filtered_on_read(self, db_session, sample_employee, admin_user):
        start = datetime(2026, 5, 4, 12, 0)
        manager = OverrideManager(db_session, clock=lambda: start)
        manager.create_override(
            admin_user, OverrideRequest(employee_id="emp-1", reason="cover", expires_at=start + timedelta(days=2))
        )

        assert len(manager.get_active_overrides("emp-1", now=start + timedelta(days=1))) == 1
        assert manager.get_active_overrides("emp-1", now=start + timedelta(days=3)) == []

        # Still flagged active in storage: there is no expiry sweep
        assert db_session.query(ComplianceOverride).one().is_active is True

    def test_revoked_override_not_listed(self, db_session, sample_employee, admin_user):
        manager = OverrideManager(db_session)
        created = manager.create_override(admin_user, make_request())
        manager.revoke_override(admin_user, created.override_id)

        assert manager.get_active_overrides("emp-1") == []

    def test_store_failure_is_raised_not_reported_as_empty(self):
        session = MagicMock()
        session.query.side_effect = OperationalError("SELECT * FROM compliance_overrides", {}, Exception("down"))

        with pytest.raises(OperationalError):
            OverrideManager(session).get_active_overrides("emp-1")


class TestContextMatching:
    """Which overrides cover which evaluation contexts."""

    def _override(self, context_type, context_id=None):
        return ComplianceOverride(id="ov", context_type=context_type, context_id=context_id)

    def test_general_override_covers_any_context(self):
        override = self._override(ContextType.GENERAL)
        assert override_applies(override, EvaluationContext(context_type=ContextType.CLIENT, context_id="c-1"))

    def test_general_evaluation_covered_by_scoped_override(self):
        override = self._override(ContextType.SHIFT, "shift-1")
        assert override_applies(override, EvaluationContext())

    def test_scoped_override_requires_matching_type(self):
        override = self._override(ContextType.SHIFT)
        assert not override_applies(override, EvaluationContext(context_type=ContextType.CLIENT))

    def test_scoped_override_requires_matching_id(self):
        override = self._override(ContextType.SHIFT, "shift-1")
        assert override_applies(override, EvaluationContext(context_type=ContextType.SHIFT, context_id="shift-1"))
        assert not override_applies(override, EvaluationContext(context_type=ContextType.SHIFT, context_id="shift-2"))

    def test_find_matching_skips_non_matching(self):
        client_override = self._override(ContextType.CLIENT)
        shift_override = self._override(ContextType.SHIFT)
        context = EvaluationContext(context_type=ContextType.SHIFT)

        assert find_matching_override([client_override, shift_override], context) is shift_override
        assert find_matching_override([client_override], context) is None
