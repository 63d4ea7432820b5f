"""
Authentication, permission and session tests.
"""

from datetime import timedelta

import pytest

from conftest import PASSWORD
from optistore.models import SessionToken
from optistore.services import auth_service, permission_service, session_service
from optistore.services.auth_service import PasswordValidationError, UserError
from optistore.services.permission_service import PermissionDeniedError
from optistore.time_utils import utcnow


# =============================================================================
# ACCOUNTS
# =============================================================================


class TestAccounts:

    @pytest.mark.parametrize("password", ["short1", "longenough", "1234567890", "", None])
    def test_weak_passwords(self, db_session, password):
        with pytest.raises(PasswordValidationError):
            auth_service.create_owner("weak", "weak@optistore.test", password, "Weak")

    def test_password_is_hashed(self, owner):
        assert owner.password_hash != PASSWORD
        assert owner.password_hash.startswith("$2")
        assert auth_service.verify_password(PASSWORD, owner.password_hash)
        assert not auth_service.verify_password("Password124", owner.password_hash)

    def test_malformed_hash_never_matches(self):
        assert auth_service.verify_password(PASSWORD, "not-a-bcrypt-hash") is False

    def test_duplicate_username(self, owner):
        with pytest.raises(UserError):
            auth_service.create_owner("owner", "other@optistore.test", PASSWORD, "Dup")

    def test_authenticate_stamps_last_login(self, owner):
        user = auth_service.authenticate("OWNER@optistore.test", PASSWORD)

        assert user.id == owner.id
        assert user.last_login_at is not None

    def test_inactive_user_cannot_authenticate(self, db_session, owner):
        owner.is_active = False
        db_session.commit()

        assert auth_service.authenticate("owner", PASSWORD) is None

    def test_employee_cannot_be_assigned_foreign_store(self, owner, other_store):
        with pytest.raises(UserError):
            auth_service.create_employee(
                owner, "mole", "mole@optistore.test", PASSWORD, "Mole",
                assigned_store_ids=[other_store.id],
            )

    def test_unknown_permission_area(self, owner, store):
        with pytest.raises(ValueError):
            auth_service.create_employee(
                owner, "clerk2", "clerk2@optistore.test", PASSWORD, "Clerk",
                permissions={"payroll": ["view"]},
            )


# =============================================================================
# PERMISSIONS
# =============================================================================


class TestPermissions:

    def test_owner_has_everything(self, owner):
        for area in permission_service.AREAS:
            for action in permission_service.ACTIONS:
                assert permission_service.has_permission(owner, area, action)

    def test_employee_has_listed_permissions_only(self, employee):
        assert permission_service.has_permission(employee, "invoices", "create")
        assert not permission_service.has_permission(employee, "invoices", "delete")
        assert not permission_service.has_permission(employee, "stores", "view")

        with pytest.raises(PermissionDeniedError):
            permission_service.require_permission(employee, "clients", "edit")

    def test_store_access(self, owner, employee, store, other_store):
        assert permission_service.can_access_store(owner, store)
        assert not permission_service.can_access_store(owner, other_store)
        assert permission_service.can_access_store(employee, store)
        assert not permission_service.can_access_store(employee, other_store)

    def test_normalize_deduplicates(self):
        assert permission_service.normalize_permissions(
            {"clients": ["view", "edit", "view"]}
        ) == {"clients": ["edit", "view"]}


# =============================================================================
# SESSIONS
# =============================================================================


class TestSessions:

    def test_token_is_stored_hashed(self, db_session, owner):
        session, token = session_service.create_session(owner.id)

        assert len(token) == 64
        assert session.token_hash == session_service.hash_token(token)
        assert db_session.query(SessionToken).filter_by(token_hash=token).count() == 0

    def test_validate_and_revoke(self, owner):
        _, token = session_service.create_session(owner.id)

        assert session_service.validate_session(token).id == owner.id
        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_expired_session(self, db_session, owner):
        session, token = session_service.create_session(owner.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None

    def test_cleanup_removes_old_dead_sessions(self, db_session, owner):
        old, _ = session_service.create_session(owner.id)
        old.created_at = utcnow() - timedelta(days=40)
        old.expires_at = old.created_at + timedelta(hours=24)
        session_service.create_session(owner.id)
        db_session.commit()

        assert session_service.cleanup_expired_sessions() == 1
        assert db_session.query(SessionToken).count() == 1
