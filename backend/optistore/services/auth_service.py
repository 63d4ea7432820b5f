# Overview: Service-layer operations for auth; user accounts and password checks.

"""
Authentication Service

Owners sign up and own stores. Employees are created by an owner, work in
the owner's stores they are assigned to, and carry per-area permissions.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, at least one letter and one digit
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Store, User
from ..models.auth import ROLE_EMPLOYEE, ROLE_OWNER
from optistore.services.permission_service import normalize_permissions
from optistore.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class UserError(Exception):
    """Raised for user account errors."""
    pass


def validate_password_strength(password: str) -> None:
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r"[A-Za-z]", password):
        raise PasswordValidationError("Password must contain at least one letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe comparison via bcrypt.checkpw; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _ensure_unique(username: str, email: str) -> None:
    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise UserError("Username or email already exists")


def create_owner(username: str, email: str, password: str, name: str) -> User:
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email:
        raise UserError("username and email are required")
    _ensure_unique(username, email)

    user = User(
        username=username,
        email=email,
        name=(name or username).strip(),
        password_hash=hash_password(password),
        role=ROLE_OWNER,
    )
    db.session.add(user)
    db.session.commit()
    return user


def create_employee(
    owner: User,
    username: str,
    email: str,
    password: str,
    name: str,
    *,
    permissions: dict | None = None,
    assigned_store_ids: list[int] | None = None,
) -> User:
    """
    Create an employee account under an owner.

    Assigned stores must belong to the owner. Permissions are normalized to
    known areas and actions; unknown keys are rejected.
    """
    if not owner.is_owner:
        raise UserError("Only owners can create employees")

    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email:
        raise UserError("username and email are required")
    _ensure_unique(username, email)

    store_ids = sorted(set(assigned_store_ids or []))
    if store_ids:
        owned = {
            store_id for (store_id,) in db.session.query(Store.id).filter(
                Store.owner_id == owner.id, Store.id.in_(store_ids)
            )
        }
        foreign = [store_id for store_id in store_ids if store_id not in owned]
        if foreign:
            raise UserError(f"Stores not owned by this account: {foreign}")

    user = User(
        username=username,
        email=email,
        name=(name or username).strip(),
        password_hash=hash_password(password),
        role=ROLE_EMPLOYEE,
        owner_id=owner.id,
        permissions=normalize_permissions(permissions or {}),
        assigned_store_ids=store_ids,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Check credentials by username or email.

    Returns the User and stamps last_login_at, or None when the account is
    unknown, inactive, or the password does not match.
    """
    if not username or not password:
        return None

    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username.lower()),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
