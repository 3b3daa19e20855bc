# Overview: Service-layer operations for users and credentials.

"""
Authentication Service

WHY: Every sale and stock movement must be attributable. Uses bcrypt for
password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, upper, lower, digit and special character
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
import re
from sqlalchemy import func

from ..extensions import db
from ..models import ActivityLog, Sale, SessionToken, StockMovement, User
from ..models.auth import ROLES, ROLE_EMPLOYEE
from ..validation import ValidationError, ConflictError, NotFoundError
from retailpos.time_utils import utcnow
from . import session_service

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-?]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12 (strength checked first)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check; malformed hashes never verify."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_email(email) -> str:
    value = (email or "").strip().lower()
    if not EMAIL_RE.match(value):
        raise ValidationError("A valid email is required")
    return value


def _validate_role(role) -> str:
    value = (role or ROLE_EMPLOYEE).strip().upper()
    if value not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    return value


def create_user(
    name: str,
    email: str,
    password: str,
    role: str = ROLE_EMPLOYEE,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError / PasswordValidationError: bad input
        ConflictError: email already registered
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    email = _normalize_email(email)
    role = _validate_role(role)

    existing = db.session.query(User).filter(func.lower(User.email) == email).first()
    if existing:
        raise ConflictError("Email already registered")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )

    db.session.add(user)
    db.session.commit()
    return user


def update_user(user_id: int, patch: dict) -> User:
    """
    Update name, email, role, is_active or password.

    Deactivating a user revokes every live session.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    allowed = {"name", "email", "role", "is_active", "password"}
    unknown = sorted(set(patch) - allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    if "name" in patch:
        name = (patch["name"] or "").strip()
        if not name:
            raise ValidationError("name cannot be blank")
        user.name = name

    if "email" in patch:
        email = _normalize_email(patch["email"])
        clash = db.session.query(User).filter(
            func.lower(User.email) == email, User.id != user.id
        ).first()
        if clash:
            raise ConflictError("Email already registered")
        user.email = email

    if "role" in patch:
        user.role = _validate_role(patch["role"])

    if "password" in patch:
        user.password_hash = hash_password(patch["password"])

    deactivated = False
    if "is_active" in patch:
        if not isinstance(patch["is_active"], bool):
            raise ValidationError("is_active must be a boolean")
        deactivated = user.is_active and not patch["is_active"]
        user.is_active = patch["is_active"]

    db.session.commit()

    if deactivated:
        session_service.revoke_all_user_sessions(user.id, reason="User account deactivated")

    return user


def get_user_history(user_id: int) -> dict:
    """Counts of rows that keep a reference to the user."""
    return {
        "sales": db.session.query(Sale).filter(Sale.user_id == user_id).count(),
        "movements": db.session.query(StockMovement).filter(StockMovement.created_by_user_id == user_id).count(),
        "activity": db.session.query(ActivityLog).filter(ActivityLog.user_id == user_id).count(),
    }


def delete_user(user_id: int) -> dict:
    """
    Delete an account that never did anything.

    Users with sales, stock movements or activity entries are kept for the
    audit trail (ConflictError); deactivate them instead. Their session rows
    go with them. Returns the deleted user's summary.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    history = get_user_history(user.id)
    if any(history.values()):
        raise ConflictError("User has history; deactivate the account instead")

    summary = user.to_summary()
    db.session.query(SessionToken).filter(SessionToken.user_id == user.id).delete(synchronize_session=False)
    db.session.delete(user)
    db.session.commit()
    return summary


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.name.asc(), User.id.asc()).all()


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        func.lower(User.email) == (email or "").strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password or "", user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
