# Overview: Service-layer operations for auth; password hashing, registration and login.

"""
Authentication Service

Passwords are hashed with bcrypt (BCRYPT_LOG_ROUNDS, 12 by default) and validated for
strength before hashing. Access tokens are issued by token_service.

SECURITY NOTES:
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Login failures never reveal whether the email exists
"""

import re

import bcrypt
from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError

from ..errors import AlreadyExists, InvalidInput, NotFound, Unauthorized
from ..extensions import db
from ..models import User, ROLE_CUSTOMER, VALID_ROLES
from . import token_service
from .audit_service import log_audit
from ..time_utils import to_utc_z


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(InvalidInput):
    """Raised when password doesn't meet strength requirements."""
    pass


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

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-+=\[\]/\\;~`]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def normalize_email(email) -> str:
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        raise InvalidInput("A valid email is required")
    return email.strip().lower()


def hash_password(password: str) -> str:
    """Hash password using bcrypt (strength checked first)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_LOG_ROUNDS", 12) if has_app_context() else 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is timing-safe; malformed hashes simply fail."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(email: str, password: str, role: str = ROLE_CUSTOMER) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises InvalidInput for a bad email/role/weak password and
    AlreadyExists when the email is taken.
    """
    email = normalize_email(email)
    if role not in VALID_ROLES:
        raise InvalidInput(f"role must be one of: {', '.join(sorted(VALID_ROLES))}")

    if db.session.query(User.id).filter_by(email=email).first():
        raise AlreadyExists("Email is already taken")

    user = User(email=email, password_hash=hash_password(password), role=role)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.session.rollback()
        raise AlreadyExists("Email is already taken")
    return user


def register_user(email: str, password: str) -> User:
    """Self-service registration always yields a customer."""
    user = create_user(email, password, role=ROLE_CUSTOMER)
    log_audit(user.id, "user_register", "users", {"user_id": user.id})
    return user


def authenticate(email: str, password: str) -> User | None:
    """Return the user when the credentials match, None otherwise."""
    if not isinstance(email, str) or not isinstance(password, str):
        return None
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        return None
    if verify_password(password, user.password_hash):
        return user
    return None


def login(email: str, password: str) -> dict:
    user = authenticate(email, password)
    if not user:
        raise Unauthorized("Invalid email or password")

    token, expires_at = token_service.issue_token(user)
    log_audit(user.id, "user_login", "users", {"user_id": user.id})
    return {
        "token": token,
        "token_type": "Bearer",
        "expires_at": to_utc_z(expires_at),
        "user": user.to_dict(),
    }


def set_role(user_id: str, role: str) -> User:
    if role not in VALID_ROLES:
        raise InvalidInput(f"role must be one of: {', '.join(sorted(VALID_ROLES))}")
    user = db.session.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    user.role = role
    db.session.commit()
    return user
