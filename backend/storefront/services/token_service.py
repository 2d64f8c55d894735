# Overview: Stateless access tokens; HS256 JWTs carrying user id and role.

"""
Access Token Service

Tokens are signed JWTs valid until their `exp` claim. There is no
revocation list and no refresh flow: verification is pure and needs no
database access, so the guard can run before any session work.

Claims:
- sub:  user id
- role: "customer" | "admin"
- iat / exp: issue and expiry time (UTC epoch seconds)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

from ..errors import Unauthorized
from ..models import User, VALID_ROLES
from ..time_utils import utcnow


@dataclass(frozen=True)
class Identity:
    """Verified caller attached to flask.g by the auth decorators."""
    user_id: str
    role: str
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _epoch(dt: datetime) -> int:
    return int(dt.replace(tzinfo=timezone.utc).timestamp())


def issue_token(user: User) -> tuple[str, datetime]:
    """Returns (encoded_token, expires_at)."""
    now = utcnow().replace(microsecond=0)
    expires_at = now + timedelta(hours=current_app.config["JWT_EXPIRES_HOURS"])
    claims = {
        "sub": user.id,
        "role": user.role,
        "iat": _epoch(now),
        "exp": _epoch(expires_at),
    }
    token = jwt.encode(
        claims,
        current_app.config["JWT_SECRET"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )
    return token, expires_at


def verify_token(token: str) -> Identity:
    """
    Verify signature and expiry and return the caller's identity.

    Expiry is checked against utcnow() so a frozen test clock applies.
    Raises Unauthorized for anything malformed, tampered, or expired.
    """
    if not token:
        raise Unauthorized("Authentication required")
    try:
        claims = jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"verify_exp": False, "verify_iat": False, "require": ["sub", "role", "exp"]},
        )
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid or expired token")

    exp = claims.get("exp")
    if not isinstance(exp, (int, float)) or exp <= _epoch(utcnow()):
        raise Unauthorized("Invalid or expired token")

    user_id = claims.get("sub")
    role = claims.get("role")
    if not isinstance(user_id, str) or not user_id or role not in VALID_ROLES:
        raise Unauthorized("Invalid or expired token")

    expires_at = datetime.fromtimestamp(exp, tz=timezone.utc).replace(tzinfo=None)
    return Identity(user_id=user_id, role=role, expires_at=expires_at)


def token_from_header(auth_header: str | None) -> str:
    if not auth_header or not auth_header.startswith("Bearer "):
        raise Unauthorized("Authentication required")
    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise Unauthorized("Authentication required")
    return token
