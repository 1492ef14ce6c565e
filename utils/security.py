"""
Security Utilities - Password Hashing and Access Tokens

Passwords are hashed with bcrypt; access tokens are HS256 JWTs carrying the
caller's id, email and role.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt

from utils.config import settings
from utils.errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Identity:
    """Verified caller, as decoded from an access token."""

    id: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def issue_token(user: dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    """
    Create an access token for a user row.

    Args:
        user: Row with at least id, email and role
        expires_minutes: Lifetime, defaults to settings.JWT_EXPIRES_MINUTES

    Returns:
        Encoded JWT
    """
    now = datetime.now(timezone.utc)
    lifetime = expires_minutes if expires_minutes is not None else settings.JWT_EXPIRES_MINUTES
    payload = {
        "id": user["id"],
        "email": user["email"],
        "role": user["role"],
        "iat": now,
        "exp": now + timedelta(minutes=lifetime),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Identity:
    """
    Verify a token and return the identity it carries.

    Raises:
        Unauthorized: If the token is expired, malformed or incomplete
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise Unauthorized("Token expired. Please login again.") from e
    except jwt.InvalidTokenError as e:
        logger.info("Token verification failed", extra={"error": str(e)})
        raise Unauthorized("Invalid or expired token") from e

    try:
        return Identity(id=payload["id"], email=payload["email"], role=payload["role"])
    except KeyError as e:
        raise Unauthorized("Invalid or expired token") from e


def ensure_owner_or_admin(identity: Identity, owner_id: Optional[str], action: str = "modify this resource") -> None:
    """Allow admins and the owning user; everyone else gets Forbidden."""
    if identity.is_admin or (owner_id is not None and identity.id == owner_id):
        return
    raise Forbidden(f"You do not have permission to {action}")
