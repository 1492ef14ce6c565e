"""
User Service - Registration, Profiles, Approval and Login

Passwords never leave this module: every statement returning user rows
selects PUBLIC_COLUMNS only, except the login lookup.
"""

import logging
import uuid
from typing import Any, Mapping, Optional

from utils.db import Store
from utils.errors import Conflict, Forbidden, NotFound, Unauthorized
from utils.query import Filter, ListQuery, PageInfo, PageRequest, Statement, compose_update
from utils.schemas import ApprovalStatus, UserCreate
from utils.security import hash_password, issue_token, verify_password

logger = logging.getLogger(__name__)

PUBLIC_COLUMNS = (
    "id, first_name, last_name, email, phone, address, zip_code, profile_pic, "
    "role, is_approved, created_at, updated_at"
)

UPDATABLE_FIELDS = ("first_name", "last_name", "phone", "address", "zip_code", "profile_pic", "is_approved")

USER_LISTING = ListQuery(
    select=f"SELECT {PUBLIC_COLUMNS} FROM users u",
    count="SELECT COUNT(*) AS total FROM users u",
    filters=[
        Filter.eq("role", "u.role"),
        Filter.eq("is_approved", "u.is_approved"),
        Filter.contains("search", "u.first_name", "u.last_name", "u.email"),
    ],
    sortable={
        "created_at": "u.created_at",
        "updated_at": "u.updated_at",
        "first_name": "u.first_name",
        "last_name": "u.last_name",
        "email": "u.email",
        "role": "u.role",
    },
    tiebreaker="u.rowid",
)


def list_users(
    store: Store,
    criteria: Mapping[str, Any],
    page: PageRequest,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> tuple[list[dict[str, Any]], PageInfo]:
    return store.fetch_page(USER_LISTING, criteria, page, sort_by, sort_order)


def get_user(store: Store, user_id: str) -> dict[str, Any]:
    user = store.fetch_one(Statement(f"SELECT {PUBLIC_COLUMNS} FROM users WHERE id = ?1", [user_id]))
    if user is None:
        raise NotFound("User not found")
    return user


def email_exists(store: Store, email: str) -> bool:
    return store.fetch_one(Statement("SELECT id FROM users WHERE email = ?1", [email.lower()])) is not None


def create_user(store: Store, data: UserCreate) -> dict[str, Any]:
    """
    Register a new user.

    The email pre-check is a fast path only: two concurrent registrations can
    both pass it, and the UNIQUE constraint then rejects the second insert
    (surfaced as Conflict by the store).

    Raises:
        Conflict: If the email is already registered
    """
    if email_exists(store, data.email):
        raise Conflict("User with this email already exists")

    user = store.fetch_one(
        Statement(
            "INSERT INTO users (id, first_name, last_name, email, password, phone, address, zip_code, role) "
            "VALUES (?1, ?2, ?3, ?4, ?5, ?6, ?7, ?8, ?9) "
            f"RETURNING {PUBLIC_COLUMNS}",
            [
                str(uuid.uuid4()),
                data.first_name,
                data.last_name,
                data.email,
                hash_password(data.password),
                data.phone,
                data.address,
                data.zip_code,
                data.role,
            ],
        )
    )

    logger.info("User created", extra={"user_id": user["id"], "role": user["role"]})
    return user


def authenticate(store: Store, email: str, password: str) -> dict[str, Any]:
    """
    Check credentials and issue an access token.

    Returns:
        {"token": <jwt>, "user": <public user row>}

    Raises:
        Unauthorized: On unknown email or wrong password
        Forbidden: If the account has not been approved
    """
    row = store.fetch_one(
        Statement(f"SELECT {PUBLIC_COLUMNS}, password FROM users WHERE email = ?1", [email.lower()])
    )
    if row is None or not verify_password(password, row.pop("password")):
        logger.warning("Authentication failed", extra={"email": email, "reason": "invalid_credentials"})
        raise Unauthorized("Invalid email or password")

    if row["is_approved"] != ApprovalStatus.APPROVED.value:
        logger.warning("Authentication failed", extra={"email": email, "reason": "not_approved"})
        raise Forbidden("Account not approved. Please contact administrator.")

    logger.info("Authentication successful", extra={"user_id": row["id"], "email": email})
    return {"token": issue_token(row), "user": row}


def update_user(store: Store, user_id: str, patch: Mapping[str, Any]) -> dict[str, Any]:
    """
    Apply a partial profile update.

    Raises:
        EmptyPatch: If patch is empty
        NotFound: If the user does not exist
    """
    clause = compose_update(user_id, patch, allowed=UPDATABLE_FIELDS)
    user = store.fetch_one(clause.statement("users", returning=PUBLIC_COLUMNS))
    if user is None:
        raise NotFound("User not found")

    logger.info("User updated", extra={"user_id": user_id, "fields": sorted(patch)})
    return user


def set_approval(store: Store, user_id: str, status: str) -> dict[str, Any]:
    user = update_user(store, user_id, {"is_approved": status})
    logger.info("User approval changed", extra={"user_id": user_id, "is_approved": status})
    return user


def delete_user(store: Store, user_id: str) -> None:
    deleted = store.fetch_one(Statement("DELETE FROM users WHERE id = ?1 RETURNING id", [user_id]))
    if deleted is None:
        raise NotFound("User not found")

    logger.info("User deleted", extra={"user_id": user_id})
