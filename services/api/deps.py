"""
Request dependencies: store handle, caller identity, capability checks and
listing parameters.
"""

from typing import Optional

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from utils.db import Store
from utils.errors import Forbidden, Unauthorized, ValidationError
from utils.query import PageRequest
from utils.schemas import is_valid_uuid
from utils.security import Identity, decode_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("No token provided or invalid format")
    return decode_token(credentials.credentials)


class RequireRole:
    """Capability check shared by every protected route.

    `RequireRole()` admits any authenticated caller; `RequireRole("admin")`
    admits only the listed roles.
    """

    def __init__(self, *roles: str) -> None:
        self.roles = frozenset(roles)

    def __call__(self, identity: Identity = Depends(get_identity)) -> Identity:
        if self.roles and identity.role not in self.roles:
            raise Forbidden("Access denied. Insufficient role.")
        return identity


authenticated = RequireRole()
admin_only = RequireRole("admin")


def page_params(
    page: Optional[int] = Query(default=None),
    limit: Optional[int] = Query(default=None),
) -> PageRequest:
    return PageRequest.clamp(page, limit)


def parse_id(value: str, label: str = "ID") -> str:
    if not is_valid_uuid(value):
        raise ValidationError(f"Invalid {label} format")
    return value.lower()
