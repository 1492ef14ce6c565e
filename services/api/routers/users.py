"""User endpoints: login, registration, profiles and approval."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from services import users as user_service
from services.api.deps import admin_only, authenticated, get_store, page_params, parse_id
from utils import responses
from utils.db import Store
from utils.query import PageRequest
from utils.schemas import ApprovalStatus, ApprovalUpdate, LoginRequest, Role, UserCreate, UserUpdate
from utils.security import Identity, ensure_owner_or_admin

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/login")
def login(payload: LoginRequest, store: Store = Depends(get_store)):
    result = user_service.authenticate(store, payload.email, payload.password)
    return responses.success(result, "Login successful")


@router.post("")
def register(payload: UserCreate, store: Store = Depends(get_store)):
    user = user_service.create_user(store, payload)
    return responses.created(user, "User created successfully")


@router.get("")
def list_users(
    role: Optional[Role] = Query(default=None),
    is_approved: Optional[ApprovalStatus] = Query(default=None),
    search: Optional[str] = Query(default=None),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: Optional[str] = Query(default=None, alias="sortOrder"),
    page: PageRequest = Depends(page_params),
    store: Store = Depends(get_store),
    _: Identity = Depends(admin_only),
):
    criteria = {
        "role": role.value if role else None,
        "is_approved": is_approved.value if is_approved else None,
        "search": search,
    }
    rows, info = user_service.list_users(store, criteria, page, sort_by, sort_order)
    return responses.paginated("users", rows, info, "Users retrieved successfully")


@router.get("/{user_id}")
def get_user(user_id: str, store: Store = Depends(get_store), identity: Identity = Depends(authenticated)):
    user_id = parse_id(user_id, "user ID")
    ensure_owner_or_admin(identity, user_id, "view this user")
    return responses.success(user_service.get_user(store, user_id), "User retrieved successfully")


@router.put("/{user_id}")
def update_user(
    user_id: str,
    payload: UserUpdate,
    store: Store = Depends(get_store),
    identity: Identity = Depends(authenticated),
):
    user_id = parse_id(user_id, "user ID")
    ensure_owner_or_admin(identity, user_id, "update this user")
    user = user_service.update_user(store, user_id, payload.model_dump(exclude_unset=True))
    return responses.success(user, "User updated successfully")


@router.patch("/{user_id}/approval")
def set_approval(
    user_id: str,
    payload: ApprovalUpdate,
    store: Store = Depends(get_store),
    _: Identity = Depends(admin_only),
):
    user = user_service.set_approval(store, parse_id(user_id, "user ID"), payload.is_approved)
    return responses.success(user, "User approval updated successfully")


@router.delete("/{user_id}")
def delete_user(user_id: str, store: Store = Depends(get_store), _: Identity = Depends(admin_only)):
    user_service.delete_user(store, parse_id(user_id, "user ID"))
    return responses.success(None, "User deleted successfully")
